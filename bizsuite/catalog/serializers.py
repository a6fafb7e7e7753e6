import uuid
from decimal import Decimal

from rest_framework import serializers

from .models import ProductCategory, Product


class ProductCategorySerializer(serializers.ModelSerializer):
    product_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = ProductCategory
        fields = ['id', 'name', 'is_default', 'product_count', 'created_at']
        read_only_fields = ['is_default', 'created_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Category name is required")
        business = self.context.get('business')
        queryset = ProductCategory.objects.filter(business=business, name__iexact=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if business is not None and queryset.exists():
            raise serializers.ValidationError("A category with this name already exists")
        return value


class ProductSerializer(serializers.ModelSerializer):
    # For writing: accept integer IDs, scoped to the caller's business in __init__
    category_id = serializers.PrimaryKeyRelatedField(
        queryset=ProductCategory.objects.all(),
        source='category',
        write_only=True,
        required=False,
        allow_null=True
    )
    category = ProductCategorySerializer(read_only=True)
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    effective_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'description', 'price', 'sku', 'category', 'category_id', 'category_name',
            'image_url', 'additional_images', 'inventory', 'in_stock', 'has_variants', 'variants',
            'weight', 'dimensions', 'tags', 'is_featured', 'is_on_sale', 'sale_price',
            'effective_price', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        business = self.context.get('business')
        if business is not None:
            self.fields['category_id'].queryset = ProductCategory.objects.filter(business=business)

    def validate_name(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError("Product name must be at least 2 characters")
        return value

    def validate_description(self, value):
        value = value.strip()
        if len(value) < 10:
            raise serializers.ValidationError("Description must be at least 10 characters")
        return value

    def validate_price(self, value):
        if value < 0:
            raise serializers.ValidationError("Price cannot be negative")
        return value

    def validate_inventory(self, value):
        if value < 0:
            raise serializers.ValidationError("Inventory cannot be negative")
        return value

    def validate_sale_price(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("Sale price cannot be negative")
        return value

    def validate_additional_images(self, value):
        if not isinstance(value, list) or not all(isinstance(url, str) for url in value):
            raise serializers.ValidationError("Additional images must be a list of URLs")
        return value

    def validate_dimensions(self, value):
        if value in (None, ''):
            return {}
        if not isinstance(value, dict):
            raise serializers.ValidationError("Dimensions must be an object with length, width and height")
        unknown = set(value) - {'length', 'width', 'height'}
        if unknown:
            raise serializers.ValidationError(f"Unknown dimension keys: {', '.join(sorted(unknown))}")
        return value

    def validate_tags(self, value):
        # A single string is accepted as a comma separated list
        if isinstance(value, str):
            value = [tag for tag in (part.strip() for part in value.split(',')) if tag]
        if not isinstance(value, list) or not all(isinstance(tag, str) for tag in value):
            raise serializers.ValidationError("Tags must be a list of strings")
        return value

    def validate_variants(self, value):
        if value in (None, ''):
            return []
        if not isinstance(value, list):
            raise serializers.ValidationError("Variants must be a list")
        cleaned = []
        for index, variant in enumerate(value):
            if not isinstance(variant, dict):
                raise serializers.ValidationError(f"Variant {index + 1} must be an object")
            name = variant.get('name')
            if not isinstance(name, str) or not name.strip():
                raise serializers.ValidationError(f"Variant {index + 1} needs a name")
            attributes = variant.get('attributes') or {}
            if not isinstance(attributes, dict) or not all(
                isinstance(k, str) and isinstance(v, str) for k, v in attributes.items()
            ):
                raise serializers.ValidationError(f"Variant {index + 1} attributes must map strings to strings")
            price = variant.get('price')
            if price is not None:
                try:
                    if Decimal(str(price)) < 0:
                        raise serializers.ValidationError(f"Variant {index + 1} price cannot be negative")
                except ArithmeticError:
                    raise serializers.ValidationError(f"Variant {index + 1} price must be a number")
            inventory = variant.get('inventory')
            if inventory is not None and (not isinstance(inventory, int) or isinstance(inventory, bool) or inventory < 0):
                raise serializers.ValidationError(f"Variant {index + 1} inventory must be a non-negative integer")
            cleaned.append({
                **variant,
                'id': str(variant.get('id') or uuid.uuid4()),
                'name': name.strip(),
                'attributes': attributes,
            })
        return cleaned

    def validate(self, attrs):
        instance = self.instance
        price = attrs.get('price', instance.price if instance else Decimal('0'))
        is_on_sale = attrs.get('is_on_sale', instance.is_on_sale if instance else False)
        sale_price = attrs.get('sale_price', instance.sale_price if instance else None)

        if is_on_sale and sale_price is None:
            raise serializers.ValidationError({"sale_price": "A product on sale needs a sale price"})
        if sale_price is not None and price is not None and sale_price > price:
            raise serializers.ValidationError({"sale_price": "Sale price cannot exceed the regular price"})

        variants = attrs.get('variants')
        if variants is not None and 'has_variants' not in attrs:
            attrs['has_variants'] = bool(variants)
        return attrs


class ProductListSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    effective_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'price', 'sale_price', 'effective_price', 'sku', 'category_id', 'category_name',
            'image_url', 'inventory', 'in_stock', 'has_variants', 'tags', 'is_featured', 'is_on_sale',
            'created_at'
        ]
