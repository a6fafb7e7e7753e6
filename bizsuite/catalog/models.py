from decimal import Decimal

from django.db import models

DEFAULT_CATEGORY_NAME = 'Other'


class ProductCategoryQuerySet(models.QuerySet):
    def default_for(self, business):
        """The business's fallback category, created on first use"""
        category, _ = self.get_or_create(
            business=business,
            name=DEFAULT_CATEGORY_NAME,
            defaults={'is_default': True},
        )
        if not category.is_default:
            category.is_default = True
            category.save(update_fields=['is_default'])
        return category


class ProductCategory(models.Model):
    """Storefront product categories, one set per business"""
    business = models.ForeignKey('core.Business', on_delete=models.CASCADE, related_name='product_categories')
    name = models.CharField(max_length=100)
    is_default = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = ProductCategoryQuerySet.as_manager()

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'product_categories'
        verbose_name_plural = 'product categories'
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['business', 'name'], name='unique_product_category_per_business'),
        ]


class Product(models.Model):
    """Catalog product sold through the storefront and the chatbot"""
    business = models.ForeignKey('core.Business', on_delete=models.CASCADE, related_name='products')
    name = models.CharField(max_length=200, db_index=True)
    description = models.TextField()
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    sku = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    category = models.ForeignKey(ProductCategory, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    image_url = models.URLField(blank=True)
    additional_images = models.JSONField(default=list, blank=True)
    inventory = models.PositiveIntegerField(default=0)
    in_stock = models.BooleanField(default=True)
    has_variants = models.BooleanField(default=False)
    # [{id, name, sku?, price?, inventory?, image_url?, attributes: {str: str}}]
    variants = models.JSONField(default=list, blank=True)
    weight = models.DecimalField(max_digits=10, decimal_places=3, null=True, blank=True)
    dimensions = models.JSONField(default=dict, blank=True)
    tags = models.JSONField(default=list, blank=True)
    is_featured = models.BooleanField(default=False)
    is_on_sale = models.BooleanField(default=False)
    sale_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @property
    def effective_price(self):
        if self.is_on_sale and self.sale_price is not None:
            return self.sale_price
        return self.price

    class Meta:
        db_table = 'products'
        ordering = ['-is_featured', '-created_at']
