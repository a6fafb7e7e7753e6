import django_filters
from django.db.models import Q

from .models import Product


def parse_bool(value):
    return str(value).strip().lower() in ('1', 'true', 'yes')


class ProductFilter(django_filters.FilterSet):
    """Query-param filters for the product list"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.NumberFilter(field_name='category_id', lookup_expr='exact')
    in_stock = django_filters.CharFilter(method='filter_in_stock', label='In Stock')
    featured = django_filters.CharFilter(method='filter_featured', label='Featured')
    on_sale = django_filters.CharFilter(method='filter_on_sale', label='On Sale')

    class Meta:
        model = Product
        fields = ['search', 'category', 'in_stock', 'featured', 'on_sale']

    def filter_search(self, queryset, name, value):
        """Case-insensitive match on name, SKU or description"""
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(sku__icontains=value) |
            Q(description__icontains=value)
        )

    def filter_in_stock(self, queryset, name, value):
        return queryset.filter(in_stock=parse_bool(value))

    def filter_featured(self, queryset, name, value):
        return queryset.filter(is_featured=parse_bool(value))

    def filter_on_sale(self, queryset, name, value):
        return queryset.filter(is_on_sale=parse_bool(value))
