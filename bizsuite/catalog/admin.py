from django.contrib import admin
from .models import ProductCategory, Product


@admin.register(ProductCategory)
class ProductCategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'business', 'is_default', 'created_at']
    list_filter = ['is_default', 'business']
    search_fields = ['name', 'business__name']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'business', 'sku', 'category', 'price', 'sale_price', 'inventory', 'in_stock', 'is_featured']
    list_filter = ['in_stock', 'is_featured', 'is_on_sale', 'has_variants', 'business']
    search_fields = ['name', 'sku', 'description']
    readonly_fields = ['created_at', 'updated_at']
