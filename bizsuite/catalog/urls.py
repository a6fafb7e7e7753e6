from django.urls import path
from .views import (
    category_list_create, category_detail,
    product_list_create, product_detail,
)

urlpatterns = [
    path('product-categories/', category_list_create, name='product-category-list-create'),
    path('product-categories/<int:pk>/', category_detail, name='product-category-detail'),
    path('products/', product_list_create, name='product-list-create'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
]
