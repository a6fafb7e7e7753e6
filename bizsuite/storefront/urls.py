from django.urls import path
from .views import (
    template_list, template_detail,
    website_list_create, website_detail,
    order_list_create, order_detail, order_status,
)

urlpatterns = [
    path('templates/', template_list, name='template-list'),
    path('templates/<int:pk>/', template_detail, name='template-detail'),
    path('websites/', website_list_create, name='website-list-create'),
    path('websites/<int:pk>/', website_detail, name='website-detail'),
    path('orders/', order_list_create, name='order-list-create'),
    path('orders/<int:pk>/', order_detail, name='order-detail'),
    path('orders/<int:pk>/status/', order_status, name='order-status'),
]
