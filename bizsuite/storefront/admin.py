from django.contrib import admin
from .models import Template, Website, Order


@admin.register(Template)
class TemplateAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'is_popular']
    list_filter = ['category', 'is_popular']
    search_fields = ['name', 'description']


@admin.register(Website)
class WebsiteAdmin(admin.ModelAdmin):
    list_display = ['name', 'business', 'template', 'is_active', 'created_at']
    list_filter = ['is_active', 'template']
    search_fields = ['name', 'business__name']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'business', 'customer_name', 'customer_email', 'total', 'status', 'from_chatbot', 'created_at']
    list_filter = ['status', 'from_chatbot', 'created_at']
    search_fields = ['customer_name', 'customer_email']
    readonly_fields = ['created_at']
