from django.contrib import admin
from .models import Contact


@admin.register(Contact)
class ContactAdmin(admin.ModelAdmin):
    list_display = ['name', 'contact_type', 'business', 'email', 'phone', 'is_active', 'created_at']
    list_filter = ['contact_type', 'is_active', 'business']
    search_fields = ['name', 'business_name', 'email', 'phone']
    readonly_fields = ['created_at', 'updated_at']
