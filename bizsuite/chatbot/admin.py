from django.contrib import admin

from .models import Conversation


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    list_display = ['id', 'business', 'customer_name', 'customer_email', 'updated_at']
    list_filter = ['business']
    search_fields = ['customer_name', 'customer_email']
    readonly_fields = ['created_at', 'updated_at']
