from django.contrib import admin
from .models import AccountCategory, Account, Transaction, TransactionItem, TransactionVersion, Transfer


@admin.register(AccountCategory)
class AccountCategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'type', 'business', 'is_system', 'created_at']
    list_filter = ['type', 'is_system', 'business']
    search_fields = ['name', 'description']


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ['name', 'business', 'category', 'initial_balance', 'current_balance', 'is_active']
    list_filter = ['is_active', 'category__type', 'business']
    search_fields = ['name', 'description']
    readonly_fields = ['current_balance', 'created_at', 'updated_at']


class TransactionItemInline(admin.TabularInline):
    model = TransactionItem
    extra = 0
    readonly_fields = ['amount']


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ['id', 'document_number', 'business', 'account', 'type', 'amount', 'status', 'date']
    list_filter = ['type', 'document_type', 'status', 'date', 'business']
    search_fields = ['document_number', 'description', 'reference', 'contact_name']
    readonly_fields = ['subtotal', 'discount_amount', 'tax_amount', 'created_at', 'updated_at']
    inlines = [TransactionItemInline]


@admin.register(TransactionVersion)
class TransactionVersionAdmin(admin.ModelAdmin):
    list_display = ['transaction', 'version', 'change_type', 'important', 'user', 'timestamp']
    list_filter = ['change_type', 'important']
    readonly_fields = ['transaction', 'business', 'user', 'version', 'change_type', 'change_description', 'data', 'timestamp']


@admin.register(Transfer)
class TransferAdmin(admin.ModelAdmin):
    list_display = ['id', 'business', 'from_account', 'to_account', 'amount', 'date']
    list_filter = ['date', 'business']
    search_fields = ['reference', 'description']
