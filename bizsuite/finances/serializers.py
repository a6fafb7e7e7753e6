from decimal import Decimal

from django.db import transaction as db_transaction
from rest_framework import serializers

from bizsuite.catalog.models import Product
from bizsuite.contacts.models import Contact
from . import services
from .models import AccountCategory, Account, Transaction, TransactionItem, TransactionVersion, Transfer


class AccountCategorySerializer(serializers.ModelSerializer):
    account_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = AccountCategory
        fields = ['id', 'name', 'type', 'description', 'is_system', 'account_count', 'created_at']
        read_only_fields = ['is_system', 'created_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Category name is required")
        return value


class AccountSerializer(serializers.ModelSerializer):
    category_id = serializers.PrimaryKeyRelatedField(
        queryset=AccountCategory.objects.all(),
        source='category',
    )
    category_name = serializers.CharField(source='category.name', read_only=True)
    category_type = serializers.CharField(source='category.type', read_only=True)

    class Meta:
        model = Account
        fields = ['id', 'name', 'description', 'category_id', 'category_name', 'category_type',
                  'initial_balance', 'current_balance', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['current_balance', 'created_at', 'updated_at']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        business = self.context.get('business')
        if business is not None:
            self.fields['category_id'].queryset = AccountCategory.objects.filter(business=business)

    def validate_name(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError("Account name must be at least 2 characters")
        return value

    def create(self, validated_data):
        validated_data['current_balance'] = validated_data.get('initial_balance', Decimal('0.00'))
        return super().create(validated_data)

    def update(self, instance, validated_data):
        account = super().update(instance, validated_data)
        if 'initial_balance' in validated_data:
            services.sync_account_balance(account.pk)
            account.refresh_from_db()
        return account


class TransactionItemSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(required=False)
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all(), required=False, allow_null=True)
    product_name = serializers.CharField(source='product.name', read_only=True, default=None)
    quantity_received = serializers.DecimalField(max_digits=12, decimal_places=3, required=False, allow_null=True)

    class Meta:
        model = TransactionItem
        fields = ['id', 'product', 'product_name', 'description', 'quantity', 'quantity_received',
                  'unit_price', 'discount', 'tax_rate', 'amount']
        read_only_fields = ['amount']

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Quantity must be greater than 0")
        return value

    def validate_unit_price(self, value):
        if value < 0:
            raise serializers.ValidationError("Unit price cannot be negative")
        return value

    def validate_discount(self, value):
        if value < 0 or value > 100:
            raise serializers.ValidationError("Discount must be between 0 and 100")
        return value

    def validate_tax_rate(self, value):
        if value < 0:
            raise serializers.ValidationError("Tax rate cannot be negative")
        return value


class TransactionSerializer(serializers.ModelSerializer):
    items = TransactionItemSerializer(many=True, required=False)
    account_id = serializers.PrimaryKeyRelatedField(queryset=Account.objects.all(), source='account')
    account_name = serializers.CharField(source='account.name', read_only=True)
    contact_id = serializers.PrimaryKeyRelatedField(
        queryset=Contact.objects.all(), source='contact', required=False, allow_null=True
    )
    balance_due = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    document_number = serializers.CharField(required=False, allow_blank=True, max_length=100)

    class Meta:
        model = Transaction
        fields = [
            'id', 'account_id', 'account_name', 'type', 'category', 'amount', 'description', 'date',
            'reference', 'notes', 'document_type', 'document_number', 'document_url',
            'contact_id', 'contact_name', 'contact_email', 'contact_phone', 'contact_address',
            'status', 'payment_received', 'balance_due', 'due_date',
            'discount_type', 'discount_value', 'tax_type', 'subtotal', 'discount_amount', 'tax_amount',
            'metadata', 'order', 'transfer', 'items',
            'created_by', 'updated_by', 'created_at', 'updated_at',
        ]
        read_only_fields = ['subtotal', 'discount_amount', 'tax_amount', 'order', 'transfer',
                            'created_by', 'updated_by', 'created_at', 'updated_at']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        business = self.context.get('business')
        if business is not None:
            self.fields['account_id'].queryset = Account.objects.filter(business=business)
            self.fields['contact_id'].queryset = Contact.objects.filter(business=business)
            self.fields['items'].child.fields['product'].queryset = Product.objects.filter(business=business)

    def validate_type(self, value):
        if value in ('transfer_in', 'transfer_out') and (self.instance is None or self.instance.type != value):
            raise serializers.ValidationError("Use the transfers endpoint to move money between accounts")
        return value

    def validate_amount(self, value):
        if value < 0:
            raise serializers.ValidationError("Amount cannot be negative")
        return value

    def validate_payment_received(self, value):
        if value < 0:
            raise serializers.ValidationError("Payment received cannot be negative")
        return value

    def validate_discount_value(self, value):
        if value < 0:
            raise serializers.ValidationError("Discount cannot be negative")
        return value

    def validate_metadata(self, value):
        if value in (None, ''):
            return {}
        if not isinstance(value, dict):
            raise serializers.ValidationError("Metadata must be an object")
        return value

    def validate(self, attrs):
        instance = self.instance
        items = attrs.get('items')

        def current(name, default=None):
            return attrs.get(name, getattr(instance, name, default) if instance else default)

        if items is None and instance is None and current('amount', Decimal('0')) <= 0:
            raise serializers.ValidationError({"amount": "Amount must be greater than 0"})

        if current('discount_type', 'flat') == 'percentage' and current('discount_value', Decimal('0')) > 100:
            raise serializers.ValidationError({"discount_value": "Percentage discount cannot exceed 100"})

        # A transaction with lines takes its amount from them
        has_lines = items is None and instance is not None and instance.items.exists()
        if has_lines and 'amount' in attrs and attrs['amount'] != instance.amount:
            raise serializers.ValidationError({"amount": "Amount is calculated from the line items"})

        number = attrs.get('document_number')
        business = self.context.get('business') or (instance.business if instance else None)
        if number and business is not None:
            taken = Transaction.objects.filter(business=business, document_number=number)
            if instance is not None:
                taken = taken.exclude(pk=instance.pk)
            if taken.exists():
                raise serializers.ValidationError({"document_number": "This document number is already in use"})

        if items is None:
            amount = current('amount', Decimal('0'))
            paid = current('payment_received', Decimal('0'))
            if paid > amount:
                raise serializers.ValidationError({"payment_received": "Payment received cannot exceed the amount"})
        return attrs

    def _save_items(self, txn, items_data):
        if items_data is not None:
            items = services.replace_items(txn, items_data)
        else:
            items = list(txn.items.all())
        # Discount or tax edits without new lines still change the totals
        services.recalculate_totals(txn, items)
        if txn.payment_received > txn.amount:
            raise serializers.ValidationError({"payment_received": "Payment received cannot exceed the bill total"})
        services.refresh_status(txn, items)
        services.save_with_document_number(txn)

    def create(self, validated_data):
        items_data = validated_data.pop('items', None)
        with db_transaction.atomic():
            txn = Transaction.objects.create(**validated_data)
            self._save_items(txn, items_data)
        return txn

    def update(self, instance, validated_data):
        items_data = validated_data.pop('items', None)
        with db_transaction.atomic():
            for attr, value in validated_data.items():
                setattr(instance, attr, value)
            instance.save()
            self._save_items(instance, items_data)
        return instance


class TransactionListSerializer(serializers.ModelSerializer):
    account_name = serializers.CharField(source='account.name', read_only=True)
    item_count = serializers.IntegerField(source='items.count', read_only=True)

    class Meta:
        model = Transaction
        fields = ['id', 'account', 'account_name', 'type', 'category', 'amount', 'description', 'date',
                  'document_type', 'document_number', 'contact', 'contact_name', 'status',
                  'payment_received', 'due_date', 'item_count', 'created_at']


class TransactionVersionSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True, default=None)

    class Meta:
        model = TransactionVersion
        fields = ['id', 'transaction', 'version', 'change_type', 'change_description', 'data',
                  'important', 'user', 'username', 'timestamp']
        read_only_fields = fields


class TransferSerializer(serializers.ModelSerializer):
    from_account_id = serializers.PrimaryKeyRelatedField(queryset=Account.objects.all(), source='from_account')
    to_account_id = serializers.PrimaryKeyRelatedField(queryset=Account.objects.all(), source='to_account')
    from_account_name = serializers.CharField(source='from_account.name', read_only=True)
    to_account_name = serializers.CharField(source='to_account.name', read_only=True)
    date = serializers.DateField(required=False)

    class Meta:
        model = Transfer
        fields = ['id', 'from_account_id', 'from_account_name', 'to_account_id', 'to_account_name',
                  'amount', 'description', 'date', 'reference', 'created_at']
        read_only_fields = ['created_at']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        business = self.context.get('business')
        if business is not None:
            self.fields['from_account_id'].queryset = Account.objects.filter(business=business)
            self.fields['to_account_id'].queryset = Account.objects.filter(business=business)

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Transfer amount must be greater than 0")
        return value

    def validate(self, attrs):
        if attrs['from_account'].pk == attrs['to_account'].pk:
            raise serializers.ValidationError({"to_account_id": "Cannot transfer to the same account"})
        return attrs
