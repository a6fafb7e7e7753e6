from decimal import Decimal

from django.conf import settings
from django.db import models

INFLOW_TYPES = ('income', 'transfer_in')
OUTFLOW_TYPES = ('expense', 'transfer_out')


class AccountCategory(models.Model):
    """Chart-of-accounts grouping (asset, liability, equity, income, expense)"""
    TYPE_CHOICES = [
        ('asset', 'Asset'),
        ('liability', 'Liability'),
        ('equity', 'Equity'),
        ('income', 'Income'),
        ('expense', 'Expense'),
    ]

    business = models.ForeignKey('core.Business', on_delete=models.CASCADE, related_name='account_categories')
    name = models.CharField(max_length=100)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    description = models.TextField(blank=True)
    is_system = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} ({self.type})"

    class Meta:
        db_table = 'account_categories'
        verbose_name_plural = 'account categories'
        ordering = ['type', 'name']


class Account(models.Model):
    """Money account; current_balance is derived from its transactions"""
    business = models.ForeignKey('core.Business', on_delete=models.CASCADE, related_name='accounts')
    category = models.ForeignKey(AccountCategory, on_delete=models.PROTECT, related_name='accounts')
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    initial_balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    current_balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'accounts'
        ordering = ['name']


class Transfer(models.Model):
    """Movement of money between two accounts of the same business"""
    business = models.ForeignKey('core.Business', on_delete=models.CASCADE, related_name='transfers')
    from_account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name='outgoing_transfers')
    to_account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name='incoming_transfers')
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    description = models.TextField(blank=True)
    date = models.DateField()
    reference = models.CharField(max_length=100, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.from_account} -> {self.to_account}: {self.amount}"

    class Meta:
        db_table = 'transfers'
        ordering = ['-date', '-created_at']


class Transaction(models.Model):
    """
    Ledger entry. Purchase bills are expense transactions with
    document_type='bill'; sales invoices are income with document_type='invoice'.
    """
    TYPE_CHOICES = [
        ('income', 'Income'),
        ('expense', 'Expense'),
        ('transfer_in', 'Transfer In'),
        ('transfer_out', 'Transfer Out'),
    ]
    DOCUMENT_TYPE_CHOICES = [
        ('invoice', 'Invoice'),
        ('receipt', 'Receipt'),
        ('bill', 'Bill'),
        ('voucher', 'Voucher'),
    ]
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('pending', 'Pending'),
        ('partial', 'Partial'),
        ('completed', 'Completed'),
        ('paid', 'Paid'),
        ('cancelled', 'Cancelled'),
    ]
    DISCOUNT_TYPE_CHOICES = [
        ('flat', 'Flat'),
        ('percentage', 'Percentage'),
    ]
    TAX_TYPE_CHOICES = [
        ('exclusive', 'Exclusive'),
        ('inclusive', 'Inclusive'),
        ('none', 'No Tax'),
    ]

    business = models.ForeignKey('core.Business', on_delete=models.CASCADE, related_name='transactions')
    account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name='transactions')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, db_index=True)
    category = models.CharField(max_length=100, default='Uncategorized')
    amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    description = models.TextField(blank=True)
    date = models.DateField(db_index=True)
    reference = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)

    document_type = models.CharField(max_length=20, choices=DOCUMENT_TYPE_CHOICES, blank=True, db_index=True)
    document_number = models.CharField(max_length=100, blank=True, db_index=True)
    document_url = models.URLField(blank=True)

    contact = models.ForeignKey('contacts.Contact', on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions')
    contact_name = models.CharField(max_length=200, blank=True)
    contact_email = models.EmailField(blank=True)
    contact_phone = models.CharField(max_length=20, blank=True)
    contact_address = models.TextField(blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='completed', db_index=True)
    payment_received = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    due_date = models.DateField(null=True, blank=True)

    discount_type = models.CharField(max_length=20, choices=DISCOUNT_TYPE_CHOICES, default='flat')
    discount_value = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    tax_type = models.CharField(max_length=20, choices=TAX_TYPE_CHOICES, default='exclusive')
    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    discount_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))

    # Free-form extras only; received quantities live on TransactionItem
    metadata = models.JSONField(default=dict, blank=True)

    order = models.ForeignKey('storefront.Order', on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions')
    transfer = models.ForeignKey(Transfer, on_delete=models.CASCADE, null=True, blank=True, related_name='transactions')

    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_transactions')
    updated_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='updated_transactions')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.document_number or f"{self.get_type_display()} #{self.id}"

    @property
    def is_bill(self):
        return self.type == 'expense' and self.document_type == 'bill'

    @property
    def balance_due(self):
        return max(self.amount - self.payment_received, Decimal('0.00'))

    class Meta:
        db_table = 'transactions'
        ordering = ['-date', '-created_at']
        indexes = [
            models.Index(fields=['business', 'type', 'date'], name='idx_txn_business_type_date'),
            models.Index(fields=['account', 'status'], name='idx_txn_account_status'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['business', 'document_number'],
                condition=~models.Q(document_number=''),
                name='unique_document_number_per_business',
            ),
        ]


class TransactionItem(models.Model):
    """Bill/invoice line; quantity_received is the single receipt record"""
    transaction = models.ForeignKey(Transaction, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey('catalog.Product', on_delete=models.SET_NULL, null=True, blank=True, related_name='transaction_items')
    description = models.CharField(max_length=255, blank=True)
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    quantity_received = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0.000'))
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))

    def __str__(self):
        return self.description or f"Item #{self.id}"

    class Meta:
        db_table = 'transaction_items'
        ordering = ['id']


class TransactionVersion(models.Model):
    """Point-in-time snapshot of a transaction and its items"""
    CHANGE_TYPE_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('pre-restore', 'Pre-restore Backup'),
        ('restore', 'Restore'),
    ]

    transaction = models.ForeignKey(Transaction, on_delete=models.CASCADE, related_name='versions')
    business = models.ForeignKey('core.Business', on_delete=models.CASCADE, related_name='transaction_versions')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='transaction_versions')
    version = models.PositiveIntegerField()
    change_type = models.CharField(max_length=20, choices=CHANGE_TYPE_CHOICES)
    change_description = models.CharField(max_length=255, blank=True)
    data = models.JSONField(default=dict)
    important = models.BooleanField(default=False)
    timestamp = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.transaction_id} v{self.version} ({self.change_type})"

    class Meta:
        db_table = 'transaction_versions'
        ordering = ['-version']
        constraints = [
            models.UniqueConstraint(fields=['transaction', 'version'], name='unique_transaction_version'),
        ]
