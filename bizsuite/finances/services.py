"""
Finance services: balances, bill lines, payments, versions and transfers.

Multi-step writes run inside ``transaction.atomic()``; rule violations raise
``BusinessRuleError`` so views can let DRF turn them into 400 responses.
"""
import logging
from datetime import date as date_cls
from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError, transaction as db_transaction
from django.db.models import Max, Q, Sum
from django.utils import timezone
from django.utils.dateparse import parse_date

from bizsuite.core.exceptions import BusinessRuleError
from bizsuite.core.utils import to_decimal
from . import billing
from .models import (
    INFLOW_TYPES, OUTFLOW_TYPES,
    AccountCategory, Account, Transaction, TransactionItem, TransactionVersion, Transfer,
)

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')

DEFAULT_ACCOUNT_CATEGORIES = [
    ('Assets', 'asset', 'Resources owned by the business'),
    ('Liabilities', 'liability', 'Debts and obligations owed by the business'),
    ('Equity', 'equity', "Owner's interest in the business"),
    ('Sales Revenue', 'income', 'Revenue from sales and operations'),
    ('Expenses', 'expense', 'Costs incurred in business operations'),
]

DOCUMENT_PREFIXES = {
    'bill': 'BILL',
    'invoice': 'INV',
    'receipt': 'RCPT',
    'voucher': 'VCH',
}
DOCUMENT_NUMBER_ATTEMPTS = 5

INVOICE_STATUS_BY_PAYMENT = {
    'unpaid': 'pending',
    'partial': 'partial',
    'paid': 'paid',
}

# Transaction columns captured in a version snapshot and written back on restore
SNAPSHOT_FIELDS = [
    'type', 'category', 'amount', 'description', 'date', 'reference', 'notes',
    'document_type', 'document_number', 'document_url',
    'contact_name', 'contact_email', 'contact_phone', 'contact_address',
    'status', 'payment_received', 'due_date',
    'discount_type', 'discount_value', 'tax_type', 'subtotal', 'discount_amount', 'tax_amount',
    'metadata',
]
DECIMAL_FIELDS = {'amount', 'payment_received', 'discount_value', 'subtotal', 'discount_amount', 'tax_amount'}
DATE_FIELDS = {'date', 'due_date'}
ITEM_FIELDS = ['description', 'quantity', 'quantity_received', 'unit_price', 'discount', 'tax_rate', 'amount']


# ── Account categories and balances ───────────────────────────

def ensure_default_account_categories(business):
    """Create the five system categories a new business starts with"""
    created = 0
    for name, category_type, description in DEFAULT_ACCOUNT_CATEGORIES:
        _, was_created = AccountCategory.objects.get_or_create(
            business=business,
            name=name,
            type=category_type,
            defaults={'description': description, 'is_system': True},
        )
        created += int(was_created)
    return created


def calculate_account_balance(account):
    """initial + Σ(income, transfer_in) − Σ(expense, transfer_out), cancelled excluded"""
    totals = Transaction.objects.filter(account=account).exclude(status='cancelled').aggregate(
        inflow=Sum('amount', filter=Q(type__in=INFLOW_TYPES)),
        outflow=Sum('amount', filter=Q(type__in=OUTFLOW_TYPES)),
    )
    inflow = totals['inflow'] or ZERO
    outflow = totals['outflow'] or ZERO
    return account.initial_balance + inflow - outflow


def sync_account_balance(account_id):
    """Recompute and store one account's balance; returns the new value"""
    account = Account.objects.filter(pk=account_id).first()
    if account is None:
        return None
    balance = calculate_account_balance(account)
    if balance != account.current_balance:
        # Queryset update keeps this out of the Account save signals
        Account.objects.filter(pk=account.pk).update(current_balance=balance, updated_at=timezone.now())
        logger.info(f"Updated account {account.pk} balance to {balance}")
    return balance


def sync_business_balances(business=None):
    """Recompute every account balance (optionally for a single business)"""
    accounts = Account.objects.all()
    if business is not None:
        accounts = accounts.filter(business=business)
    results = []
    for account in accounts.order_by('id'):
        old_balance = account.current_balance
        new_balance = sync_account_balance(account.pk)
        results.append({
            'account_id': account.pk,
            'name': account.name,
            'old_balance': old_balance,
            'new_balance': new_balance,
            'changed': old_balance != new_balance,
        })
    return results


def get_or_create_online_sales_account(business):
    """The income account that storefront and chatbot orders post to"""
    category_name = getattr(settings, 'SALES_REVENUE_CATEGORY_NAME', 'Sales Revenue')
    account_name = getattr(settings, 'ONLINE_SALES_ACCOUNT_NAME', 'Online Sales')

    category = AccountCategory.objects.filter(business=business, type='income', name=category_name).first()
    if category is None:
        category = AccountCategory.objects.create(
            business=business,
            name=category_name,
            type='income',
            description='Revenue from sales and operations',
            is_system=True,
        )

    account = Account.objects.filter(business=business, category=category, name=account_name).first()
    if account is None:
        account = Account.objects.create(
            business=business,
            category=category,
            name=account_name,
            description='Revenue from online sales',
        )
        logger.info(f"Created '{account_name}' account for business {business.pk}")
    return account


# ── Documents and lines ───────────────────────────────────────

def generate_document_number(business, document_type, on_date=None):
    """BILL-YYYYMMDD-0001 style numbers, sequential per business and day"""
    prefix = DOCUMENT_PREFIXES.get(document_type, 'TXN')
    on_date = on_date or timezone.now().date()
    stem = f"{prefix}-{on_date.strftime('%Y%m%d')}-"

    existing = Transaction.objects.filter(business=business, document_number__startswith=stem)
    sequence = existing.count() + 1
    document_number = f"{stem}{sequence:04d}"
    # Ensure uniqueness
    while existing.filter(document_number=document_number).exists():
        sequence += 1
        document_number = f"{stem}{sequence:04d}"
    return document_number


def save_with_document_number(txn):
    """
    Save ``txn``, numbering it first when it is a document without a number.

    Numbers are unique per business, so a writer that loses a race for the
    same number retries with the next free one.
    """
    if not txn.document_type or txn.document_number:
        txn.save()
        return txn

    for _ in range(DOCUMENT_NUMBER_ATTEMPTS):
        txn.document_number = generate_document_number(txn.business, txn.document_type, txn.date)
        try:
            with db_transaction.atomic():
                txn.save()
            return txn
        except IntegrityError:
            clash = Transaction.objects.filter(business_id=txn.business_id, document_number=txn.document_number)
            if not clash.exclude(pk=txn.pk).exists():
                raise
            logger.warning(f"Document number {txn.document_number} was taken, retrying")
    raise BusinessRuleError("Could not allocate a document number, please try again")


def replace_items(txn, items_data):
    """
    Replace the transaction's lines with ``items_data``.

    Lines that carry the id of an existing line keep its received quantity
    unless the payload sets one.
    """
    existing = {item.id: item for item in txn.items.all()}
    txn.items.all().delete()

    created = []
    for data in items_data:
        quantity = to_decimal(data.get('quantity'))
        previous = existing.get(data.get('id'))
        if 'quantity_received' in data and data.get('quantity_received') is not None:
            received = data.get('quantity_received')
        else:
            received = previous.quantity_received if previous else ZERO
        unit_price = to_decimal(data.get('unit_price'))
        discount = to_decimal(data.get('discount'))
        created.append(TransactionItem(
            transaction=txn,
            product=data.get('product'),
            description=data.get('description') or (data['product'].name if data.get('product') else ''),
            quantity=quantity,
            quantity_received=billing.clamp_received_quantity(received, quantity),
            unit_price=unit_price,
            discount=discount,
            tax_rate=to_decimal(data.get('tax_rate')),
            amount=billing.line_amount(quantity, unit_price, discount),
        ))
    TransactionItem.objects.bulk_create(created)
    return created


def refresh_status(txn, items=None):
    """Bills and invoices carry a status derived from receipt and payment"""
    if txn.status == 'cancelled':
        return txn.status
    if txn.is_bill:
        items = list(txn.items.all()) if items is None else items
        txn.status = billing.derive_bill_status(txn.amount, txn.payment_received, items)
    elif txn.document_type == 'invoice':
        txn.status = INVOICE_STATUS_BY_PAYMENT[billing.payment_status(txn.amount, txn.payment_received)]
    return txn.status


def recalculate_totals(txn, items=None):
    """Amount and breakdown from the lines; a transaction without lines keeps its amount"""
    items = list(txn.items.all()) if items is None else items
    if not items:
        return txn
    totals = billing.calculate_bill_totals(items, txn.discount_type, txn.discount_value, txn.tax_type)
    txn.subtotal = totals['subtotal']
    txn.discount_amount = totals['discount_amount']
    txn.tax_amount = totals['tax_amount']
    txn.amount = totals['total']
    return txn


# ── Versions ──────────────────────────────────────────────────

def _json_value(name, value):
    if value is None:
        return None
    if name in DECIMAL_FIELDS:
        return str(value)
    if name in DATE_FIELDS:
        return value.isoformat()
    return value


def snapshot_transaction(txn):
    """JSON-safe copy of the transaction and its lines"""
    data = {'id': txn.pk, 'business_id': txn.business_id, 'account_id': txn.account_id, 'contact_id': txn.contact_id}
    for name in SNAPSHOT_FIELDS:
        data[name] = _json_value(name, getattr(txn, name))
    data['items'] = [
        {
            'id': item.pk,
            'product_id': item.product_id,
            **{name: (str(getattr(item, name)) if name != 'description' else item.description) for name in ITEM_FIELDS},
        }
        for item in txn.items.all().order_by('id')
    ]
    return data


def record_version(txn, user, change_type, change_description='', important=False, data=None):
    """Append the next numbered version for ``txn``"""
    latest = TransactionVersion.objects.filter(transaction=txn).aggregate(latest=Max('version'))['latest'] or 0
    return TransactionVersion.objects.create(
        transaction=txn,
        business_id=txn.business_id,
        user=user if user is not None and user.is_authenticated else None,
        version=latest + 1,
        change_type=change_type,
        change_description=change_description,
        data=data if data is not None else snapshot_transaction(txn),
        important=important,
    )


def _apply_snapshot(txn, data):
    for name in SNAPSHOT_FIELDS:
        if name not in data:
            continue
        value = data[name]
        if name in DECIMAL_FIELDS:
            value = to_decimal(value)
        elif name in DATE_FIELDS:
            value = parse_date(value) if isinstance(value, str) else value
            if name == 'date' and value is None:
                value = txn.date
        elif name == 'document_number' and value:
            # Keep the current number when another document has taken it since
            taken = Transaction.objects.filter(business_id=txn.business_id, document_number=value)
            if taken.exclude(pk=txn.pk).exists():
                continue
        elif name == 'metadata':
            value = value or {}
        elif value is None:
            value = ''
        setattr(txn, name, value)

    account_id = data.get('account_id')
    if account_id and Account.objects.filter(pk=account_id, business_id=txn.business_id).exists():
        txn.account_id = account_id

    contact_id = data.get('contact_id')
    if contact_id is None:
        txn.contact = None
    else:
        from bizsuite.contacts.models import Contact
        if Contact.objects.filter(pk=contact_id, business_id=txn.business_id).exists():
            txn.contact_id = contact_id


def _restore_items(txn, items_data):
    from bizsuite.catalog.models import Product

    txn.items.all().delete()
    product_ids = {item.get('product_id') for item in items_data if item.get('product_id')}
    products = {p.pk: p for p in Product.objects.filter(pk__in=product_ids, business_id=txn.business_id)}
    TransactionItem.objects.bulk_create([
        TransactionItem(
            transaction=txn,
            product=products.get(item.get('product_id')),
            description=item.get('description') or '',
            quantity=to_decimal(item.get('quantity')),
            quantity_received=billing.clamp_received_quantity(item.get('quantity_received'), item.get('quantity')),
            unit_price=to_decimal(item.get('unit_price')),
            discount=to_decimal(item.get('discount')),
            tax_rate=to_decimal(item.get('tax_rate')),
            amount=to_decimal(item.get('amount')),
        )
        for item in items_data
    ])


def restore_version(txn, version, user):
    """
    Roll ``txn`` back to ``version``.

    Writes a ``pre-restore`` backup of the current state, applies the
    snapshot (fields and lines; id and business never change), then records
    a ``restore`` version flagged important. Balances of the old and new
    account are re-synced through the transaction save signal.
    """
    if version.transaction_id != txn.pk:
        raise BusinessRuleError('Version does not belong to this transaction')

    with db_transaction.atomic():
        txn = Transaction.objects.select_for_update().get(pk=txn.pk)
        record_version(txn, user, 'pre-restore', 'Automatic backup before restoring version')

        _apply_snapshot(txn, version.data or {})
        txn.updated_by = user if user is not None and user.is_authenticated else None
        txn.save()
        _restore_items(txn, (version.data or {}).get('items') or [])

        restored = record_version(
            txn, user, 'restore',
            f"Restored version {version.version}",
            important=True,
        )

    logger.info(f"Restored transaction {txn.pk} to version {version.version} (now v{restored.version})")
    return txn


# ── Receipts, payments, cancellation ──────────────────────────

def receive_items(txn, items_payload, user=None):
    """Set received quantities (clamped to the ordered quantity) and re-derive status"""
    if not txn.is_bill:
        raise BusinessRuleError('Only purchase bills have goods to receive')
    if txn.status == 'cancelled':
        raise BusinessRuleError('Cannot receive items on a cancelled transaction')
    if not isinstance(items_payload, list) or not items_payload:
        raise BusinessRuleError('items must be a non-empty list')

    with db_transaction.atomic():
        lines = {item.pk: item for item in txn.items.select_for_update()}
        for entry in items_payload:
            item_id = entry.get('id') if isinstance(entry, dict) else None
            try:
                item = lines[int(item_id)]
            except (KeyError, TypeError, ValueError):
                raise BusinessRuleError(f'Item {item_id} does not belong to this transaction')
            item.quantity_received = billing.clamp_received_quantity(entry.get('quantity_received'), item.quantity)
            item.save(update_fields=['quantity_received'])

        refresh_status(txn, list(lines.values()))
        txn.updated_by = user
        txn.save(update_fields=['status', 'updated_by', 'updated_at'])
        record_version(txn, user, 'update', 'Items received')
    return txn


def record_payment(txn, amount, user=None):
    """Add a payment; the cumulative amount paid may not exceed the total"""
    amount = to_decimal(amount)
    if amount <= ZERO:
        raise BusinessRuleError('Payment amount must be greater than 0')
    if txn.status == 'cancelled':
        raise BusinessRuleError('Cannot record a payment on a cancelled transaction')

    with db_transaction.atomic():
        txn = Transaction.objects.select_for_update().get(pk=txn.pk)
        new_total = txn.payment_received + amount
        if new_total > txn.amount:
            raise BusinessRuleError(
                f'Payment of {amount} exceeds the outstanding balance of {txn.amount - txn.payment_received}'
            )
        txn.payment_received = new_total
        refresh_status(txn)
        txn.updated_by = user
        txn.save(update_fields=['payment_received', 'status', 'updated_by', 'updated_at'])
        record_version(txn, user, 'update', f'Payment of {amount} recorded')
    return txn


def cancel_transaction(txn, user=None, reason=''):
    if txn.status == 'cancelled':
        raise BusinessRuleError('Transaction is already cancelled')
    with db_transaction.atomic():
        txn.status = 'cancelled'
        txn.updated_by = user
        txn.save(update_fields=['status', 'updated_by', 'updated_at'])
        record_version(txn, user, 'update', reason or 'Transaction cancelled')
    return txn


# ── Transfers ─────────────────────────────────────────────────

def create_transfer(business, from_account, to_account, amount, on_date=None, description='', reference='', user=None):
    """Transfer plus its transfer_out / transfer_in legs, all or nothing"""
    amount = to_decimal(amount)
    if from_account.pk == to_account.pk:
        raise BusinessRuleError('Cannot transfer to the same account')
    if amount <= ZERO:
        raise BusinessRuleError('Transfer amount must be greater than 0')
    if from_account.business_id != business.pk or to_account.business_id != business.pk:
        raise BusinessRuleError('Both accounts must belong to your business')

    on_date = on_date or date_cls.today()
    with db_transaction.atomic():
        transfer = Transfer.objects.create(
            business=business,
            from_account=from_account,
            to_account=to_account,
            amount=amount,
            date=on_date,
            description=description,
            reference=reference,
        )
        common = {
            'business': business,
            'transfer': transfer,
            'category': 'Transfer',
            'amount': amount,
            'date': on_date,
            'reference': reference,
            'status': 'completed',
            'created_by': user,
            'updated_by': user,
        }
        Transaction.objects.create(
            account=from_account,
            type='transfer_out',
            description=description or f'Transfer to {to_account.name}',
            **common,
        )
        Transaction.objects.create(
            account=to_account,
            type='transfer_in',
            description=description or f'Transfer from {from_account.name}',
            **common,
        )
    logger.info(f"Transferred {amount} from account {from_account.pk} to {to_account.pk}")
    return transfer
