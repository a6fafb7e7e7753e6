"""
Order placement.

An order and its income transaction are written together: if posting to the
"Online Sales" account fails, the order is not created either.
"""
import logging
from decimal import Decimal

from django.conf import settings
from django.db import transaction as db_transaction
from django.utils import timezone

from bizsuite.catalog.models import Product
from bizsuite.core.exceptions import BusinessRuleError
from bizsuite.finances.models import Transaction
from bizsuite.finances.services import get_or_create_online_sales_account
from .models import Order

logger = logging.getLogger(__name__)


def _as_id(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def price_order_items(business, items):
    """
    Validate requested lines against the business catalog.

    Each line needs a ``product_id`` from this business and a positive integer
    ``quantity``; prices always come from the catalog (``effective_price``).
    Returns ``(lines, total)``.
    """
    if not isinstance(items, list) or not items:
        raise BusinessRuleError('An order needs at least one item')

    product_ids = []
    for item in items:
        if not isinstance(item, dict):
            raise BusinessRuleError('Each order item must be an object')
        product_ids.append(_as_id(item.get('product_id')))

    products = {p.pk: p for p in Product.objects.filter(business=business, pk__in=[pid for pid in product_ids if pid])}

    lines = []
    total = Decimal('0.00')
    for item, product_id in zip(items, product_ids):
        product = products.get(product_id)
        if product is None:
            raise BusinessRuleError(f"Product {item.get('product_id')} is not available")
        quantity = item.get('quantity', 1)
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise BusinessRuleError(f"Quantity for {product.name} must be a positive whole number")
        if not product.in_stock:
            raise BusinessRuleError(f"{product.name} is out of stock")
        price = product.effective_price
        lines.append({
            'product_id': product.pk,
            'name': product.name,
            'quantity': quantity,
            'price': str(price),
        })
        total += price * quantity
    return lines, total


def place_order(business, customer_name, customer_email, items, from_chatbot=False, user=None):
    """Create an order and post its revenue to the Online Sales account"""
    customer_name = (customer_name or '').strip()
    customer_email = (customer_email or '').strip()
    if not customer_name:
        raise BusinessRuleError('Customer name is required')
    if not customer_email or '@' not in customer_email:
        raise BusinessRuleError('A valid customer email is required')

    lines, total = price_order_items(business, items)

    with db_transaction.atomic():
        order = Order.objects.create(
            business=business,
            customer_name=customer_name,
            customer_email=customer_email,
            total=total,
            items=lines,
            from_chatbot=from_chatbot,
        )
        account = get_or_create_online_sales_account(business)
        Transaction.objects.create(
            business=business,
            account=account,
            type='income',
            category=getattr(settings, 'SALES_REVENUE_CATEGORY_NAME', 'Sales Revenue'),
            amount=total,
            date=timezone.now().date(),
            description=f"Order #{order.pk}",
            contact_name=customer_name,
            contact_email=customer_email,
            order=order,
            status='completed',
            created_by=user if user is not None and user.is_authenticated else None,
        )

    logger.info(f"Placed order {order.pk} for business {business.pk} (total {total}, chatbot={from_chatbot})")
    return order


def update_order_status(order, new_status):
    """Change an order's status; cancelling also cancels its revenue entry"""
    valid = {choice for choice, _ in Order.STATUS_CHOICES}
    if new_status not in valid:
        raise BusinessRuleError(f"Invalid status. Choose one of: {', '.join(sorted(valid))}")
    if order.status == 'cancelled' and new_status != 'cancelled':
        raise BusinessRuleError('A cancelled order cannot be reopened')

    with db_transaction.atomic():
        order.status = new_status
        order.save(update_fields=['status'])
        if new_status == 'cancelled':
            # Saved one by one so the balance signals run
            for txn in order.transactions.exclude(status='cancelled'):
                txn.status = 'cancelled'
                txn.save(update_fields=['status', 'updated_at'])
    return order
