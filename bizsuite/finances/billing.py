"""
Pure purchase-bill arithmetic.

Nothing here touches the database: lines are plain dicts (or objects) with
``quantity``, ``unit_price``, ``discount`` (line %), ``tax_rate`` (%) and
``quantity_received``, so the same rules serve serializers, services and
reports. All money results are Decimals rounded half-up to cents.
"""
from decimal import Decimal, ROUND_HALF_UP

from bizsuite.core.utils import to_decimal

ZERO = Decimal('0')
HUNDRED = Decimal('100')
CENTS = Decimal('0.01')


def _money(value):
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _field(line, name):
    if isinstance(line, dict):
        return line.get(name)
    return getattr(line, name, None)


def clamp_received_quantity(received, ordered):
    """Received quantity limited to [0, ordered]; garbage counts as nothing received"""
    received = to_decimal(received)
    ordered = max(to_decimal(ordered), ZERO)
    if received < ZERO:
        return ZERO
    if received > ordered:
        return ordered
    return received


def line_amount(quantity, unit_price, discount_pct=0):
    """quantity * unit_price less the line discount percentage"""
    quantity = to_decimal(quantity)
    unit_price = to_decimal(unit_price)
    discount_pct = min(max(to_decimal(discount_pct), ZERO), HUNDRED)
    return _money(quantity * unit_price * (1 - discount_pct / HUNDRED))


def calculate_bill_totals(items, discount_type='flat', discount_value=0, tax_type='exclusive'):
    """
    Totals for a bill.

    The bill-level discount is spread over the lines in proportion to their
    amounts before tax is applied per line:

    * ``exclusive``: tax is added on top, ``net * rate / 100``
    * ``inclusive``: tax is already in the price, ``net - net / (1 + rate / 100)``
    * ``none``: no tax

    Returns a dict with ``subtotal``, ``discount_amount``, ``tax_amount``,
    ``total`` and the per-line ``line_amounts``.
    """
    items = list(items or [])
    amounts = [
        line_amount(_field(item, 'quantity'), _field(item, 'unit_price'), _field(item, 'discount'))
        for item in items
    ]
    subtotal = sum(amounts, ZERO)

    discount_value = max(to_decimal(discount_value), ZERO)
    if discount_type == 'percentage':
        discount = subtotal * min(discount_value, HUNDRED) / HUNDRED
    else:
        discount = min(discount_value, subtotal)

    tax = ZERO
    if tax_type in ('exclusive', 'inclusive') and subtotal > ZERO:
        for item, amount in zip(items, amounts):
            net = amount - (discount * amount / subtotal)
            rate = max(to_decimal(_field(item, 'tax_rate')), ZERO)
            if rate == ZERO:
                continue
            if tax_type == 'exclusive':
                tax += net * rate / HUNDRED
            else:
                tax += net - net / (1 + rate / HUNDRED)

    subtotal = _money(subtotal)
    discount = _money(discount)
    tax = _money(tax)
    total = subtotal - discount
    if tax_type == 'exclusive':
        total += tax

    return {
        'subtotal': subtotal,
        'discount_amount': discount,
        'tax_amount': tax,
        'total': _money(total),
        'line_amounts': amounts,
    }


def payment_status(total, paid):
    total = to_decimal(total)
    paid = to_decimal(paid)
    if paid <= ZERO:
        return 'unpaid'
    if paid >= total:
        return 'paid'
    return 'partial'


def receipt_status(items):
    items = list(items or [])
    ordered = [max(to_decimal(_field(item, 'quantity')), ZERO) for item in items]
    received = [
        clamp_received_quantity(_field(item, 'quantity_received'), qty)
        for item, qty in zip(items, ordered)
    ]
    if not items or sum(received, ZERO) == ZERO:
        return 'not_received'
    if all(r >= q for r, q in zip(received, ordered)):
        return 'received'
    return 'partial'


def derive_bill_status(total, paid, items, cancelled=False):
    """
    cancelled -> 'cancelled'; fully received and fully paid -> 'completed';
    any goods received or any money paid -> 'partial'; otherwise 'draft'.
    """
    if cancelled:
        return 'cancelled'
    receipt = receipt_status(items)
    payment = payment_status(total, paid)
    if receipt == 'received' and payment == 'paid':
        return 'completed'
    if receipt != 'not_received' or payment != 'unpaid':
        return 'partial'
    return 'draft'
