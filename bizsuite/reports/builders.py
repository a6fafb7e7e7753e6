"""
Report builders.

Each builder takes the business plus keyword parameters and returns plain
JSON-ready data (money as floats), so results can be cached as-is.
Cancelled transactions and orders never count.
"""
from collections import defaultdict
from decimal import Decimal

from django.db.models import Sum, Count, Q, F
from django.utils import timezone

from bizsuite.chatbot.models import Conversation
from bizsuite.core.cache_utils import cached_report
from bizsuite.core.utils import to_decimal
from bizsuite.finances.models import Account, Transaction, INFLOW_TYPES, OUTFLOW_TYPES
from bizsuite.storefront.models import Order

ZERO = Decimal('0.00')
TOP_PRODUCTS_LIMIT = 5
BALANCE_SHEET_SECTIONS = (('asset', 'assets'), ('liability', 'liabilities'), ('equity', 'equity'))


def _period(date_from, date_to):
    return {'from': date_from.isoformat(), 'to': date_to.isoformat()}


def _sum(queryset, field='amount'):
    return queryset.aggregate(total=Sum(field))['total'] or ZERO


def _margin(net, revenue):
    if not revenue:
        return 0.0
    return round(float(net / revenue * 100), 2)


def active_transactions(business):
    return Transaction.objects.filter(business=business).exclude(status='cancelled')


def period_transactions(business, date_from, date_to):
    return active_transactions(business).filter(date__gte=date_from, date__lte=date_to)


def _by_category(queryset):
    rows = queryset.values('category').annotate(total=Sum('amount'), count=Count('id')).order_by('-total', 'category')
    return [
        {'category': row['category'], 'total': float(row['total'] or ZERO), 'count': row['count']}
        for row in rows
    ]


@cached_report('cash_flow')
def build_cash_flow(business, date_from=None, date_to=None):
    """Money in (income, transfers in) against money out (expenses, transfers out)"""
    txns = period_transactions(business, date_from, date_to)
    inflows = _sum(txns.filter(type__in=INFLOW_TYPES))
    outflows = _sum(txns.filter(type__in=OUTFLOW_TYPES))

    daily = txns.values('date').annotate(
        inflow=Sum('amount', filter=Q(type__in=INFLOW_TYPES)),
        outflow=Sum('amount', filter=Q(type__in=OUTFLOW_TYPES)),
    ).order_by('date')

    return {
        'period': _period(date_from, date_to),
        'summary': {
            'total_inflows': float(inflows),
            'total_outflows': float(outflows),
            'net_cash_flow': float(inflows - outflows),
        },
        'inflows_by_category': _by_category(txns.filter(type__in=INFLOW_TYPES)),
        'outflows_by_category': _by_category(txns.filter(type__in=OUTFLOW_TYPES)),
        'daily_breakdown': [
            {
                'date': row['date'].isoformat(),
                'inflow': float(row['inflow'] or ZERO),
                'outflow': float(row['outflow'] or ZERO),
                'net': float((row['inflow'] or ZERO) - (row['outflow'] or ZERO)),
            }
            for row in daily
        ],
    }


@cached_report('profit_loss')
def build_profit_loss(business, date_from=None, date_to=None):
    """Income statement; transfers move money but are neither income nor expense"""
    txns = period_transactions(business, date_from, date_to)
    income = txns.filter(type='income')
    expenses = txns.filter(type='expense')
    total_income = _sum(income)
    total_expenses = _sum(expenses)
    net_profit = total_income - total_expenses

    return {
        'period': _period(date_from, date_to),
        'income': {'total': float(total_income), 'by_category': _by_category(income)},
        'expenses': {'total': float(total_expenses), 'by_category': _by_category(expenses)},
        'net_profit': float(net_profit),
        'profit_margin': _margin(net_profit, total_income),
    }


@cached_report('balance_sheet')
def build_balance_sheet(business, as_of=None):
    """Asset, liability and equity accounts with retained earnings up to ``as_of``"""
    as_of = as_of or timezone.now().date()
    accounts = Account.objects.filter(
        business=business,
        category__type__in=[t for t, _ in BALANCE_SHEET_SECTIONS],
    ).select_related('category').order_by('category__name', 'name')

    txns = active_transactions(business).filter(date__lte=as_of)
    # Account balances as they stood at the end of as_of
    movements = txns.order_by().values('account_id').annotate(
        inflow=Sum('amount', filter=Q(type__in=INFLOW_TYPES)),
        outflow=Sum('amount', filter=Q(type__in=OUTFLOW_TYPES)),
    )
    net_movement = {row['account_id']: (row['inflow'] or ZERO) - (row['outflow'] or ZERO) for row in movements}

    sections = {key: {'accounts': [], 'total': ZERO} for _, key in BALANCE_SHEET_SECTIONS}
    section_for_type = dict(BALANCE_SHEET_SECTIONS)
    for account in accounts:
        section = sections[section_for_type[account.category.type]]
        balance = account.initial_balance + net_movement.get(account.id, ZERO)
        section['accounts'].append({
            'id': account.id,
            'name': account.name,
            'category': account.category.name,
            'balance': float(balance),
        })
        section['total'] += balance

    retained_earnings = _sum(txns.filter(type='income')) - _sum(txns.filter(type='expense'))

    total_assets = sections['assets']['total']
    total_liabilities = sections['liabilities']['total']
    total_equity = sections['equity']['total']
    for section in sections.values():
        section['total'] = float(section['total'])

    return {
        'as_of': as_of.isoformat(),
        **sections,
        'retained_earnings': float(retained_earnings),
        'total_assets': float(total_assets),
        'total_liabilities': float(total_liabilities),
        'total_equity': float(total_equity + retained_earnings),
        'total_liabilities_and_equity': float(total_liabilities + total_equity + retained_earnings),
    }


@cached_report('bills_summary')
def build_bills_summary(business, date_from=None, date_to=None):
    """Purchase bill payables for the period"""
    bills = Transaction.objects.filter(
        business=business, type='expense', document_type='bill',
        date__gte=date_from, date__lte=date_to,
    )
    counts = {choice: 0 for choice, _ in Transaction.STATUS_CHOICES}
    for row in bills.values('status').annotate(count=Count('id')).order_by('status'):
        counts[row['status']] = row['count']

    open_bills = bills.exclude(status='cancelled')
    total_billed = _sum(open_bills)
    total_paid = _sum(open_bills, 'payment_received')

    today = timezone.now().date()
    overdue = open_bills.exclude(status='completed').filter(
        due_date__lt=today, payment_received__lt=F('amount'),
    )
    overdue_amount = overdue.aggregate(total=Sum(F('amount') - F('payment_received')))['total'] or ZERO

    return {
        'period': _period(date_from, date_to),
        'count': bills.count(),
        'status_counts': counts,
        'total_billed': float(total_billed),
        'total_paid': float(total_paid),
        'outstanding': float(max(total_billed - total_paid, ZERO)),
        'overdue_count': overdue.count(),
        'overdue_amount': float(overdue_amount),
    }


def _top_products(orders, limit=TOP_PRODUCTS_LIMIT):
    """Rank products by quantity ordered, from the line snapshots stored on orders"""
    totals = defaultdict(lambda: {'name': '', 'quantity': 0, 'revenue': ZERO})
    for items in orders.values_list('items', flat=True):
        for line in items or []:
            if not isinstance(line, dict) or line.get('product_id') is None:
                continue
            entry = totals[line['product_id']]
            quantity = int(to_decimal(line.get('quantity')))
            entry['name'] = line.get('name') or entry['name']
            entry['quantity'] += quantity
            entry['revenue'] += to_decimal(line.get('price')) * quantity

    ranked = sorted(totals.items(), key=lambda kv: (-kv[1]['quantity'], -kv[1]['revenue'], kv[0]))
    return [
        {'product_id': pid, 'name': v['name'], 'quantity': v['quantity'], 'revenue': float(v['revenue'])}
        for pid, v in ranked[:limit]
    ]


@cached_report('dashboard')
def build_dashboard(business, date_from=None, date_to=None):
    """Headline numbers for the business dashboard"""
    txns = period_transactions(business, date_from, date_to)
    total_revenue = _sum(txns.filter(type='income'))
    total_expenses = _sum(txns.filter(type='expense'))
    net_profit = total_revenue - total_expenses

    today = timezone.now().date()
    month_revenue = _sum(active_transactions(business).filter(
        type='income', date__gte=today.replace(day=1), date__lte=today,
    ))

    orders = Order.objects.filter(
        business=business, created_at__date__gte=date_from, created_at__date__lte=date_to,
    ).exclude(status='cancelled')
    direct_revenue = _sum(orders.filter(from_chatbot=False), 'total')
    chatbot_revenue = _sum(orders.filter(from_chatbot=True), 'total')

    conversations = Conversation.objects.filter(
        business=business, created_at__date__gte=date_from, created_at__date__lte=date_to,
    )

    return {
        'period': _period(date_from, date_to),
        'total_revenue': float(total_revenue),
        'current_month_revenue': float(month_revenue),
        'total_expenses': float(total_expenses),
        'net_profit': float(net_profit),
        'profit_margin': _margin(net_profit, total_revenue),
        'order_count': orders.count(),
        'revenue_by_source': {
            'direct': float(direct_revenue),
            'chatbot': float(chatbot_revenue),
        },
        'conversation_count': conversations.count(),
        'top_products': _top_products(orders),
    }
