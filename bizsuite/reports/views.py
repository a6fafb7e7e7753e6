import logging
from datetime import datetime, timedelta

from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from bizsuite.core.exceptions import BusinessRuleError
from bizsuite.core.utils import get_request_business
from .builders import (
    build_cash_flow, build_profit_loss, build_balance_sheet,
    build_bills_summary, build_dashboard,
)

logger = logging.getLogger('bizsuite.reports')

DEFAULT_PERIOD_DAYS = 30


def _parse_date(value, name):
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise BusinessRuleError(f"Invalid {name}. Use YYYY-MM-DD")


def get_report_period(request):
    """date_from/date_to from the query string, defaulting to the last 30 days"""
    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)

    today = timezone.now().date()
    date_to = _parse_date(date_to, 'date_to') if date_to else today
    date_from = _parse_date(date_from, 'date_from') if date_from else date_to - timedelta(days=DEFAULT_PERIOD_DAYS)
    if date_from > date_to:
        raise BusinessRuleError('date_from must be on or before date_to')
    return date_from, date_to


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def cash_flow(request):
    """Cash flow report"""
    business = get_request_business(request)
    date_from, date_to = get_report_period(request)
    return Response(build_cash_flow(business, date_from=date_from, date_to=date_to))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def profit_loss(request):
    """Profit and loss statement"""
    business = get_request_business(request)
    date_from, date_to = get_report_period(request)
    return Response(build_profit_loss(business, date_from=date_from, date_to=date_to))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def balance_sheet(request):
    """Balance sheet as of date_to (today by default)"""
    business = get_request_business(request)
    as_of = request.query_params.get('date_to', None)
    as_of = _parse_date(as_of, 'date_to') if as_of else timezone.now().date()
    return Response(build_balance_sheet(business, as_of=as_of))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def bills_summary(request):
    """Purchase bills summary"""
    business = get_request_business(request)
    date_from, date_to = get_report_period(request)
    return Response(build_bills_summary(business, date_from=date_from, date_to=date_to))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard(request):
    """Dashboard metrics"""
    business = get_request_business(request)
    date_from, date_to = get_report_period(request)
    logger.debug(f"Dashboard for business {business.id}: {date_from} to {date_to}")
    return Response(build_dashboard(business, date_from=date_from, date_to=date_to))
