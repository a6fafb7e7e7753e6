"""Shared helpers: audit logging, tenant scoping and numeric coercion"""
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.http import Http404
from rest_framework.exceptions import PermissionDenied

from .models import AuditLog

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')


def to_decimal(value, default=Decimal('0')):
    """
    Coerce user input to Decimal.

    None, empty strings, NaN/Infinity and anything unparsable fall back to
    ``default`` instead of raising.
    """
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        return default
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        return default
    if not result.is_finite():
        return default
    return result


def quantize_money(value):
    """Round to cents, half up"""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def get_request_business(request):
    """Return the business of the authenticated user or refuse the request"""
    business = getattr(request.user, 'business', None)
    if business is None:
        raise PermissionDenied('User is not attached to a business.')
    return business


def get_business_object(queryset, request, pk, label='Object'):
    """
    Fetch ``pk`` from ``queryset`` for the caller's business.

    Missing rows raise 404, rows owned by another business raise 403.
    """
    business = get_request_business(request)
    obj = queryset.filter(pk=pk).first()
    if obj is None:
        raise Http404(f'{label} not found')
    if obj.business_id != business.id:
        raise PermissionDenied(f'Unauthorized access to this {label.lower()}')
    return obj


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, business=None, object_name=None,
                     object_reference=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user, business and IP) - optional if user is provided
        action: Action type (create, update, delete, restore, payment, ...)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        business: Optional business override (defaults to the user's business)
        object_name: Human-readable name of the object
        object_reference: Reference identifier (e.g., document number)
    """
    if not action or not model_name or not object_id:
        logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
        return None

    audit_user = user
    if audit_user is None and request is not None and hasattr(request, 'user'):
        audit_user = request.user
    if audit_user is not None and not audit_user.is_authenticated:
        audit_user = None

    if business is None and audit_user is not None:
        business = audit_user.business

    try:
        return AuditLog.objects.create(
            business=business,
            user=audit_user,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            changes=changes or {},
            ip_address=get_client_ip(request) if request else None,
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def paginate(queryset, request, default_limit=15):
    """Page a queryset the way the list endpoints report it"""
    from django.core.paginator import Paginator

    page = max(int(to_decimal(request.query_params.get('page'), Decimal('1'))), 1)
    limit = max(int(to_decimal(request.query_params.get('limit'), Decimal(default_limit))), 1)

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)
    meta = {
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    }
    return page_obj, meta
