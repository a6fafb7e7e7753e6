import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class BusinessRuleError(APIException):
    """Raised by services when a request is well formed but not allowed"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'The request violates a business rule.'
    default_code = 'business_rule'


def api_exception_handler(exc, context):
    """
    DRF exception handler that guarantees a ``message`` key on error bodies.

    Serializer errors keep their field mapping; single-detail errors
    (PermissionDenied, NotFound, BusinessRuleError) are flattened into
    ``{"message": ...}``.
    """
    response = exception_handler(exc, context)
    if response is None:
        return None

    data = response.data
    if isinstance(data, dict):
        if 'message' not in data:
            if 'detail' in data:
                data['message'] = str(data['detail'])
            else:
                data['message'] = _first_error(data) or 'Invalid request.'
    elif isinstance(data, list):
        response.data = {'message': str(data[0]) if data else 'Invalid request.', 'errors': data}

    if response.status_code >= 500:
        logger.error(f"API error in {context.get('view')}: {exc}")
    return response


def _first_error(errors):
    for field, value in errors.items():
        if isinstance(value, (list, tuple)) and value:
            return f"{field}: {value[0]}"
        if isinstance(value, str):
            return f"{field}: {value}"
    return None
