"""
Custom exception handlers for DRF.
"""
import logging
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status

from apps.rbac.exceptions import SecurityMisconfigured

logger = logging.getLogger(__name__)


def custom_exception_handler(exc, context):
    """
    Custom exception handler that logs errors and returns consistent format.

    Every error body carries ``code`` and ``request_id``. An endpoint whose
    security configuration cannot be resolved is never served: the request
    fails with 500 / SECURITY_MISCONFIGURED. Any other configuration error
    is left to Django's 500 handling.
    """
    request = context.get('request')
    request_id = getattr(request, 'request_id', None) if request else None
    view = context.get('view')

    if isinstance(exc, SecurityMisconfigured):
        logger.error(
            f"Endpoint security misconfigured: {exc}",
            extra={
                'request_id': request_id,
                'path': request.path if request else None,
                'method': request.method if request else None,
                'view': view.__class__.__name__ if view else None,
            },
            exc_info=True
        )
        return Response(
            {
                'error': 'Endpoint security is misconfigured',
                'code': 'SECURITY_MISCONFIGURED',
                'request_id': request_id,
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    # Call DRF's default exception handler first
    response = exception_handler(exc, context)

    # If DRF didn't handle it, let Django's 500 handling take over
    if response is None:
        logger.error(
            f"API Exception: {exc.__class__.__name__}",
            extra={
                'exception': str(exc),
                'request_id': request_id,
                'path': request.path if request else None,
                'method': request.method if request else None,
            },
            exc_info=True
        )
        return None

    logger.info(
        f"API error response: {exc.__class__.__name__}",
        extra={
            'status_code': response.status_code,
            'request_id': request_id,
            'path': request.path if request else None,
            'method': request.method if request else None,
        }
    )

    if isinstance(response.data, dict):
        codes = exc.get_codes() if hasattr(exc, 'get_codes') else None
        if isinstance(codes, str):
            response.data['code'] = codes
        if request_id:
            response.data['request_id'] = request_id

    return response
