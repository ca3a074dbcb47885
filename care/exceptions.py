"""
API error types and the unified DRF exception handler.

Every error leaves the API as ``{"error": "<message>"}`` with the HTTP
status carrying the category.  Serializer validation errors also carry
the full field mapping under ``details``.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Resource already exists'
    default_code = 'conflict'


class NotImplementedFeature(APIException):
    status_code = status.HTTP_501_NOT_IMPLEMENTED
    default_detail = 'This feature is not available'
    default_code = 'not_implemented'


class UpstreamError(APIException):
    """A required write or read against the record store failed."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Upstream service failure'
    default_code = 'upstream_error'


def _first_message(detail) -> str:
    if isinstance(detail, dict):
        for key, value in detail.items():
            msg = _first_message(value)
            if key == 'non_field_errors':
                return msg
            return f"{key}: {msg}"
        return 'Invalid input'
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else 'Invalid input'
    return str(detail)


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('unhandled error view=%s', context.get('view').__class__.__name__)
        return Response({'error': f'Internal server error: {exc}'}, status=500)
    if isinstance(exc, ValidationError):
        return Response({'error': _first_message(resp.data), 'details': resp.data}, status=resp.status_code)
    detail = resp.data.get('detail') if isinstance(resp.data, dict) else resp.data
    return Response({'error': str(detail)}, status=resp.status_code, headers=_auth_headers(resp))


def _auth_headers(resp) -> dict:
    headers = {}
    for name in ('WWW-Authenticate', 'Retry-After'):
        if resp.has_header(name):
            headers[name] = resp[name]
    return headers
