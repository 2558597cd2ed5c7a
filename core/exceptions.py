"""
Domain error taxonomy and the DRF exception handler that renders it.

Services raise the exceptions below; views never build error responses by
hand. Every error reaches the client as::

    {"success": false, "message": "...", "error": "<kind>"}
"""
import logging

from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class InventoryError(Exception):
    """Base class for errors raised by the inventory domain services."""
    kind = 'error'
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(InventoryError):
    """Malformed or out-of-range input."""
    kind = 'validation_error'
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(InventoryError):
    """An identifier does not resolve (or belongs to another owner)."""
    kind = 'not_found'
    status_code = status.HTTP_404_NOT_FOUND


class InsufficientStockError(InventoryError):
    """Raised when a removal would drive stock below zero."""
    kind = 'insufficient_stock'
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, product_id, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock. Current: {available}, Requested: {requested}"
        )


def _flatten_detail(detail) -> str:
    if isinstance(detail, dict):
        parts = []
        for field, value in detail.items():
            text = _flatten_detail(value)
            parts.append(text if field == 'non_field_errors' else f"{field}: {text}")
        return '; '.join(parts)
    if isinstance(detail, list):
        return ' '.join(_flatten_detail(item) for item in detail)
    return str(detail)


def api_exception_handler(exc, context):
    """
    Render domain errors and DRF errors into the response envelope.

    Anything else is logged and reported as a 500 without leaking details.
    """
    if isinstance(exc, InventoryError):
        if isinstance(exc, InsufficientStockError):
            logger.warning(f"Stock operation rejected: {exc.message}")
        return Response(
            {'success': False, 'message': exc.message, 'error': exc.kind},
            status=exc.status_code,
        )

    response = exception_handler(exc, context)
    if response is not None:
        if isinstance(exc, drf_exceptions.ValidationError):
            kind = ValidationError.kind
        elif isinstance(exc, (Http404, drf_exceptions.NotFound)):
            kind = NotFoundError.kind
        else:
            kind = getattr(exc, 'default_code', 'error')
        body = {
            'success': False,
            'message': _flatten_detail(response.data.get('detail', response.data)
                                       if isinstance(response.data, dict) else response.data),
            'error': kind,
        }
        if isinstance(exc, drf_exceptions.ValidationError):
            body['errors'] = response.data
        response.data = body
        return response

    logger.exception(f"Unexpected error handling request: {exc}")
    return Response(
        {'success': False, 'message': 'An unexpected error occurred', 'error': 'server_error'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
