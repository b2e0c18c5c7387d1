"""
Core — Exception Handling

Ledger error taxonomy and the DRF exception handler that renders every
failure in the same envelope.

  InputValidationError    400  malformed request, field-keyed messages
  ResourceNotFoundError   404  unknown / retired medicine
  InsufficientStockError  409  write would take stock below zero
  ConflictError           409  per-medicine contention, retryable
  PersistenceError        503  storage failure, nothing applied

@file core/exceptions.py
"""

import logging

from django.core.exceptions import PermissionDenied, ValidationError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger('pharmaledger')


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class InputValidationError(APIException):
    """
    Raised before any mutation when a request is malformed.

    ``detail`` is a mapping of field name to a list of messages.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'VALIDATION_ERROR'


class ResourceNotFoundError(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Resource not found.'
    default_code = 'RESOURCE_NOT_FOUND'


class InsufficientStockError(APIException):
    """Raised when a ledger write would drive a medicine's stock below zero."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Insufficient stock for this operation.'
    default_code = 'INSUFFICIENT_STOCK'

    def __init__(self, *, current_stock: int, requested_stock: int, medicine_id=None):
        self.current_stock = current_stock
        self.requested_stock = requested_stock
        self.medicine_id = medicine_id
        super().__init__(detail={
            'detail': (
                f'Insufficient stock: current={current_stock}, '
                f'resulting={requested_stock}.'
            ),
            'current_stock': current_stock,
        })


class ConflictError(APIException):
    """Concurrent writers on the same medicine; safe for the caller to retry."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Stock is being modified concurrently. Please retry.'
    default_code = 'CONFLICT'
    retryable = True


class PersistenceError(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Stock change could not be persisted.'
    default_code = 'PERSISTENCE_ERROR'


# ---------------------------------------------------------------------------
# Standard exception handler
# ---------------------------------------------------------------------------

def standard_exception_handler(exc, context):
    """
    Wraps every error response in the standard envelope:
      { "success": false, "errors": {...}, "code": "ERROR_CODE" }
    """
    if isinstance(exc, Http404):
        exc = ResourceNotFoundError()
    elif isinstance(exc, PermissionDenied):
        exc = APIException(detail='Permission denied.', code='PERMISSION_DENIED')
        exc.status_code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, ValidationError):
        data = {
            'success': False,
            'errors': exc.message_dict if hasattr(exc, 'message_dict') else {'detail': exc.messages},
            'code': InputValidationError.default_code,
        }
        return Response(data, status=status.HTTP_400_BAD_REQUEST)

    response = exception_handler(exc, context)

    if response is None:
        logger.exception('Unhandled exception in view: %s', exc)
        return Response(
            {'success': False, 'errors': {'detail': ['Internal server error.']}, 'code': 'INTERNAL_ERROR'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    code = getattr(exc, 'default_code', 'ERROR')
    if isinstance(response.data, dict):
        errors = response.data
    elif isinstance(response.data, list):
        errors = {'detail': response.data}
    else:
        errors = {'detail': [str(response.data)]}

    response.data = {
        'success': False,
        'errors': errors,
        'code': code,
    }
    return response
