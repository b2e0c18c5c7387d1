"""
Core — Exception Handler & Renderer Tests

@file core/tests/test_exceptions.py
"""

import json

from django.http import Http404
from rest_framework import status
from rest_framework.response import Response

from core.exceptions import (
    ConflictError,
    InputValidationError,
    InsufficientStockError,
    PersistenceError,
    standard_exception_handler,
)
from core.renderers import StandardJSONRenderer


class TestStandardExceptionHandler:
    def test_validation_error_keeps_field_messages(self):
        exc = InputValidationError(detail={'quantity': ['Must be a positive integer.']})
        response = standard_exception_handler(exc, {})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['success'] is False
        assert response.data['code'] == 'VALIDATION_ERROR'
        assert response.data['errors']['quantity'] == ['Must be a positive integer.']

    def test_http404_becomes_not_found(self):
        response = standard_exception_handler(Http404(), {})
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['code'] == 'RESOURCE_NOT_FOUND'

    def test_insufficient_stock_carries_quantities(self):
        exc = InsufficientStockError(current_stock=5, requested_stock=-5)
        assert exc.current_stock == 5
        assert exc.requested_stock == -5
        response = standard_exception_handler(exc, {})
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'INSUFFICIENT_STOCK'
        assert response.data['errors']['current_stock'] == '5'

    def test_conflict_is_retryable(self):
        response = standard_exception_handler(ConflictError(), {})
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'CONFLICT'
        assert ConflictError.retryable is True

    def test_persistence_error_is_503(self):
        response = standard_exception_handler(PersistenceError(), {})
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.data['code'] == 'PERSISTENCE_ERROR'

    def test_unhandled_exception_is_500(self):
        response = standard_exception_handler(RuntimeError('boom'), {})
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data['code'] == 'INTERNAL_ERROR'


class TestStandardJSONRenderer:
    def render(self, data, status_code=200):
        renderer = StandardJSONRenderer()
        return json.loads(renderer.render(data, renderer_context={'response': Response(status=status_code)}))

    def test_wraps_plain_payload(self):
        assert self.render({'new_stock': 3}) == {'success': True, 'data': {'new_stock': 3}}

    def test_wraps_paginated_payload(self):
        body = self.render({'results': [1, 2], 'meta': {'total': 2}})
        assert body == {'success': True, 'data': [1, 2], 'meta': {'total': 2}}

    def test_error_payload_passes_through(self):
        payload = {'success': False, 'errors': {}, 'code': 'CONFLICT'}
        assert self.render(payload, status_code=409) == payload
