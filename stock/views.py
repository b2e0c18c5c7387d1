"""
Stock — Views

Stock overview, manual adjustments, movement history, valuation and
per-medicine reconciliation. Views only translate HTTP to service calls;
every write goes through the ledger.

@file stock/views.py
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import InputValidationError

from .serializers import StockMovementSerializer, StockOverviewSerializer
from .services import AdjustmentProcessor, MovementRecorder, StockQueries, StockService
from .valuation import ValuationAggregator


class StockViewSet(viewsets.GenericViewSet):
    """
    /api/v1/stock/                   overview (search, category, stock_status)
    /api/v1/stock/stats/             counts per stock status + total value
    /api/v1/stock/adjust/            POST add / remove / set
    /api/v1/stock/bulk/              POST stock-take: absolute quantities
    /api/v1/stock/movements/         movement history
    /api/v1/stock/valuation/         valuation report (?top=n)
    /api/v1/stock/{id}/reconcile/    replay check for one medicine
    """

    permission_classes = [IsAuthenticated]
    serializer_class = StockOverviewSerializer
    lookup_value_regex = '[0-9a-f-]{36}'

    def get_queryset(self):
        params = self.request.query_params
        return StockQueries.overview(
            search=params.get('search'),
            category_id=params.get('category'),
            stock_status=params.get('stock_status'),
        )

    def list(self, request):
        queryset = self.get_queryset()
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(queryset, many=True).data)

    @action(detail=False, methods=['get'], url_path='stats')
    def stats(self, request):
        return Response(StockQueries.overview_stats())

    @action(detail=False, methods=['post'], url_path='adjust')
    def adjust(self, request):
        change = AdjustmentProcessor().adjust(request.data, actor=request.user)
        return Response(change.as_dict(), status=status.HTTP_200_OK)

    @action(detail=False, methods=['post'], url_path='bulk')
    def bulk(self, request):
        changes = StockService().bulk_set_stock(
            request.data.get('items'),
            actor=request.user,
            notes=request.data.get('notes') or '',
        )
        return Response([change.as_dict() for change in changes], status=status.HTTP_200_OK)

    @action(detail=False, methods=['get'], url_path='movements')
    def movements(self, request):
        params = request.query_params
        page = MovementRecorder.query(
            filters=params,
            page=params.get('page'),
            page_size=params.get('page_size'),
        )
        return Response({
            'results': StockMovementSerializer(page.results, many=True).data,
            'meta': page.meta(),
        })

    @action(detail=False, methods=['get'], url_path='valuation')
    def valuation(self, request):
        top = request.query_params.get('top')
        if top not in (None, ''):
            try:
                top = int(top)
            except ValueError:
                raise InputValidationError(detail={'top': ['Must be an integer.']})
        else:
            top = None
        return Response(ValuationAggregator().report(top=top))

    @action(detail=True, methods=['get'], url_path='reconcile')
    def reconcile(self, request, pk=None):
        return Response(StockService.reconcile(pk).as_dict())
