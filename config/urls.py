"""
PharmaLedger — Root URL Configuration

All API endpoints are namespaced under /api/v1/.

@file config/urls.py
"""

from django.contrib import admin
from django.urls import include, path
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.reverse import reverse

admin.site.site_header = 'PharmaLedger Administration'
admin.site.site_title = 'PharmaLedger'
admin.site.index_title = 'Pharmacy Stock Ledger'


@api_view(['GET'])
@permission_classes([AllowAny])
def api_root(request, format=None):
    """PharmaLedger API v1 endpoint directory."""
    return Response({
        'stock': {
            'overview': reverse('api-v1:stock:stock-list', request=request, format=format),
            'stats': reverse('api-v1:stock:stock-stats', request=request, format=format),
            'adjust': reverse('api-v1:stock:stock-adjust', request=request, format=format),
            'bulk': reverse('api-v1:stock:stock-bulk', request=request, format=format),
            'movements': reverse('api-v1:stock:stock-movements', request=request, format=format),
            'valuation': reverse('api-v1:stock:stock-valuation', request=request, format=format),
        },
    })


api_v1_patterns = [
    path('', api_root, name='api-root'),
    path('stock/', include('stock.urls', namespace='stock')),
]

urlpatterns = [
    path('admin/', admin.site.urls),

    # DRF session auth (powers the "Log in" button on the browsable API)
    path('api/auth/', include('rest_framework.urls', namespace='rest_framework')),

    # Versioned API
    path('api/v1/', include((api_v1_patterns, 'api-v1'))),
]
