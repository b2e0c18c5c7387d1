"""
Stock — URL Configuration

@file stock/urls.py
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import StockViewSet

app_name = 'stock'

router = SimpleRouter()
router.register('', StockViewSet, basename='stock')

urlpatterns = [
    path('', include(router.urls)),
]
