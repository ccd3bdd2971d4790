"""
API v1 URL Configuration.

All API endpoints for version 1.
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views.parts import PartViewSet
from .views.bom import BOMLineViewSet, BOMViewSet

router = DefaultRouter()

# Parts
router.register(r'parts', PartViewSet, basename='parts')

# BOM
router.register(r'bom-lines', BOMLineViewSet, basename='bom-lines')
router.register(r'bom', BOMViewSet, basename='bom')

urlpatterns = [
    path('', include(router.urls)),
]
