"""
URL configuration for the package lifecycle API.
"""

from rest_framework.routers import DefaultRouter

from .views import PackageViewSet, ShipmentViewSet, RuleViewSet

router = DefaultRouter()
router.register(r'packages', PackageViewSet, basename='package')
router.register(r'shipments', ShipmentViewSet, basename='shipment')
router.register(r'rules', RuleViewSet, basename='rule')

urlpatterns = router.urls
