"""
Package Lifecycle Views
"""

from .package_views import PackageViewSet
from .shipment_views import ShipmentViewSet
from .rule_views import RuleViewSet

__all__ = [
    'PackageViewSet',
    'ShipmentViewSet',
    'RuleViewSet',
]
