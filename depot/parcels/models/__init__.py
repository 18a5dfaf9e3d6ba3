"""
Package lifecycle models
"""

from ..status_catalog import PackageStatus
from .package import Package, PackagePriority, CustomerTier
from .shipment import Shipment, ShipmentStatus
from .history import PackageStatusHistory
from .verification import DeliveryVerificationLog
from .audit import AuditLog

__all__ = [
    'PackageStatus',

    # Package models
    'Package', 'PackagePriority', 'CustomerTier',
    'PackageStatusHistory',

    # Shipment models
    'Shipment', 'ShipmentStatus',

    # Delivery verification
    'DeliveryVerificationLog',

    # Audit
    'AuditLog',
]
