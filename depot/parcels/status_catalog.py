"""
Status catalog for the package lifecycle.

Single source of truth for every package status: whether it is terminal,
whether customers can see it, how long a package is expected to dwell in it,
and where it sits in the normal forward flow.
"""

from dataclasses import dataclass
from typing import Optional, List

from django.db import models

from .exceptions import UnknownStatus


class PackageStatus(models.TextChoices):
    """Package status enumeration following the warehouse lifecycle."""
    # Intake
    PENDING = 'pending', 'Pending'
    PROCESSING = 'processing', 'Processing'
    # Grouping
    READY_FOR_GROUPING = 'ready-for-grouping', 'Ready for Grouping'
    GROUPED = 'grouped', 'Grouped'
    GROUP_CONFIRMED = 'group-confirmed', 'Group Confirmed'
    # Shipping
    DISPATCHED = 'dispatched', 'Dispatched'
    SHIPPED = 'shipped', 'Shipped'
    IN_TRANSIT = 'in-transit', 'In Transit'
    OUT_FOR_DELIVERY = 'out-for-delivery', 'Out for Delivery'
    ARRIVED = 'arrived', 'Arrived'
    DELIVERED = 'delivered', 'Delivered'
    # Exceptions
    DELAYED = 'delayed', 'Delayed'
    RETURNED = 'returned', 'Returned'
    LOST = 'lost', 'Lost'
    EXCEPTION = 'exception', 'Exception'
    CANCELLED = 'cancelled', 'Cancelled'


class StatusPhase(models.TextChoices):
    INTAKE = 'intake', 'Intake'
    GROUPING = 'grouping', 'Grouping'
    SHIPPING = 'shipping', 'Shipping'
    EXCEPTION = 'exception', 'Exception'


@dataclass(frozen=True)
class StatusDescriptor:
    """Static properties of one catalog status."""
    status: str
    label: str
    description: str
    phase: str
    is_terminal: bool
    customer_visible: bool
    requires_action: bool
    expected_duration_hours: float
    order_index: Optional[int]

    def to_dict(self):
        return {
            'status': self.status,
            'label': self.label,
            'description': self.description,
            'phase': self.phase,
            'is_terminal': self.is_terminal,
            'customer_visible': self.customer_visible,
            'requires_action': self.requires_action,
            'expected_duration_hours': self.expected_duration_hours,
            'order_index': self.order_index,
        }


def _entry(status, description, phase, order_index, expected_hours,
           terminal=False, visible=True, requires_action=False):
    return StatusDescriptor(
        status=status.value,
        label=status.label,
        description=description,
        phase=phase,
        is_terminal=terminal,
        customer_visible=visible,
        requires_action=requires_action,
        expected_duration_hours=expected_hours,
        order_index=order_index,
    )


_CATALOG = {
    d.status: d for d in [
        _entry(PackageStatus.PENDING, 'Request received and awaiting initial processing',
               StatusPhase.INTAKE, 0, 24, requires_action=True),
        _entry(PackageStatus.PROCESSING, 'Package being prepared, verified, and documented',
               StatusPhase.INTAKE, 1, 12, requires_action=True),
        _entry(PackageStatus.READY_FOR_GROUPING, 'Package processed and available for batch selection',
               StatusPhase.GROUPING, 2, 6, visible=False, requires_action=True),
        _entry(PackageStatus.GROUPED, 'Package added to shipment group, awaiting dispatch',
               StatusPhase.GROUPING, 3, 4, requires_action=True),
        _entry(PackageStatus.GROUP_CONFIRMED, 'Shipment group finalized and ready for dispatch',
               StatusPhase.GROUPING, 4, 2, requires_action=True),
        _entry(PackageStatus.DISPATCHED, 'Package has left the warehouse or facility',
               StatusPhase.SHIPPING, 5, 4),
        _entry(PackageStatus.SHIPPED, 'Package has been shipped and is on its way',
               StatusPhase.SHIPPING, 6, 24),
        _entry(PackageStatus.IN_TRANSIT, 'Package is actively moving toward destination',
               StatusPhase.SHIPPING, 7, 24),
        _entry(PackageStatus.OUT_FOR_DELIVERY, 'Package is with delivery agent for final delivery',
               StatusPhase.SHIPPING, 8, 8),
        _entry(PackageStatus.ARRIVED, 'Package arrived at destination and awaits collection',
               StatusPhase.SHIPPING, 8, 72, requires_action=True),
        _entry(PackageStatus.DELIVERED, 'Package successfully delivered to recipient',
               StatusPhase.SHIPPING, 9, 0, terminal=True),
        _entry(PackageStatus.DELAYED, 'Unexpected delay in delivery process',
               StatusPhase.EXCEPTION, None, 12, requires_action=True),
        _entry(PackageStatus.RETURNED, 'Delivery failed, package returning to sender',
               StatusPhase.EXCEPTION, None, 0, terminal=True, requires_action=True),
        _entry(PackageStatus.LOST, 'Package cannot be located in the system',
               StatusPhase.EXCEPTION, None, 0, terminal=True, requires_action=True),
        _entry(PackageStatus.EXCEPTION, 'Package has encountered an exception',
               StatusPhase.EXCEPTION, None, 24, requires_action=True),
        _entry(PackageStatus.CANCELLED, 'Package delivery has been cancelled',
               StatusPhase.EXCEPTION, None, 0, terminal=True),
    ]
}

# Happy-path successor of each status, used for overdue recommendations.
_RECOMMENDED_NEXT = {
    PackageStatus.PENDING: (PackageStatus.PROCESSING, 'Package is ready for processing'),
    PackageStatus.PROCESSING: (PackageStatus.READY_FOR_GROUPING, 'Processing complete, ready for grouping'),
    PackageStatus.READY_FOR_GROUPING: (PackageStatus.GROUPED, 'Package should be added to a shipment group'),
    PackageStatus.GROUPED: (PackageStatus.GROUP_CONFIRMED, 'Group is ready for confirmation'),
    PackageStatus.GROUP_CONFIRMED: (PackageStatus.DISPATCHED, 'Group is ready for dispatch'),
    PackageStatus.DISPATCHED: (PackageStatus.IN_TRANSIT, 'Package has left the facility'),
    PackageStatus.SHIPPED: (PackageStatus.IN_TRANSIT, 'Package is on its way'),
    PackageStatus.IN_TRANSIT: (PackageStatus.OUT_FOR_DELIVERY, 'Package has reached destination hub'),
    PackageStatus.OUT_FOR_DELIVERY: (PackageStatus.DELIVERED, 'Package is ready for delivery'),
    PackageStatus.ARRIVED: (PackageStatus.DELIVERED, 'Package is awaiting collection by the customer'),
}

LEGACY_STATUS_MAPPING = {
    'pending': PackageStatus.PENDING,
    'processing': PackageStatus.PROCESSING,
    'received': PackageStatus.PROCESSING,
    'shipped': PackageStatus.DISPATCHED,
    'in transit': PackageStatus.IN_TRANSIT,
    'in_transit': PackageStatus.IN_TRANSIT,
    'in-transit': PackageStatus.IN_TRANSIT,
    'arrived': PackageStatus.ARRIVED,
    'delivered': PackageStatus.DELIVERED,
}


class StatusCatalog:
    """Read-only lookups over the fixed status enumeration."""

    @staticmethod
    def describe(status) -> StatusDescriptor:
        """
        Describe a catalog status.

        Args:
            status: Status value (string or PackageStatus member)

        Returns:
            StatusDescriptor for the status

        Raises:
            UnknownStatus: If the value is not part of the catalog
        """
        try:
            return _CATALOG[str(status)]
        except (KeyError, TypeError):
            raise UnknownStatus(status)

    @classmethod
    def exists(cls, status) -> bool:
        return str(status) in _CATALOG

    @classmethod
    def is_terminal(cls, status) -> bool:
        return cls.describe(status).is_terminal

    @classmethod
    def is_customer_visible(cls, status) -> bool:
        return cls.describe(status).customer_visible

    @classmethod
    def order_index(cls, status) -> Optional[int]:
        return cls.describe(status).order_index

    @staticmethod
    def all() -> List[StatusDescriptor]:
        return list(_CATALOG.values())

    @staticmethod
    def statuses_in_phase(phase) -> List[str]:
        return [d.status for d in _CATALOG.values() if d.phase == str(phase)]

    @staticmethod
    def terminal_statuses() -> List[str]:
        return [d.status for d in _CATALOG.values() if d.is_terminal]

    @classmethod
    def recommended_next(cls, status):
        """
        Return ``(next_status, reason)`` on the happy path, or ``(None, reason)``
        when the catalog has no recommendation for the status.
        """
        cls.describe(status)
        recommendation = _RECOMMENDED_NEXT.get(PackageStatus(str(status)))
        if recommendation is None:
            return None, 'No specific recommendation available'
        next_status, reason = recommendation
        return next_status.value, reason

    @staticmethod
    def normalize_legacy(value: str) -> str:
        """Map legacy status spellings onto catalog values."""
        normalized = (value or '').strip().lower()
        if normalized in _CATALOG:
            return normalized
        mapped = LEGACY_STATUS_MAPPING.get(normalized)
        if mapped is None:
            raise UnknownStatus(value)
        return mapped.value
