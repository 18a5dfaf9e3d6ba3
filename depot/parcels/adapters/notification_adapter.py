"""
Notification Adapter for the package lifecycle.

Delivery notices (email, SMS, WhatsApp) are sent by an external system. This
module defines the contract, a logging implementation for development and a
recording mock for tests, and wires them to the domain events.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Dict, Any

from django.utils.module_loading import import_string

from ..conf import parcel_settings
from ..signals import delivery_code_issued, package_delivered

logger = logging.getLogger(__name__)


class NotificationAdapterInterface(ABC):
    """
    Interface for the outbound customer notification system.

    Implementations must not raise for delivery problems they can retry
    themselves; anything raised is logged and dropped by the event dispatcher.
    """

    @abstractmethod
    def send_delivery_code(self, package_id: str, code: str, customer_id) -> None:
        """
        Send the delivery authorization code to the package owner.

        Args:
            package_id: Package UUID
            code: Plain delivery code
            customer_id: Owner of the package
        """
        pass

    @abstractmethod
    def send_delivery_confirmation(self, package_id: str, shipment_id, staff_id) -> None:
        """
        Tell the customer the package has been handed over.

        Args:
            package_id: Package UUID
            shipment_id: Owning shipment UUID, if any
            staff_id: Staff member who verified the delivery
        """
        pass


class LoggingNotificationAdapter(NotificationAdapterInterface):
    """Writes notifications to the log instead of sending them."""

    def send_delivery_code(self, package_id: str, code: str, customer_id) -> None:
        logger.info(f"Delivery notice queued for package {package_id} (customer {customer_id})")

    def send_delivery_confirmation(self, package_id: str, shipment_id, staff_id) -> None:
        logger.info(f"Delivery confirmation queued for package {package_id}")


class MockNotificationAdapter(NotificationAdapterInterface):
    """
    Deterministic mock implementation for testing.

    Keeps every notification in memory so tests can assert on them.
    """

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []

    def send_delivery_code(self, package_id: str, code: str, customer_id) -> None:
        self.sent.append({
            'type': 'delivery_code',
            'package_id': str(package_id),
            'code': code,
            'customer_id': customer_id,
        })

    def send_delivery_confirmation(self, package_id: str, shipment_id, staff_id) -> None:
        self.sent.append({
            'type': 'delivery_confirmation',
            'package_id': str(package_id),
            'shipment_id': str(shipment_id) if shipment_id else None,
            'staff_id': staff_id,
        })

    def of_type(self, notification_type: str) -> List[Dict[str, Any]]:
        return [n for n in self.sent if n['type'] == notification_type]


notification_adapter = None


def get_notification_adapter() -> NotificationAdapterInterface:
    """
    Return the active notification adapter.

    Built lazily from ``PARCELS['NOTIFICATION_ADAPTER']`` on first use.
    """
    global notification_adapter
    if notification_adapter is None:
        notification_adapter = import_string(parcel_settings.NOTIFICATION_ADAPTER)()
    return notification_adapter


def switch_to_mock_adapter() -> MockNotificationAdapter:
    """Switch to mock adapter for testing."""
    global notification_adapter
    notification_adapter = MockNotificationAdapter()
    return notification_adapter


def switch_to_real_adapter(real_adapter: NotificationAdapterInterface):
    """
    Switch to a real notification adapter implementation.

    Args:
        real_adapter: Implementation of NotificationAdapterInterface
    """
    global notification_adapter
    notification_adapter = real_adapter


def _on_delivery_code_issued(sender, package_id, code, customer_id, **kwargs):
    get_notification_adapter().send_delivery_code(package_id, code, customer_id)


def _on_package_delivered(sender, package_id, shipment_id, staff_id, **kwargs):
    get_notification_adapter().send_delivery_confirmation(package_id, shipment_id, staff_id)


def connect_notification_handlers():
    delivery_code_issued.connect(_on_delivery_code_issued, dispatch_uid='parcels.notify.code_issued')
    package_delivered.connect(_on_package_delivered, dispatch_uid='parcels.notify.delivered')
