"""
Package Service for the package lifecycle.

Handles package intake and lookups.
"""

import logging
from typing import Dict, Any, List

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction

from ..exceptions import PackageNotFound, ValidationException
from ..models import Package, PackageStatusHistory, PackagePriority, CustomerTier, AuditLog
from ..signals import package_status_changed, send_on_commit
from ..status_catalog import PackageStatus
from .delivery_auth import normalize_suite

logger = logging.getLogger(__name__)


class PackageService:
    """Service class for package intake operations."""

    @staticmethod
    def find_customer_by_suite(suite_number: str):
        """
        Look up a customer by suite number (trimmed, case-insensitive).

        Raises:
            ValidationException: If no customer has that suite number
        """
        suite = normalize_suite(suite_number)
        try:
            return get_user_model().objects.get(suite_number=suite)
        except get_user_model().DoesNotExist:
            raise ValidationException(
                f"No customer with suite number {suite or suite_number!r}",
                {'suite_number': ['Unknown suite number']}
            )

    @staticmethod
    def create_package(package_data: Dict[str, Any], created_by) -> Package:
        """
        Receive a package into the warehouse.

        The package starts in ``pending`` with a first history entry.

        Args:
            package_data: Package details; needs ``customer`` or ``suite_number``
            created_by: User performing intake

        Returns:
            Created Package instance

        Raises:
            ValidationException: If the owner cannot be determined
        """
        customer = package_data.get('customer')
        if customer is None:
            if not package_data.get('suite_number'):
                raise ValidationException(
                    "A customer or suite number is required",
                    {'customer': ['This field is required.']}
                )
            customer = PackageService.find_customer_by_suite(package_data['suite_number'])

        with transaction.atomic():
            package = Package.objects.create(
                customer=customer,
                status=PackageStatus.PENDING,
                tracking_number=package_data.get('tracking_number', ''),
                priority=package_data.get('priority', PackagePriority.MEDIUM),
                special_handling=package_data.get('special_handling', []),
                customer_tier=package_data.get('customer_tier', CustomerTier.STANDARD),
                description=package_data.get('description', ''),
                weight=package_data.get('weight'),
                metadata=package_data.get('metadata', {}),
                created_by=created_by,
                updated_by=created_by,
            )

            PackageStatusHistory.record(
                package,
                status=PackageStatus.PENDING,
                actor=created_by,
                reason='Package received at intake',
                location=package_data.get('location', ''),
            )

            AuditLog.log_change(
                entity=package,
                action='created',
                user=created_by,
                new_values={
                    'package_number': package.package_number,
                    'customer': customer.pk,
                    'priority': package.priority,
                    'special_handling': package.special_handling,
                }
            )

            send_on_commit(
                package_status_changed, sender=Package, package_id=package.id,
                old_status=None, new_status=PackageStatus.PENDING,
                actor_id=getattr(created_by, 'pk', None)
            )

        logger.info(f"Package {package.package_number} received for customer {customer}")
        return package

    @staticmethod
    def get_package(package_id) -> Package:
        """
        Raises:
            PackageNotFound: If the package does not exist
        """
        try:
            return Package.objects.select_related('customer', 'shipment').get(id=package_id)
        except (Package.DoesNotExist, ValidationError, ValueError):
            raise PackageNotFound(package_id)

    @staticmethod
    def get_history(package_id) -> List[PackageStatusHistory]:
        package = PackageService.get_package(package_id)
        return list(package.status_history.select_related('actor'))
