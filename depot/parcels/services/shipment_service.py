"""
Shipment Service for the package lifecycle.

Groups packages into shipments, advances shipments along their workflow
carrying their packages along, and handles shipment arrival, which issues a
delivery code for every package still awaiting delivery.
"""

import logging
from typing import Dict, Any, List

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Max
from django.utils import timezone

from ..exceptions import BusinessException, ShipmentNotFound, ValidationException
from ..models import Package, Shipment, ShipmentStatus, AuditLog
from ..status_catalog import PackageStatus, StatusCatalog
from .delivery_auth import DeliveryAuthService
from .reconciler import AggregationReconciler
from .status_service import StatusService
from .workflow import ShipmentWorkflow

logger = logging.getLogger(__name__)


class ShipmentService:
    """Service class for shipment operations."""

    # Package status a shipment status carries its packages to
    PACKAGE_STATUS_FOR_SHIPMENT = {
        ShipmentStatus.PROCESSING: PackageStatus.GROUP_CONFIRMED,
        ShipmentStatus.SHIPPED: PackageStatus.SHIPPED,
        ShipmentStatus.IN_TRANSIT: PackageStatus.IN_TRANSIT,
    }

    @staticmethod
    def _lock_shipment(shipment_id) -> Shipment:
        try:
            return Shipment.objects.select_for_update().get(id=shipment_id)
        except (Shipment.DoesNotExist, ValidationError, ValueError):
            raise ShipmentNotFound(shipment_id)

    @staticmethod
    def _attach(shipment: Shipment, package_ids: List, user) -> int:
        """Attach packages to a locked shipment; returns how many were added."""
        package_ids = list(dict.fromkeys(str(pid) for pid in package_ids))
        if not package_ids:
            raise ValidationException("At least one package is required", {'package_ids': ['Empty list']})

        packages = list(Package.objects.select_for_update().filter(id__in=package_ids))
        packages.sort(key=lambda p: package_ids.index(str(p.id)))
        found = {str(p.id) for p in packages}
        missing = [pid for pid in package_ids if pid not in found]
        if missing:
            raise BusinessException(
                f"Packages not found: {', '.join(missing)}",
                "PACKAGE_NOT_FOUND",
                {'package_ids': missing}
            )

        for package in packages:
            if package.shipment_id and package.shipment_id != shipment.id:
                raise BusinessException(
                    f"Package {package.package_number} already belongs to another shipment",
                    "PACKAGE_ALREADY_GROUPED",
                    {'package_id': str(package.id), 'shipment_id': str(package.shipment_id)}
                )
            if StatusCatalog.is_terminal(package.status) and package.status != PackageStatus.DELIVERED:
                raise BusinessException(
                    f"Package {package.package_number} is {package.status} and cannot be shipped",
                    "INVALID_PACKAGE_STATUS",
                    {'package_id': str(package.id), 'status': package.status}
                )

        if shipment.is_delivered and any(p.status != PackageStatus.DELIVERED for p in packages):
            raise BusinessException(
                f"Shipment {shipment.shipment_number} is delivered; only delivered packages can be added",
                "SHIPMENT_DELIVERED"
            )

        next_sequence = (shipment.packages.aggregate(last=Max('shipment_sequence'))['last'] or 0) + 1
        added = 0
        for package in packages:
            if package.shipment_id == shipment.id:
                continue
            package.shipment = shipment
            package.shipment_sequence = next_sequence
            package.updated_by = user
            package.save(update_fields=['shipment', 'shipment_sequence', 'updated_by', 'updated_at'])
            next_sequence += 1
            added += 1

            if package.status == PackageStatus.READY_FOR_GROUPING:
                StatusService.apply_transition(
                    package, PackageStatus.GROUPED, actor=user,
                    notes=f"Added to shipment {shipment.shipment_number}"
                )

        shipment.total_package_count = shipment.packages.count()
        shipment.save(update_fields=['total_package_count', 'updated_at'])
        return added

    @staticmethod
    def _advance_packages(shipment: Shipment, package_status: str, user) -> int:
        """Move packages behind ``package_status`` up to it; returns how many moved."""
        target_index = StatusCatalog.order_index(package_status)
        packages = (
            shipment.packages.select_for_update()
            .exclude(status__in=StatusCatalog.terminal_statuses())
            .order_by('shipment_sequence', 'created_at')
        )
        moved = 0
        for package in packages:
            current_index = StatusCatalog.order_index(package.status)
            if current_index is None or current_index >= target_index:
                continue
            StatusService.apply_transition(
                package, package_status, actor=user,
                reason=f"Shipment {shipment.shipment_number} {shipment.get_status_display().lower()}"
            )
            moved += 1
        return moved

    @staticmethod
    def create_shipment(package_ids: List, shipment_data: Dict[str, Any], created_by) -> Shipment:
        """
        Create a shipment grouping the given packages.

        Packages in ``ready-for-grouping`` move to ``grouped``; others keep
        their status.

        Args:
            package_ids: Package UUIDs, in shipment order
            shipment_data: Shipment details (tracking_number, notes)
            created_by: User creating the shipment

        Returns:
            Created Shipment instance

        Raises:
            BusinessException: If a package cannot be grouped
        """
        with transaction.atomic():
            shipment = Shipment.objects.create(
                tracking_number=shipment_data.get('tracking_number', ''),
                notes=shipment_data.get('notes', ''),
                created_by=created_by,
            )
            added = ShipmentService._attach(shipment, package_ids, created_by)

            AuditLog.log_change(
                entity=shipment,
                action='created',
                user=created_by,
                new_values={'package_count': added, 'package_ids': [str(pid) for pid in package_ids]}
            )

            # A shipment made of delivered packages is itself delivered
            AggregationReconciler.reconcile(shipment.id, user=created_by)
            shipment.refresh_from_db()

        logger.info(f"Shipment {shipment.shipment_number} created with {added} packages")
        return shipment

    @staticmethod
    def add_packages(shipment_id, package_ids: List, user) -> Shipment:
        """
        Add packages to an existing shipment.

        Raises:
            ShipmentNotFound: If the shipment does not exist
            BusinessException: If a package cannot be grouped
        """
        with transaction.atomic():
            shipment = ShipmentService._lock_shipment(shipment_id)
            added = ShipmentService._attach(shipment, package_ids, user)

            AuditLog.log_change(
                entity=shipment,
                action='packages_added',
                user=user,
                new_values={'added': added, 'total_package_count': shipment.total_package_count}
            )
            AggregationReconciler.reconcile(shipment.id, user=user)
            shipment.refresh_from_db()

        logger.info(f"{added} packages added to shipment {shipment.shipment_number}")
        return shipment

    @staticmethod
    def mark_arrived(shipment_id, user) -> Dict[str, Any]:
        """
        Mark a shipment as arrived at its destination.

        Every package that is neither terminal nor already arrived moves to
        ``arrived`` and gets its own delivery code; arrived packages missing a
        code get one. The shipment is reconciled afterwards, so one
        whose packages are all delivered ends up delivered. Safe to repeat.

        Returns:
            Dictionary with arrival results

        Raises:
            ShipmentNotFound: If the shipment does not exist
            InvalidTransitionException: If the shipment cannot arrive
        """
        now = timezone.now()
        with transaction.atomic():
            shipment = ShipmentService._lock_shipment(shipment_id)
            ShipmentWorkflow.validate_transition(shipment, ShipmentStatus.ARRIVED)

            if shipment.status != ShipmentStatus.ARRIVED:
                old_status = shipment.status
                shipment.status = ShipmentStatus.ARRIVED
                shipment.arrived_at = now
                shipment.save(update_fields=['status', 'arrived_at', 'updated_at'])
                AuditLog.log_status_change(
                    entity=shipment,
                    old_status=old_status,
                    new_status=ShipmentStatus.ARRIVED,
                    user=user
                )

            packages_arrived = 0
            codes_issued = 0
            pending = (
                shipment.packages.select_for_update()
                .exclude(status__in=StatusCatalog.terminal_statuses())
                .order_by('shipment_sequence', 'created_at')
            )
            for package in pending:
                if package.status == PackageStatus.ARRIVED:
                    if not package.has_active_code:
                        DeliveryAuthService.assign_code(package, now=now)
                        codes_issued += 1
                    continue
                StatusService.apply_transition(
                    package, PackageStatus.ARRIVED, actor=user,
                    reason=f"Shipment {shipment.shipment_number} arrived", now=now
                )
                packages_arrived += 1
                codes_issued += 1

            # A shipment whose packages were all delivered already is delivered
            promoted = AggregationReconciler.reconcile(shipment.id, user=user).promoted
            shipment.refresh_from_db()

        logger.info(
            f"Shipment {shipment.shipment_number} arrived: {packages_arrived} packages arrived, "
            f"{codes_issued} delivery codes issued"
        )
        return {
            'success': True,
            'shipment_id': str(shipment.id),
            'shipment_number': shipment.shipment_number,
            'packages_arrived': packages_arrived,
            'codes_issued': codes_issued,
            'shipment_status': shipment.status,
            'shipment_promoted': promoted,
        }

    @staticmethod
    def update_status(shipment_id, new_status: str, user, notes: str = '') -> Dict[str, Any]:
        """
        Advance a shipment along its workflow and carry its packages along.

        Packages that are behind the matching package status move to it;
        packages already further along, in an exception status, or terminal
        keep theirs. ``arrived`` goes through ``mark_arrived`` so delivery
        codes are issued; ``delivered`` is reached only through reconciliation.

        Returns:
            Dictionary with update results

        Raises:
            ShipmentNotFound: If the shipment does not exist
            InvalidTransitionException: If the shipment cannot move to ``new_status``
        """
        if new_status == ShipmentStatus.ARRIVED:
            return ShipmentService.mark_arrived(shipment_id, user)

        with transaction.atomic():
            shipment = ShipmentService._lock_shipment(shipment_id)
            ShipmentWorkflow.validate_transition(shipment, new_status)
            old_status = shipment.status

            packages_updated = 0
            if old_status != new_status:
                shipment.status = new_status
                shipment.save(update_fields=['status', 'updated_at'])
                AuditLog.log_status_change(
                    entity=shipment,
                    old_status=old_status,
                    new_status=new_status,
                    user=user,
                    notes=notes
                )

                package_status = ShipmentService.PACKAGE_STATUS_FOR_SHIPMENT.get(new_status)
                if package_status:
                    packages_updated = ShipmentService._advance_packages(shipment, package_status, user)

            promoted = AggregationReconciler.reconcile(shipment.id, user=user).promoted
            shipment.refresh_from_db()

        logger.info(
            f"Shipment {shipment.shipment_number}: {old_status} -> {new_status}, "
            f"{packages_updated} packages updated"
        )
        return {
            'success': True,
            'shipment_id': str(shipment.id),
            'shipment_number': shipment.shipment_number,
            'old_status': old_status,
            'new_status': new_status,
            'packages_updated': packages_updated,
            'shipment_status': shipment.status,
            'shipment_promoted': promoted,
        }
