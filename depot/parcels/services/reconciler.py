"""
Aggregation reconciler.

Keeps a shipment's status consistent with its packages: a shipment is
delivered exactly when every one of its packages is delivered.
"""

import logging
from dataclasses import dataclass
from typing import List

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from ..models import Package, Shipment, ShipmentStatus, AuditLog
from ..signals import shipment_delivered, send_on_commit
from ..status_catalog import PackageStatus

logger = logging.getLogger(__name__)

SHIPMENT_NOT_FOUND = 'shipment_not_found'


@dataclass(frozen=True)
class ReconcileResult:
    shipment_id: str
    promoted: bool
    total_packages: int
    delivered_packages: int
    reason: str

    def to_dict(self):
        return {
            'shipment_id': self.shipment_id,
            'promoted': self.promoted,
            'total_packages': self.total_packages,
            'delivered_packages': self.delivered_packages,
            'reason': self.reason,
        }


class AggregationReconciler:
    """Promotes shipments whose packages are all delivered."""

    @staticmethod
    def lock_shipment_of(package_id):
        """
        Lock the row of the shipment holding a package, before the package row.

        Shipment rows are always locked ahead of their package rows. Returns
        the shipment id, or None when the package is unknown or ungrouped.
        """
        try:
            shipment_id = Package.objects.filter(id=package_id).values_list('shipment_id', flat=True).first()
        except (ValidationError, ValueError):
            return None
        if shipment_id is None:
            return None
        return Shipment.objects.select_for_update().filter(id=shipment_id).values_list('id', flat=True).first()

    @staticmethod
    def reconcile(shipment_id, user=None, dry_run: bool = False) -> ReconcileResult:
        """
        Reconcile one shipment with its packages.

        Runs inside the caller's transaction when there is one, so a package
        delivery and the promotion it causes commit together. The shipment
        row is locked while packages are counted.

        Args:
            shipment_id: Shipment UUID
            user: User performing the change (None for system repairs)
            dry_run: Report what would happen without writing

        Returns:
            ReconcileResult

        A missing shipment yields a result with reason ``shipment_not_found``.
        """
        with transaction.atomic():
            try:
                shipment = Shipment.objects.select_for_update().get(id=shipment_id)
            except (Shipment.DoesNotExist, ValidationError, ValueError):
                logger.warning(f"Reconcile requested for unknown shipment {shipment_id}")
                return ReconcileResult(str(shipment_id), False, 0, 0, SHIPMENT_NOT_FOUND)

            counts = shipment.packages.aggregate(
                total=Count('id'),
                delivered=Count('id', filter=Q(status=PackageStatus.DELIVERED)),
            )
            total, delivered = counts['total'], counts['delivered']

            def result(promoted, reason):
                return ReconcileResult(str(shipment.id), promoted, total, delivered, reason)

            if dry_run:
                would_promote = total > 0 and total == delivered and not shipment.is_delivered
                return result(would_promote, 'dry_run')

            if shipment.total_package_count != total:
                logger.warning(
                    f"Shipment {shipment.shipment_number} package count drifted: "
                    f"stored {shipment.total_package_count}, actual {total}"
                )
                shipment.total_package_count = total
                shipment.save(update_fields=['total_package_count', 'updated_at'])

            if shipment.is_delivered:
                return result(False, 'already_delivered')
            if total == 0:
                return result(False, 'no_packages')
            if delivered < total:
                return result(False, 'packages_outstanding')

            old_status = shipment.status
            shipment.status = ShipmentStatus.DELIVERED
            shipment.delivered_at = timezone.now()
            shipment.save(update_fields=['status', 'delivered_at', 'updated_at'])

            AuditLog.log_status_change(
                entity=shipment,
                old_status=old_status,
                new_status=ShipmentStatus.DELIVERED,
                user=user,
                notes=f"All {total} packages delivered",
                metadata={'action': 'reconciled', 'total_packages': total}
            )
            send_on_commit(shipment_delivered, sender=Shipment, shipment_id=shipment.id)

            logger.info(f"Shipment {shipment.shipment_number} promoted to delivered ({total} packages)")
            return result(True, 'all_packages_delivered')

    @classmethod
    def reconcile_all(cls, user=None, dry_run: bool = False) -> List[ReconcileResult]:
        """
        Repair every shipment stuck before delivered although all its packages are delivered.

        Safe to re-run: shipments are only ever promoted.
        """
        candidates = (
            Shipment.objects.exclude(status=ShipmentStatus.DELIVERED)
            .annotate(
                package_total=Count('packages'),
                delivered_total=Count('packages', filter=Q(packages__status=PackageStatus.DELIVERED)),
            )
            .filter(package_total__gt=0)
        )
        shipment_ids = [s.id for s in candidates if s.package_total == s.delivered_total]

        results = [cls.reconcile(shipment_id, user=user, dry_run=dry_run) for shipment_id in shipment_ids]
        promoted = sum(1 for r in results if r.promoted)
        logger.info(f"Reconciled {len(results)} shipments, {promoted} promoted (dry_run={dry_run})")
        return results
