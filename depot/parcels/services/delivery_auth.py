"""
Delivery authorization codes.

A numeric one-time code is issued when a package arrives and must be redeemed
by warehouse staff, together with the owner's suite number, to hand the
package over. Redemption is the only ordinary path to ``delivered``.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone
from django.utils.crypto import get_random_string, constant_time_compare

from ..conf import parcel_settings
from ..constants import RedemptionFailure, CodeIssueFailure
from ..models import Package, PackageStatusHistory, DeliveryVerificationLog, AuditLog
from ..signals import delivery_code_issued, package_delivered, package_status_changed, send_on_commit
from ..status_catalog import PackageStatus
from .reconciler import AggregationReconciler

logger = logging.getLogger(__name__)

DIGITS = '0123456789'


@dataclass(frozen=True)
class IssueResult:
    package_id: str
    issued: bool
    issued_at: Optional[object] = None
    reason: Optional[str] = None
    code: Optional[str] = None

    def to_dict(self):
        # The code itself goes to the customer through the notification adapter only
        return {
            'package_id': self.package_id,
            'issued': self.issued,
            'issued_at': self.issued_at.isoformat() if self.issued_at else None,
            'reason': self.reason,
        }


@dataclass(frozen=True)
class RedemptionResult:
    verified: bool
    message: str
    reason: Optional[str] = None
    package_id: Optional[str] = None
    shipment_id: Optional[str] = None
    shipment_promoted: bool = False

    def to_dict(self, expose_reason: bool = False):
        data = {
            'verified': self.verified,
            'message': self.message,
            'package_id': self.package_id,
            'shipment_id': self.shipment_id,
            'shipment_promoted': self.shipment_promoted,
        }
        if expose_reason:
            data['reason'] = self.reason
        return data


def normalize_suite(value) -> str:
    return (value or '').strip().upper()


def code_expires_at(package):
    """Expiry time of the package's code, or None when codes do not expire."""
    ttl_hours = parcel_settings.DELIVERY_CODE_TTL_HOURS
    if not ttl_hours or package.code_issued_at is None:
        return None
    return package.code_issued_at + timedelta(hours=ttl_hours)


class DeliveryAuthService:
    """Issue, void and redeem delivery authorization codes."""

    @staticmethod
    def generate_code() -> str:
        return get_random_string(parcel_settings.DELIVERY_CODE_LENGTH, DIGITS)

    @classmethod
    def assign_code(cls, package: Package, now=None) -> str:
        """
        Store a fresh code on an arrived package and announce it on commit.

        Must run inside the transaction that moved the package to ``arrived``.
        """
        code = cls.generate_code()
        package.delivery_auth_code = code
        package.code_issued_at = now or timezone.now()
        package.code_redeemed_at = None
        package.code_redeemed_by = None
        package.save(update_fields=[
            'delivery_auth_code', 'code_issued_at', 'code_redeemed_at', 'code_redeemed_by', 'updated_at'
        ])

        send_on_commit(
            delivery_code_issued, sender=Package,
            package_id=package.id, code=code, customer_id=package.customer_id
        )
        logger.info(f"Delivery code issued for package {package.package_number}")
        return code

    @staticmethod
    def void_code(package: Package) -> bool:
        """Clear an unredeemed code; returns True when one was removed."""
        if not package.has_active_code:
            return False
        package.delivery_auth_code = None
        package.code_issued_at = None
        package.save(update_fields=['delivery_auth_code', 'code_issued_at', 'updated_at'])
        logger.info(f"Delivery code voided for package {package.package_number}")
        return True

    @staticmethod
    def clear_redemption(package: Package) -> bool:
        """Drop the consumed code of a package leaving ``delivered``; returns True when one was removed."""
        if package.delivery_auth_code is None and package.code_redeemed_at is None:
            return False
        package.delivery_auth_code = None
        package.code_issued_at = None
        package.code_redeemed_at = None
        package.code_redeemed_by = None
        package.save(update_fields=[
            'delivery_auth_code', 'code_issued_at', 'code_redeemed_at', 'code_redeemed_by', 'updated_at'
        ])
        logger.info(f"Redeemed delivery code cleared for package {package.package_number}")
        return True

    @classmethod
    def issue(cls, package_id, user=None, regenerate: bool = False) -> IssueResult:
        """
        Issue a code for an arrived package on request.

        Codes are normally issued by the arrival transition itself; this entry
        point covers packages without one and, with ``regenerate``, lost notices.

        Args:
            package_id: Package UUID
            user: User requesting the code
            regenerate: Replace an existing unredeemed code

        Returns:
            IssueResult
        """
        with transaction.atomic():
            try:
                package = Package.objects.select_for_update().get(id=package_id)
            except (Package.DoesNotExist, ValidationError, ValueError):
                return IssueResult(str(package_id), False, reason=CodeIssueFailure.PACKAGE_NOT_FOUND)

            if package.code_redeemed_at is not None:
                return IssueResult(str(package.id), False, reason=CodeIssueFailure.CODE_ALREADY_USED)
            if package.status != PackageStatus.ARRIVED:
                return IssueResult(str(package.id), False, reason=CodeIssueFailure.INVALID_STATE)
            if package.has_active_code and not regenerate:
                return IssueResult(
                    str(package.id), False, issued_at=package.code_issued_at,
                    reason=CodeIssueFailure.CODE_ALREADY_ISSUED
                )

            replaced = package.has_active_code
            code = cls.assign_code(package)
            AuditLog.log_change(
                entity=package,
                action='code_regenerated' if replaced else 'code_issued',
                user=user,
                new_values={'code_issued_at': package.code_issued_at},
            )
            return IssueResult(str(package.id), True, issued_at=package.code_issued_at, code=code)

    @staticmethod
    def _check(package: Optional[Package], suite_number, code, now) -> Optional[str]:
        """Return the first failed check, or None when the attempt may proceed."""
        if package is None:
            return RedemptionFailure.PACKAGE_NOT_FOUND
        if package.code_redeemed_at is not None:
            return RedemptionFailure.CODE_ALREADY_USED
        if package.status != PackageStatus.ARRIVED:
            return RedemptionFailure.INVALID_STATE
        if not package.delivery_auth_code:
            return RedemptionFailure.CODE_NOT_ISSUED

        expires_at = code_expires_at(package)
        if expires_at is not None and now > expires_at:
            return RedemptionFailure.CODE_EXPIRED

        owner_suite = normalize_suite(package.customer.suite_number)
        if not owner_suite or owner_suite != normalize_suite(suite_number):
            return RedemptionFailure.SUITE_MISMATCH

        if not constant_time_compare(package.delivery_auth_code, (code or '').strip()):
            return RedemptionFailure.CODE_MISMATCH
        return None

    @staticmethod
    def _claim(package: Package, staff, now) -> bool:
        """
        Consume the code and deliver the package in one conditional UPDATE.

        Returns False when another redemption got there first.
        """
        updated = Package.objects.filter(
            pk=package.pk,
            status=PackageStatus.ARRIVED,
            code_redeemed_at__isnull=True,
            delivery_auth_code=package.delivery_auth_code,
        ).update(
            status=PackageStatus.DELIVERED,
            code_redeemed_at=now,
            code_redeemed_by=staff,
            updated_by=staff,
            updated_at=now,
        )
        return updated == 1

    @staticmethod
    def _log_attempt(package, package_ref, suite_number, staff, reason):
        DeliveryVerificationLog.objects.create(
            package=package,
            package_ref=str(package_ref)[:64],
            submitted_suite_number=(suite_number or '')[:50],
            verification_success=reason is None,
            failure_reason=reason or '',
            verified_by=staff,
            verified_by_role=getattr(staff, 'role', '') or '',
        )

    @classmethod
    def _failure(cls, package, package_ref, suite_number, staff, reason) -> RedemptionResult:
        cls._log_attempt(package, package_ref, suite_number, staff, reason)
        logger.warning(f"Delivery verification failed for package {package_ref}: {reason}")
        if parcel_settings.GENERIC_REDEMPTION_FAILURES:
            message = RedemptionFailure.GENERIC_MESSAGE
        else:
            message = RedemptionFailure.MESSAGES[reason]
        return RedemptionResult(
            verified=False,
            message=message,
            reason=reason,
            package_id=str(package.id) if package is not None else None,
        )

    @classmethod
    def redeem(cls, package_id, suite_number: str, code: str, staff, now=None) -> RedemptionResult:
        """
        Verify a delivery code and hand the package over.

        Checks run in order and the first failure declines the attempt
        without changing the package: package exists, code not already used,
        package arrived, code issued, code not expired, suite number matches
        the owner's (trimmed, case-insensitive), code matches.

        On success the package is delivered, a history row records the staff
        member, and the owning shipment is reconciled in the same transaction.
        Every attempt is written to the verification log.

        Args:
            package_id: Package UUID
            suite_number: Suite number given by the collecting customer
            code: Delivery code given by the collecting customer
            staff: Staff user performing the hand-over
            now: Reference time

        Returns:
            RedemptionResult
        """
        now = now or timezone.now()

        with transaction.atomic():
            AggregationReconciler.lock_shipment_of(package_id)
            try:
                package = Package.objects.select_related('customer').get(id=package_id)
            except (Package.DoesNotExist, ValidationError, ValueError):
                package = None

            reason = cls._check(package, suite_number, code, now)
            if reason is not None:
                return cls._failure(package, package_id, suite_number, staff, reason)

            if not cls._claim(package, staff, now):
                return cls._failure(package, package_id, suite_number, staff, RedemptionFailure.CODE_ALREADY_USED)

            PackageStatusHistory.record(
                package,
                status=PackageStatus.DELIVERED,
                previous_status=PackageStatus.ARRIVED,
                actor=staff,
                reason='Delivery code verified',
                timestamp=now,
            )
            cls._log_attempt(package, package_id, suite_number, staff, None)

            send_on_commit(
                package_status_changed, sender=Package, package_id=package.id,
                old_status=PackageStatus.ARRIVED, new_status=PackageStatus.DELIVERED,
                actor_id=getattr(staff, 'pk', None)
            )
            send_on_commit(
                package_delivered, sender=Package, package_id=package.id,
                shipment_id=package.shipment_id, staff_id=getattr(staff, 'pk', None)
            )

            promoted = False
            if package.shipment_id:
                promoted = AggregationReconciler.reconcile(package.shipment_id, user=staff).promoted

        logger.info(f"Package {package.package_number} delivered by {staff}")
        return RedemptionResult(
            verified=True,
            message='Package verified and marked as delivered',
            package_id=str(package.id),
            shipment_id=str(package.shipment_id) if package.shipment_id else None,
            shipment_promoted=promoted,
        )

    @staticmethod
    def pending_codes_for_customer(customer):
        """Arrived packages of ``customer`` whose codes have not been redeemed, newest first."""
        return (
            Package.objects.filter(
                customer=customer,
                status=PackageStatus.ARRIVED,
                delivery_auth_code__isnull=False,
                code_redeemed_at__isnull=True,
            )
            .select_related('shipment')
            .order_by('-code_issued_at')
        )
