"""
Status Service for the package lifecycle.

Entry point for proposed status changes: structural validation, business
rules, then persistence of the accepted transition with its side effects.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from ..constants import ErrorCode
from ..models import Package, PackageStatusHistory
from ..signals import package_status_changed, package_delivered, send_on_commit
from ..status_catalog import PackageStatus
from .delivery_auth import DeliveryAuthService
from .reconciler import AggregationReconciler
from .rules import Finding, RuleContext, RuleEngine, ValidationResult
from .workflow import TransitionValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of a proposed transition.

    ``accepted`` without ``applied`` means a no-op: the package already had
    the target status and nothing was written.
    """
    accepted: bool
    applied: bool
    package_id: str
    from_status: Optional[str]
    to_status: str
    errors: Tuple[Finding, ...] = ()
    warnings: Tuple[Finding, ...] = ()
    suggestions: Tuple[Finding, ...] = ()
    shipment_promoted: bool = False
    history_id: Optional[int] = field(default=None, compare=False)

    @classmethod
    def from_validation(cls, validation: ValidationResult, **kwargs) -> 'TransitionResult':
        return cls(
            errors=validation.errors,
            warnings=validation.warnings,
            suggestions=validation.suggestions,
            **kwargs
        )

    def error_codes(self):
        return [f.code for f in self.errors]

    def to_dict(self):
        return {
            'accepted': self.accepted,
            'applied': self.applied,
            'package_id': self.package_id,
            'from_status': self.from_status,
            'to_status': self.to_status,
            'errors': [f.to_dict() for f in self.errors],
            'warnings': [f.to_dict() for f in self.warnings],
            'suggestions': [f.to_dict() for f in self.suggestions],
            'shipment_promoted': self.shipment_promoted,
        }


class StatusService:
    """Service class for package status changes."""

    @staticmethod
    def apply_transition(package: Package, target: str, actor=None, reason: str = '',
                         location: str = '', notes: str = '', now=None) -> Tuple[PackageStatusHistory, bool]:
        """
        Persist an already validated transition.

        Writes the status and one history row, issues a delivery code on
        arrival, voids an unredeemed code when leaving arrival, clears the
        consumed code when leaving delivery, and reconciles the shipment on
        delivery. Must run inside a transaction holding the
        package row lock.

        Returns:
            (history entry, whether the shipment was promoted)
        """
        now = now or timezone.now()
        old_status = package.status

        package.status = target
        if actor is not None:
            package.updated_by = actor
        package.save(update_fields=['status', 'updated_by', 'updated_at'])

        entry = PackageStatusHistory.record(
            package,
            status=target,
            previous_status=old_status,
            actor=actor,
            reason=reason,
            location=location,
            notes=notes,
            timestamp=now,
        )

        if target == PackageStatus.ARRIVED:
            DeliveryAuthService.assign_code(package, now=now)
        elif old_status == PackageStatus.ARRIVED and target != PackageStatus.DELIVERED:
            DeliveryAuthService.void_code(package)
        elif old_status == PackageStatus.DELIVERED:
            DeliveryAuthService.clear_redemption(package)

        actor_id = getattr(actor, 'pk', None)
        send_on_commit(
            package_status_changed, sender=Package, package_id=package.id,
            old_status=old_status, new_status=target, actor_id=actor_id
        )

        promoted = False
        if target == PackageStatus.DELIVERED:
            send_on_commit(
                package_delivered, sender=Package, package_id=package.id,
                shipment_id=package.shipment_id, staff_id=actor_id
            )
            if package.shipment_id:
                promoted = AggregationReconciler.reconcile(package.shipment_id, user=actor).promoted

        logger.info(f"Package {package.package_number}: {old_status} -> {target}")
        return entry, promoted

    @classmethod
    def propose_transition(cls, package_id, target_status: str, actor=None, actor_role: str = None,
                           reason: str = '', location: str = '', notes: str = '',
                           engine: RuleEngine = None, now=None) -> TransitionResult:
        """
        Validate and, when accepted, apply a package status change.

        Args:
            package_id: Package UUID
            target_status: Proposed status
            actor: User proposing the change
            actor_role: Role to validate with; defaults to ``actor.role``
            reason: Reason for the change (required for delayed/returned/lost)
            location: Where the change happened
            notes: Free-text notes
            engine: RuleEngine to use; defaults to the default rule set
            now: Reference time for timeline rules

        Returns:
            TransitionResult
        """
        now = now or timezone.now()
        if actor_role is None:
            actor_role = getattr(actor, 'role', '') or ''
        target_status = str(target_status)

        with transaction.atomic():
            AggregationReconciler.lock_shipment_of(package_id)
            try:
                package = Package.objects.select_for_update().get(id=package_id)
            except (Package.DoesNotExist, ValidationError, ValueError):
                return TransitionResult(
                    accepted=False, applied=False, package_id=str(package_id),
                    from_status=None, to_status=target_status,
                    errors=(Finding(ErrorCode.PACKAGE_NOT_FOUND, f"Package {package_id} not found"),),
                )

            current = package.status
            history = list(package.status_history.all())
            structural = TransitionValidator.validate(
                current, target_status, actor_role, reason, [entry.status for entry in history]
            )
            result_args = dict(package_id=str(package.id), from_status=current, to_status=target_status)

            if not structural.is_valid:
                logger.info(f"Transition {current} -> {target_status} rejected for {package.package_number}: "
                            f"{[f.code for f in structural.errors]}")
                return TransitionResult.from_validation(structural, accepted=False, applied=False, **result_args)

            if current == target_status:
                return TransitionResult.from_validation(structural, accepted=True, applied=False, **result_args)

            engine = engine or RuleEngine()
            context = RuleContext.for_package(package, target_status, actor_role, reason, history=history, now=now)
            validation = structural.merge(engine.evaluate(context))

            if not validation.is_valid:
                logger.info(f"Transition {current} -> {target_status} blocked by rules for "
                            f"{package.package_number}: {[f.code for f in validation.errors]}")
                return TransitionResult.from_validation(validation, accepted=False, applied=False, **result_args)

            entry, promoted = cls.apply_transition(
                package, target_status, actor=actor, reason=reason,
                location=location, notes=notes, now=now
            )

        return TransitionResult.from_validation(
            validation, accepted=True, applied=True, shipment_promoted=promoted,
            history_id=entry.id, **result_args
        )
