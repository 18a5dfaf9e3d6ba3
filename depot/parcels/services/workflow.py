"""
Workflow rules for packages and shipments.

Packages follow the status catalog's ordering with structural checks
(terminal states, required reasons, delivery only through code redemption).
Shipments follow a fixed transition table.
"""

from typing import Iterable

from ..conf import parcel_settings
from ..constants import ErrorCode
from ..exceptions import InvalidTransitionException
from ..models import Shipment, ShipmentStatus
from ..status_catalog import PackageStatus, StatusCatalog
from .rules import Finding, ValidationResult


def is_override_role(actor_role) -> bool:
    """Roles allowed to move packages out of terminal states or deliver directly."""
    return bool(actor_role) and actor_role in (parcel_settings.OVERRIDE_ROLES or ())


class TransitionValidator:
    """Structural legality of package status transitions."""

    REASON_REQUIRED = (
        PackageStatus.DELAYED,
        PackageStatus.RETURNED,
        PackageStatus.LOST,
    )

    @classmethod
    def validate(cls, current: str, target: str, actor_role: str = '', reason: str = None,
                 history_statuses: Iterable[str] = ()) -> ValidationResult:
        """
        Check whether ``current -> target`` is structurally legal.

        Args:
            current: Current package status
            target: Proposed status
            actor_role: Role of the user proposing the change
            reason: Free-text reason supplied with the change
            history_statuses: Statuses the package has already been in

        Returns:
            ValidationResult; errors block the transition
        """
        for value in (target, current):
            if not StatusCatalog.exists(value):
                return ValidationResult(errors=(
                    Finding(ErrorCode.UNKNOWN_STATUS, f"Unknown package status: {value!r}"),
                ))

        if current == target:
            return ValidationResult()

        override = is_override_role(actor_role)

        if StatusCatalog.is_terminal(current) and not override:
            return ValidationResult(errors=(
                Finding(ErrorCode.TERMINAL_STATE_VIOLATION,
                        f"Package is {current}; terminal packages cannot change status"),
            ))

        errors = []
        warnings = []

        if target == PackageStatus.DELIVERED and not override:
            errors.append(Finding(
                ErrorCode.DELIVERY_REQUIRES_AUTHORIZATION,
                'Packages are delivered by redeeming their delivery code'
            ))

        if target in cls.REASON_REQUIRED and not (reason or '').strip():
            errors.append(Finding(ErrorCode.REASON_REQUIRED, f"A reason is required to mark a package {target}"))

        current_index = StatusCatalog.order_index(current)
        target_index = StatusCatalog.order_index(target)
        if current_index is not None and target_index is not None and target_index < current_index:
            warnings.append(Finding(
                ErrorCode.STATUS_REGRESSION,
                'This status change moves the package backwards in the normal flow'
            ))

        if target in set(history_statuses) and not StatusCatalog.is_terminal(target):
            warnings.append(Finding(ErrorCode.REPEATED_STATUS, 'Package has already been in this status before'))

        return ValidationResult(errors=tuple(errors), warnings=tuple(warnings))

    @classmethod
    def can_transition(cls, current: str, target: str, actor_role: str = '', reason: str = None) -> bool:
        return cls.validate(current, target, actor_role, reason).is_valid


class ShipmentWorkflow:
    """Workflow rules for Shipment state transitions."""

    # Delivery is reached only through reconciliation
    ALLOWED_TRANSITIONS = {
        ShipmentStatus.PENDING: [ShipmentStatus.PROCESSING, ShipmentStatus.SHIPPED,
                                 ShipmentStatus.IN_TRANSIT, ShipmentStatus.ARRIVED],
        ShipmentStatus.PROCESSING: [ShipmentStatus.SHIPPED, ShipmentStatus.IN_TRANSIT, ShipmentStatus.ARRIVED],
        ShipmentStatus.SHIPPED: [ShipmentStatus.IN_TRANSIT, ShipmentStatus.ARRIVED],
        ShipmentStatus.IN_TRANSIT: [ShipmentStatus.ARRIVED],
        ShipmentStatus.ARRIVED: [],
        ShipmentStatus.DELIVERED: [],  # Final state
    }

    @classmethod
    def validate_transition(cls, shipment: Shipment, new_status: str) -> None:
        """
        Validate if a status transition is allowed.

        Raises:
            InvalidTransitionException: If transition is not allowed
        """
        current_status = shipment.status

        if current_status == new_status:
            return

        if new_status not in cls.ALLOWED_TRANSITIONS.get(current_status, []):
            raise InvalidTransitionException(
                current_status=current_status,
                attempted_status=new_status,
                entity_type="Shipment"
            )
