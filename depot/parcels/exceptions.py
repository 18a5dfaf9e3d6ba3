"""
Custom exceptions for the package lifecycle module.
"""

from typing import Dict, Any


class BusinessException(Exception):
    """Base exception for business logic errors."""

    def __init__(self, message: str, code: str = "BUSINESS_ERROR", details: Dict[str, Any] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class UnknownStatus(BusinessException):
    """Raised when a value is not part of the status catalog."""

    def __init__(self, status):
        super().__init__(f"Unknown package status: {status!r}", "UNKNOWN_STATUS", {"status": status})
        self.status = status


class InvalidTransitionException(BusinessException):
    """Raised when attempting an invalid workflow transition."""

    def __init__(self, current_status: str, attempted_status: str, entity_type: str = "Package"):
        message = f"Invalid transition for {entity_type}: cannot move from {current_status} to {attempted_status}"
        super().__init__(message, "INVALID_TRANSITION", {
            "current_status": current_status,
            "attempted_status": attempted_status,
            "entity_type": entity_type
        })


class PackageNotFound(BusinessException):
    """Raised when a package lookup fails."""

    def __init__(self, package_id):
        super().__init__(f"Package {package_id} not found", "PACKAGE_NOT_FOUND", {"package_id": str(package_id)})


class ShipmentNotFound(BusinessException):
    """Raised when a shipment lookup fails."""

    def __init__(self, shipment_id):
        super().__init__(f"Shipment {shipment_id} not found", "SHIPMENT_NOT_FOUND", {"shipment_id": str(shipment_id)})


class ValidationException(BusinessException):
    """Raised when data validation fails."""

    def __init__(self, message: str, field_errors: Dict[str, Any] = None):
        super().__init__(message, "VALIDATION_ERROR", field_errors or {})
