"""
Finding and failure codes shared by the validator, rule engine and
delivery authorization service.
"""


class ErrorCode:
    """Codes attached to validation findings."""

    UNKNOWN_STATUS = 'UnknownStatus'
    TERMINAL_STATE_VIOLATION = 'TerminalStateViolation'
    STATUS_REGRESSION = 'StatusRegression'
    REPEATED_STATUS = 'RepeatedStatus'
    REASON_REQUIRED = 'ReasonRequired'
    DELIVERY_REQUIRES_AUTHORIZATION = 'DeliveryRequiresAuthorization'
    PACKAGE_NOT_FOUND = 'PackageNotFound'

    # Rule engine findings
    PRIORITY_PROCESSING = 'PriorityProcessing'
    EXPEDITE_REQUIRED = 'ExpediteRequired'
    HANDLING_FRAGILE = 'FragileHandling'
    HANDLING_TEMPERATURE = 'TemperatureHandling'
    GROUP_CONSISTENCY = 'GroupConsistency'
    CUSTOMER_VISIBILITY = 'CustomerVisibility'
    PREMIUM_DELAY = 'PremiumDelay'
    LONG_DWELL = 'LongDwell'
    RULE_FAILED = 'RuleFailed'


class RedemptionFailure:
    """Reasons a delivery code redemption can be declined."""

    PACKAGE_NOT_FOUND = 'PackageNotFound'
    INVALID_STATE = 'InvalidState'
    CODE_NOT_ISSUED = 'CodeNotIssued'
    CODE_ALREADY_USED = 'CodeAlreadyUsed'
    CODE_EXPIRED = 'CodeExpired'
    SUITE_MISMATCH = 'SuiteMismatch'
    CODE_MISMATCH = 'CodeMismatch'

    MESSAGES = {
        PACKAGE_NOT_FOUND: 'Package not found',
        INVALID_STATE: 'Package is not awaiting collection',
        CODE_NOT_ISSUED: 'No delivery code generated for this package',
        CODE_ALREADY_USED: 'Delivery code already used - package already delivered',
        CODE_EXPIRED: 'Delivery code has expired',
        SUITE_MISMATCH: 'Suite number mismatch',
        CODE_MISMATCH: 'Invalid delivery code',
    }

    GENERIC_MESSAGE = 'Delivery verification failed'


SPECIAL_HANDLING_FRAGILE = 'fragile'
SPECIAL_HANDLING_TEMPERATURE = 'temperature_sensitive'


class CodeIssueFailure:
    """Reasons a delivery code cannot be issued on request."""

    PACKAGE_NOT_FOUND = 'PackageNotFound'
    INVALID_STATE = 'InvalidState'
    CODE_ALREADY_ISSUED = 'CodeAlreadyIssued'
    CODE_ALREADY_USED = 'CodeAlreadyUsed'
