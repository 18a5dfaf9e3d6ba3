"""
Package Lifecycle Services
"""

from .workflow import TransitionValidator, ShipmentWorkflow, is_override_role
from .rules import Finding, ValidationResult, BusinessRule, RuleSet, RuleContext, RuleEngine, default_rule_set
from .overdue import OverdueAnalyzer, OverdueReport, find_overdue_packages
from .reconciler import AggregationReconciler, ReconcileResult
from .delivery_auth import DeliveryAuthService, IssueResult, RedemptionResult
from .status_service import StatusService, TransitionResult
from .package_service import PackageService
from .shipment_service import ShipmentService

__all__ = [
    # Validation
    'TransitionValidator', 'ShipmentWorkflow', 'is_override_role',
    'Finding', 'ValidationResult', 'BusinessRule', 'RuleSet', 'RuleContext', 'RuleEngine',
    'default_rule_set', 'OverdueAnalyzer', 'OverdueReport', 'find_overdue_packages',

    # Services
    'AggregationReconciler', 'ReconcileResult',
    'DeliveryAuthService', 'IssueResult', 'RedemptionResult',
    'StatusService', 'TransitionResult',
    'PackageService', 'ShipmentService',
]
