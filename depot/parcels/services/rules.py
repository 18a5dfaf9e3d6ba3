"""
Business rule engine for package transitions.

Rules are plain values collected in an immutable RuleSet; the engine
evaluates every applicable rule against a RuleContext and merges the findings.
Rules report findings only, they never change state.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Optional, Tuple, Iterable, Any, List

from django.utils import timezone

from ..conf import parcel_settings
from ..constants import ErrorCode, SPECIAL_HANDLING_FRAGILE, SPECIAL_HANDLING_TEMPERATURE
from ..models import PackagePriority, CustomerTier
from ..status_catalog import PackageStatus, StatusCatalog
from .overdue import OverdueAnalyzer, OverdueReport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Finding:
    """A single error, warning or suggestion."""
    code: str
    message: str
    rule_id: str = ''

    def to_dict(self):
        return {'code': self.code, 'message': self.message, 'rule_id': self.rule_id}


def _unique(findings: Iterable[Finding]) -> Tuple[Finding, ...]:
    seen = set()
    unique = []
    for finding in findings:
        key = (finding.code, finding.message)
        if key not in seen:
            seen.add(key)
            unique.append(finding)
    return tuple(unique)


@dataclass(frozen=True)
class ValidationResult:
    """Errors block a transition; warnings and suggestions do not."""
    errors: Tuple[Finding, ...] = ()
    warnings: Tuple[Finding, ...] = ()
    suggestions: Tuple[Finding, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def merge(self, other: 'ValidationResult') -> 'ValidationResult':
        return ValidationResult(
            errors=_unique(self.errors + other.errors),
            warnings=_unique(self.warnings + other.warnings),
            suggestions=_unique(self.suggestions + other.suggestions),
        )

    def for_rule(self, rule_id: str) -> 'ValidationResult':
        """Stamp ``rule_id`` on findings that do not carry one."""
        def stamp(findings):
            return tuple(f if f.rule_id else replace(f, rule_id=rule_id) for f in findings)
        return ValidationResult(stamp(self.errors), stamp(self.warnings), stamp(self.suggestions))

    def codes(self) -> List[str]:
        return [f.code for f in self.errors + self.warnings + self.suggestions]

    def to_dict(self):
        return {
            'errors': [f.to_dict() for f in self.errors],
            'warnings': [f.to_dict() for f in self.warnings],
            'suggestions': [f.to_dict() for f in self.suggestions],
        }


@dataclass(frozen=True)
class RuleContext:
    """Facts a business rule evaluates against."""
    package: Any
    current_status: str
    target_status: str
    actor_role: str = ''
    reason: str = ''
    history: Tuple[Any, ...] = ()
    shipment: Any = None
    overdue: Optional[OverdueReport] = None

    @property
    def priority(self):
        return getattr(self.package, 'priority', PackagePriority.MEDIUM)

    @property
    def customer_tier(self):
        return getattr(self.package, 'customer_tier', CustomerTier.STANDARD)

    @property
    def special_handling(self):
        return set(getattr(self.package, 'special_handling', None) or [])

    @property
    def is_premium(self):
        return self.customer_tier in (CustomerTier.PREMIUM, CustomerTier.ENTERPRISE)

    @classmethod
    def for_package(cls, package, target_status: str, actor_role: str = '', reason: str = '',
                    history=None, now=None) -> 'RuleContext':
        """Build a context from a persisted package, computing its overdue report."""
        if history is None:
            history = list(package.status_history.all())
        return cls(
            package=package,
            current_status=str(package.status),
            target_status=str(target_status),
            actor_role=actor_role or '',
            reason=reason or '',
            history=tuple(history),
            shipment=package.shipment,
            overdue=OverdueAnalyzer.analyze(package, history, now=now or timezone.now()),
        )


@dataclass(frozen=True)
class BusinessRule:
    """
    One business rule.

    ``applies`` and ``evaluate`` take a RuleContext; ``evaluate`` returns a
    ValidationResult. Higher ``priority`` rules are reported first.
    """
    id: str
    name: str
    priority: int
    applies: Callable[[RuleContext], bool]
    evaluate: Callable[[RuleContext], ValidationResult]
    description: str = ''

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'priority': self.priority,
            'description': self.description,
        }


@dataclass(frozen=True)
class RuleSet:
    """Immutable collection of rules ordered by descending priority."""
    rules: Tuple[BusinessRule, ...] = field(default=())

    def __post_init__(self):
        ordered = tuple(sorted(self.rules, key=lambda r: r.priority, reverse=True))
        object.__setattr__(self, 'rules', ordered)

    def __iter__(self):
        return iter(self.rules)

    def __len__(self):
        return len(self.rules)

    def __contains__(self, rule_id):
        return any(rule.id == rule_id for rule in self.rules)

    def get(self, rule_id: str) -> Optional[BusinessRule]:
        return next((rule for rule in self.rules if rule.id == rule_id), None)

    def with_rule(self, rule: BusinessRule) -> 'RuleSet':
        """Return a new set containing ``rule``, replacing any rule with the same id."""
        return RuleSet(tuple(r for r in self.rules if r.id != rule.id) + (rule,))

    def without(self, rule_id: str) -> 'RuleSet':
        return RuleSet(tuple(r for r in self.rules if r.id != rule_id))

    def describe(self) -> List[dict]:
        return [rule.to_dict() for rule in self.rules]


class RuleEngine:
    """Evaluates a RuleSet against transition contexts."""

    def __init__(self, rule_set: Optional[RuleSet] = None):
        self.rule_set = rule_set if rule_set is not None else default_rule_set()

    def evaluate(self, context: RuleContext) -> ValidationResult:
        """
        Evaluate every applicable rule and merge their findings.

        A rule that raises is reported as a ``RuleFailed`` warning and the
        remaining rules still run.
        """
        result = ValidationResult()
        for rule in self.rule_set:
            try:
                if not rule.applies(context):
                    continue
                rule_result = rule.evaluate(context)
            except Exception as e:
                logger.exception(f"Business rule {rule.id} failed: {e}")
                rule_result = ValidationResult(warnings=(
                    Finding(ErrorCode.RULE_FAILED, f"Rule '{rule.name}' could not be evaluated"),
                ))
            result = result.merge(rule_result.for_rule(rule.id))
        return result


# Default rules

def _premium_customer_priority(ctx: RuleContext) -> ValidationResult:
    if ctx.current_status == PackageStatus.PENDING:
        return ValidationResult(suggestions=(
            Finding(ErrorCode.PRIORITY_PROCESSING, 'Premium customer package should be prioritized for processing'),
        ))
    return ValidationResult()


def _high_priority_processing(ctx: RuleContext) -> ValidationResult:
    overdue = ctx.overdue
    if (overdue is not None and overdue.is_overdue
            and overdue.hours_in_status > parcel_settings.EXPEDITE_AFTER_HOURS):
        return ValidationResult(
            warnings=(Finding(ErrorCode.EXPEDITE_REQUIRED, 'High priority package is overdue for status update'),),
            suggestions=(Finding(ErrorCode.EXPEDITE_REQUIRED, 'Consider expediting to next status'),),
        )
    return ValidationResult()


def _special_handling(ctx: RuleContext) -> ValidationResult:
    warnings = []
    moving = (ctx.current_status, ctx.target_status)
    if SPECIAL_HANDLING_FRAGILE in ctx.special_handling and PackageStatus.IN_TRANSIT in moving:
        warnings.append(Finding(ErrorCode.HANDLING_FRAGILE, 'Fragile package in transit - ensure careful handling'))
    if SPECIAL_HANDLING_TEMPERATURE in ctx.special_handling and PackageStatus.DISPATCHED in moving:
        warnings.append(Finding(
            ErrorCode.HANDLING_TEMPERATURE, 'Temperature sensitive package dispatched - monitor conditions'
        ))
    return ValidationResult(warnings=tuple(warnings))


GROUP_PHASE_STATUSES = (
    PackageStatus.GROUPED,
    PackageStatus.GROUP_CONFIRMED,
    PackageStatus.DISPATCHED,
    PackageStatus.IN_TRANSIT,
)


def _group_consistency(ctx: RuleContext) -> ValidationResult:
    if ctx.current_status == PackageStatus.GROUPED and ctx.target_status not in GROUP_PHASE_STATUSES:
        return ValidationResult(warnings=(
            Finding(ErrorCode.GROUP_CONSISTENCY,
                    'Changing status of grouped package may affect other packages in the group'),
        ))
    return ValidationResult()


def _customer_visibility(ctx: RuleContext) -> ValidationResult:
    if (StatusCatalog.is_customer_visible(ctx.current_status)
            and not StatusCatalog.is_customer_visible(ctx.target_status)):
        return ValidationResult(warnings=(
            Finding(ErrorCode.CUSTOMER_VISIBILITY, 'This status change will hide the package from customer tracking'),
        ))
    return ValidationResult()


def _premium_delay(ctx: RuleContext) -> ValidationResult:
    if ctx.target_status == PackageStatus.DELAYED:
        return ValidationResult(suggestions=(
            Finding(ErrorCode.PREMIUM_DELAY, 'Consider expedited handling for premium customer'),
        ))
    return ValidationResult()


def _high_priority_long_dwell(ctx: RuleContext) -> ValidationResult:
    if StatusCatalog.describe(ctx.target_status).expected_duration_hours > 12:
        return ValidationResult(suggestions=(
            Finding(ErrorCode.LONG_DWELL, 'High priority package may need expedited processing'),
        ))
    return ValidationResult()


def default_rule_set() -> RuleSet:
    """The rules applied when no explicit RuleSet is given."""
    return RuleSet((
        BusinessRule(
            id='premium_customer_priority',
            name='Premium Customer Priority',
            priority=100,
            applies=lambda ctx: ctx.is_premium,
            evaluate=_premium_customer_priority,
            description='Premium customers should receive expedited processing',
        ),
        BusinessRule(
            id='high_priority_processing',
            name='High Priority Processing',
            priority=90,
            applies=lambda ctx: ctx.priority == PackagePriority.HIGH,
            evaluate=_high_priority_processing,
            description='High priority packages should move through statuses quickly',
        ),
        BusinessRule(
            id='special_handling_validation',
            name='Special Handling Validation',
            priority=80,
            applies=lambda ctx: bool(ctx.special_handling),
            evaluate=_special_handling,
            description='Packages with special handling requirements need extra care',
        ),
        BusinessRule(
            id='group_consistency',
            name='Group Consistency',
            priority=70,
            applies=lambda ctx: ctx.shipment is not None,
            evaluate=_group_consistency,
            description='Grouped packages should move with their group',
        ),
        BusinessRule(
            id='customer_visibility',
            name='Customer Visibility',
            priority=60,
            applies=lambda ctx: True,
            evaluate=_customer_visibility,
            description='Warn before hiding a package from customer tracking',
        ),
        BusinessRule(
            id='premium_delay_handling',
            name='Premium Delay Handling',
            priority=50,
            applies=lambda ctx: ctx.is_premium,
            evaluate=_premium_delay,
            description='Delays of premium packages deserve expedited handling',
        ),
        BusinessRule(
            id='high_priority_long_dwell',
            name='High Priority Long Dwell',
            priority=40,
            applies=lambda ctx: ctx.priority == PackagePriority.HIGH,
            evaluate=_high_priority_long_dwell,
            description='High priority packages entering slow statuses may need expediting',
        ),
    ))
