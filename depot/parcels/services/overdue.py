"""
Overdue analysis for package timelines.

Compares the time a package has spent in its current status with the
catalog's expected dwell time.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Iterable, List, Tuple

from django.utils import timezone

from ..models import Package
from ..status_catalog import StatusCatalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverdueReport:
    """
    Result of an overdue check.

    ``has_timeline`` is False when no history entry records the current
    status; the report is then never overdue.
    """
    status: str
    has_timeline: bool
    is_overdue: bool
    overdue_by_hours: float
    hours_in_status: Optional[float]
    expected_hours: float
    recommended_next_status: Optional[str]
    recommendation_text: str

    def to_dict(self):
        return {
            'status': self.status,
            'has_timeline': self.has_timeline,
            'is_overdue': self.is_overdue,
            'overdue_by_hours': self.overdue_by_hours,
            'hours_in_status': self.hours_in_status,
            'expected_hours': self.expected_hours,
            'recommended_next_status': self.recommended_next_status,
            'recommendation_text': self.recommendation_text,
        }


class OverdueAnalyzer:
    """Timeline checks against StatusCatalog expected durations."""

    @staticmethod
    def analyze(package, history: Optional[Iterable] = None, now=None) -> OverdueReport:
        """
        Check whether a package has overstayed its current status.

        Args:
            package: Package (anything with a ``status``)
            history: Status history entries (``status``, ``timestamp``);
                loaded from the package when omitted
            now: Reference time, defaults to ``timezone.now()``

        Returns:
            OverdueReport for the package's current status
        """
        now = now or timezone.now()
        status = str(package.status)
        descriptor = StatusCatalog.describe(status)
        next_status, next_reason = StatusCatalog.recommended_next(status)

        if history is None:
            history = package.status_history.all()

        entered_at = max(
            (entry.timestamp for entry in history if str(entry.status) == status),
            default=None
        )

        if entered_at is None:
            return OverdueReport(
                status=status,
                has_timeline=False,
                is_overdue=False,
                overdue_by_hours=0.0,
                hours_in_status=None,
                expected_hours=descriptor.expected_duration_hours,
                recommended_next_status=next_status,
                recommendation_text='Unable to determine timeline: no history entry for the current status',
            )

        hours_in_status = max(0.0, (now - entered_at).total_seconds() / 3600)
        expected = descriptor.expected_duration_hours

        # Terminal statuses have no dwell limit
        is_overdue = not descriptor.is_terminal and hours_in_status > expected
        overdue_by = max(0.0, hours_in_status - expected) if is_overdue else 0.0

        if is_overdue and next_status:
            text = f"Package is {round(overdue_by)} hours overdue. Consider updating to {next_status}."
        elif is_overdue:
            text = f"Package is {round(overdue_by)} hours overdue. {next_reason}."
        else:
            text = 'Package is on schedule'

        return OverdueReport(
            status=status,
            has_timeline=True,
            is_overdue=is_overdue,
            overdue_by_hours=round(overdue_by, 2),
            hours_in_status=round(hours_in_status, 2),
            expected_hours=expected,
            recommended_next_status=next_status,
            recommendation_text=text,
        )


def find_overdue_packages(statuses=None, now=None) -> List[Tuple[Package, OverdueReport]]:
    """
    List non-terminal packages past their expected dwell time.

    Args:
        statuses: Optional iterable of statuses to restrict the scan to
        now: Reference time

    Returns:
        ``(package, report)`` pairs, most overdue first
    """
    now = now or timezone.now()
    queryset = Package.objects.exclude(status__in=StatusCatalog.terminal_statuses())
    if statuses:
        for status in statuses:
            StatusCatalog.describe(status)
        queryset = queryset.filter(status__in=list(statuses))

    overdue = []
    for package in queryset.prefetch_related('status_history'):
        report = OverdueAnalyzer.analyze(package, package.status_history.all(), now=now)
        if report.is_overdue:
            overdue.append((package, report))

    overdue.sort(key=lambda item: item[1].overdue_by_hours, reverse=True)
    logger.debug(f"Found {len(overdue)} overdue packages")
    return overdue
