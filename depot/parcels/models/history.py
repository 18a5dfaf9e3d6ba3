"""
Append-only status history for packages.
"""

from django.db import models
from django.conf import settings
from django.utils import timezone


class StatusHistoryQuerySet(models.QuerySet):
    """History rows are written once; bulk mutation is refused."""

    def update(self, **kwargs):
        raise TypeError("Package status history is append-only")

    def delete(self):
        raise TypeError("Package status history is append-only")


class PackageStatusHistory(models.Model):
    """
    One row per accepted package transition.

    Used by the overdue analyzer and rule engine for timeline reasoning.
    """

    package = models.ForeignKey(
        'Package',
        on_delete=models.CASCADE,
        related_name='status_history'
    )
    status = models.CharField(max_length=20)
    previous_status = models.CharField(max_length=20, blank=True)
    timestamp = models.DateTimeField(default=timezone.now)

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='package_status_changes'
    )
    actor_role = models.CharField(max_length=30, blank=True)
    reason = models.TextField(blank=True)
    location = models.CharField(max_length=200, blank=True)
    notes = models.TextField(blank=True)

    objects = StatusHistoryQuerySet.as_manager()

    class Meta:
        ordering = ['timestamp', 'id']
        verbose_name_plural = 'Package status history'
        indexes = [
            models.Index(fields=['package', 'status', '-timestamp'], name='hist_pkg_status_ts_idx'),
        ]

    def __str__(self):
        return f"{self.package_id}: {self.previous_status or '-'} -> {self.status} at {self.timestamp}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise TypeError("Package status history is append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise TypeError("Package status history is append-only")

    @classmethod
    def record(cls, package, status: str, previous_status: str = "", actor=None,
               reason: str = "", location: str = "", notes: str = "", timestamp=None):
        """Append one history row for an applied transition."""
        return cls.objects.create(
            package=package,
            status=status,
            previous_status=previous_status or "",
            timestamp=timestamp or timezone.now(),
            actor=actor,
            actor_role=getattr(actor, 'role', '') or '',
            reason=reason or "",
            location=location or "",
            notes=notes or "",
        )
