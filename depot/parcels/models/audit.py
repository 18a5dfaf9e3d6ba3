"""
Audit log model for the package lifecycle.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from django.db import models
from django.conf import settings
from django.utils import timezone


def _json_safe(obj):
    if isinstance(obj, dict):
        return {k: _json_safe(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_json_safe(item) for item in obj]
    elif isinstance(obj, Decimal):
        return str(obj)
    elif isinstance(obj, (datetime, uuid.UUID)):
        return str(obj)
    else:
        return obj


class AuditLog(models.Model):
    """
    Generic audit log for shipment and package level changes.

    Package transitions have their own history table; this log records
    aggregate changes such as reconciliation promotions and shipment arrival.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    entity_type = models.CharField(
        max_length=50,
        help_text="Type of entity (Package, Shipment)"
    )
    entity_id = models.UUIDField(
        help_text="UUID of the entity being audited"
    )

    action = models.CharField(
        max_length=50,
        help_text="Action performed (status_changed, reconciled, ...)"
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='parcel_audit_logs',
        help_text="User who performed the action (empty for system actions)"
    )

    old_values = models.JSONField(default=dict, blank=True)
    new_values = models.JSONField(default=dict, blank=True)

    timestamp = models.DateTimeField(default=timezone.now)
    notes = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id', '-timestamp'], name='audit_entity_ts_idx'),
            models.Index(fields=['action', '-timestamp'], name='audit_action_ts_idx'),
        ]

    def __str__(self):
        return f"{self.entity_type} {self.entity_id} - {self.action} by {self.user or 'system'} at {self.timestamp}"

    @classmethod
    def log_change(cls, entity, action: str, user=None, old_values=None,
                   new_values=None, notes="", metadata=None):
        """
        Create an audit log entry for an entity change.

        Args:
            entity: The model instance being audited
            action: The action performed
            user: User who performed the action
            old_values: Previous state
            new_values: New state
            notes: Additional notes
            metadata: Additional metadata
        """
        return cls.objects.create(
            entity_type=entity.__class__.__name__,
            entity_id=entity.id,
            action=action,
            user=user,
            old_values=_json_safe(old_values or {}),
            new_values=_json_safe(new_values or {}),
            notes=notes,
            metadata=_json_safe(metadata or {})
        )

    @classmethod
    def log_status_change(cls, entity, old_status: str, new_status: str, user=None, notes="", metadata=None):
        """Log a status change for an entity."""
        return cls.log_change(
            entity=entity,
            action='status_changed',
            user=user,
            old_values={'status': old_status},
            new_values={'status': new_status},
            notes=notes,
            metadata=metadata
        )
