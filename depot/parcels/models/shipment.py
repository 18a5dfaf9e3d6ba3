"""
Shipment model for the package lifecycle.
"""

import uuid
from django.db import models
from django.conf import settings
from django.utils import timezone


class ShipmentStatus(models.TextChoices):
    """Aggregate shipment status."""
    PENDING = 'pending', 'Pending'
    PROCESSING = 'processing', 'Processing'
    SHIPPED = 'shipped', 'Shipped'
    IN_TRANSIT = 'in_transit', 'In Transit'
    ARRIVED = 'arrived', 'Arrived'
    DELIVERED = 'delivered', 'Delivered'


class Shipment(models.Model):
    """
    Shipment grouping packages that travel together.

    Its status is ``delivered`` exactly when every one of its packages is
    delivered; the reconciler is the only code path that promotes it.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shipment_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Unique shipment identifier (auto-generated)"
    )
    tracking_number = models.CharField(
        max_length=100,
        blank=True,
        help_text="Outbound tracking number"
    )

    status = models.CharField(
        max_length=20,
        choices=ShipmentStatus.choices,
        default=ShipmentStatus.PENDING,
        help_text="Aggregate shipment status"
    )

    # Denormalized for fast comparison against the delivered count
    total_package_count = models.PositiveIntegerField(default=0)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_shipments'
    )

    arrived_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    notes = models.TextField(blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='shp_status_idx'),
            models.Index(fields=['created_at'], name='shp_created_idx'),
        ]

    def __str__(self):
        return f"Shipment {self.shipment_number} ({self.status})"

    def save(self, *args, **kwargs):
        if not self.shipment_number:
            timestamp = timezone.now().strftime('%Y%m%d%H%M%S')
            self.shipment_number = f"SHP-{timestamp}-{str(self.id)[:8].upper()}"
        super().save(*args, **kwargs)

    @property
    def is_delivered(self):
        return self.status == ShipmentStatus.DELIVERED
