"""
Package model for the package lifecycle.
"""

import uuid
from django.db import models
from django.conf import settings
from django.utils import timezone

from ..status_catalog import PackageStatus


class PackagePriority(models.TextChoices):
    """Package priority levels."""
    LOW = 'low', 'Low'
    MEDIUM = 'medium', 'Medium'
    HIGH = 'high', 'High'


class CustomerTier(models.TextChoices):
    """Customer service tiers."""
    STANDARD = 'standard', 'Standard'
    PREMIUM = 'premium', 'Premium'
    ENTERPRISE = 'enterprise', 'Enterprise'


class Package(models.Model):
    """
    A customer package moving through the warehouse lifecycle.

    Created in ``pending`` by intake, optionally grouped into a Shipment, and
    handed to the customer only by redeeming its one-time delivery code.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    package_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Unique package identifier (auto-generated)"
    )
    tracking_number = models.CharField(
        max_length=100,
        blank=True,
        help_text="Inbound carrier tracking number"
    )

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='packages',
        help_text="Customer who owns the package"
    )

    status = models.CharField(
        max_length=20,
        choices=PackageStatus.choices,
        default=PackageStatus.PENDING,
        help_text="Current package status"
    )

    shipment = models.ForeignKey(
        'Shipment',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='packages',
        help_text="Shipment this package is grouped into"
    )
    shipment_sequence = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Position of the package within its shipment"
    )

    priority = models.CharField(
        max_length=10,
        choices=PackagePriority.choices,
        default=PackagePriority.MEDIUM
    )
    special_handling = models.JSONField(
        default=list,
        blank=True,
        help_text="Special handling tags (fragile, temperature_sensitive, ...)"
    )
    customer_tier = models.CharField(
        max_length=20,
        choices=CustomerTier.choices,
        default=CustomerTier.STANDARD
    )

    description = models.TextField(blank=True)
    weight = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)

    # Delivery authorization
    delivery_auth_code = models.CharField(
        max_length=12,
        null=True,
        blank=True,
        help_text="One-time delivery authorization code (set while arrived)"
    )
    code_issued_at = models.DateTimeField(null=True, blank=True)
    code_redeemed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Set when the delivery code has been consumed"
    )
    code_redeemed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='redeemed_packages'
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_packages'
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='updated_packages'
    )
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'priority'], name='pkg_status_priority_idx'),
            models.Index(fields=['shipment', 'status'], name='pkg_shipment_status_idx'),
            models.Index(fields=['customer', 'status'], name='pkg_customer_status_idx'),
        ]

    def __str__(self):
        return f"Package {self.package_number} ({self.status})"

    def save(self, *args, **kwargs):
        """Override save to auto-generate package number and normalize tags."""
        if not self.package_number:
            timestamp = timezone.now().strftime('%Y%m%d%H%M%S')
            self.package_number = f"PKG-{timestamp}-{str(self.id)[:8].upper()}"

        self.special_handling = sorted({
            str(tag).strip().lower() for tag in (self.special_handling or []) if str(tag).strip()
        })
        super().save(*args, **kwargs)

    @property
    def has_active_code(self):
        """Code issued and not yet consumed."""
        return bool(self.delivery_auth_code) and self.code_redeemed_at is None

    @property
    def is_delivered(self):
        return self.status == PackageStatus.DELIVERED
