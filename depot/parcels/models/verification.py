"""
Delivery code verification attempts.
"""

from django.db import models
from django.conf import settings
from django.utils import timezone


class DeliveryVerificationLog(models.Model):
    """
    Record of every delivery code redemption attempt, successful or not.

    The submitted code is never stored.
    """

    package = models.ForeignKey(
        'Package',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='verification_attempts'
    )
    package_ref = models.CharField(
        max_length=64,
        help_text="Package identifier as submitted (kept when the package does not exist)"
    )
    submitted_suite_number = models.CharField(max_length=50, blank=True)
    verification_success = models.BooleanField(default=False)
    failure_reason = models.CharField(max_length=50, blank=True)

    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='delivery_verifications'
    )
    verified_by_role = models.CharField(max_length=30, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['package', '-created_at'], name='verif_pkg_created_idx'),
            models.Index(fields=['verification_success', '-created_at'], name='verif_success_created_idx'),
        ]

    def __str__(self):
        outcome = 'success' if self.verification_success else f'failed ({self.failure_reason})'
        return f"Verification of {self.package_ref}: {outcome}"
