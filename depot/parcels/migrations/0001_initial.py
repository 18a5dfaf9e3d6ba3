import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


PACKAGE_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("processing", "Processing"),
    ("ready-for-grouping", "Ready for Grouping"),
    ("grouped", "Grouped"),
    ("group-confirmed", "Group Confirmed"),
    ("dispatched", "Dispatched"),
    ("shipped", "Shipped"),
    ("in-transit", "In Transit"),
    ("out-for-delivery", "Out for Delivery"),
    ("arrived", "Arrived"),
    ("delivered", "Delivered"),
    ("delayed", "Delayed"),
    ("returned", "Returned"),
    ("lost", "Lost"),
    ("exception", "Exception"),
    ("cancelled", "Cancelled"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Shipment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "shipment_number",
                    models.CharField(help_text="Unique shipment identifier (auto-generated)", max_length=50, unique=True),
                ),
                ("tracking_number", models.CharField(blank=True, help_text="Outbound tracking number", max_length=100)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("shipped", "Shipped"),
                            ("in_transit", "In Transit"),
                            ("arrived", "Arrived"),
                            ("delivered", "Delivered"),
                        ],
                        default="pending",
                        help_text="Aggregate shipment status",
                        max_length=20,
                    ),
                ),
                ("total_package_count", models.PositiveIntegerField(default=0)),
                ("arrived_at", models.DateTimeField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("notes", models.TextField(blank=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_shipments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="shp_status_idx"),
                    models.Index(fields=["created_at"], name="shp_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Package",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "package_number",
                    models.CharField(help_text="Unique package identifier (auto-generated)", max_length=50, unique=True),
                ),
                ("tracking_number", models.CharField(blank=True, help_text="Inbound carrier tracking number", max_length=100)),
                (
                    "status",
                    models.CharField(
                        choices=PACKAGE_STATUS_CHOICES,
                        default="pending",
                        help_text="Current package status",
                        max_length=20,
                    ),
                ),
                (
                    "shipment_sequence",
                    models.PositiveIntegerField(
                        blank=True, help_text="Position of the package within its shipment", null=True
                    ),
                ),
                (
                    "priority",
                    models.CharField(
                        choices=[("low", "Low"), ("medium", "Medium"), ("high", "High")],
                        default="medium",
                        max_length=10,
                    ),
                ),
                (
                    "special_handling",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Special handling tags (fragile, temperature_sensitive, ...)",
                    ),
                ),
                (
                    "customer_tier",
                    models.CharField(
                        choices=[("standard", "Standard"), ("premium", "Premium"), ("enterprise", "Enterprise")],
                        default="standard",
                        max_length=20,
                    ),
                ),
                ("description", models.TextField(blank=True)),
                ("weight", models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                (
                    "delivery_auth_code",
                    models.CharField(
                        blank=True,
                        help_text="One-time delivery authorization code (set while arrived)",
                        max_length=12,
                        null=True,
                    ),
                ),
                ("code_issued_at", models.DateTimeField(blank=True, null=True)),
                (
                    "code_redeemed_at",
                    models.DateTimeField(blank=True, help_text="Set when the delivery code has been consumed", null=True),
                ),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "customer",
                    models.ForeignKey(
                        help_text="Customer who owns the package",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="packages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "shipment",
                    models.ForeignKey(
                        blank=True,
                        help_text="Shipment this package is grouped into",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="packages",
                        to="parcels.shipment",
                    ),
                ),
                (
                    "code_redeemed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="redeemed_packages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_packages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "updated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="updated_packages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "priority"], name="pkg_status_priority_idx"),
                    models.Index(fields=["shipment", "status"], name="pkg_shipment_status_idx"),
                    models.Index(fields=["customer", "status"], name="pkg_customer_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PackageStatusHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("status", models.CharField(max_length=20)),
                ("previous_status", models.CharField(blank=True, max_length=20)),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now)),
                ("actor_role", models.CharField(blank=True, max_length=30)),
                ("reason", models.TextField(blank=True)),
                ("location", models.CharField(blank=True, max_length=200)),
                ("notes", models.TextField(blank=True)),
                (
                    "package",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_history",
                        to="parcels.package",
                    ),
                ),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="package_status_changes",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "Package status history",
                "ordering": ["timestamp", "id"],
                "indexes": [
                    models.Index(fields=["package", "status", "-timestamp"], name="hist_pkg_status_ts_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="DeliveryVerificationLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "package_ref",
                    models.CharField(
                        help_text="Package identifier as submitted (kept when the package does not exist)",
                        max_length=64,
                    ),
                ),
                ("submitted_suite_number", models.CharField(blank=True, max_length=50)),
                ("verification_success", models.BooleanField(default=False)),
                ("failure_reason", models.CharField(blank=True, max_length=50)),
                ("verified_by_role", models.CharField(blank=True, max_length=30)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "package",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="verification_attempts",
                        to="parcels.package",
                    ),
                ),
                (
                    "verified_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="delivery_verifications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["package", "-created_at"], name="verif_pkg_created_idx"),
                    models.Index(fields=["verification_success", "-created_at"], name="verif_success_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("entity_type", models.CharField(help_text="Type of entity (Package, Shipment)", max_length=50)),
                ("entity_id", models.UUIDField(help_text="UUID of the entity being audited")),
                (
                    "action",
                    models.CharField(help_text="Action performed (status_changed, reconciled, ...)", max_length=50),
                ),
                ("old_values", models.JSONField(blank=True, default=dict)),
                ("new_values", models.JSONField(blank=True, default=dict)),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now)),
                ("notes", models.TextField(blank=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        help_text="User who performed the action (empty for system actions)",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="parcel_audit_logs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-timestamp"],
                "indexes": [
                    models.Index(fields=["entity_type", "entity_id", "-timestamp"], name="audit_entity_ts_idx"),
                    models.Index(fields=["action", "-timestamp"], name="audit_action_ts_idx"),
                ],
            },
        ),
    ]
