"""
Django admin configuration for the package lifecycle.
"""

from django.contrib import admin

from .models import Package, PackageStatusHistory, Shipment, DeliveryVerificationLog, AuditLog


class PackageStatusHistoryInline(admin.TabularInline):
    model = PackageStatusHistory
    extra = 0
    can_delete = False
    fields = ['timestamp', 'previous_status', 'status', 'actor', 'actor_role', 'reason', 'location']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Package)
class PackageAdmin(admin.ModelAdmin):
    list_display = ['package_number', 'customer', 'status', 'priority', 'customer_tier', 'shipment', 'created_at']
    list_filter = ['status', 'priority', 'customer_tier', 'created_at']
    search_fields = ['package_number', 'tracking_number', 'customer__username', 'customer__suite_number']
    # Status and code fields change only through the services
    readonly_fields = [
        'id', 'package_number', 'status', 'delivery_auth_code', 'code_issued_at',
        'code_redeemed_at', 'code_redeemed_by', 'created_at', 'updated_at'
    ]
    inlines = [PackageStatusHistoryInline]


@admin.register(Shipment)
class ShipmentAdmin(admin.ModelAdmin):
    list_display = ['shipment_number', 'status', 'total_package_count', 'arrived_at', 'delivered_at', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['shipment_number', 'tracking_number']
    readonly_fields = ['id', 'shipment_number', 'status', 'total_package_count', 'created_at', 'updated_at']


@admin.register(DeliveryVerificationLog)
class DeliveryVerificationLogAdmin(admin.ModelAdmin):
    list_display = ['package_ref', 'verification_success', 'failure_reason', 'verified_by', 'created_at']
    list_filter = ['verification_success', 'failure_reason', 'created_at']
    search_fields = ['package_ref', 'submitted_suite_number', 'verified_by__username']
    readonly_fields = [f.name for f in DeliveryVerificationLog._meta.fields]


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['entity_type', 'entity_id', 'action', 'user', 'timestamp']
    list_filter = ['entity_type', 'action', 'timestamp']
    search_fields = ['entity_id', 'notes']
    readonly_fields = ['id', 'timestamp']
