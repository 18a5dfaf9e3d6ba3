"""
Package serializers for the package lifecycle.
"""

from django.contrib.auth import get_user_model
from rest_framework import serializers

from ..models import Package, PackageStatusHistory, PackagePriority, CustomerTier
from ..services.delivery_auth import code_expires_at
from ..status_catalog import StatusCatalog


class PackageStatusHistorySerializer(serializers.ModelSerializer):
    """Serializer for status history entries."""

    actor_name = serializers.CharField(source='actor.username', read_only=True, default=None)

    class Meta:
        model = PackageStatusHistory
        fields = [
            'id', 'status', 'previous_status', 'timestamp', 'actor', 'actor_name',
            'actor_role', 'reason', 'location', 'notes'
        ]
        read_only_fields = fields


class PackageListSerializer(serializers.ModelSerializer):
    """Serializer for package listing."""

    customer_name = serializers.CharField(source='customer.username', read_only=True)
    suite_number = serializers.CharField(source='customer.suite_number', read_only=True)
    status_label = serializers.CharField(source='get_status_display', read_only=True)
    shipment_number = serializers.CharField(source='shipment.shipment_number', read_only=True, default=None)

    class Meta:
        model = Package
        fields = [
            'id', 'package_number', 'tracking_number', 'customer', 'customer_name',
            'suite_number', 'status', 'status_label', 'shipment', 'shipment_number',
            'priority', 'customer_tier', 'has_active_code', 'created_at'
        ]


class PackageDetailSerializer(serializers.ModelSerializer):
    """
    Serializer for package details.

    The delivery code is never exposed here.
    """

    customer_name = serializers.CharField(source='customer.username', read_only=True)
    suite_number = serializers.CharField(source='customer.suite_number', read_only=True)
    shipment_number = serializers.CharField(source='shipment.shipment_number', read_only=True, default=None)
    status_info = serializers.SerializerMethodField()
    code_expires_at = serializers.SerializerMethodField()

    class Meta:
        model = Package
        fields = [
            'id', 'package_number', 'tracking_number', 'customer', 'customer_name',
            'suite_number', 'status', 'status_info', 'shipment', 'shipment_number',
            'shipment_sequence', 'priority', 'special_handling', 'customer_tier',
            'description', 'weight', 'has_active_code', 'code_issued_at',
            'code_expires_at', 'code_redeemed_at', 'code_redeemed_by',
            'created_by', 'updated_by', 'created_at', 'updated_at', 'metadata'
        ]
        read_only_fields = fields

    def get_status_info(self, obj):
        return StatusCatalog.describe(obj.status).to_dict()

    def get_code_expires_at(self, obj):
        expires_at = code_expires_at(obj)
        return expires_at.isoformat() if expires_at else None


class PackageCreateSerializer(serializers.Serializer):
    """Serializer for package intake."""

    customer = serializers.PrimaryKeyRelatedField(
        queryset=get_user_model().objects.all(), required=False
    )
    suite_number = serializers.CharField(max_length=20, required=False, allow_blank=True)
    tracking_number = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    priority = serializers.ChoiceField(choices=PackagePriority.choices, default=PackagePriority.MEDIUM)
    special_handling = serializers.ListField(
        child=serializers.CharField(max_length=50), required=False, default=list
    )
    customer_tier = serializers.ChoiceField(choices=CustomerTier.choices, default=CustomerTier.STANDARD)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    weight = serializers.DecimalField(max_digits=8, decimal_places=2, required=False, allow_null=True)
    location = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    metadata = serializers.DictField(required=False, default=dict)

    def validate_weight(self, value):
        if value is not None and value <= 0:
            raise serializers.ValidationError("Weight must be positive")
        return value

    def validate(self, data):
        if not data.get('customer') and not (data.get('suite_number') or '').strip():
            raise serializers.ValidationError("Either customer or suite_number is required")
        return data


class TransitionSerializer(serializers.Serializer):
    """Serializer for proposed status changes."""

    # Free text so unknown values are reported as UnknownStatus findings
    status = serializers.CharField(max_length=30)
    reason = serializers.CharField(required=False, allow_blank=True, default='')
    location = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class RedeemSerializer(serializers.Serializer):
    """Serializer for delivery code redemption."""

    suite_number = serializers.CharField(max_length=50, trim_whitespace=False)
    code = serializers.CharField(max_length=20, trim_whitespace=False)


class IssueCodeSerializer(serializers.Serializer):
    """Serializer for on-demand code issuance."""

    regenerate = serializers.BooleanField(default=False)


class PendingCodeSerializer(serializers.ModelSerializer):
    """A customer's own unredeemed delivery code."""

    shipment_tracking = serializers.CharField(source='shipment.tracking_number', read_only=True, default=None)
    expires_at = serializers.SerializerMethodField()

    class Meta:
        model = Package
        fields = [
            'id', 'package_number', 'tracking_number', 'delivery_auth_code',
            'shipment_tracking', 'status', 'code_issued_at', 'expires_at', 'description'
        ]
        read_only_fields = fields

    def get_expires_at(self, obj):
        expires_at = code_expires_at(obj)
        return expires_at.isoformat() if expires_at else None
