"""
Shipment serializers for the package lifecycle.
"""

from rest_framework import serializers

from ..models import Shipment, ShipmentStatus
from ..status_catalog import PackageStatus
from .package_serializers import PackageListSerializer


class ShipmentListSerializer(serializers.ModelSerializer):
    """Serializer for shipment listing."""

    created_by_name = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = Shipment
        fields = [
            'id', 'shipment_number', 'tracking_number', 'status', 'total_package_count',
            'created_by_name', 'arrived_at', 'delivered_at', 'created_at'
        ]


class ShipmentDetailSerializer(serializers.ModelSerializer):
    """Serializer for shipment details."""

    created_by_name = serializers.CharField(source='created_by.username', read_only=True, default=None)
    packages = serializers.SerializerMethodField()
    delivered_package_count = serializers.SerializerMethodField()

    class Meta:
        model = Shipment
        fields = [
            'id', 'shipment_number', 'tracking_number', 'status', 'total_package_count',
            'delivered_package_count', 'created_by', 'created_by_name', 'arrived_at',
            'delivered_at', 'created_at', 'updated_at', 'notes', 'packages'
        ]
        read_only_fields = fields

    def get_packages(self, obj):
        packages = obj.packages.select_related('customer').order_by('shipment_sequence', 'created_at')
        return PackageListSerializer(packages, many=True).data

    def get_delivered_package_count(self, obj):
        return obj.packages.filter(status=PackageStatus.DELIVERED).count()


class ShipmentCreateSerializer(serializers.Serializer):
    """Serializer for grouping packages into a new shipment."""

    package_ids = serializers.ListField(child=serializers.UUIDField(), min_length=1)
    tracking_number = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_package_ids(self, value):
        if len(set(value)) != len(value):
            raise serializers.ValidationError("Duplicate package ids")
        return value


class AddPackagesSerializer(serializers.Serializer):
    """Serializer for adding packages to a shipment."""

    package_ids = serializers.ListField(child=serializers.UUIDField(), min_length=1)


class ShipmentStatusSerializer(serializers.Serializer):
    """Serializer for advancing a shipment's status."""

    status = serializers.ChoiceField(choices=ShipmentStatus.choices)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class ReconcileAllSerializer(serializers.Serializer):
    dry_run = serializers.BooleanField(default=False)
