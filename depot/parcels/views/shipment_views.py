"""
Shipment views for the package lifecycle.
"""

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action

from users.permissions import IsWarehouseStaff, IsAdminOrWarehouseManager

from ..exceptions import BusinessException, ShipmentNotFound
from ..models import Shipment
from ..serializers.shipment_serializers import (
    ShipmentListSerializer, ShipmentDetailSerializer, ShipmentCreateSerializer,
    AddPackagesSerializer, ReconcileAllSerializer, ShipmentStatusSerializer
)
from ..services import ShipmentService, AggregationReconciler
from ..services.reconciler import SHIPMENT_NOT_FOUND
from .package_views import UUID_PATTERN
from .responses import success_response, error_response


class ShipmentViewSet(mixins.ListModelMixin,
                      mixins.RetrieveModelMixin,
                      mixins.CreateModelMixin,
                      viewsets.GenericViewSet):
    """
    ViewSet for Shipment management.

    Shipments are never set to delivered directly; the reconcile actions
    promote them once every package is delivered.
    """

    queryset = Shipment.objects.select_related('created_by')
    permission_classes = [IsWarehouseStaff]
    lookup_value_regex = UUID_PATTERN
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status']
    search_fields = ['shipment_number', 'tracking_number']
    ordering_fields = ['created_at', 'status']

    def get_serializer_class(self):
        """Return appropriate serializer based on action."""
        if self.action == 'list':
            return ShipmentListSerializer
        elif self.action == 'create':
            return ShipmentCreateSerializer
        elif self.action == 'add_packages':
            return AddPackagesSerializer
        elif self.action == 'reconcile_all':
            return ReconcileAllSerializer
        elif self.action == 'update_status':
            return ShipmentStatusSerializer
        else:
            return ShipmentDetailSerializer

    def create(self, request, *args, **kwargs):
        """Group packages into a new shipment."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            shipment = ShipmentService.create_shipment(data['package_ids'], data, request.user)
        except BusinessException as e:
            return error_response(e.code, e.message, details=e.details)

        return success_response(ShipmentDetailSerializer(shipment).data, http_status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='add-packages')
    def add_packages(self, request, pk=None):
        """Add packages to a shipment."""
        shipment = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            updated = ShipmentService.add_packages(
                shipment.id, serializer.validated_data['package_ids'], request.user
            )
        except BusinessException as e:
            return error_response(e.code, e.message, details=e.details)

        return success_response(ShipmentDetailSerializer(updated).data)

    @action(detail=True, methods=['post'], permission_classes=[IsAdminOrWarehouseManager])
    def arrive(self, request, pk=None):
        """Mark a shipment as arrived and issue delivery codes."""
        shipment = self.get_object()

        try:
            result = ShipmentService.mark_arrived(shipment.id, request.user)
        except BusinessException as e:
            return error_response(e.code, e.message, details=e.details)

        return success_response(result)

    @action(detail=True, methods=['post'], url_path='update-status',
            permission_classes=[IsAdminOrWarehouseManager])
    def update_status(self, request, pk=None):
        """Advance a shipment and carry its packages along."""
        shipment = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = ShipmentService.update_status(
                shipment.id, serializer.validated_data['status'], request.user,
                notes=serializer.validated_data['notes']
            )
        except BusinessException as e:
            return error_response(e.code, e.message, details=e.details)

        return success_response(result)

    @action(detail=True, methods=['post'])
    def reconcile(self, request, pk=None):
        """Promote the shipment if every package is delivered."""
        result = AggregationReconciler.reconcile(pk, user=request.user)
        if result.reason == SHIPMENT_NOT_FOUND:
            error = ShipmentNotFound(pk)
            return error_response(error.code, error.message, http_status=status.HTTP_404_NOT_FOUND)
        return success_response(result.to_dict())

    @action(detail=False, methods=['post'], url_path='reconcile-all',
            permission_classes=[IsAdminOrWarehouseManager])
    def reconcile_all(self, request):
        """Repair every shipment whose packages are all delivered."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        results = AggregationReconciler.reconcile_all(
            user=request.user, dry_run=serializer.validated_data['dry_run']
        )
        return success_response({
            'checked': len(results),
            'promoted': sum(1 for r in results if r.promoted),
            'results': [r.to_dict() for r in results],
        })
