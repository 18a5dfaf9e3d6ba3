"""
Package views for the package lifecycle.
"""

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated

from users.permissions import IsWarehouseStaff

from ..conf import parcel_settings
from ..constants import CodeIssueFailure, ErrorCode
from ..exceptions import BusinessException
from ..models import Package
from ..serializers.package_serializers import (
    PackageListSerializer, PackageDetailSerializer, PackageCreateSerializer,
    PackageStatusHistorySerializer, TransitionSerializer, RedeemSerializer,
    IssueCodeSerializer, PendingCodeSerializer
)
from ..services import (
    PackageService, StatusService, DeliveryAuthService, OverdueAnalyzer, find_overdue_packages
)
from ..status_catalog import StatusCatalog
from .responses import success_response, error_response

UUID_PATTERN = '[0-9a-fA-F-]{36}'


class PackageViewSet(mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     mixins.CreateModelMixin,
                     viewsets.GenericViewSet):
    """
    ViewSet for Package management.

    Packages are created by intake and change status only through the
    transition and redeem actions.
    """

    queryset = Package.objects.select_related('customer', 'shipment')
    permission_classes = [IsWarehouseStaff]
    lookup_value_regex = UUID_PATTERN
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'shipment', 'priority', 'customer_tier']
    search_fields = ['package_number', 'tracking_number', 'customer__suite_number', 'customer__username']
    ordering_fields = ['created_at', 'updated_at', 'status', 'priority']

    def get_serializer_class(self):
        """Return appropriate serializer based on action."""
        if self.action == 'create':
            return PackageCreateSerializer
        elif self.action == 'list':
            return PackageListSerializer
        elif self.action == 'history':
            return PackageStatusHistorySerializer
        elif self.action == 'transition':
            return TransitionSerializer
        elif self.action == 'redeem':
            return RedeemSerializer
        elif self.action == 'issue_code':
            return IssueCodeSerializer
        elif self.action == 'my_codes':
            return PendingCodeSerializer
        else:
            return PackageDetailSerializer

    def create(self, request, *args, **kwargs):
        """Receive a package at intake."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            package = PackageService.create_package(serializer.validated_data, request.user)
        except BusinessException as e:
            return error_response(e.code, e.message, details=e.details)

        return success_response(PackageDetailSerializer(package).data, http_status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'])
    def history(self, request, pk=None):
        """Full status history of a package, oldest first."""
        package = self.get_object()
        serializer = self.get_serializer(package.status_history.select_related('actor'), many=True)
        return success_response(serializer.data)

    @action(detail=True, methods=['get'])
    def overdue(self, request, pk=None):
        """Overdue analysis of the package's current status."""
        package = self.get_object()
        report = OverdueAnalyzer.analyze(package)
        return success_response(report.to_dict())

    @action(detail=False, methods=['get'], url_path='overdue', url_name='overdue-list')
    def overdue_packages(self, request):
        """Non-terminal packages past their expected dwell time."""
        statuses = request.query_params.getlist('status') or None
        if statuses:
            unknown = [s for s in statuses if not StatusCatalog.exists(s)]
            if unknown:
                return error_response(ErrorCode.UNKNOWN_STATUS, f"Unknown package status: {unknown[0]!r}")

        overdue = find_overdue_packages(statuses=statuses)
        return success_response([
            {'package': PackageListSerializer(package).data, 'report': report.to_dict()}
            for package, report in overdue
        ])

    @action(detail=True, methods=['post'])
    def transition(self, request, pk=None):
        """Propose a status change."""
        package = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = StatusService.propose_transition(
            package.id, data['status'], actor=request.user,
            reason=data['reason'], location=data['location'], notes=data['notes']
        )
        if not result.accepted:
            first = result.errors[0]
            return error_response(first.code, first.message, data=result.to_dict())
        return success_response(result.to_dict())

    @action(detail=True, methods=['post'])
    def redeem(self, request, pk=None):
        """Verify a delivery code and hand the package over."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        # No get_object(): a missing package must look like any other failure
        result = DeliveryAuthService.redeem(
            pk, serializer.validated_data['suite_number'], serializer.validated_data['code'], request.user
        )
        expose_reason = not parcel_settings.GENERIC_REDEMPTION_FAILURES
        if not result.verified:
            code = result.reason if expose_reason else 'DELIVERY_VERIFICATION_FAILED'
            return error_response(code, result.message, data=result.to_dict(expose_reason))
        return success_response(result.to_dict(expose_reason))

    @action(detail=True, methods=['post'], url_path='issue-code')
    def issue_code(self, request, pk=None):
        """Issue (or regenerate) the delivery code of an arrived package."""
        package = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = DeliveryAuthService.issue(
            package.id, user=request.user, regenerate=serializer.validated_data['regenerate']
        )
        if not result.issued:
            http_status = (status.HTTP_404_NOT_FOUND if result.reason == CodeIssueFailure.PACKAGE_NOT_FOUND
                           else status.HTTP_400_BAD_REQUEST)
            return error_response(result.reason, 'Delivery code not issued',
                                  data=result.to_dict(), http_status=http_status)
        return success_response(result.to_dict())

    @action(detail=False, methods=['get'], url_path='my-codes', permission_classes=[IsAuthenticated])
    def my_codes(self, request):
        """Unredeemed delivery codes of the requesting customer."""
        packages = DeliveryAuthService.pending_codes_for_customer(request.user)
        return success_response(self.get_serializer(packages, many=True).data)
