"""
Read-only view of the active business rules.
"""

from rest_framework import viewsets

from users.permissions import IsWarehouseStaff

from ..services import default_rule_set
from .responses import success_response


class RuleViewSet(viewsets.ViewSet):
    """Lists the rules evaluated for every proposed transition."""

    permission_classes = [IsWarehouseStaff]

    def list(self, request):
        return success_response(default_rule_set().describe())
