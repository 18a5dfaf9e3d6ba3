from rest_framework import permissions


class IsAdmin(permissions.BasePermission):
    def has_permission(self, request, view):
        return request.user and request.user.is_authenticated and request.user.is_admin


class IsAdminOrWarehouseManager(permissions.BasePermission):
    def has_permission(self, request, view):
        return request.user and request.user.is_authenticated and (
            request.user.is_admin or request.user.is_warehouse_manager
        )


class IsWarehouseStaff(permissions.BasePermission):
    """
    Allows access only to warehouse staff.

    Django staff users always qualify; otherwise the user's role must be one
    of the staff roles. Customers are rejected.
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user.is_staff_member
