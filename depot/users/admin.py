from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'email', 'role', 'suite_number', 'is_active']
    list_filter = ['role', 'is_active', 'is_staff']
    search_fields = ['username', 'email', 'suite_number']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Depot', {'fields': ('role', 'phone', 'suite_number')}),
    )
