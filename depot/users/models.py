from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    ROLE_CHOICES = [
        ("admin", "Admin"),
        ("warehouse_admin", "Warehouse Admin"),
        ("warehouse_manager", "Warehouse Manager"),
        ("processor", "Processor"),
        ("group_manager", "Group Manager"),
        ("dispatcher", "Dispatcher"),
        ("driver", "Driver"),
        ("delivery_agent", "Delivery Agent"),
        ("worker", "Worker"),
        ("customer", "Customer"),
    ]

    STAFF_ROLES = {
        "admin", "warehouse_admin", "warehouse_manager", "processor",
        "group_manager", "dispatcher", "driver", "delivery_agent", "worker",
    }

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default="worker")
    phone = models.CharField(max_length=20, blank=True)
    suite_number = models.CharField(
        max_length=20,
        null=True,
        blank=True,
        unique=True,
        help_text="Customer suite number used to verify deliveries (e.g. VC-100)"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "users"
        verbose_name = "User"
        verbose_name_plural = "Users"

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"

    def save(self, *args, **kwargs):
        # Suite numbers are compared case-insensitively; store them normalized.
        self.suite_number = (self.suite_number or "").strip().upper() or None
        super().save(*args, **kwargs)

    @property
    def is_admin(self):
        return self.role == "admin"

    @property
    def is_warehouse_manager(self):
        return self.role in ("warehouse_manager", "warehouse_admin")

    @property
    def is_staff_member(self):
        return self.is_staff or self.role in self.STAFF_ROLES

    @property
    def is_customer(self):
        return self.role == "customer"
