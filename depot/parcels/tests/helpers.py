"""
Shared fixtures for package lifecycle tests.
"""

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone

from ..models import Package, PackageStatusHistory, Shipment


def create_user(username, role='worker', **extra):
    return get_user_model().objects.create_user(
        username=username,
        email=f'{username}@example.com',
        password='testpass123',
        role=role,
        **extra
    )


def create_customer(username='customer', suite_number='VC-100'):
    return create_user(username, role='customer', suite_number=suite_number)


def create_package(customer, status='pending', entered_at=None, shipment=None, code=None, **fields):
    """Create a package already in ``status`` with a matching history entry."""
    entered_at = entered_at or timezone.now()
    package = Package.objects.create(customer=customer, status=status, shipment=shipment, **fields)
    PackageStatusHistory.record(package, status=status, timestamp=entered_at)
    if code is not None:
        package.delivery_auth_code = code
        package.code_issued_at = entered_at
        package.save()
    return package


def create_shipment(*packages, **fields):
    shipment = Shipment.objects.create(**fields)
    for sequence, package in enumerate(packages, 1):
        package.shipment = shipment
        package.shipment_sequence = sequence
        package.save()
    shipment.total_package_count = len(packages)
    shipment.save()
    return shipment


def hours_ago(hours, now=None):
    return (now or timezone.now()) - timedelta(hours=hours)
