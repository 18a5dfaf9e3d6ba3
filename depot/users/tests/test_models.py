from types import SimpleNamespace

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.test import TestCase

from users.permissions import IsAdminOrWarehouseManager, IsWarehouseStaff

User = get_user_model()


class UserModelTest(TestCase):

    def test_suite_number_is_normalized(self):
        """Test suite number is normalized."""
        user = User.objects.create_user(username='alice', password='testpass123', role='customer',
                                        suite_number='  vc-100 ')
        self.assertEqual(user.suite_number, 'VC-100')

    def test_blank_suite_number_is_stored_as_null(self):
        """Test blank suite number is stored as null."""
        first = User.objects.create_user(username='a', password='testpass123', suite_number='')
        second = User.objects.create_user(username='b', password='testpass123', suite_number='   ')
        self.assertIsNone(first.suite_number)
        self.assertIsNone(second.suite_number)

    def test_role_properties(self):
        """Test role properties."""
        manager = User(username='m', role='warehouse_admin')
        customer = User(username='c', role='customer')
        self.assertTrue(manager.is_warehouse_manager)
        self.assertTrue(manager.is_staff_member)
        self.assertTrue(customer.is_customer)
        self.assertFalse(customer.is_staff_member)


class PermissionTest(TestCase):

    def check(self, permission, user):
        return permission().has_permission(SimpleNamespace(user=user), None)

    def test_warehouse_staff(self):
        """Test the warehouse staff permission."""
        self.assertTrue(self.check(IsWarehouseStaff, User(username='w', role='worker')))
        self.assertTrue(self.check(IsWarehouseStaff, User(username='s', role='customer', is_staff=True)))
        self.assertFalse(self.check(IsWarehouseStaff, User(username='c', role='customer')))
        self.assertFalse(self.check(IsWarehouseStaff, AnonymousUser()))

    def test_admin_or_manager(self):
        """Test the admin or warehouse manager permission."""
        self.assertTrue(self.check(IsAdminOrWarehouseManager, User(username='a', role='admin')))
        self.assertTrue(self.check(IsAdminOrWarehouseManager, User(username='m', role='warehouse_manager')))
        self.assertFalse(self.check(IsAdminOrWarehouseManager, User(username='d', role='dispatcher')))
