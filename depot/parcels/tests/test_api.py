"""
Tests for the package lifecycle REST API.
"""

import uuid

from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from ..adapters.notification_adapter import (
    LoggingNotificationAdapter, switch_to_mock_adapter, switch_to_real_adapter
)
from ..models import Package, Shipment, ShipmentStatus
from .helpers import create_customer, create_package, create_shipment, create_user, hours_ago

API = '/api/parcels'


class ParcelsAPITestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.customer = create_customer()
        self.worker = create_user('worker', role='worker')
        self.manager = create_user('manager', role='warehouse_manager')
        self.client.force_authenticate(self.worker)


class PackageAPITest(ParcelsAPITestCase):

    def test_requires_authentication(self):
        """Test requires authentication."""
        self.client.force_authenticate(None)
        self.assertIn(self.client.get(f'{API}/packages/').status_code, (401, 403))

    def test_customers_cannot_use_staff_endpoints(self):
        """Test customers cannot use staff endpoints."""
        self.client.force_authenticate(self.customer)
        self.assertEqual(self.client.get(f'{API}/packages/').status_code, 403)

    def test_intake_by_suite_number(self):
        """Test intake by suite number."""
        response = self.client.post(
            f'{API}/packages/',
            {'suite_number': 'vc-100', 'tracking_number': 'IN-42', 'special_handling': ['fragile']},
            format='json'
        )

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body['success'])
        self.assertEqual(body['data']['status'], 'pending')
        self.assertEqual(body['data']['customer'], self.customer.pk)
        self.assertEqual(body['data']['status_info']['phase'], 'intake')

    def test_intake_with_unknown_suite(self):
        """Test intake with unknown suite."""
        response = self.client.post(f'{API}/packages/', {'suite_number': 'VC-404'}, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error']['code'], 'VALIDATION_ERROR')

    def test_intake_rejects_negative_weight(self):
        """Test intake rejects negative weight."""
        response = self.client.post(
            f'{API}/packages/', {'customer': self.customer.pk, 'weight': '-1.00'}, format='json'
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn('weight', response.json())

    def test_list_filters_by_status(self):
        """Test list filters by status."""
        create_package(self.customer, 'pending')
        arrived = create_package(self.customer, 'arrived')

        response = self.client.get(f'{API}/packages/', {'status': 'arrived'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual([row['id'] for row in response.json()['results']], [str(arrived.id)])

    def test_detail_never_exposes_code(self):
        """Test detail never exposes code."""
        package = create_package(self.customer, 'arrived', code='408603')

        response = self.client.get(f'{API}/packages/{package.id}/')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['has_active_code'])
        self.assertNotIn('408603', response.content.decode())

    def test_transition(self):
        """Test proposing a transition over the API."""
        package = create_package(self.customer, 'pending')

        response = self.client.post(
            f'{API}/packages/{package.id}/transition/', {'status': 'processing', 'location': 'Dock 1'}, format='json'
        )

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['data']['applied'])
        self.assertEqual(Package.objects.get(id=package.id).status, 'processing')

    def test_rejected_transition(self):
        """Test rejected transition."""
        package = create_package(self.customer, 'delivered')

        response = self.client.post(
            f'{API}/packages/{package.id}/transition/', {'status': 'processing'}, format='json'
        )

        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertEqual(body['error']['code'], 'TerminalStateViolation')
        self.assertFalse(body['data']['accepted'])

    def test_history(self):
        """Test the package history endpoint."""
        package = create_package(self.customer, 'pending')
        self.client.post(f'{API}/packages/{package.id}/transition/', {'status': 'processing'}, format='json')

        response = self.client.get(f'{API}/packages/{package.id}/history/')

        statuses = [row['status'] for row in response.json()['data']]
        self.assertEqual(statuses, ['pending', 'processing'])
        self.assertEqual(response.json()['data'][1]['actor_name'], 'worker')

    def test_package_overdue_report(self):
        """Test package overdue report."""
        package = create_package(self.customer, 'dispatched', entered_at=hours_ago(8))

        response = self.client.get(f'{API}/packages/{package.id}/overdue/')

        data = response.json()['data']
        self.assertTrue(data['is_overdue'])
        self.assertEqual(data['recommended_next_status'], 'in-transit')

    def test_overdue_list(self):
        """Test overdue list."""
        late = create_package(self.customer, 'dispatched', entered_at=hours_ago(8))
        create_package(self.customer, 'dispatched', entered_at=hours_ago(1))

        response = self.client.get(f'{API}/packages/overdue/')

        rows = response.json()['data']
        self.assertEqual([row['package']['id'] for row in rows], [str(late.id)])

    def test_overdue_list_unknown_status(self):
        """Test overdue list unknown status."""
        response = self.client.get(f'{API}/packages/overdue/', {'status': 'teleported'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error']['code'], 'UnknownStatus')

    def test_issue_code_for_package_in_transit(self):
        """Test issue code for package in transit."""
        package = create_package(self.customer, 'in-transit')

        response = self.client.post(f'{API}/packages/{package.id}/issue-code/', {}, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error']['code'], 'InvalidState')

    def test_issue_code_response_hides_code(self):
        """Test issue code response hides code."""
        package = create_package(self.customer, 'arrived')

        response = self.client.post(f'{API}/packages/{package.id}/issue-code/', {}, format='json')

        self.assertEqual(response.status_code, 200)
        code = Package.objects.get(id=package.id).delivery_auth_code
        self.assertNotIn(code, response.content.decode())


class RedeemAPITest(ParcelsAPITestCase):

    def setUp(self):
        super().setUp()
        self.package = create_package(self.customer, 'arrived', code='408603')
        self.url = f'{API}/packages/{self.package.id}/redeem/'

    def test_redeem(self):
        """Test redeeming a delivery code over the API."""
        response = self.client.post(self.url, {'suite_number': 'vc-100', 'code': '408603'}, format='json')

        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertTrue(data['verified'])
        self.assertNotIn('reason', data)
        self.assertEqual(Package.objects.get(id=self.package.id).status, 'delivered')

    def test_failures_are_indistinguishable(self):
        """Test failures are indistinguishable."""
        wrong_code = self.client.post(self.url, {'suite_number': 'VC-100', 'code': '000000'}, format='json')
        wrong_suite = self.client.post(self.url, {'suite_number': 'VC-999', 'code': '408603'}, format='json')
        missing = self.client.post(
            f'{API}/packages/{uuid.uuid4()}/redeem/', {'suite_number': 'VC-100', 'code': '408603'}, format='json'
        )

        for response in (wrong_code, wrong_suite, missing):
            self.assertEqual(response.status_code, 400)
            body = response.json()
            self.assertEqual(body['error'], {
                'code': 'DELIVERY_VERIFICATION_FAILED',
                'message': 'Delivery verification failed',
            })
            self.assertNotIn('reason', body['data'])

    @override_settings(PARCELS={'GENERIC_REDEMPTION_FAILURES': False})
    def test_descriptive_failures(self):
        """Test descriptive failures."""
        response = self.client.post(self.url, {'suite_number': 'VC-999', 'code': '408603'}, format='json')

        body = response.json()
        self.assertEqual(body['error']['code'], 'SuiteMismatch')
        self.assertEqual(body['data']['reason'], 'SuiteMismatch')

    def test_customers_cannot_redeem(self):
        """Test customers cannot redeem."""
        self.client.force_authenticate(self.customer)
        response = self.client.post(self.url, {'suite_number': 'VC-100', 'code': '408603'}, format='json')
        self.assertEqual(response.status_code, 403)

    def test_my_codes(self):
        """Test a customer lists their pending codes."""
        self.client.force_authenticate(self.customer)

        response = self.client.get(f'{API}/packages/my-codes/')

        self.assertEqual(response.status_code, 200)
        rows = response.json()['data']
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['delivery_auth_code'], '408603')


class ShipmentAPITest(ParcelsAPITestCase):

    def test_create_shipment(self):
        """Test grouping packages into a shipment over the API."""
        first = create_package(self.customer, 'ready-for-grouping')
        second = create_package(self.customer, 'ready-for-grouping')

        response = self.client.post(
            f'{API}/shipments/', {'package_ids': [str(second.id), str(first.id)]}, format='json'
        )

        self.assertEqual(response.status_code, 201)
        data = response.json()['data']
        self.assertEqual(data['total_package_count'], 2)
        self.assertEqual([p['id'] for p in data['packages']], [str(second.id), str(first.id)])
        self.assertEqual({p['status'] for p in data['packages']}, {'grouped'})

    def test_create_shipment_rejects_duplicates(self):
        """Test create shipment rejects duplicates."""
        package = create_package(self.customer, 'processing')
        response = self.client.post(
            f'{API}/shipments/', {'package_ids': [str(package.id), str(package.id)]}, format='json'
        )
        self.assertEqual(response.status_code, 400)

    def test_create_shipment_with_grouped_package(self):
        """Test create shipment with grouped package."""
        package = create_package(self.customer, 'grouped')
        create_shipment(package)

        response = self.client.post(f'{API}/shipments/', {'package_ids': [str(package.id)]}, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error']['code'], 'PACKAGE_ALREADY_GROUPED')

    def test_add_packages(self):
        """Test adding packages to a shipment over the API."""
        shipment = create_shipment(create_package(self.customer, 'grouped'))
        extra = create_package(self.customer, 'processing')

        response = self.client.post(
            f'{API}/shipments/{shipment.id}/add-packages/', {'package_ids': [str(extra.id)]}, format='json'
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['total_package_count'], 2)

    def test_arrive_requires_manager(self):
        """Test arrive requires manager."""
        shipment = create_shipment(create_package(self.customer, 'in-transit'), status=ShipmentStatus.IN_TRANSIT)

        response = self.client.post(f'{API}/shipments/{shipment.id}/arrive/')

        self.assertEqual(response.status_code, 403)

    def test_arrive(self):
        """Test a manager marks a shipment arrived."""
        shipment = create_shipment(create_package(self.customer, 'in-transit'), status=ShipmentStatus.IN_TRANSIT)
        self.client.force_authenticate(self.manager)

        response = self.client.post(f'{API}/shipments/{shipment.id}/arrive/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['codes_issued'], 1)

    def test_arrive_delivered_shipment(self):
        """Test a delivered shipment cannot arrive over the API."""
        shipment = create_shipment(create_package(self.customer, 'delivered'), status=ShipmentStatus.DELIVERED)
        self.client.force_authenticate(self.manager)

        response = self.client.post(f'{API}/shipments/{shipment.id}/arrive/')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error']['code'], 'INVALID_TRANSITION')

    def test_update_status(self):
        """Test a manager advances a shipment and its packages."""
        package = create_package(self.customer, 'dispatched')
        shipment = create_shipment(package, status=ShipmentStatus.PROCESSING)
        self.client.force_authenticate(self.manager)

        response = self.client.post(
            f'{API}/shipments/{shipment.id}/update-status/', {'status': 'shipped'}, format='json'
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['packages_updated'], 1)
        self.assertEqual(Package.objects.get(id=package.id).status, 'shipped')

    def test_update_status_requires_manager(self):
        """Test workers cannot advance shipments."""
        shipment = create_shipment(create_package(self.customer, 'grouped'))

        response = self.client.post(
            f'{API}/shipments/{shipment.id}/update-status/', {'status': 'processing'}, format='json'
        )

        self.assertEqual(response.status_code, 403)

    def test_update_status_to_delivered_is_refused(self):
        """Test delivered cannot be set through the status endpoint."""
        shipment = create_shipment(create_package(self.customer, 'arrived'), status=ShipmentStatus.ARRIVED)
        self.client.force_authenticate(self.manager)

        response = self.client.post(
            f'{API}/shipments/{shipment.id}/update-status/', {'status': 'delivered'}, format='json'
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error']['code'], 'INVALID_TRANSITION')

    def test_update_status_unknown_value(self):
        """Test an unknown shipment status is a validation error."""
        shipment = create_shipment(create_package(self.customer, 'grouped'))
        self.client.force_authenticate(self.manager)

        response = self.client.post(
            f'{API}/shipments/{shipment.id}/update-status/', {'status': 'teleported'}, format='json'
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(Shipment.objects.get(id=shipment.id).status, ShipmentStatus.PENDING)

    def test_reconcile(self):
        """Test reconciling a shipment over the API."""
        shipment = create_shipment(create_package(self.customer, 'delivered'), status=ShipmentStatus.ARRIVED)

        response = self.client.post(f'{API}/shipments/{shipment.id}/reconcile/')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['data']['promoted'])

    def test_reconcile_unknown_shipment(self):
        """Test reconcile unknown shipment."""
        response = self.client.post(f'{API}/shipments/{uuid.uuid4()}/reconcile/')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['error']['code'], 'SHIPMENT_NOT_FOUND')

    def test_reconcile_all(self):
        """Test reconcile all."""
        create_shipment(create_package(self.customer, 'delivered'), status=ShipmentStatus.ARRIVED)
        self.client.force_authenticate(self.manager)

        response = self.client.post(f'{API}/shipments/reconcile-all/', {'dry_run': True}, format='json')

        data = response.json()['data']
        self.assertEqual((data['checked'], data['promoted']), (1, 1))
        self.assertEqual(Shipment.objects.filter(status=ShipmentStatus.DELIVERED).count(), 0)

    def test_rules(self):
        """Test the rule listing endpoint."""
        response = self.client.get(f'{API}/rules/')
        ids = [rule['id'] for rule in response.json()['data']]
        self.assertEqual(ids[0], 'premium_customer_priority')
        self.assertEqual(len(ids), 7)


class DeliveryFlowTest(ParcelsAPITestCase):
    """Walk a shipment from intake to delivery through the API."""

    def test_complete_flow(self):
        """Intake, grouping, arrival, redemption and shipment promotion."""
        adapter = switch_to_mock_adapter()
        self.addCleanup(switch_to_real_adapter, LoggingNotificationAdapter())

        # 1. Intake two packages
        ids = []
        for tracking in ('IN-1', 'IN-2'):
            response = self.client.post(
                f'{API}/packages/', {'suite_number': 'VC-100', 'tracking_number': tracking}, format='json'
            )
            ids.append(response.json()['data']['id'])

        # 2. Process them
        for package_id in ids:
            for status in ('processing', 'ready-for-grouping'):
                response = self.client.post(
                    f'{API}/packages/{package_id}/transition/', {'status': status}, format='json'
                )
                self.assertEqual(response.status_code, 200, response.json())

        # 3. Group and ship
        response = self.client.post(f'{API}/shipments/', {'package_ids': ids}, format='json')
        shipment_id = response.json()['data']['id']
        for package_id in ids:
            for status in ('group-confirmed', 'dispatched', 'in-transit'):
                self.client.post(f'{API}/packages/{package_id}/transition/', {'status': status}, format='json')

        # 4. Arrival issues codes
        self.client.force_authenticate(self.manager)
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(f'{API}/shipments/{shipment_id}/arrive/')
        self.assertEqual(response.json()['data']['codes_issued'], 2)
        codes = {n['package_id']: n['code'] for n in adapter.of_type('delivery_code')}
        self.assertEqual(set(codes), set(ids))

        # 5. Redeem both; the second promotes the shipment
        self.client.force_authenticate(self.worker)
        first = self.client.post(
            f'{API}/packages/{ids[0]}/redeem/', {'suite_number': 'VC-100', 'code': codes[ids[0]]}, format='json'
        )
        self.assertFalse(first.json()['data']['shipment_promoted'])
        second = self.client.post(
            f'{API}/packages/{ids[1]}/redeem/', {'suite_number': 'VC-100', 'code': codes[ids[1]]}, format='json'
        )
        self.assertTrue(second.json()['data']['shipment_promoted'])

        shipment = Shipment.objects.get(id=shipment_id)
        self.assertEqual(shipment.status, ShipmentStatus.DELIVERED)
        self.assertLessEqual(shipment.delivered_at, timezone.now())
