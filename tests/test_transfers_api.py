from __future__ import annotations

import unittest

from fastapi.testclient import TestClient

from db_support import VALID_IMEI, add_user, make_session_factory
from transfer_tracker.db import get_db
from transfer_tracker.main import app
from transfer_tracker.models import UserRole


def _headers(actor) -> dict[str, str]:
    return {'X-Auth-User-Id': actor.id, 'X-Auth-Email': actor.email, 'X-Auth-Name': actor.name}


class TransfersApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.session_factory = make_session_factory()

        def _get_test_db():
            with self.session_factory() as db:
                yield db

        app.dependency_overrides[get_db] = _get_test_db
        self.client = TestClient(app)

        with self.session_factory() as db:
            self.hq_staff = add_user(db, name='Hana', role=UserRole.HQ_STAFF, branch='HQ')
            self.outstation = add_user(db, name='Siti', role=UserRole.HQ_STAFF, branch='Batu Pahat')
            self.admin = add_user(db, name='Ahmad', role=UserRole.ADMIN, branch='HQ')
            self.technician = add_user(db, name='Tan', role=UserRole.TECHNICIAN, branch='Kluang')

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def _create(self, **overrides) -> dict:
        payload = {
            'customer_name': 'Alice',
            'phone_model': 'X1',
            'imei': VALID_IMEI,
            'problem_description': 'Cracked screen',
            'staff_receive_name': 'Hana',
            'date_from_branch': '2026-02-13',
        }
        payload.update(overrides)
        response = self.client.post('/transfers', json=payload, headers=_headers(self.hq_staff))
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def test_health_needs_no_identity(self) -> None:
        self.assertEqual(self.client.get('/health').status_code, 200)

    def test_requests_without_identity_are_rejected(self) -> None:
        self.assertEqual(self.client.get('/transfers').status_code, 401)

    def test_me_provisions_unknown_caller_as_admin(self) -> None:
        response = self.client.get(
            '/me',
            headers={'X-Auth-User-Id': 'idp-9', 'X-Auth-Email': 'first.login@example.com'},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['role'], 'Admin')
        self.assertEqual(response.json()['branch'], 'HQ')

    def test_create_then_receive_flow(self) -> None:
        created = self._create()
        self.assertEqual(created['status'], 'Pending')
        self.assertEqual(created['branch_from'], 'HQ')
        self.assertEqual(created['branch_to'], 'Kluang')
        self.assertFalse(created['can_update'])
        self.assertEqual(created['next_status'], 'Received')

        response = self.client.post(
            f"/transfers/{created['id']}/status",
            json={'status': 'Received', 'technician_receive_name': 'Bob', 'remarks': 'Arrived at hub'},
            headers=_headers(self.admin),
        )
        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        self.assertEqual(body['status'], 'Received')
        self.assertEqual(body['technician_receive_name'], 'Bob')
        self.assertIsNotNone(body['date_received_by_tech'])

        logs = self.client.get(f"/transfers/{created['id']}/logs", headers=_headers(self.technician)).json()
        self.assertEqual([(log['old_status'], log['new_status']) for log in logs], [('Pending', 'Received'), (None, 'Pending')])

    def test_create_reports_all_missing_fields(self) -> None:
        response = self.client.post(
            '/transfers',
            json={'customer_name': 'Alice', 'imei': VALID_IMEI[:14]},
            headers=_headers(self.hq_staff),
        )
        self.assertEqual(response.status_code, 422)
        errors = response.json()['errors']
        self.assertEqual(
            set(errors),
            {'phone_model', 'imei', 'problem_description', 'staff_receive_name', 'date_from_branch'},
        )

    def test_only_hq_staff_may_create(self) -> None:
        response = self.client.post('/transfers', json={}, headers=_headers(self.admin))
        self.assertEqual(response.status_code, 403)

    def test_technician_cannot_update_pending(self) -> None:
        created = self._create()
        response = self.client.post(
            f"/transfers/{created['id']}/status",
            json={'status': 'Received'},
            headers=_headers(self.technician),
        )
        self.assertEqual(response.status_code, 403)

    def test_out_of_scope_detail_is_not_found(self) -> None:
        created = self._create()
        for path in (f"/transfers/{created['id']}", f"/transfers/{created['id']}/logs", '/transfers/transfer_nope'):
            response = self.client.get(path, headers=_headers(self.outstation))
            self.assertEqual(response.status_code, 404, path)

    def test_listing_filters_and_scope(self) -> None:
        first = self._create(customer_name='Alice')
        second = self._create(customer_name='Bruno', phone_model='Pixel 8')

        listed = self.client.get('/transfers', headers=_headers(self.hq_staff)).json()
        self.assertEqual([t['id'] for t in listed], [second['id'], first['id']])

        searched = self.client.get('/transfers', params={'search': 'pixel'}, headers=_headers(self.admin)).json()
        self.assertEqual([t['id'] for t in searched], [second['id']])

        self.assertEqual(self.client.get('/transfers', headers=_headers(self.outstation)).json(), [])

    def test_listing_rejects_bad_filters(self) -> None:
        headers = _headers(self.admin)
        self.assertEqual(self.client.get('/transfers', params={'status': 'Lost'}, headers=headers).status_code, 422)
        self.assertEqual(self.client.get('/transfers', params={'from': 'yesterday'}, headers=headers).status_code, 400)

    def test_summary_and_label(self) -> None:
        created = self._create()

        summary = self.client.get('/transfers/summary', headers=_headers(self.hq_staff)).json()
        self.assertEqual(summary['total'], 1)
        self.assertEqual(summary['pending'], 1)
        self.assertEqual(summary['total_cost_display'], 'RM 0.00')

        label = self.client.get(f"/transfers/{created['id']}/label", headers=_headers(self.technician)).json()
        self.assertEqual(label['imei'], VALID_IMEI)
        self.assertEqual(label['status'], 'Pending')


if __name__ == '__main__':
    unittest.main()
