"""
Integration tests for API endpoints.

Tests cover:
- Health check endpoints
- Acting-user authentication and role checks
- Shift API endpoints
- Swap request API endpoints
- Notification API endpoints
"""
import pytest
import json
from datetime import timedelta

from conftest import BASE_DATE


def auth_headers(user):
    return {'X-User-Id': str(user.id)}


def post_json(client, url, user, payload=None):
    return client.post(url, data=json.dumps(payload or {}), content_type='application/json',
                       headers=auth_headers(user))


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    @pytest.mark.integration
    def test_ping(self, client):
        response = client.get('/health/ping')
        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['status'] == 'ok'

    @pytest.mark.integration
    def test_live(self, client):
        response = client.get('/health/live')
        assert response.status_code == 200
        assert json.loads(response.data)['status'] == 'alive'

    @pytest.mark.integration
    def test_ready(self, client):
        response = client.get('/health/ready')
        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['checks']['database'] is True
        assert data['held_locks'] == 0


class TestAuthentication:
    """Acting user resolution and role checks."""

    @pytest.mark.integration
    def test_missing_user_header(self, client):
        response = client.get('/api/me')
        assert response.status_code == 401
        assert json.loads(response.data)['error'] == 'AuthenticationError'

    @pytest.mark.integration
    def test_unknown_user(self, client):
        response = client.get('/api/me', headers={'X-User-Id': '9999'})
        assert response.status_code == 401

    @pytest.mark.integration
    def test_me_for_manager(self, client, manager, location):
        response = client.get('/api/me', headers=auth_headers(manager))
        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['user']['id'] == manager.id
        assert data['managed_location_ids'] == [location.id]
        assert data['all_locations'] is False

    @pytest.mark.integration
    def test_me_for_admin(self, client, admin):
        data = json.loads(client.get('/api/me', headers=auth_headers(admin)).data)
        assert data['all_locations'] is True

    @pytest.mark.integration
    def test_staff_cannot_create_shift(self, client, staff_factory, location, skill):
        worker = staff_factory(location, skill)
        response = post_json(client, '/api/shifts', worker, {
            'location_id': location.id, 'date': BASE_DATE.isoformat(),
            'start_time': '09:00', 'end_time': '17:00', 'skill_id': skill.id,
        })
        assert response.status_code == 403


class TestShiftAPI:
    """Tests for Shift API endpoints."""

    @pytest.mark.integration
    def test_create_and_list(self, client, manager, location, skill):
        response = post_json(client, '/api/shifts', manager, {
            'location_id': location.id, 'date': BASE_DATE.isoformat(),
            'start_time': '22:00', 'end_time': '06:00', 'skill_id': skill.id, 'headcount': 2,
        })
        assert response.status_code == 201
        shift = json.loads(response.data)['shift']
        assert shift['is_overnight'] is True
        assert shift['is_published'] is False
        assert shift['version'] == 1

        response = client.get(f'/api/shifts?location_id={location.id}', headers=auth_headers(manager))
        data = json.loads(response.data)
        assert data['count'] == 1

    @pytest.mark.integration
    def test_create_rejects_bad_input(self, client, manager, location, skill):
        response = post_json(client, '/api/shifts', manager, {
            'location_id': location.id, 'date': 'not-a-date',
            'start_time': '09:00', 'end_time': '17:00', 'skill_id': skill.id,
        })
        assert response.status_code == 400

        response = post_json(client, '/api/shifts', manager, {'location_id': location.id})
        assert response.status_code == 400

    @pytest.mark.integration
    def test_manager_of_other_location(self, client, manager_factory, location_factory, location, skill):
        outsider = manager_factory(location_factory(name='Uptown'))
        response = post_json(client, '/api/shifts', outsider, {
            'location_id': location.id, 'date': BASE_DATE.isoformat(),
            'start_time': '09:00', 'end_time': '17:00', 'skill_id': skill.id,
        })
        assert response.status_code == 403

    @pytest.mark.integration
    def test_staff_only_see_published(self, client, staff_factory, shift_factory, location, skill):
        worker = staff_factory(location, skill)
        shift_factory(location, skill)
        published = shift_factory(location, skill, shift_date=BASE_DATE + timedelta(days=1), is_published=True)

        response = client.get(f'/api/shifts?location_id={location.id}', headers=auth_headers(worker))
        data = json.loads(response.data)
        assert [s['id'] for s in data['shifts']] == [published.id]

    @pytest.mark.integration
    def test_versioned_update(self, client, manager, shift_factory, location, skill):
        shift = shift_factory(location, skill)
        url = f'/api/shifts/{shift.id}'

        response = client.patch(url, data=json.dumps({'version': 1, 'headcount': 3}),
                                content_type='application/json', headers=auth_headers(manager))
        assert response.status_code == 200
        assert json.loads(response.data)['shift']['version'] == 2

        response = client.patch(url, data=json.dumps({'version': 1, 'headcount': 4}),
                                content_type='application/json', headers=auth_headers(manager))
        assert response.status_code == 409
        assert json.loads(response.data)['error'] == 'VersionConflict'

    @pytest.mark.integration
    def test_publish_twice(self, client, manager, shift_factory, location, skill):
        shift = shift_factory(location, skill)

        assert post_json(client, f'/api/shifts/{shift.id}/publish', manager).status_code == 200
        response = post_json(client, f'/api/shifts/{shift.id}/publish', manager)
        assert response.status_code == 409

    @pytest.mark.integration
    def test_assign_and_reject(self, client, manager, staff_factory, user_factory, shift_factory,
                               location, skill):
        worker = staff_factory(location, skill, name='Wes Worker')
        outsider = user_factory(name='Olly Outsider')
        shift = shift_factory(location, skill, headcount=2)
        url = f'/api/shifts/{shift.id}/assignments'

        response = post_json(client, url, manager, {'staff_id': worker.id})
        assert response.status_code == 201
        data = json.loads(response.data)
        assert data['assignment']['staff_id'] == worker.id
        assert data['override_used'] is False

        response = post_json(client, url, manager, {'staff_id': outsider.id})
        assert response.status_code == 422
        data = json.loads(response.data)
        assert data['error'] == 'AssignmentRejected'
        assert data['overridable'] is False
        assert 'SKILL_MISMATCH' in [v['code'] for v in data['violations']]
        assert data['suggestions'] == ['Available alternatives: Wes Worker']

    @pytest.mark.integration
    def test_validate_and_qualified_staff(self, client, manager, staff_factory, shift_factory,
                                          location, skill):
        worker = staff_factory(location, skill, name='Wes Worker')
        shift = shift_factory(location, skill)

        response = client.get(f'/api/shifts/{shift.id}/validate?staff_id={worker.id}',
                              headers=auth_headers(manager))
        assert json.loads(response.data)['valid'] is True

        response = client.get(f'/api/shifts/{shift.id}/qualified-staff', headers=auth_headers(manager))
        staff = json.loads(response.data)['staff']
        assert [s['name'] for s in staff] == ['Wes Worker']

    @pytest.mark.integration
    def test_history_includes_assignments(self, client, manager, staff_factory, shift_factory,
                                          location, skill):
        worker = staff_factory(location, skill)
        shift = shift_factory(location, skill)
        post_json(client, f'/api/shifts/{shift.id}/assignments', manager, {'staff_id': worker.id})
        post_json(client, f'/api/shifts/{shift.id}/publish', manager)

        response = client.get(f'/api/shifts/{shift.id}/history', headers=auth_headers(manager))
        actions = [e['action'] for e in json.loads(response.data)['history']]
        assert actions == ['assignment_created', 'shift_published']

    @pytest.mark.integration
    def test_pickup(self, client, manager, staff_factory, shift_factory, location, skill):
        worker = staff_factory(location, skill)
        shift = shift_factory(location, skill, is_published=True)

        response = client.get('/api/shifts/available', headers=auth_headers(worker))
        assert [s['id'] for s in json.loads(response.data)['shifts']] == [shift.id]

        response = post_json(client, f'/api/shifts/{shift.id}/pickup', worker)
        assert response.status_code == 201

        response = post_json(client, f'/api/shifts/{shift.id}/pickup', worker)
        assert response.status_code == 409


class TestSwapRequestAPI:
    """Tests for swap/drop request endpoints."""

    @pytest.fixture
    def setup(self, manager, staff_factory, shift_factory, assignment_factory, location, skill):
        alice = staff_factory(location, skill, name='Alice')
        bob = staff_factory(location, skill, name='Bob')
        shift = shift_factory(location, skill, is_published=True)
        assignment = assignment_factory(shift, alice)
        return alice, bob, assignment

    @pytest.mark.integration
    def test_swap_flow(self, client, manager, setup):
        alice, bob, assignment = setup

        response = post_json(client, '/api/swap-requests', alice, {
            'assignment_id': assignment.id, 'type': 'SWAP', 'target_staff_id': bob.id,
        })
        assert response.status_code == 201
        request_id = json.loads(response.data)['request']['id']

        incoming = json.loads(client.get('/api/swap-requests/incoming', headers=auth_headers(bob)).data)
        assert [r['id'] for r in incoming['requests']] == [request_id]

        response = post_json(client, f'/api/swap-requests/{request_id}/approve', manager)
        assert response.status_code == 409

        response = post_json(client, f'/api/swap-requests/{request_id}/accept', bob)
        assert json.loads(response.data)['request']['status'] == 'ACCEPTED_BY_TARGET'

        queue = json.loads(client.get('/api/swap-requests/queue', headers=auth_headers(manager)).data)
        assert [r['id'] for r in queue['requests']] == [request_id]

        response = post_json(client, f'/api/swap-requests/{request_id}/approve', manager, {'notes': 'ok'})
        assert response.status_code == 200
        assert json.loads(response.data)['request']['status'] == 'APPROVED'

        response = post_json(client, f'/api/swap-requests/{request_id}/approve', manager)
        assert response.status_code == 409
        assert json.loads(response.data)['error'] == 'AlreadyProcessed'

    @pytest.mark.integration
    def test_drop_and_deny(self, client, manager, setup):
        alice, _, assignment = setup

        response = post_json(client, '/api/swap-requests', alice, {'assignment_id': assignment.id, 'type': 'DROP'})
        request_id = json.loads(response.data)['request']['id']

        response = post_json(client, f'/api/swap-requests/{request_id}/deny', manager, {'notes': 'Busy day'})
        data = json.loads(response.data)
        assert data['request']['status'] == 'DENIED'
        assert data['request']['review_notes'] == 'Busy day'

        mine = json.loads(client.get('/api/swap-requests/mine', headers=auth_headers(alice)).data)
        assert [r['status'] for r in mine['requests']] == ['DENIED']

    @pytest.mark.integration
    def test_staff_cannot_review(self, client, setup):
        alice, bob, assignment = setup
        response = post_json(client, '/api/swap-requests', alice, {'assignment_id': assignment.id, 'type': 'DROP'})
        request_id = json.loads(response.data)['request']['id']

        assert post_json(client, f'/api/swap-requests/{request_id}/approve', bob).status_code == 403

    @pytest.mark.integration
    def test_unknown_type(self, client, setup):
        alice, _, assignment = setup
        response = post_json(client, '/api/swap-requests', alice, {'assignment_id': assignment.id, 'type': 'TRADE'})
        assert response.status_code == 400

    @pytest.mark.integration
    def test_eligible_partners(self, client, setup):
        alice, bob, assignment = setup
        response = client.get(f'/api/swap-requests/eligible-partners?assignment_id={assignment.id}',
                              headers=auth_headers(alice))
        assert [u['id'] for u in json.loads(response.data)['staff']] == [bob.id]


class TestNotificationAPI:
    """Tests for notification endpoints."""

    @pytest.mark.integration
    def test_read_flow(self, client, manager, staff_factory, shift_factory, location, skill):
        worker = staff_factory(location, skill)
        first = shift_factory(location, skill)
        second = shift_factory(location, skill, shift_date=BASE_DATE + timedelta(days=1))
        post_json(client, f'/api/shifts/{first.id}/assignments', manager, {'staff_id': worker.id})
        post_json(client, f'/api/shifts/{second.id}/assignments', manager, {'staff_id': worker.id})

        data = json.loads(client.get('/api/notifications', headers=auth_headers(worker)).data)
        assert data['unread_count'] == 2
        assert {n['type'] for n in data['notifications']} == {'SHIFT_ASSIGNED'}

        notification_id = data['notifications'][0]['id']
        response = post_json(client, f'/api/notifications/{notification_id}/read', worker)
        assert json.loads(response.data)['notification']['is_read'] is True

        response = post_json(client, f'/api/notifications/{notification_id}/read', manager)
        assert response.status_code == 403

        response = post_json(client, '/api/notifications/read-all', worker)
        assert json.loads(response.data)['updated'] == 1

        data = json.loads(client.get('/api/notifications/unread-count', headers=auth_headers(worker)).data)
        assert data['unread_count'] == 0
