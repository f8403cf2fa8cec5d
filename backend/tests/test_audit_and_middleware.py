import pytest
from fastapi.testclient import TestClient

from campus import main, services
from campus.config import settings

from helpers import create, student


def test_mutations_are_audited_with_scrubbed_payload(client, admin, admin_headers):
    user = create(client, '/api/users', {'email': 'audited@example.com', 'username': 'audited',
                                         'password': 'Secr3tPass'}, admin_headers)
    client.patch(f"/api/users/{user['id']}", json={'first_name': 'Audie'}, headers=admin_headers)
    client.get(f"/api/users/{user['id']}", headers=admin_headers)

    logs = client.get('/api/audit', params={'resource': 'Users'}, headers=admin_headers).json()
    assert logs['meta']['total'] == 2
    by_action = {row['action']: row for row in logs['data']}
    created, update = by_action['CREATE'], by_action['UPDATE']
    assert created['action'] == 'CREATE'
    assert update['action'] == 'UPDATE'
    assert created['resource_id'] == user['id']
    assert created['user_id'] == str(admin.id)
    assert created['payload'] == {'email': 'audited@example.com', 'username': 'audited'}

    one = client.get(f"/api/audit/{created['id']}", headers=admin_headers).json()['data']
    assert one['action'] == 'CREATE'
    by_record = client.get(f"/api/audit/resource/Users/{user['id']}", headers=admin_headers).json()
    assert by_record['meta']['total'] == 2
    by_user = client.get(f"/api/audit/user/{admin.id}", headers=admin_headers).json()
    assert len(by_user['data']) == 2


def test_failed_and_unaudited_requests_leave_no_trail(client, admin_headers):
    client.post('/api/students', json={'student_code': 'nope', 'enrollment_date': '2024-09-01'},
                headers=admin_headers)
    create(client, '/api/faculties', {'name': 'Medicine', 'code': 'MED'}, admin_headers)
    logs = client.get('/api/audit', headers=admin_headers).json()
    assert logs['meta']['total'] == 0


def test_audit_filters_by_action_and_date(client, admin_headers):
    s = student(client, admin_headers)
    client.delete(f"/api/students/{s['id']}", headers=admin_headers)
    deletes = client.get('/api/audit', params={'action': 'DELETE'}, headers=admin_headers).json()
    assert [d['resource_id'] for d in deletes['data']] == [s['id']]
    future = client.get('/api/audit', params={'start_date': '2999-01-01T00:00:00Z'}, headers=admin_headers).json()
    assert future['meta']['total'] == 0
    # naive filter values are read as UTC
    since = client.get('/api/audit', params={'start_date': '2000-01-01T00:00:00'}, headers=admin_headers).json()
    assert since['meta']['total'] == 2
    before = client.get('/api/audit', params={'end_date': '2000-01-01T00:00:00+02:00'}, headers=admin_headers).json()
    assert before['meta']['total'] == 0


def test_audit_requires_admin(client, teacher_headers):
    assert client.get('/api/audit', headers=teacher_headers).status_code == 403


def test_error_envelope_and_request_id(client, admin_headers):
    r = client.get('/api/students/00000000-0000-0000-0000-000000000003', headers={
        **admin_headers, 'X-Request-ID': 'req-123',
    })
    assert r.status_code == 404
    assert r.headers['X-Request-ID'] == 'req-123'
    body = r.json()
    assert body['success'] is False
    assert body['status_code'] == 404
    assert body['error'] == 'Not Found'
    assert body['path'] == '/api/students/00000000-0000-0000-0000-000000000003'
    assert body['method'] == 'GET'
    assert 'timestamp' in body


def test_success_envelope(client, admin_headers):
    body = client.get('/api/faculties', headers=admin_headers).json()
    assert body['success'] is True
    assert body['data'] == []
    assert body['meta']['total'] == 0
    assert 'timestamp' in body


def test_unknown_fields_are_rejected(client, admin_headers):
    r = client.post('/api/faculties', json={'name': 'Music', 'code': 'MUS', 'extra': 1}, headers=admin_headers)
    assert r.status_code == 400
    assert isinstance(r.json()['message'], list)


def test_health_endpoints(client):
    health = client.get('/api/health')
    assert health.status_code == 200
    assert health.json()['database'] == 'up'
    assert client.get('/api/health/liveness').json()['status'] == 'ok'
    assert client.get('/api/health/readiness').json()['status'] == 'ready'


@pytest.mark.parametrize('env,expected', [('production', 'Internal server error'), ('dev', 'boom')])
def test_unhandled_errors_hide_details_in_production(monkeypatch, admin_headers, env, expected):
    def explode(self, params):
        raise RuntimeError('boom')

    monkeypatch.setattr(services.FacultyService, 'list', explode)
    monkeypatch.setattr(settings, 'ENV', env)
    client = TestClient(main.app, raise_server_exceptions=False)
    r = client.get('/api/faculties', headers=admin_headers)
    assert r.status_code == 500
    assert r.json()['message'] == expected
    assert r.json()['error_id']


def test_global_throttle(client, monkeypatch):
    monkeypatch.setattr(settings, 'THROTTLE_LIMIT', 2)
    main._throttle.reset()
    try:
        first = client.get('/api/courses')
        assert first.headers['X-RateLimit-Limit'] == '2'
        assert first.headers['X-RateLimit-Remaining'] == '1'
        statuses = [first.status_code] + [client.get('/api/courses').status_code for _ in range(2)]
        assert statuses == [401, 401, 429]
        # health checks are never throttled
        assert client.get('/api/health/liveness').status_code == 200
    finally:
        main._throttle.reset()
