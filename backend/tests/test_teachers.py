import uuid

from campus import models


def _profile(client, headers, user_id, employee_id='EMP001', **extra):
    return client.post('/api/teachers', json={'user_id': str(user_id), 'employee_id': employee_id, **extra},
                       headers=headers)


def test_create_teacher_profile(client, admin_headers, teacher):
    r = _profile(client, admin_headers, teacher.id, rank='professor', specialization='Databases')
    assert r.status_code == 201
    data = r.json()['data']
    assert data['user_id'] == str(teacher.id)
    assert data['rank'] == 'professor'
    assert data['is_active'] is True
    assert data['user']['email'] == teacher.email


def test_create_teacher_profile_checks_user(client, admin_headers, make_user):
    missing = _profile(client, admin_headers, uuid.uuid4())
    assert missing.status_code == 404
    assert missing.json()['message'].startswith('User not found')

    student_user = make_user(models.Role.STUDENT)
    wrong_role = _profile(client, admin_headers, student_user.id)
    assert wrong_role.status_code == 409
    assert wrong_role.json()['message'] == 'User must have the teacher role'


def test_duplicate_profile_and_employee_id_conflict(client, admin_headers, teacher, make_user):
    assert _profile(client, admin_headers, teacher.id).status_code == 201
    again = _profile(client, admin_headers, teacher.id, employee_id='EMP002')
    assert again.status_code == 409
    assert again.json()['message'] == 'Teacher profile already exists for this user'

    other = make_user(models.Role.TEACHER)
    taken = _profile(client, admin_headers, other.id, employee_id='EMP001')
    assert taken.status_code == 409
    assert taken.json()['message'] == 'Employee ID already exists'


def test_list_and_lookup_by_user(client, admin_headers, teacher, teacher_headers, make_user):
    first = _profile(client, admin_headers, teacher.id).json()['data']
    other = make_user(models.Role.TEACHER)
    _profile(client, admin_headers, other.id, employee_id='EMP002')
    client.patch(f"/api/teachers/{first['id']}", json={'is_active': False}, headers=admin_headers)

    listed = client.get('/api/teachers', headers=teacher_headers).json()
    assert listed['meta']['total'] == 2
    active = client.get('/api/teachers', params={'is_active': True}, headers=teacher_headers).json()
    assert [t['employee_id'] for t in active['data']] == ['EMP002']

    by_user = client.get(f'/api/teachers/user/{teacher.id}', headers=teacher_headers)
    assert by_user.status_code == 200
    assert by_user.json()['data']['id'] == first['id']
    assert client.get(f'/api/teachers/user/{uuid.uuid4()}', headers=teacher_headers).status_code == 404


def test_students_cannot_read_teachers(client, admin_headers, make_user, login):
    student_user = make_user(models.Role.STUDENT)
    assert client.get('/api/teachers', headers=login(student_user.email)).status_code == 403


def test_update_teacher_profile(client, admin_headers, teacher, make_user):
    profile = _profile(client, admin_headers, teacher.id, office_hours='Mon 10-12').json()['data']
    other = make_user(models.Role.TEACHER)
    _profile(client, admin_headers, other.id, employee_id='EMP002')

    r = client.patch(f"/api/teachers/{profile['id']}", json={'rank': 'associate_professor', 'office_hours': None},
                     headers=admin_headers)
    assert r.status_code == 200
    assert r.json()['data']['rank'] == 'associate_professor'
    assert r.json()['data']['office_hours'] is None

    clash = client.patch(f"/api/teachers/{profile['id']}", json={'employee_id': 'EMP002'}, headers=admin_headers)
    assert clash.status_code == 409


def test_delete_and_restore_teacher_profile(client, admin_headers, teacher):
    profile = _profile(client, admin_headers, teacher.id).json()['data']
    path = f"/api/teachers/{profile['id']}"
    assert client.post(f'{path}/restore', headers=admin_headers).status_code == 409

    assert client.delete(path, headers=admin_headers).status_code == 200
    assert client.get(path, headers=admin_headers).status_code == 404
    assert client.get(f'/api/teachers/user/{teacher.id}', headers=admin_headers).status_code == 404
    # a deleted profile still blocks a second one for the same user
    assert _profile(client, admin_headers, teacher.id, employee_id='EMP009').status_code == 409

    restored = client.post(f'{path}/restore', headers=admin_headers)
    assert restored.status_code == 200
    assert restored.json()['data']['deleted_at'] is None
    assert client.get(path, headers=admin_headers).status_code == 200
