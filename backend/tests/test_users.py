from campus import models


def test_admin_manages_users(client, admin_headers):
    r = client.post('/api/users', json={
        'email': 'New.Teacher@example.com', 'username': 'new_teacher', 'password': 'Teach3rPass', 'role': 'teacher',
    }, headers=admin_headers)
    assert r.status_code == 201
    user = r.json()['data']
    assert user['email'] == 'new.teacher@example.com'
    assert 'password_hash' not in user and 'password' not in user

    listed = client.get('/api/users', params={'role': 'teacher', 'search': 'new_'}, headers=admin_headers).json()
    assert [u['id'] for u in listed['data']] == [user['id']]
    assert listed['meta']['total'] == 1

    dup = client.post('/api/users', json={
        'email': 'new.teacher@example.com', 'username': 'other', 'password': 'Teach3rPass',
    }, headers=admin_headers)
    assert dup.status_code == 409


def test_update_conflicts_on_taken_username(client, admin_headers, make_user):
    a = make_user(models.Role.STUDENT, username='taken_name')
    b = make_user(models.Role.STUDENT)
    r = client.patch(f'/api/users/{b.id}', json={'username': 'taken_name'}, headers=admin_headers)
    assert r.status_code == 409
    ok = client.patch(f'/api/users/{a.id}', json={'first_name': 'Renamed'}, headers=admin_headers)
    assert ok.status_code == 200
    assert ok.json()['data']['first_name'] == 'Renamed'


def test_soft_delete_and_restore_user(client, admin_headers, make_user):
    user = make_user(models.Role.STUDENT)
    assert client.delete(f'/api/users/{user.id}', headers=admin_headers).status_code == 200
    assert client.get(f'/api/users/{user.id}', headers=admin_headers).status_code == 404

    deleted = client.get('/api/users/deleted', headers=admin_headers).json()
    assert [u['id'] for u in deleted['data']] == [str(user.id)]
    with_deleted = client.get('/api/users', params={'include_deleted': True}, headers=admin_headers).json()
    assert str(user.id) in [u['id'] for u in with_deleted['data']]

    restored = client.post(f'/api/users/{user.id}/restore', headers=admin_headers)
    assert restored.status_code == 200
    assert restored.json()['data']['deleted_at'] is None
    again = client.post(f'/api/users/{user.id}/restore', headers=admin_headers)
    assert again.status_code == 409


def test_deleted_user_token_is_rejected(client, admin_headers, make_user, login):
    user = make_user(models.Role.TEACHER)
    headers = login(user.email)
    client.delete(f'/api/users/{user.id}', headers=admin_headers)
    assert client.get('/api/auth/me', headers=headers).status_code == 401
