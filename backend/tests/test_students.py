import io
from datetime import date

from campus import models


def _student(client, headers, code='STU2024001', **extra):
    payload = {'student_code': code, 'enrollment_date': '2024-09-01', **extra}
    r = client.post('/api/students', json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()['data']


def test_create_student_normalises_code_and_sanitises_text(client, admin_headers):
    data = _student(client, admin_headers, code=' stu-2024-001 ',
                    address='12 Main St<script>alert(1)</script>', gender='female')
    assert data['student_code'] == 'STU-2024-001'
    assert data['address'] == '12 Main St'
    assert data['gender'] == 'female'


def test_student_validation_errors(client, admin_headers):
    bad_code = client.post('/api/students', json={'student_code': 'ABC', 'enrollment_date': '2024-09-01'},
                           headers=admin_headers)
    assert bad_code.status_code == 400
    young = date.today().replace(year=date.today().year - 10).isoformat()
    too_young = client.post('/api/students', json={
        'student_code': 'STU2024002', 'enrollment_date': '2024-09-01', 'date_of_birth': young,
    }, headers=admin_headers)
    assert too_young.status_code == 400
    assert any('at least 16' in m for m in too_young.json()['message'])
    semester = client.post('/api/students', json={
        'student_code': 'STU2024003', 'enrollment_date': '2024-09-01', 'semester': 9,
    }, headers=admin_headers)
    assert semester.status_code == 400


def test_duplicate_student_code_conflicts(client, admin_headers):
    _student(client, admin_headers)
    r = client.post('/api/students', json={'student_code': 'stu2024001', 'enrollment_date': '2024-09-01'},
                    headers=admin_headers)
    assert r.status_code == 409
    assert r.json()['message'] == 'Student ID already exists'


def test_list_filters_and_pagination(client, admin_headers, teacher_headers):
    for i in range(3):
        _student(client, admin_headers, code=f'STU2024{i:03d}', semester=1, current_year=1)
    _student(client, admin_headers, code='STU2023999', semester=3, current_year=2, gender='male')

    page = client.get('/api/students', params={'page': 1, 'limit': 2}, headers=teacher_headers).json()
    assert len(page['data']) == 2
    assert page['meta'] == {'page': 1, 'limit': 2, 'total': 4, 'total_pages': 2,
                            'has_next': True, 'has_previous': False}
    by_year = client.get('/api/students', params={'year': 2}, headers=teacher_headers).json()
    assert [s['student_code'] for s in by_year['data']] == ['STU2023999']
    by_search = client.get('/api/students', params={'search': '2024'}, headers=teacher_headers).json()
    assert by_search['meta']['total'] == 3
    too_big = client.get('/api/students', params={'limit': 500}, headers=teacher_headers)
    assert too_big.status_code == 400


def test_teacher_cannot_create_student(client, teacher_headers):
    r = client.post('/api/students', json={'student_code': 'STU2024001', 'enrollment_date': '2024-09-01'},
                    headers=teacher_headers)
    assert r.status_code == 403


def test_soft_delete_restore_and_deleted_list(client, admin_headers):
    s = _student(client, admin_headers)
    assert client.delete(f"/api/students/{s['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/students/{s['id']}", headers=admin_headers).status_code == 404
    deleted = client.get('/api/students/deleted', headers=admin_headers).json()
    assert deleted['meta']['total'] == 1
    assert client.post(f"/api/students/{s['id']}/restore", headers=admin_headers).status_code == 200
    assert client.post(f"/api/students/{s['id']}/restore", headers=admin_headers).status_code == 409
    assert client.get(f"/api/students/{s['id']}", headers=admin_headers).status_code == 200


def test_get_student_includes_enrollments(client, admin_headers):
    s = _student(client, admin_headers)
    course = client.post('/api/courses', json={'course_code': 'cs101', 'course_name': 'Intro', 'credits': 3},
                         headers=admin_headers).json()['data']
    client.post('/api/enrollments', json={'student_id': s['id'], 'course_id': course['id']}, headers=admin_headers)
    detail = client.get(f"/api/students/{s['id']}", headers=admin_headers).json()['data']
    assert [e['course_id'] for e in detail['enrollments']] == [course['id']]


def test_students_only_see_their_own_grades(client, admin_headers, make_user, login):
    owner = make_user(models.Role.STUDENT)
    other = make_user(models.Role.STUDENT)
    mine = _student(client, admin_headers, code='STU2024001', user_id=str(owner.id))
    theirs = _student(client, admin_headers, code='STU2024002', user_id=str(other.id))
    headers = login(owner.email)
    assert client.get(f"/api/students/{mine['id']}/grades", headers=headers).status_code == 200
    assert client.get(f"/api/students/{mine['id']}/attendance", headers=headers).status_code == 200
    assert client.get(f"/api/students/{theirs['id']}/grades", headers=headers).status_code == 403


def test_user_can_only_link_one_student(client, admin_headers, make_user):
    user = make_user(models.Role.STUDENT)
    _student(client, admin_headers, code='STU2024001', user_id=str(user.id))
    r = client.post('/api/students', json={
        'student_code': 'STU2024002', 'enrollment_date': '2024-09-01', 'user_id': str(user.id),
    }, headers=admin_headers)
    assert r.status_code == 409


def test_csv_export_and_import(client, admin_headers, make_user):
    user = make_user(models.Role.STUDENT, first_name='Ada', last_name='Lovelace')
    _student(client, admin_headers, code='STU2024001', user_id=str(user.id), phone='5551234')
    r = client.get('/api/students/export', headers=admin_headers)
    assert r.status_code == 200
    assert r.headers['content-type'].startswith('text/csv')
    lines = r.text.strip().split('\n')
    assert lines[0].startswith('"ID","Student ID","First Name"')
    assert '"STU2024001"' in lines[1] and '"Ada"' in lines[1] and '"Active"' in lines[1]

    csv_text = (
        'Student ID,Enrollment Date,Gender,Phone\n'
        'STU2024002,2024-09-01,male,5550001\n'
        'STU2024001,2024-09-01,,\n'
        'BADCODE,2024-09-01,,\n'
    )
    files = {'file': ('students.csv', io.BytesIO(csv_text.encode()), 'text/csv')}
    imported = client.post('/api/students/import', files=files, headers=admin_headers)
    assert imported.status_code == 200
    result = imported.json()['data']
    assert result['success'] == 1
    assert result['failed'] == 2
    assert result['errors'][0] == 'Row 3: Student ID already exists'
    assert result['errors'][1].startswith('Row 4:')


def test_bulk_actions(client, admin_headers):
    a = _student(client, admin_headers, code='STU2024001')
    b = _student(client, admin_headers, code='STU2024002')
    empty = client.post('/api/students/bulk/delete', json={'ids': []}, headers=admin_headers)
    assert empty.status_code == 400
    r = client.post('/api/students/bulk/deactivate', json={'ids': [a['id'], b['id']]}, headers=admin_headers)
    assert r.json()['data']['affected'] == 2
    listed = client.get('/api/students', headers=admin_headers).json()
    assert listed['meta']['total'] == 0
    r = client.post('/api/students/bulk/activate', json={'ids': [a['id']]}, headers=admin_headers)
    assert r.json()['data']['affected'] == 1
    listed = client.get('/api/students', headers=admin_headers).json()
    assert [s['id'] for s in listed['data']] == [a['id']]
