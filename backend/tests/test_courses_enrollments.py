from campus import models

from helpers import course, create, student


def test_course_code_is_uppercased_and_unique(client, admin_headers):
    c = course(client, admin_headers, code='math201')
    assert c['course_code'] == 'MATH201'
    assert c['teachers'] == []
    r = client.post('/api/courses', json={'course_code': 'MATH201', 'course_name': 'Again', 'credits': 2},
                    headers=admin_headers)
    assert r.status_code == 409


def test_assign_and_clear_teachers(client, admin_headers, teacher, make_user):
    c = course(client, admin_headers, teacher_ids=[str(teacher.id)])
    assert [t['id'] for t in c['teachers']] == [str(teacher.id)]

    by_teacher = client.get('/api/courses', params={'teacher_id': str(teacher.id)}, headers=admin_headers).json()
    assert [x['id'] for x in by_teacher['data']] == [c['id']]

    not_teacher = make_user(models.Role.STUDENT)
    r = client.patch(f"/api/courses/{c['id']}", json={'teacher_ids': [str(not_teacher.id)]}, headers=admin_headers)
    assert r.status_code == 404
    assert str(not_teacher.id) in r.json()['message']

    cleared = client.patch(f"/api/courses/{c['id']}", json={'teacher_ids': []}, headers=admin_headers)
    assert cleared.status_code == 200
    assert cleared.json()['data']['teachers'] == []


def test_students_can_browse_courses_but_not_create(client, admin_headers, make_user, login):
    course(client, admin_headers)
    headers = login(make_user(models.Role.STUDENT).email)
    listed = client.get('/api/courses', headers=headers)
    assert listed.status_code == 200
    assert listed.json()['meta']['total'] == 1
    r = client.post('/api/courses', json={'course_code': 'X100', 'course_name': 'Nope', 'credits': 1}, headers=headers)
    assert r.status_code == 403


def test_course_soft_delete_and_restore(client, admin_headers):
    c = course(client, admin_headers)
    client.delete(f"/api/courses/{c['id']}", headers=admin_headers)
    assert client.get('/api/courses', headers=admin_headers).json()['meta']['total'] == 0
    assert client.get('/api/courses/deleted', headers=admin_headers).json()['meta']['total'] == 1
    assert client.post(f"/api/courses/{c['id']}/restore", headers=admin_headers).status_code == 200


def test_enrollment_duplicate_and_capacity(client, admin_headers):
    c = course(client, admin_headers, max_students=1)
    a = student(client, admin_headers, code='STU2024001')
    b = student(client, admin_headers, code='STU2024002')
    create(client, '/api/enrollments', {'student_id': a['id'], 'course_id': c['id']}, admin_headers)

    dup = client.post('/api/enrollments', json={'student_id': a['id'], 'course_id': c['id']}, headers=admin_headers)
    assert dup.status_code == 409
    full = client.post('/api/enrollments', json={'student_id': b['id'], 'course_id': c['id']}, headers=admin_headers)
    assert full.status_code == 409
    assert full.json()['message'] == 'Course is full'


def test_dropped_enrollment_frees_a_seat(client, admin_headers, teacher_headers):
    c = course(client, admin_headers, max_students=1)
    a = student(client, admin_headers, code='STU2024001')
    b = student(client, admin_headers, code='STU2024002')
    e = create(client, '/api/enrollments', {'student_id': a['id'], 'course_id': c['id']}, admin_headers)
    r = client.patch(f"/api/enrollments/{e['id']}/status", json={'status': 'dropped'}, headers=teacher_headers)
    assert r.json()['data']['status'] == 'dropped'
    create(client, '/api/enrollments', {'student_id': b['id'], 'course_id': c['id']}, admin_headers)

    roster = client.get(f"/api/courses/{c['id']}/students", params={'status': 'active'},
                        headers=teacher_headers).json()
    assert [row['student']['student_code'] for row in roster['data']] == ['STU2024002']


def test_enroll_unknown_course_is_404(client, admin_headers):
    s = student(client, admin_headers)
    r = client.post('/api/enrollments', json={
        'student_id': s['id'], 'course_id': '00000000-0000-0000-0000-000000000001',
    }, headers=admin_headers)
    assert r.status_code == 404
    assert r.json()['message'] == 'Course not found with id: 00000000-0000-0000-0000-000000000001'


def test_final_grade_creates_assessment(client, admin_headers, teacher, teacher_headers):
    c = course(client, admin_headers)
    s = student(client, admin_headers)
    e = create(client, '/api/enrollments', {'student_id': s['id'], 'course_id': c['id']}, admin_headers)

    r = client.patch(f"/api/enrollments/{e['id']}/grade", json={'grade': 'b+'}, headers=teacher_headers)
    assert r.status_code == 200
    data = r.json()['data']
    assert data['enrollment']['grade'] == 'B+'
    assert data['enrollment']['grade_points'] == 3.3
    assert data['grade']['assessment_type'] == 'final'
    assert data['grade']['max_score'] == 4.0
    assert data['grade']['graded_by'] == str(teacher.id)

    unknown = client.patch(f"/api/enrollments/{e['id']}/grade", json={'grade': 'Z'}, headers=teacher_headers)
    assert unknown.status_code == 400


def test_update_and_delete_enrollment(client, admin_headers):
    c = course(client, admin_headers)
    s = student(client, admin_headers)
    e = create(client, '/api/enrollments', {'student_id': s['id'], 'course_id': c['id']}, admin_headers)
    r = client.put(f"/api/enrollments/{e['id']}", json={'grade': 'a-', 'attendance_percentage': 92.5},
                   headers=admin_headers)
    assert r.json()['data']['grade'] == 'A-'
    assert r.json()['data']['grade_points'] == 3.7
    assert client.delete(f"/api/enrollments/{e['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/enrollments/{e['id']}", headers=admin_headers).status_code == 404


def test_update_with_unknown_grade_is_rejected(client, admin_headers):
    c = course(client, admin_headers)
    s = student(client, admin_headers)
    e = create(client, '/api/enrollments', {'student_id': s['id'], 'course_id': c['id']}, admin_headers)
    r = client.put(f"/api/enrollments/{e['id']}", json={'grade': 'Z'}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()['message'] == "Unknown letter grade 'Z'; provide grade_points"
    stored = client.get(f"/api/enrollments/{e['id']}", headers=admin_headers).json()['data']
    assert stored['grade'] is None

    # explicit points make any letter acceptable
    ok = client.put(f"/api/enrollments/{e['id']}", json={'grade': 'P', 'grade_points': 2.5}, headers=admin_headers)
    assert ok.status_code == 200
    assert ok.json()['data']['grade_points'] == 2.5

    # clearing the letter clears its points
    cleared = client.put(f"/api/enrollments/{e['id']}", json={'grade': None}, headers=admin_headers)
    assert cleared.status_code == 200
    assert cleared.json()['data']['grade'] is None
    assert cleared.json()['data']['grade_points'] is None
