from helpers import course, create, student


def _setup(client, headers):
    return course(client, headers), student(client, headers)


def test_grade_score_cannot_exceed_max(client, admin_headers, teacher_headers):
    c, s = _setup(client, admin_headers)
    base = {'student_id': s['id'], 'course_id': c['id'], 'assessment_type': 'quiz', 'assessment_name': 'Quiz 1'}
    r = client.post('/api/grades', json={**base, 'max_score': 10, 'score_obtained': 12}, headers=teacher_headers)
    assert r.status_code == 400
    g = create(client, '/api/grades', {**base, 'max_score': 10, 'score_obtained': 8}, teacher_headers)
    bad = client.put(f"/api/grades/{g['id']}", json={'max_score': 5}, headers=teacher_headers)
    assert bad.status_code == 400
    ok = client.put(f"/api/grades/{g['id']}", json={'score_obtained': 9.5}, headers=teacher_headers)
    assert ok.json()['data']['score_obtained'] == 9.5


def test_grades_by_course_and_type(client, admin_headers, teacher_headers):
    c, s = _setup(client, admin_headers)
    for kind in ('quiz', 'quiz', 'exam'):
        create(client, '/api/grades', {
            'student_id': s['id'], 'course_id': c['id'], 'assessment_type': kind,
            'assessment_name': kind.title(), 'max_score': 100, 'score_obtained': 70,
        }, teacher_headers)
    quizzes = client.get(f"/api/grades/course/{c['id']}", params={'assessment_type': 'quiz'},
                         headers=teacher_headers).json()
    assert quizzes['meta']['total'] == 2
    everything = client.get('/api/grades', params={'student_id': s['id']}, headers=teacher_headers).json()
    assert everything['meta']['total'] == 3


def test_duplicate_attendance_for_day_conflicts(client, admin_headers, teacher_headers):
    c, s = _setup(client, admin_headers)
    payload = {'student_id': s['id'], 'course_id': c['id'], 'date': '2024-10-01', 'status': 'present'}
    create(client, '/api/attendance', payload, teacher_headers)
    r = client.post('/api/attendance', json=payload, headers=teacher_headers)
    assert r.status_code == 409
    assert r.json()['message'] == 'Attendance record already exists for this date'


def test_bulk_attendance_upserts(client, admin_headers, teacher_headers):
    c = course(client, admin_headers)
    a = student(client, admin_headers, code='STU2024001')
    b = student(client, admin_headers, code='STU2024002')
    first = client.post('/api/attendance/bulk', json={
        'course_id': c['id'], 'date': '2024-10-01',
        'records': [{'student_id': a['id'], 'status': 'present'}, {'student_id': b['id'], 'status': 'absent'}],
    }, headers=teacher_headers)
    assert first.status_code == 201
    assert first.json()['data']['recorded'] == 2

    again = client.post('/api/attendance/bulk', json={
        'course_id': c['id'], 'date': '2024-10-01',
        'records': [{'student_id': b['id'], 'status': 'excused', 'notes': 'doctor'}],
    }, headers=teacher_headers)
    assert again.json()['data']['records'][0]['status'] == 'excused'
    listed = client.get('/api/attendance', params={'course_id': c['id']}, headers=teacher_headers).json()
    assert listed['meta']['total'] == 2

    empty = client.post('/api/attendance/bulk', json={'course_id': c['id'], 'date': '2024-10-01', 'records': []},
                        headers=teacher_headers)
    assert empty.status_code == 400


def test_course_report_and_date_range(client, admin_headers, teacher_headers):
    c, s = _setup(client, admin_headers)
    for day, status in (('2024-10-01', 'present'), ('2024-10-02', 'late'), ('2024-10-03', 'absent'),
                        ('2024-10-04', 'present')):
        create(client, '/api/attendance', {'student_id': s['id'], 'course_id': c['id'], 'date': day,
                                           'status': status}, teacher_headers)
    report = client.get(f"/api/attendance/report/course/{c['id']}", headers=teacher_headers).json()['data']
    assert report == [{
        'student_id': s['id'], 'student_code': 'STU2024001', 'total': 4,
        'present': 2, 'absent': 1, 'late': 1, 'excused': 0, 'attendance_rate': 75.0,
    }]
    window = client.get(f"/api/courses/{c['id']}/attendance",
                        params={'start_date': '2024-10-02', 'end_date': '2024-10-03'},
                        headers=teacher_headers).json()
    assert [r['date'] for r in window['data']] == ['2024-10-03', '2024-10-02']


def test_students_cannot_record_attendance(client, admin_headers, make_user, login):
    from campus import models

    c, s = _setup(client, admin_headers)
    headers = login(make_user(models.Role.STUDENT).email)
    r = client.post('/api/attendance', json={
        'student_id': s['id'], 'course_id': c['id'], 'date': '2024-10-01', 'status': 'present',
    }, headers=headers)
    assert r.status_code == 403
