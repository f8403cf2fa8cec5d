from datetime import date

import pytest

from campus import models, services

from helpers import course, create, student


@pytest.fixture
def dashboard_data(client, admin_headers, teacher, teacher_headers, make_user, login):
    """Two courses (one taught by `teacher`), two students, marks and a class today."""
    learner = make_user(models.Role.STUDENT)
    create(client, '/api/teachers', {'user_id': str(teacher.id), 'employee_id': 'EMP001'}, admin_headers)
    taught = course(client, admin_headers, code='CS101', teacher_ids=[str(teacher.id)])
    other = course(client, admin_headers, code='CS102')
    course(client, admin_headers, code='CS999', is_active=False)
    mine = student(client, admin_headers, code='STU2024001', user_id=str(learner.id))
    peer = student(client, admin_headers, code='STU2024002')

    enrol = {}
    for s, c in ((mine, taught), (peer, taught), (mine, other)):
        enrol[(s['id'], c['id'])] = create(client, '/api/enrollments', {'student_id': s['id'], 'course_id': c['id']},
                                           admin_headers)
    for s, c, status in ((mine, taught, 'present'), (peer, taught, 'late'), (mine, other, 'absent')):
        create(client, '/api/attendance', {'student_id': s['id'], 'course_id': c['id'], 'date': '2024-10-01',
                                           'status': status}, teacher_headers)
    r = client.patch(f"/api/enrollments/{enrol[(mine['id'], taught['id'])]['id']}/grade", json={'grade': 'A'},
                     headers=teacher_headers)
    assert r.status_code == 200

    room = create(client, '/api/scheduling/classrooms', {'room_number': 'A-1', 'capacity': 30}, admin_headers)
    create(client, '/api/scheduling/schedules', {
        'course_id': taught['id'], 'classroom_id': room['id'], 'day_of_week': services.schedule_day(date.today()),
        'start_time': '09:00', 'end_time': '10:00',
    }, admin_headers)
    return {'student_headers': login(learner.email), 'taught': taught, 'other': other}


def test_admin_stats(client, admin_headers, dashboard_data):
    data = client.get('/api/analytics/admin/stats', headers=admin_headers).json()['data']
    assert data == {'total_students': 2, 'total_teachers': 1, 'active_courses': 2, 'avg_attendance': 66.67}


def test_admin_charts(client, admin_headers, dashboard_data):
    data = client.get('/api/analytics/admin/charts', headers=admin_headers).json()['data']
    trend = data['enrollment_trend']
    assert len(trend) == 6
    assert trend[-1] == {'month': date.today().strftime('%Y-%m'), 'enrollments': 3}
    assert sum(point['enrollments'] for point in trend) == 3
    assert data['attendance'] == [
        {'status': 'present', 'count': 1}, {'status': 'absent', 'count': 1},
        {'status': 'late', 'count': 1}, {'status': 'excused', 'count': 0},
    ]
    assert data['grade_distribution'] == [{'grade': 'A', 'count': 1}]
    assert data['performance_trend'][-1]['average_score'] == 100.0
    assert data['performance_trend'][0]['average_score'] is None


def test_teacher_dashboard(client, teacher_headers, dashboard_data):
    stats = client.get('/api/analytics/teacher/stats', headers=teacher_headers).json()['data']
    assert stats == {'my_courses': 1, 'total_students': 2, 'classes_today': 1, 'pending_grades': 1}
    charts = client.get('/api/analytics/teacher/charts', headers=teacher_headers).json()['data']
    counts = {point['status']: point['count'] for point in charts['attendance']}
    # the absence was recorded in a course this teacher does not teach
    assert counts == {'present': 1, 'absent': 0, 'late': 1, 'excused': 0}
    assert charts['grade_distribution'] == [{'grade': 'A', 'count': 1}]


def test_student_dashboard(client, dashboard_data):
    headers = dashboard_data['student_headers']
    stats = client.get('/api/analytics/student/stats', headers=headers).json()['data']
    assert stats == {'enrolled_courses': 2, 'attendance_rate': 50.0, 'gpa': 4.0, 'classes_today': 1}
    charts = client.get('/api/analytics/student/charts', headers=headers).json()['data']
    assert [c['course_code'] for c in charts['course_grades']] == ['CS101', 'CS102']
    assert charts['course_grades'][0]['grade'] == 'A'
    assert charts['course_grades'][1]['grade_points'] is None
    assert charts['grade_progress'][-1]['average_score'] == 100.0


def test_dashboards_are_role_specific(client, admin_headers, teacher_headers, make_user, login):
    assert client.get('/api/analytics/admin/stats', headers=teacher_headers).status_code == 403
    assert client.get('/api/analytics/teacher/stats', headers=admin_headers).status_code == 403
    assert client.get('/api/analytics/student/stats', headers=teacher_headers).status_code == 403
    assert client.get('/api/analytics/admin/charts').status_code == 401

    # a student account without a student record has no dashboard
    loner = make_user(models.Role.STUDENT)
    r = client.get('/api/analytics/student/stats', headers=login(loner.email))
    assert r.status_code == 404


def test_empty_dashboards(client, admin_headers, teacher_headers):
    stats = client.get('/api/analytics/admin/stats', headers=admin_headers).json()['data']
    assert stats == {'total_students': 0, 'total_teachers': 0, 'active_courses': 0, 'avg_attendance': 0.0}
    teacher = client.get('/api/analytics/teacher/stats', headers=teacher_headers).json()['data']
    assert teacher == {'my_courses': 0, 'total_students': 0, 'classes_today': 0, 'pending_grades': 0}


def test_month_keys_and_schedule_day():
    assert services.month_keys(date(2025, 2, 14), 3) == ['2024-12', '2025-01', '2025-02']
    assert services.schedule_day(date(2025, 6, 1)) == 0  # a Sunday
    assert services.schedule_day(date(2025, 6, 7)) == 6
