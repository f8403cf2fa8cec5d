from helpers import course, create


def _room(client, headers, number='A-101'):
    return create(client, '/api/scheduling/classrooms', {'room_number': number, 'building': 'Main',
                                                         'capacity': 40}, headers)


def _slot(client, headers, course_id, room_id, start, end, day=1):
    return client.post('/api/scheduling/schedules', json={
        'course_id': course_id, 'classroom_id': room_id, 'day_of_week': day,
        'start_time': start, 'end_time': end,
    }, headers=headers)


def test_overlapping_booking_conflicts(client, admin_headers):
    c = course(client, admin_headers)
    room = _room(client, admin_headers)
    assert _slot(client, admin_headers, c['id'], room['id'], '09:00', '10:30').status_code == 201

    clash = _slot(client, admin_headers, c['id'], room['id'], '10:00', '11:00')
    assert clash.status_code == 409
    assert clash.json()['message'] == 'Schedule conflict: classroom is already booked at this time'
    # back-to-back slots and other days are fine
    assert _slot(client, admin_headers, c['id'], room['id'], '10:30', '12:00').status_code == 201
    assert _slot(client, admin_headers, c['id'], room['id'], '09:00', '10:30', day=2).status_code == 201


def test_invalid_times(client, admin_headers):
    c = course(client, admin_headers)
    room = _room(client, admin_headers)
    assert _slot(client, admin_headers, c['id'], room['id'], '11:00', '10:00').status_code == 400
    assert _slot(client, admin_headers, c['id'], room['id'], '25:00', '26:00').status_code == 400


def test_update_ignores_its_own_slot(client, admin_headers):
    c = course(client, admin_headers)
    room = _room(client, admin_headers)
    slot = _slot(client, admin_headers, c['id'], room['id'], '09:00', '10:00').json()['data']
    r = client.patch(f"/api/scheduling/schedules/{slot['id']}", json={'end_time': '10:30'}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()['data']['end_time'] == '10:30:00'


def test_classroom_with_schedules_cannot_be_deleted(client, admin_headers):
    c = course(client, admin_headers)
    room = _room(client, admin_headers)
    slot = _slot(client, admin_headers, c['id'], room['id'], '09:00', '10:00').json()['data']
    assert client.delete(f"/api/scheduling/classrooms/{room['id']}", headers=admin_headers).status_code == 409
    client.delete(f"/api/scheduling/schedules/{slot['id']}", headers=admin_headers)
    assert client.delete(f"/api/scheduling/classrooms/{room['id']}", headers=admin_headers).status_code == 200


def test_schedule_listings(client, admin_headers, teacher):
    taught = course(client, admin_headers, code='CS101', teacher_ids=[str(teacher.id)])
    other = course(client, admin_headers, code='CS102')
    room = _room(client, admin_headers)
    _slot(client, admin_headers, taught['id'], room['id'], '09:00', '10:00')
    _slot(client, admin_headers, other['id'], room['id'], '11:00', '12:00')

    mine = client.get('/api/scheduling/schedules', params={'teacher_id': str(teacher.id)},
                      headers=admin_headers).json()
    assert [s['course_id'] for s in mine['data']] == [taught['id']]
    in_room = client.get(f"/api/scheduling/classrooms/{room['id']}/schedules", headers=admin_headers).json()
    assert [s['start_time'] for s in in_room['data']] == ['09:00:00', '11:00:00']
    for_course = client.get(f"/api/scheduling/schedules/course/{other['id']}", headers=admin_headers).json()
    assert len(for_course['data']) == 1
