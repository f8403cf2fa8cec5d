"""Small request helpers shared by the API tests."""


def create(client, path, payload, headers):
    r = client.post(path, json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()['data']


def student(client, headers, code='STU2024001', **extra):
    return create(client, '/api/students', {'student_code': code, 'enrollment_date': '2024-09-01', **extra}, headers)


def course(client, headers, code='CS101', **extra):
    payload = {'course_code': code, 'course_name': f'Course {code}', 'credits': 3, **extra}
    return create(client, '/api/courses', payload, headers)
