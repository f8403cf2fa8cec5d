"""CLI script to create tables, an admin account and optional demo data.
Usage: python scripts/seed.py [--email EMAIL] [--password PASSWORD] [--demo]

Running it twice is safe: existing records are reused, not duplicated.
"""
import sys
import argparse
import os
import pathlib
from datetime import date, timedelta
# Ensure `backend/` is on sys.path so `campus` package imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from campus.database import engine, create_db_and_tables
from campus import models, repositories, schemas, services


def ensure_admin(session: Session, email: str, password: str) -> models.User:
    """Return the admin account for `email`, creating it if needed."""
    repo = repositories.UserRepository(session)
    user = repo.get_by_email(email, include_deleted=True)
    if user:
        print(f'Admin {email} already exists')
        return user
    user = services.UserService(session).create(schemas.UserCreate(
        email=email,
        username='admin',
        password=password,
        first_name='System',
        last_name='Administrator',
        role=models.Role.ADMIN,
    ))
    user.email_verified = True
    repo.save(user)
    print(f'Created admin {email}')
    return user


def seed_demo(session: Session, admin: models.User):
    """Insert a faculty, department, course and active term if missing."""
    faculty = repositories.FacultyRepository(session).get_by_code('ENG')
    if not faculty:
        faculty = services.FacultyService(session).create(
            schemas.FacultyCreate(name='Faculty of Engineering', code='ENG', dean_id=admin.id))
    department = repositories.DepartmentRepository(session).get_by_code('CS')
    if not department:
        department = services.DepartmentService(session).create(
            schemas.DepartmentCreate(name='Computer Science', code='CS', faculty_id=faculty.id))
    if not repositories.CourseRepository(session).get_by_code('CS101'):
        services.CourseService(session).create(schemas.CourseCreate(
            course_code='CS101',
            course_name='Introduction to Programming',
            credits=3,
            department_id=department.id,
            semester=1,
        ), created_by=admin.id)
    if not repositories.AcademicTermRepository(session).get_active():
        today = date.today()
        services.AcademicTermService(session).create(schemas.AcademicTermCreate(
            name=f'Term {today.year}-{today.month:02d}',
            start_date=today,
            end_date=today + timedelta(days=120),
            is_active=True,
        ))
    print('Demo data ready')


def main(email: str, password: str, demo: bool = False):
    create_db_and_tables()
    with Session(engine) as session:
        admin = ensure_admin(session, email, password)
        if demo:
            seed_demo(session, admin)


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--email', default=os.getenv('ADMIN_EMAIL', 'admin@example.com'))
    parser.add_argument('--password', default=os.getenv('ADMIN_PASSWORD', 'Admin@12345'))
    parser.add_argument('--demo', action='store_true', help='Also insert sample faculty/department/course/term')
    args = parser.parse_args()
    main(args.email, args.password, demo=args.demo)
