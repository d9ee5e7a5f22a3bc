from __future__ import annotations

import datetime
import json
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.test import Client

from academics.models import Course, Department, Enrollment, Program, Semester, StaffProfile, StudentProfile

User = get_user_model()


class ApiClient:
    """Thin wrapper around the Django test client speaking JSON."""

    def __init__(self, user=None):
        self.client = Client()
        if user is not None:
            self.client.force_login(user)

    def _send(self, method, path, data=None, **params):
        handler = getattr(self.client, method)
        if method == "get":
            return handler(path, data or params)
        body = json.dumps(data if data is not None else {}, default=str)
        return handler(path, body, content_type="application/json")

    def get(self, path, data=None, **params):
        return self._send("get", path, data, **params)

    def post(self, path, data=None):
        return self._send("post", path, data)

    def put(self, path, data=None):
        return self._send("put", path, data)

    def patch(self, path, data=None):
        return self._send("patch", path, data)

    def delete(self, path):
        return self._send("delete", path)


@pytest.fixture
def api():
    return ApiClient


@pytest.fixture
def department(db):
    return Department.objects.create(name="School of Computing")


@pytest.fixture
def other_department(db):
    return Department.objects.create(name="School of Business")


@pytest.fixture
def program(department):
    return Program.objects.create(department=department, name="BSc Computer Science", code="BSCCS", duration_semesters=8)


@pytest.fixture
def semester(db):
    return Semester.objects.create(
        name="2025 Spring", start_date=datetime.date(2025, 1, 13), end_date=datetime.date(2025, 5, 16)
    )


@pytest.fixture
def next_semester(db):
    return Semester.objects.create(
        name="2025 Fall", start_date=datetime.date(2025, 9, 1), end_date=datetime.date(2025, 12, 19)
    )


@pytest.fixture
def make_staff(department):
    def _make(role: str, email: str | None = None, dept=None, first_name="Pat", last_name="Kimani"):
        email = email or f"{role}@example.com"
        user = User.objects.create_user(username=email, email=email, password="secret-pass-123")
        return StaffProfile.objects.create(
            user=user,
            department=dept or department,
            first_name=first_name,
            last_name=last_name,
            email=email,
            position=role.title(),
            role=role,
        )

    return _make


@pytest.fixture
def admin_user(db):
    return User.objects.create_superuser(username="admin", email="admin@example.com", password="admin123")


@pytest.fixture
def registrar(make_staff):
    return make_staff("registrar")


@pytest.fixture
def accountant(make_staff):
    return make_staff("accountant")


@pytest.fixture
def lecturer(make_staff):
    return make_staff("lecturer", first_name="Carol", last_name="Njeri")


@pytest.fixture
def course(program, semester, lecturer):
    return Course.objects.create(
        program=program, semester=semester, lecturer=lecturer, name="Data Structures", code="CS201", credits=Decimal("3.00")
    )


@pytest.fixture
def make_student(program, semester):
    counter = {"value": 0}

    def _make(first_name="Jane", last_name="Doe", email=None, current_semester=None):
        counter["value"] += 1
        email = email or f"student{counter['value']}@example.com"
        user = User.objects.create_user(username=email, email=email, password="secret-pass-123")
        return StudentProfile.objects.create(
            user=user,
            program=program,
            department=program.department,
            current_semester=current_semester or semester,
            first_name=first_name,
            last_name=last_name,
            email=email,
        )

    return _make


@pytest.fixture
def student(make_student):
    return make_student()


@pytest.fixture
def enrollment(student, course, semester):
    return Enrollment.objects.create(student=student, course=course, semester=semester)
