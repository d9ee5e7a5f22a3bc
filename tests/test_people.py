import datetime

import pytest
from django.contrib.auth import get_user_model

from academics.models import ActivityLog, Department, Program, StudentProfile

User = get_user_model()


def student_payload(program, semester, **overrides):
    data = {
        "program": program.pk,
        "department": program.department_id,
        "current_semester": semester.pk,
        "first_name": "Amina",
        "last_name": "Hassan",
        "email": "amina@example.com",
    }
    data.update(overrides)
    return data


@pytest.mark.django_db
def test_student_numbers_are_generated_in_sequence(make_student, program, department):
    first = make_student()
    second = make_student(first_name="John")
    year = datetime.date.today().year
    assert first.student_number == f"{year}{department.pk:03d}001"
    assert second.student_number == f"{year}{department.pk:03d}002"
    assert first.registration_number == f"BSCCS/0001/{year}"
    assert second.registration_number == f"BSCCS/0002/{year}"


@pytest.mark.django_db
def test_registrar_creates_student_with_login(api, registrar, program, semester, settings):
    response = api(registrar.user).post("/api/students/", student_payload(program, semester, email="Amina@Example.com"))
    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "amina@example.com"
    assert body["registration_number"].startswith("BSCCS/")

    user = User.objects.get(pk=body["user_id"])
    assert user.username == "amina@example.com"
    assert user.check_password(settings.DEFAULT_INITIAL_PASSWORD)
    assert ActivityLog.objects.filter(action="create", target_id=body["id"], user=registrar.user).exists()


@pytest.mark.django_db
def test_duplicate_email_is_rejected(api, registrar, program, semester, student):
    response = api(registrar.user).post("/api/students/", student_payload(program, semester, email=student.email))
    assert response.status_code == 400
    assert "email" in response.json()["details"]


@pytest.mark.django_db
def test_program_must_belong_to_department(api, registrar, program, semester, other_department):
    response = api(registrar.user).post(
        "/api/students/", student_payload(program, semester, department=other_department.pk)
    )
    assert response.status_code == 400
    assert not StudentProfile.objects.exists()


@pytest.mark.django_db
def test_lecturer_cannot_create_students(api, lecturer, program, semester):
    response = api(lecturer.user).post("/api/students/", student_payload(program, semester))
    assert response.status_code == 403


@pytest.mark.django_db
def test_bulk_create_reports_each_row(api, registrar, program, semester, student):
    rows = [
        student_payload(program, semester, email="one@example.com"),
        student_payload(program, semester, email=student.email),
        student_payload(program, semester, email="two@example.com", first_name=""),
        student_payload(program, semester, email="three@example.com"),
    ]
    response = api(registrar.user).post("/api/students/bulk/", {"students": rows})
    assert response.status_code == 200
    body = response.json()
    assert body["created"] == 2
    assert body["failed"] == 2
    assert [row["success"] for row in body["results"]] == [True, False, False, True]
    assert "first_name" in body["results"][2]["errors"]
    assert StudentProfile.objects.count() == 3


@pytest.mark.django_db
def test_bulk_create_requires_rows(api, registrar):
    response = api(registrar.user).post("/api/students/bulk/", {"students": []})
    assert response.status_code == 400
    assert "students" in response.json()["details"]


@pytest.mark.django_db
def test_student_search_matches_full_name(api, registrar, make_student):
    make_student(first_name="Grace", last_name="Wanjiku")
    make_student(first_name="Peter", last_name="Otieno")
    body = api(registrar.user).get("/api/students/", {"q": "grace wanj"}).json()
    assert [row["full_name"] for row in body["results"]] == ["Grace Wanjiku"]


@pytest.mark.django_db
def test_updating_student_email_updates_login(api, registrar, student):
    response = api(registrar.user).patch(f"/api/students/{student.pk}/", {"email": "new.address@example.com"})
    assert response.status_code == 200
    student.user.refresh_from_db()
    assert student.user.username == "new.address@example.com"


@pytest.mark.django_db
def test_deleting_student_removes_login(api, registrar, student):
    user_id = student.user_id
    response = api(registrar.user).delete(f"/api/students/{student.pk}/")
    assert response.json() == {"deleted": True, "id": student.pk}
    assert not User.objects.filter(pk=user_id).exists()


@pytest.mark.django_db
def test_student_detail_includes_enrollments_and_gpa(api, registrar, enrollment):
    body = api(registrar.user).get(f"/api/students/{enrollment.student_id}/").json()
    assert [item["course_code"] for item in body["enrollments"]] == ["CS201"]
    assert body["gpa"] == "0.00"


@pytest.mark.django_db
def test_staff_account_gets_admin_flag_only_for_admin_role(api, admin_user, department):
    client = api(admin_user)
    payload = {"department": department.pk, "first_name": "Ann", "last_name": "Lee", "position": "Officer"}
    admin_staff = client.post("/api/staff/", dict(payload, email="ann@example.com", role="admin")).json()
    clerk = client.post("/api/staff/", dict(payload, email="bo@example.com", role="staff")).json()
    assert User.objects.get(pk=admin_staff["user_id"]).is_staff is True
    assert User.objects.get(pk=clerk["user_id"]).is_staff is False


@pytest.mark.django_db
def test_staff_filtered_by_role(api, registrar, lecturer, accountant):
    body = api(registrar.user).get("/api/staff/", {"role": "lecturer"}).json()
    assert [row["id"] for row in body["results"]] == [lecturer.pk]


@pytest.mark.django_db
def test_department_head_must_be_member(api, registrar, department, other_department, make_staff):
    outsider = make_staff("staff", email="out@example.com", dept=other_department)
    member = make_staff("hod", email="hod@example.com")
    client = api(registrar.user)

    rejected = client.put(f"/api/departments/{department.pk}/head/", {"staff": outsider.pk})
    assert rejected.status_code == 400

    accepted = client.put(f"/api/departments/{department.pk}/head/", {"staff": member.pk})
    assert accepted.status_code == 200
    assert accepted.json()["head"] == {"id": member.pk, "full_name": member.full_name}

    cleared = client.delete(f"/api/departments/{department.pk}/head/")
    assert cleared.json()["head"] is None


@pytest.mark.django_db
def test_department_in_use_cannot_be_deleted(api, registrar, department, program):
    response = api(registrar.user).delete(f"/api/departments/{department.pk}/")
    assert response.status_code == 400
    assert "Programs" in response.json()["error"]
    assert Department.objects.filter(pk=department.pk).exists()


@pytest.mark.django_db
def test_program_code_is_upper_cased_and_counted(api, registrar, department):
    response = api(registrar.user).post(
        "/api/programs/", {"department": department.pk, "name": "Diploma in IT", "code": "dit", "duration_semesters": 4}
    )
    assert response.status_code == 201
    assert Program.objects.get(pk=response.json()["id"]).code == "DIT"
    listing = api(registrar.user).get("/api/programs/").json()
    assert listing["results"][0]["course_count"] == 0


@pytest.mark.django_db
def test_semester_must_end_after_start(api, registrar):
    response = api(registrar.user).post(
        "/api/semesters/", {"name": "Broken", "start_date": "2025-05-01", "end_date": "2025-04-01"}
    )
    assert response.status_code == 400


@pytest.mark.django_db
def test_roles_endpoint_reports_current_role(api, student):
    body = api(student.user).get("/api/roles/").json()
    assert body["current"] == "student"
    assert {"value": "hod", "label": "Head of department"} in body["results"]

