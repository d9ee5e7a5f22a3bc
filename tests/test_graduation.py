from decimal import Decimal

import pytest

from academics.models import Enrollment, Grade
from academics.services import generate_transcript, graduation_status


def graded(student, course, semester, cat, exam):
    enrollment = Enrollment.objects.create(student=student, course=course, semester=semester)
    return Grade.objects.create(enrollment=enrollment, cat_score=Decimal(cat), exam_score=Decimal(exam))


@pytest.mark.parametrize(
    "completion, has_transcript, status",
    [("99.99", True, "pending"), ("100", False, "approved"), ("100", True, "completed"), ("0", False, "pending")],
)
def test_graduation_status(completion, has_transcript, status):
    transcript = object() if has_transcript else None
    assert graduation_status(Decimal(completion), transcript) == status


@pytest.mark.django_db
def test_graduation_list_reports_credits_and_stats(api, registrar, course, semester, make_student):
    finished = make_student(first_name="Ada", last_name="Achieng")
    failing = make_student(first_name="Ben", last_name="Barasa")
    idle = make_student(first_name="Cy", last_name="Cheruiyot")
    graded(finished, course, semester, "25", "50")
    graded(failing, course, semester, "10", "20")

    body = api(registrar.user).get("/api/graduation/").json()

    assert [row["id"] for row in body["candidates"]] == [finished.pk, failing.pk, idle.pk]
    rows = {row["id"]: row for row in body["candidates"]}
    assert rows[finished.pk]["status"] == "approved"
    assert Decimal(rows[finished.pk]["completion_percentage"]) == Decimal("100")
    assert Decimal(rows[failing.pk]["credits_completed"]) == Decimal("0")
    assert Decimal(rows[failing.pk]["total_credits"]) == Decimal("3")
    assert rows[failing.pk]["status"] == "pending"
    assert Decimal(rows[idle.pk]["completion_percentage"]) == Decimal("0")
    assert body["stats"] == {"total": 3, "pending": 2, "approved": 1, "completed": 0}


@pytest.mark.django_db
def test_transcript_completes_graduation(api, registrar, course, semester, make_student):
    finished = make_student(first_name="Ada", last_name="Achieng")
    make_student(first_name="Ben", last_name="Barasa")
    graded(finished, course, semester, "25", "50")
    generate_transcript(finished, semester)

    body = api(registrar.user).get("/api/graduation/", {"status": "completed"}).json()

    assert [row["id"] for row in body["candidates"]] == [finished.pk]
    assert body["candidates"][0]["gpa"] == "4.00"
    assert body["candidates"][0]["transcript_generated"] is True
    assert body["stats"] == {"total": 2, "pending": 1, "approved": 0, "completed": 1}


@pytest.mark.django_db
def test_graduation_list_filters(api, registrar, program, other_department, make_student):
    make_student(first_name="Grace", last_name="Wanjiku")
    client = api(registrar.user)
    assert client.get("/api/graduation/", {"q": "grace wan"}).json()["stats"]["total"] == 1
    assert client.get("/api/graduation/", {"department": other_department.pk}).json()["stats"]["total"] == 0

    rejected = client.get("/api/graduation/", {"program": "abc", "status": "graduated"})
    assert rejected.status_code == 400
    assert set(rejected.json()["details"]) == {"program", "status"}


@pytest.mark.django_db
def test_graduation_list_is_for_registrars(api, lecturer, student):
    assert api(lecturer.user).get("/api/graduation/").status_code == 403
    assert api(student.user).get("/api/graduation/").status_code == 403
