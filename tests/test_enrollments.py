import datetime

import pytest

from academics.models import Enrollment, Grade
from academics.services import fetch_enrollments_total_pages, fetch_filtered_enrollments


@pytest.mark.django_db
def test_registrar_enrolls_student_with_default_date(api, registrar, student, course, semester):
    response = api(registrar.user).post(
        "/api/enrollments/", {"student": student.pk, "course": course.pk, "semester": semester.pk}
    )
    assert response.status_code == 201
    assert response.json()["enrollment_date"] == datetime.date.today().isoformat()


@pytest.mark.django_db
def test_duplicate_enrollment_is_rejected(api, registrar, enrollment):
    response = api(registrar.user).post(
        "/api/enrollments/",
        {"student": enrollment.student_id, "course": enrollment.course_id, "semester": enrollment.semester_id},
    )
    assert response.status_code == 400
    assert response.json()["details"]["__all__"] == ["The student is already enrolled in this course for the semester."]
    assert Enrollment.objects.count() == 1


@pytest.mark.django_db
def test_course_must_run_in_enrollment_semester(api, registrar, student, course, next_semester):
    response = api(registrar.user).post(
        "/api/enrollments/", {"student": student.pk, "course": course.pk, "semester": next_semester.pk}
    )
    assert response.status_code == 400
    assert "course" in response.json()["details"]


@pytest.mark.django_db
def test_enrollment_search_and_pages(make_student, course, semester, settings):
    settings.PORTAL_PAGE_SIZE = 2
    for index in range(3):
        Enrollment.objects.create(student=make_student(last_name=f"Mutua{index}"), course=course, semester=semester)
    Enrollment.objects.create(student=make_student(first_name="Zed", last_name="Omondi"), course=course, semester=semester)

    assert fetch_enrollments_total_pages() == 2
    assert fetch_enrollments_total_pages("mutua") == 2
    assert fetch_enrollments_total_pages("omondi") == 1
    assert fetch_enrollments_total_pages("nobody") == 0
    assert len(fetch_filtered_enrollments("mutua", page=2)) == 1
    assert len(fetch_filtered_enrollments("CS201", page=1)) == 2


@pytest.mark.django_db
def test_enrollment_list_is_paginated(api, registrar, enrollment):
    body = api(registrar.user).get("/api/enrollments/", {"q": "data structures"}).json()
    assert body["count"] == 1
    assert body["page"] == 1
    assert body["total_pages"] == 1
    assert body["results"][0]["id"] == enrollment.pk


@pytest.mark.django_db
def test_enrollment_exists_endpoint(api, registrar, enrollment, next_semester):
    client = api(registrar.user)
    params = {"student": enrollment.student_id, "course": enrollment.course_id, "semester": enrollment.semester_id}
    assert client.get("/api/enrollments/exists/", params).json() == {"exists": True}
    params["semester"] = next_semester.pk
    assert client.get("/api/enrollments/exists/", params).json() == {"exists": False}
    missing = client.get("/api/enrollments/exists/", {"student": enrollment.student_id})
    assert missing.status_code == 400
    assert set(missing.json()["details"]) == {"course", "semester"}


@pytest.mark.django_db
def test_course_enrollments_can_hide_graded(api, lecturer, course, semester, enrollment, make_student):
    ungraded = Enrollment.objects.create(student=make_student(first_name="John"), course=course, semester=semester)
    Grade.objects.create(enrollment=enrollment, cat_score=10)
    body = api(lecturer.user).get(
        f"/api/courses/{course.pk}/enrollments/", {"semester": semester.pk, "without_grades": "true"}
    ).json()
    assert [row["id"] for row in body["results"]] == [ungraded.pk]


@pytest.mark.django_db
def test_semester_enrollment_statistics(api, registrar, enrollment, semester):
    body = api(registrar.user).get(f"/api/semesters/{semester.pk}/enrollment-stats/").json()
    assert body["results"] == [
        {"course_id": enrollment.course_id, "course_code": "CS201", "course_name": "Data Structures", "enrollments": 1}
    ]


@pytest.mark.django_db
def test_student_role_cannot_list_enrollments(api, student):
    assert api(student.user).get("/api/enrollments/").status_code == 403
