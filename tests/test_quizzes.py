import datetime
from decimal import Decimal

import pytest
from django.utils import timezone

from academics.models import Quiz, QuizSubmission


@pytest.fixture
def quiz(course, lecturer):
    return Quiz.objects.create(
        course=course,
        created_by=lecturer,
        title="Linked lists",
        total_marks=20,
        quiz_date=timezone.make_aware(datetime.datetime(2025, 3, 3, 9, 0)),
    )


@pytest.mark.django_db
def test_lecturer_creates_quiz_as_author(api, lecturer, course):
    response = api(lecturer.user).post(
        "/api/quizzes/",
        {"course": course.pk, "title": "Stacks", "total_marks": 10, "quiz_date": "2025-03-10T09:00:00"},
    )
    assert response.status_code == 201
    assert response.json()["created_by"]["id"] == lecturer.pk


@pytest.mark.django_db
def test_lecturers_only_see_their_own_quizzes(api, quiz, make_staff):
    other = make_staff("lecturer", email="dave@example.com")
    client = api(other.user)
    assert client.get("/api/quizzes/").json()["count"] == 0
    assert client.get(f"/api/quizzes/{quiz.pk}/").status_code == 403


@pytest.mark.django_db
def test_enrolled_student_submits_once(api, quiz, enrollment):
    client = api(enrollment.student.user)
    response = client.post(f"/api/quizzes/{quiz.pk}/submit/", {"file_url": "https://files.example.com/answers.pdf"})
    assert response.status_code == 201
    assert response.json()["score"] is None

    again = client.post(f"/api/quizzes/{quiz.pk}/submit/", {})
    assert again.status_code == 400
    assert QuizSubmission.objects.count() == 1


@pytest.mark.django_db
def test_unenrolled_student_cannot_submit(api, quiz, student):
    response = api(student.user).post(f"/api/quizzes/{quiz.pk}/submit/", {})
    assert response.status_code == 403


@pytest.mark.django_db
def test_grading_enforces_mark_range(api, lecturer, quiz, enrollment):
    submission = QuizSubmission.objects.create(quiz=quiz, student=enrollment.student)
    client = api(lecturer.user)

    too_high = client.post(f"/api/quizzes/submissions/{submission.pk}/grade/", {"score": "21"})
    assert too_high.status_code == 400
    assert "score" in too_high.json()["details"]

    graded = client.post(f"/api/quizzes/submissions/{submission.pk}/grade/", {"score": "17.5", "feedback": "Good"})
    assert graded.status_code == 200
    assert Decimal(graded.json()["score"]) == Decimal("17.5")


@pytest.mark.django_db
def test_quiz_detail_lists_submissions(api, lecturer, quiz, enrollment):
    QuizSubmission.objects.create(quiz=quiz, student=enrollment.student)
    body = api(lecturer.user).get(f"/api/quizzes/{quiz.pk}/").json()
    assert [item["student"]["id"] for item in body["submissions"]] == [enrollment.student_id]
