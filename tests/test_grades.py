from decimal import Decimal

import pytest

from academics.models import Enrollment, Grade, Transcript, letter_and_points
from academics.services import calculate_student_gpa, generate_transcript


@pytest.mark.parametrize(
    "total, letter, points",
    [
        ("80", "A", "5.00"),
        ("79.99", "B", "4.00"),
        ("70", "B", "4.00"),
        ("60", "C", "3.00"),
        ("50", "D", "2.00"),
        ("40", "E", "1.00"),
        ("39.99", "F", "0.00"),
        ("0", "F", "0.00"),
    ],
)
def test_letter_and_points_follow_grade_bands(total, letter, points):
    assert letter_and_points(Decimal(total)) == (letter, Decimal(points))


@pytest.mark.django_db
def test_grade_derives_total_letter_and_points(enrollment):
    grade = Grade.objects.create(enrollment=enrollment, cat_score=Decimal("25"), exam_score=Decimal("58"))
    grade.refresh_from_db()
    assert grade.total_score == Decimal("83.00")
    assert grade.letter_grade == "A"
    assert grade.gpa == Decimal("5.00")


@pytest.mark.django_db
def test_missing_score_counts_as_zero(enrollment):
    grade = Grade.objects.create(enrollment=enrollment, exam_score=Decimal("45"))
    assert grade.total_score == Decimal("45.00")
    assert grade.letter_grade == "E"


@pytest.mark.django_db
def test_grade_without_scores_has_no_result(enrollment):
    grade = Grade.objects.create(enrollment=enrollment)
    assert grade.total_score is None
    assert grade.letter_grade == ""
    assert grade.gpa is None


@pytest.mark.django_db
def test_partial_update_keeps_other_score(api, registrar, enrollment):
    grade = Grade.objects.create(enrollment=enrollment, cat_score=Decimal("20"), exam_score=Decimal("30"))
    response = api(registrar.user).patch(f"/api/grades/{grade.pk}/", {"exam_score": "55"})
    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["cat_score"]) == Decimal("20")
    assert Decimal(body["total_score"]) == Decimal("75")
    assert body["letter_grade"] == "B"


@pytest.mark.django_db
def test_empty_score_clears_it(api, registrar, enrollment):
    grade = Grade.objects.create(enrollment=enrollment, cat_score=Decimal("25"), exam_score=Decimal("40"))
    response = api(registrar.user).patch(f"/api/grades/{grade.pk}/", {"exam_score": ""})
    assert response.status_code == 200
    grade.refresh_from_db()
    assert grade.exam_score is None
    assert grade.cat_score == Decimal("25.00")
    assert grade.total_score == Decimal("25.00")
    assert grade.letter_grade == "F"


@pytest.mark.django_db
def test_score_out_of_range_is_rejected(api, registrar, enrollment):
    response = api(registrar.user).post("/api/grades/", {"enrollment": enrollment.pk, "exam_score": "101"})
    assert response.status_code == 400
    assert "exam_score" in response.json()["details"]
    assert not Grade.objects.exists()


@pytest.mark.django_db
def test_second_grade_for_enrollment_is_rejected(api, registrar, enrollment):
    Grade.objects.create(enrollment=enrollment, cat_score=Decimal("10"))
    response = api(registrar.user).post("/api/grades/", {"enrollment": enrollment.pk, "cat_score": "20"})
    assert response.status_code == 400
    assert Grade.objects.count() == 1


@pytest.mark.django_db
def test_bulk_course_grades_upsert_and_skip_unknown(api, lecturer, course, semester, make_student, enrollment):
    other = make_student(first_name="John")
    Enrollment.objects.create(student=other, course=course, semester=semester)
    Grade.objects.create(enrollment=enrollment, cat_score=Decimal("10"), exam_score=Decimal("10"))

    response = api(lecturer.user).post(
        f"/api/courses/{course.pk}/grades/",
        {
            "semester": semester.pk,
            "grades": [
                {"student": enrollment.student_id, "exam_score": "60"},
                {"student": other.pk, "cat_score": "28", "exam_score": "50"},
                {"student": 99999, "cat_score": "10"},
            ],
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["created"] == 1
    assert body["updated"] == 1
    assert body["skipped"] == [99999]
    enrollment.grade.refresh_from_db()
    assert enrollment.grade.total_score == Decimal("70.00")


@pytest.mark.django_db
def test_bulk_course_grades_roll_back_on_invalid_row(api, lecturer, course, semester, enrollment, make_student):
    other = make_student(first_name="John")
    Enrollment.objects.create(student=other, course=course, semester=semester)
    response = api(lecturer.user).post(
        f"/api/courses/{course.pk}/grades/",
        {
            "grades": [
                {"student": enrollment.student_id, "cat_score": "20"},
                {"student": other.pk, "cat_score": "-5"},
            ]
        },
    )
    assert response.status_code == 400
    assert "row 2" in response.json()["details"]
    assert not Grade.objects.exists()


@pytest.mark.django_db
def test_gpa_is_plain_average_of_graded_courses(student, course, semester, program, lecturer):
    second = course.__class__.objects.create(
        program=program, semester=semester, lecturer=lecturer, name="Algorithms", code="CS202", credits=Decimal("4")
    )
    first_enrollment = Enrollment.objects.create(student=student, course=course, semester=semester)
    second_enrollment = Enrollment.objects.create(student=student, course=second, semester=semester)
    Grade.objects.create(enrollment=first_enrollment, cat_score=Decimal("30"), exam_score=Decimal("55"))
    Grade.objects.create(enrollment=second_enrollment, cat_score=Decimal("20"), exam_score=Decimal("42"))

    assert calculate_student_gpa(student) == Decimal("4.00")


@pytest.mark.django_db
def test_gpa_defaults_to_zero_without_grades(student):
    assert calculate_student_gpa(student) == Decimal("0.00")


@pytest.mark.django_db
def test_transcript_cgpa_covers_earlier_semesters(student, course, program, lecturer, semester, next_semester):
    later_course = course.__class__.objects.create(
        program=program, semester=next_semester, lecturer=lecturer, name="Compilers", code="CS301", credits=Decimal("3")
    )
    early = Enrollment.objects.create(student=student, course=course, semester=semester)
    late = Enrollment.objects.create(student=student, course=later_course, semester=next_semester)
    Grade.objects.create(enrollment=early, cat_score=Decimal("30"), exam_score=Decimal("55"))
    Grade.objects.create(enrollment=late, cat_score=Decimal("20"), exam_score=Decimal("35"))

    first = generate_transcript(student, semester)
    second = generate_transcript(student, next_semester)

    assert first.gpa == Decimal("5.00")
    assert first.cgpa == Decimal("5.00")
    assert second.gpa == Decimal("2.00")
    assert second.cgpa == Decimal("3.50")


@pytest.mark.django_db
def test_transcript_regeneration_updates_in_place(student, semester):
    generate_transcript(student, semester)
    transcript = generate_transcript(student, semester)
    assert Transcript.objects.filter(student=student, semester=semester).count() == 1
    assert transcript.gpa is None


@pytest.mark.django_db
def test_student_sees_only_own_gpa(api, student, make_student):
    other = make_student(first_name="John")
    assert api(student.user).get(f"/api/students/{student.pk}/gpa/").status_code == 200
    assert api(student.user).get(f"/api/students/{other.pk}/gpa/").status_code == 403
