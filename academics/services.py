"""Academic operations shared by the API views, admin and management commands."""
from __future__ import annotations

import logging
from decimal import Decimal

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.paginator import Paginator
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, Q, Sum, Value
from django.db.models.functions import Concat
from django.forms.models import model_to_dict

from .api import form_errors
from .forms import GradeForm, QuizGradingForm, StudentForm
from .models import (
    TWO_PLACES,
    ActivityLog,
    Course,
    Enrollment,
    Grade,
    StudentProfile,
    TimetableEntry,
    Transcript,
)

logger = logging.getLogger(__name__)
User = get_user_model()


def record_activity(
    user, action: str, target=None, description: str = "", table: str = "", target_id: int | None = None
) -> ActivityLog:
    """Append an audit row for a mutating action.

    ``target`` may be a model instance; its table and primary key are recorded.
    """

    if target is not None:
        table = table or target._meta.db_table
        target_id = target.pk
    entry = ActivityLog.objects.create(
        user=user,
        action=action,
        target_table=table,
        target_id=target_id,
        description=description,
    )
    logger.info("%s %s %s#%s", user, action, table or "-", target_id or "-")
    return entry


def logs_summary() -> dict:
    per_action = dict(
        ActivityLog.objects.values_list("action").annotate(total=Count("id")).order_by("action")
    )
    recent = list(ActivityLog.objects.select_related("user")[:5])
    return {
        "total": ActivityLog.objects.count(),
        "by_action": {code: per_action.get(code, 0) for code, _ in ActivityLog.ACTION_CHOICES},
        "recent": recent,
    }


def _create_account(email: str, first_name: str, last_name: str, is_staff: bool = False):
    if User.objects.filter(username__iexact=email).exists():
        raise ValidationError({"email": "An account with this email already exists."})
    return User.objects.create_user(
        username=email,
        email=email,
        first_name=first_name,
        last_name=last_name,
        password=getattr(settings, "DEFAULT_INITIAL_PASSWORD", "ChangeMe123!"),
        is_staff=is_staff,
    )


def sync_account(profile) -> None:
    """Copy login-relevant profile fields onto the linked user account."""

    user = profile.user
    user.username = profile.email
    user.email = profile.email
    user.first_name = profile.first_name
    user.last_name = profile.last_name
    user.save(update_fields=["username", "email", "first_name", "last_name"])


@transaction.atomic
def create_staff_with_user(form):
    staff = form.save(commit=False)
    staff.user = _create_account(staff.email, staff.first_name, staff.last_name, is_staff=staff.role == "admin")
    staff.save()
    logger.info("Created staff member %s with role %s", staff.email, staff.role)
    return staff


@transaction.atomic
def create_student_with_user(form) -> StudentProfile:
    student = form.save(commit=False)
    student.user = _create_account(student.email, student.first_name, student.last_name)
    student.save()
    logger.info("Created student %s (%s)", student.student_number, student.email)
    return student


@transaction.atomic
def delete_profile_with_user(profile) -> None:
    user = profile.user
    profile.delete()
    user.delete()


def bulk_create_students(rows) -> list[dict]:
    """Create students row by row; a failing row never aborts the rest."""

    results = []
    for index, row in enumerate(rows, start=1):
        form = StudentForm(data=row if isinstance(row, dict) else {})
        if not form.is_valid():
            results.append({"row": index, "success": False, "errors": form_errors(form)})
            continue
        try:
            with transaction.atomic():
                student = create_student_with_user(form)
        except (ValidationError, IntegrityError) as exc:
            message = exc.messages if isinstance(exc, ValidationError) else [str(exc)]
            logger.warning("Bulk student row %s rejected: %s", index, message)
            results.append({"row": index, "success": False, "errors": {"__all__": message}})
            continue
        results.append(
            {
                "row": index,
                "success": True,
                "id": student.pk,
                "student_number": student.student_number,
                "registration_number": student.registration_number,
            }
        )
    return results


def filter_enrollments(query: str = ""):
    enrollments = Enrollment.objects.select_related("student", "course", "semester").order_by(
        "-enrollment_date", "-id"
    )
    query = (query or "").strip()
    if query:
        enrollments = enrollments.filter(
            Q(student__first_name__icontains=query)
            | Q(student__last_name__icontains=query)
            | Q(student__registration_number__icontains=query)
            | Q(course__name__icontains=query)
            | Q(course__code__icontains=query)
            | Q(semester__name__icontains=query)
        )
    return enrollments


def _enrollment_paginator(query: str) -> Paginator:
    return Paginator(filter_enrollments(query), getattr(settings, "PORTAL_PAGE_SIZE", 10))


def fetch_filtered_enrollments(query: str = "", page=1) -> list[Enrollment]:
    return list(_enrollment_paginator(query).get_page(page).object_list)


def fetch_enrollments_total_pages(query: str = "") -> int:
    paginator = _enrollment_paginator(query)
    return paginator.num_pages if paginator.count else 0


def check_enrollment_exists(student, course, semester) -> bool:
    return Enrollment.objects.filter(student=student, course=course, semester=semester).exists()


def courses_by_semester(semester):
    return Course.objects.filter(semester=semester).select_related("program", "lecturer")


def enrollment_statistics(semester) -> list[dict]:
    return list(
        Enrollment.objects.filter(semester=semester)
        .values("course_id", "course__code", "course__name")
        .annotate(enrollments=Count("id"))
        .order_by("course__code")
    )


def course_enrollments(course, semester, without_grades: bool = False):
    enrollments = Enrollment.objects.filter(course=course, semester=semester).select_related("student", "grade")
    if without_grades:
        enrollments = enrollments.filter(grade__isnull=True)
    return enrollments.order_by("student__student_number")


def _average_gpa(grades) -> Decimal | None:
    value = grades.filter(gpa__isnull=False).aggregate(value=Avg("gpa"))["value"]
    if value is None:
        return None
    return Decimal(str(value)).quantize(TWO_PLACES)


def calculate_student_gpa(student) -> Decimal:
    return _average_gpa(Grade.objects.filter(enrollment__student=student)) or Decimal("0.00")


def generate_transcript(student, semester) -> Transcript:
    grades = Grade.objects.filter(enrollment__student=student)
    gpa = _average_gpa(grades.filter(enrollment__semester=semester))
    cgpa = _average_gpa(grades.filter(enrollment__semester__start_date__lte=semester.start_date))
    transcript, created = Transcript.objects.update_or_create(
        student=student,
        semester=semester,
        defaults={"gpa": gpa, "cgpa": cgpa},
    )
    logger.info(
        "%s transcript for %s in %s (gpa=%s, cgpa=%s)",
        "Generated" if created else "Refreshed",
        student.student_number,
        semester,
        gpa,
        cgpa,
    )
    return transcript


def _credits_by_student(enrollments) -> dict:
    rows = enrollments.values("student_id").annotate(credits=Sum("course__credits")).order_by()
    return {row["student_id"]: Decimal(str(row["credits"] or 0)).quantize(TWO_PLACES) for row in rows}


def graduation_status(completion: Decimal, transcript: Transcript | None) -> str:
    if completion < 100:
        return "pending"
    return "completed" if transcript is not None else "approved"


def graduation_list(semester=None, program=None, department=None, status: str = "", query: str = "") -> dict:
    """Credit completion and graduation status for every matching student.

    Passed credits come from graded enrollments with grade points above
    zero. A student with every enrolled credit passed is ``approved``,
    and ``completed`` once a transcript exists for their current
    semester. ``stats`` counts all matches before ``status`` narrows
    the candidate list.
    """

    students = StudentProfile.objects.select_related("program", "department", "current_semester")
    if semester is not None:
        students = students.filter(current_semester=semester)
    if program is not None:
        students = students.filter(program=program)
    if department is not None:
        students = students.filter(department=department)
    if query:
        students = students.annotate(search_name=Concat("first_name", Value(" "), "last_name")).filter(
            Q(search_name__icontains=query)
            | Q(registration_number__icontains=query)
            | Q(student_number__icontains=query)
        )
    students = list(students.order_by("last_name", "first_name", "pk"))

    enrollments = Enrollment.objects.filter(student__in=students)
    total_credits = _credits_by_student(enrollments)
    passed_credits = _credits_by_student(enrollments.filter(grade__gpa__gt=0))
    transcripts = {
        (item.student_id, item.semester_id): item for item in Transcript.objects.filter(student__in=students)
    }

    candidates = []
    for student in students:
        total = total_credits.get(student.pk, Decimal("0.00"))
        passed = passed_credits.get(student.pk, Decimal("0.00"))
        completion = (passed * 100 / total).quantize(TWO_PLACES) if total else Decimal("0.00")
        transcript = transcripts.get((student.pk, student.current_semester_id))
        candidates.append(
            {
                "id": student.pk,
                "full_name": student.full_name,
                "registration_number": student.registration_number,
                "student_number": student.student_number,
                "program": {"id": student.program_id, "name": student.program.name, "code": student.program.code},
                "department": student.department.name,
                "current_semester": student.current_semester.name if student.current_semester else None,
                "program_duration": student.program.duration_semesters,
                "credits_completed": passed,
                "total_credits": total,
                "completion_percentage": completion,
                "status": graduation_status(completion, transcript),
                "gpa": transcript.gpa if transcript else None,
                "cgpa": transcript.cgpa if transcript else None,
                "transcript_generated": transcript is not None,
            }
        )

    stats = {"total": len(candidates)}
    for name in ("pending", "approved", "completed"):
        stats[name] = sum(1 for candidate in candidates if candidate["status"] == name)
    if status:
        candidates = [candidate for candidate in candidates if candidate["status"] == status]
    logger.info("Graduation list: %s candidates (%s)", stats["total"], stats)
    return {"candidates": candidates, "stats": stats}


def save_grade(data: dict, instance: Grade | None = None):
    """Validate and save a grade; scores missing from ``data`` keep their stored value."""

    merged = model_to_dict(instance) if instance is not None else {}
    merged.update(data)
    form = GradeForm(data=merged, instance=instance)
    if not form.is_valid():
        return None, form
    return form.save(), form


@transaction.atomic
def bulk_update_course_grades(course, semester, rows) -> dict:
    """Upsert grades for a course keyed by student; unknown students are skipped."""

    enrollments = {
        enrollment.student_id: enrollment
        for enrollment in Enrollment.objects.filter(course=course, semester=semester).select_related("grade")
    }
    created = updated = 0
    skipped = []
    for index, row in enumerate(rows, start=1):
        student_id = row.get("student")
        try:
            enrollment = enrollments.get(int(student_id))
        except (TypeError, ValueError):
            enrollment = None
        if enrollment is None:
            skipped.append(student_id)
            continue
        existing = getattr(enrollment, "grade", None)
        scores = {key: row[key] for key in ("cat_score", "exam_score") if key in row}
        scores["enrollment"] = enrollment.pk
        grade, form = save_grade(scores, instance=existing)
        if grade is None:
            messages = [message for field_messages in form_errors(form).values() for message in field_messages]
            raise ValidationError({f"row {index}": messages})
        if existing is None:
            created += 1
        else:
            updated += 1
    logger.info(
        "Bulk grades for %s in %s: %s created, %s updated, %s skipped",
        course.code,
        semester,
        created,
        updated,
        len(skipped),
    )
    return {"created": created, "updated": updated, "skipped": skipped}


def check_timetable_conflict(
    semester, day_of_week, start_time, end_time, room=None, lecturer=None, exclude_pk=None
) -> tuple[bool, list[TimetableEntry]]:
    conflicts = list(
        TimetableEntry.find_conflicts(
            semester,
            day_of_week,
            start_time,
            end_time,
            room=room,
            lecturer=lecturer,
            exclude_pk=exclude_pk,
        ).select_related("semester")
    )
    if conflicts:
        logger.warning(
            "Slot %s %s-%s (room %s) clashes with %s entries", day_of_week, start_time, end_time, room or "-", len(conflicts)
        )
    return bool(conflicts), conflicts


def grade_quiz_submission(submission, score, feedback: str = ""):
    """Score a submission within ``0..total_marks``; returns ``(submission, form)``."""

    form = QuizGradingForm(data={"score": score, "feedback": feedback or ""}, instance=submission)
    if not form.is_valid():
        return None, form
    submission = form.save()
    logger.info("Graded submission %s for quiz %s: %s", submission.pk, submission.quiz_id, submission.score)
    return submission, form
