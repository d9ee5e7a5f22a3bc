"""Plain-dict representations returned by the academic endpoints."""
from __future__ import annotations


def _ref(obj, label: str = "name"):
    if obj is None:
        return None
    return {"id": obj.pk, label: getattr(obj, label)}


def department_dto(department) -> dict:
    data = {
        "id": department.pk,
        "name": department.name,
        "head": _ref(department.head, "full_name"),
    }
    for counter in ("staff_count", "program_count", "student_count"):
        if hasattr(department, counter):
            data[counter] = getattr(department, counter)
    return data


def program_dto(program) -> dict:
    data = {
        "id": program.pk,
        "name": program.name,
        "code": program.code,
        "duration_semesters": program.duration_semesters,
        "department": _ref(program.department),
    }
    for counter in ("course_count", "student_count"):
        if hasattr(program, counter):
            data[counter] = getattr(program, counter)
    return data


def semester_dto(semester) -> dict:
    data = {
        "id": semester.pk,
        "name": semester.name,
        "start_date": semester.start_date,
        "end_date": semester.end_date,
    }
    for counter in ("course_count", "enrollment_count", "student_count"):
        if hasattr(semester, counter):
            data[counter] = getattr(semester, counter)
    return data


def staff_dto(staff) -> dict:
    return {
        "id": staff.pk,
        "user_id": staff.user_id,
        "first_name": staff.first_name,
        "last_name": staff.last_name,
        "full_name": staff.full_name,
        "email": staff.email,
        "position": staff.position,
        "role": staff.role,
        "department": _ref(staff.department),
    }


def student_dto(student) -> dict:
    return {
        "id": student.pk,
        "user_id": student.user_id,
        "first_name": student.first_name,
        "last_name": student.last_name,
        "full_name": student.full_name,
        "email": student.email,
        "registration_number": student.registration_number,
        "student_number": student.student_number,
        "program": _ref(student.program),
        "department": _ref(student.department),
        "current_semester": _ref(student.current_semester),
    }


def course_dto(course) -> dict:
    return {
        "id": course.pk,
        "name": course.name,
        "code": course.code,
        "credits": course.credits,
        "description": course.description,
        "program": _ref(course.program),
        "semester": _ref(course.semester),
        "lecturer": _ref(course.lecturer, "full_name"),
    }


def grade_dto(grade) -> dict:
    enrollment = grade.enrollment
    return {
        "id": grade.pk,
        "enrollment_id": enrollment.pk,
        "student": _ref(enrollment.student, "full_name"),
        "registration_number": enrollment.student.registration_number,
        "course": _ref(enrollment.course),
        "course_code": enrollment.course.code,
        "semester": _ref(enrollment.semester),
        "cat_score": grade.cat_score,
        "exam_score": grade.exam_score,
        "total_score": grade.total_score,
        "letter_grade": grade.letter_grade or None,
        "gpa": grade.gpa,
    }


def enrollment_dto(enrollment) -> dict:
    grade = getattr(enrollment, "grade", None)
    return {
        "id": enrollment.pk,
        "student": _ref(enrollment.student, "full_name"),
        "registration_number": enrollment.student.registration_number,
        "course": _ref(enrollment.course),
        "course_code": enrollment.course.code,
        "semester": _ref(enrollment.semester),
        "enrollment_date": enrollment.enrollment_date,
        "grade": grade_dto(grade) if grade is not None else None,
    }


def timetable_dto(entry) -> dict:
    return {
        "id": entry.pk,
        "semester": _ref(entry.semester),
        "course": _ref(entry.course),
        "course_code": entry.course.code,
        "lecturer": _ref(entry.lecturer, "full_name"),
        "day_of_week": entry.day_of_week,
        "start_time": entry.start_time,
        "end_time": entry.end_time,
        "room": entry.room or None,
    }


def transcript_dto(transcript) -> dict:
    return {
        "id": transcript.pk,
        "student": _ref(transcript.student, "full_name"),
        "semester": _ref(transcript.semester),
        "gpa": transcript.gpa,
        "cgpa": transcript.cgpa,
        "generated_date": transcript.generated_date,
    }


def submission_dto(submission) -> dict:
    return {
        "id": submission.pk,
        "quiz_id": submission.quiz_id,
        "student": _ref(submission.student, "full_name"),
        "file_url": submission.file_url or None,
        "score": submission.score,
        "feedback": submission.feedback,
        "submitted_at": submission.submitted_at,
    }


def quiz_dto(quiz, with_submissions: bool = False) -> dict:
    data = {
        "id": quiz.pk,
        "title": quiz.title,
        "instructions": quiz.instructions,
        "total_marks": quiz.total_marks,
        "quiz_date": quiz.quiz_date,
        "created_at": quiz.created_at,
        "course": _ref(quiz.course),
        "created_by": _ref(quiz.created_by, "full_name"),
    }
    if hasattr(quiz, "submission_count"):
        data["submission_count"] = quiz.submission_count
    if with_submissions:
        data["submissions"] = [submission_dto(item) for item in quiz.submissions.select_related("student")]
    return data


def activity_dto(entry) -> dict:
    return {
        "id": entry.pk,
        "user": {"id": entry.user_id, "username": entry.user.get_username()},
        "action": entry.action,
        "target_table": entry.target_table or None,
        "target_id": entry.target_id,
        "timestamp": entry.timestamp,
        "description": entry.description,
    }
