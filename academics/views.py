"""JSON endpoints for people, academic structure, timetables, grades and quizzes."""
from __future__ import annotations

import logging

from django.core.exceptions import PermissionDenied, ValidationError
from django.db.models import Count, Value
from django.db.models.functions import Concat
from django.shortcuts import get_object_or_404

from . import services
from .api import (
    ACADEMIC_ROLES,
    ROLE_CHOICES,
    TEACHING_ROLES,
    ApiView,
    date_param,
    form_error_response,
    id_param,
    json_response,
    paginate,
)
from .forms import (
    ConflictCheckForm,
    CourseForm,
    DepartmentForm,
    EnrollmentForm,
    GraduationFilterForm,
    GradeForm,
    ProgramForm,
    QuizForm,
    QuizSubmissionForm,
    SemesterForm,
    StaffForm,
    StudentForm,
    TimetableEntryForm,
)
from .models import (
    ActivityLog,
    Course,
    Department,
    Enrollment,
    Grade,
    Program,
    Quiz,
    QuizSubmission,
    Semester,
    StaffProfile,
    StudentProfile,
    TimetableEntry,
    Transcript,
)
from .resources import ResourceDetailView, ResourceListView
from .serializers import (
    activity_dto,
    course_dto,
    department_dto,
    enrollment_dto,
    grade_dto,
    program_dto,
    quiz_dto,
    semester_dto,
    staff_dto,
    student_dto,
    submission_dto,
    timetable_dto,
    transcript_dto,
)

logger = logging.getLogger(__name__)

STAFF_READ_ROLES = ("registrar", "hod", "accountant", "lecturer", "staff")
PEOPLE_READ_ROLES = ("registrar", "hod", "accountant", "lecturer")


def _full_name_annotation():
    return Concat("first_name", Value(" "), "last_name")


class RoleListView(ApiView):
    http_method_names = ["get"]
    allowed_roles = STAFF_READ_ROLES + ("student",)

    def get(self, request):
        roles = [{"value": value, "label": label} for value, label in ROLE_CHOICES]
        return json_response({"results": roles, "current": self.role})


# People -------------------------------------------------------------------


class StudentListView(ResourceListView):
    model = StudentProfile
    form_class = StudentForm
    serializer = student_dto
    allowed_roles = PEOPLE_READ_ROLES
    write_roles = ("registrar",)
    select_related = ("program", "department", "current_semester")
    search_fields = ("first_name", "last_name", "search_name", "email", "registration_number", "student_number")
    filter_params = {"department": "department", "program": "program", "semester": "current_semester"}

    def get_queryset(self):
        return super().get_queryset().annotate(search_name=_full_name_annotation())

    def perform_create(self, form):
        return services.create_student_with_user(form)


class StudentBulkCreateView(ApiView):
    http_method_names = ["post"]
    allowed_roles = ("registrar",)

    def post(self, request):
        rows = self.payload().get("students")
        if not isinstance(rows, list) or not rows:
            raise ValidationError({"students": ["Provide a non-empty list of student rows."]})
        results = services.bulk_create_students(rows)
        created = sum(1 for row in results if row["success"])
        services.record_activity(
            request.user,
            "create",
            table=StudentProfile._meta.db_table,
            description=f"Bulk created {created} of {len(rows)} students",
        )
        return json_response({"created": created, "failed": len(rows) - created, "results": results})


class StudentDetailView(ResourceDetailView):
    model = StudentProfile
    form_class = StudentForm
    serializer = student_dto
    allowed_roles = PEOPLE_READ_ROLES
    write_roles = ("registrar",)
    select_related = ("program", "department", "current_semester")

    def detail(self, obj):
        data = student_dto(obj)
        enrollments = obj.enrollments.select_related("course", "semester", "grade", "student")
        data["enrollments"] = [enrollment_dto(item) for item in enrollments]
        data["gpa"] = services.calculate_student_gpa(obj)
        return data

    def perform_update(self, form):
        student = form.save()
        services.sync_account(student)
        return student

    def perform_delete(self, obj):
        services.delete_profile_with_user(obj)


class StudentRecordMixin:
    """Resolve the student from the URL; students may only see themselves."""

    def get_student(self):
        student = get_object_or_404(StudentProfile, pk=self.kwargs["pk"])
        if self.role == "student" and student.user_id != self.request.user.pk:
            raise PermissionDenied("Students may only view their own records.")
        return student


class StudentGpaView(StudentRecordMixin, ApiView):
    http_method_names = ["get"]
    allowed_roles = TEACHING_ROLES + ("student",)

    def get(self, request, pk):
        student = self.get_student()
        return json_response({"student_id": student.pk, "gpa": services.calculate_student_gpa(student)})


class StudentGradesView(StudentRecordMixin, ApiView):
    http_method_names = ["get"]
    allowed_roles = TEACHING_ROLES + ("student",)

    def get(self, request, pk):
        grades = Grade.objects.filter(enrollment__student=self.get_student()).select_related(
            "enrollment__student", "enrollment__course", "enrollment__semester"
        )
        return json_response({"results": [grade_dto(grade) for grade in grades]})


class StudentTranscriptView(StudentRecordMixin, ApiView):
    allowed_roles = ("registrar", "hod", "student")
    write_roles = ("registrar",)

    def get(self, request, pk):
        transcripts = Transcript.objects.filter(student=self.get_student()).select_related("student", "semester")
        return json_response({"results": [transcript_dto(item) for item in transcripts]})

    def post(self, request, pk):
        student = self.get_student()
        semester = get_object_or_404(Semester, pk=id_param(self.payload(), "semester"))
        transcript = services.generate_transcript(student, semester)
        services.record_activity(request.user, "generate", transcript, f"Generated transcript for {student}")
        return json_response(transcript_dto(transcript), status=201)


class StaffListView(ResourceListView):
    model = StaffProfile
    form_class = StaffForm
    serializer = staff_dto
    allowed_roles = ("registrar", "hod", "accountant")
    write_roles = ("registrar",)
    select_related = ("department",)
    search_fields = ("first_name", "last_name", "search_name", "email", "position")
    filter_params = {"department": "department", "role": "role"}

    def get_queryset(self):
        return super().get_queryset().annotate(search_name=_full_name_annotation())

    def perform_create(self, form):
        return services.create_staff_with_user(form)


class StaffDetailView(ResourceDetailView):
    model = StaffProfile
    form_class = StaffForm
    serializer = staff_dto
    allowed_roles = ("registrar", "hod", "accountant")
    write_roles = ("registrar",)
    select_related = ("department",)

    def perform_update(self, form):
        staff = form.save()
        services.sync_account(staff)
        return staff

    def perform_delete(self, obj):
        services.delete_profile_with_user(obj)


# Academic structure ---------------------------------------------------------


class DepartmentResource:
    model = Department
    form_class = DepartmentForm
    serializer = department_dto
    allowed_roles = STAFF_READ_ROLES
    write_roles = ACADEMIC_ROLES
    select_related = ("head",)
    search_fields = ("name",)

    def get_queryset(self):
        return super().get_queryset().annotate(
            staff_count=Count("staff", distinct=True),
            program_count=Count("programs", distinct=True),
            student_count=Count("students", distinct=True),
        )


class DepartmentListView(DepartmentResource, ResourceListView):
    pass


class DepartmentDetailView(DepartmentResource, ResourceDetailView):
    pass


class DepartmentHeadView(ApiView):
    http_method_names = ["put", "delete"]
    allowed_roles = ACADEMIC_ROLES

    def put(self, request, pk):
        department = get_object_or_404(Department, pk=pk)
        department.head = get_object_or_404(StaffProfile, pk=id_param(self.payload(), "staff"))
        department.full_clean()
        department.save(update_fields=["head"])
        services.record_activity(request.user, "update", department, f"Assigned {department.head} as head")
        return json_response(department_dto(department))

    def delete(self, request, pk):
        department = get_object_or_404(Department, pk=pk)
        department.head = None
        department.save(update_fields=["head"])
        services.record_activity(request.user, "update", department, "Removed head of department")
        return json_response(department_dto(department))


class ProgramResource:
    model = Program
    form_class = ProgramForm
    serializer = program_dto
    allowed_roles = STAFF_READ_ROLES
    write_roles = ACADEMIC_ROLES
    select_related = ("department",)
    search_fields = ("name", "code")
    filter_params = {"department": "department"}

    def get_queryset(self):
        return super().get_queryset().annotate(
            course_count=Count("courses", distinct=True),
            student_count=Count("students", distinct=True),
        )


class ProgramListView(ProgramResource, ResourceListView):
    pass


class ProgramDetailView(ProgramResource, ResourceDetailView):
    pass


class ProgramCoursesView(ApiView):
    http_method_names = ["get"]
    allowed_roles = STAFF_READ_ROLES

    def get(self, request, pk):
        program = get_object_or_404(Program, pk=pk)
        courses = program.courses.select_related("program", "semester", "lecturer")
        return json_response({"program": program_dto(program), "results": [course_dto(c) for c in courses]})


class ProgramStudentsView(ApiView):
    http_method_names = ["get"]
    allowed_roles = PEOPLE_READ_ROLES

    def get(self, request, pk):
        program = get_object_or_404(Program, pk=pk)
        students = program.students.select_related("program", "department", "current_semester")
        return json_response({"program": program_dto(program), "results": [student_dto(s) for s in students]})


class SemesterResource:
    model = Semester
    form_class = SemesterForm
    serializer = semester_dto
    allowed_roles = STAFF_READ_ROLES + ("student",)
    write_roles = ACADEMIC_ROLES
    search_fields = ("name",)

    def get_queryset(self):
        return super().get_queryset().annotate(
            course_count=Count("courses", distinct=True),
            enrollment_count=Count("enrollments", distinct=True),
            student_count=Count("current_students", distinct=True),
        )


class SemesterListView(SemesterResource, ResourceListView):
    pass


class SemesterDetailView(SemesterResource, ResourceDetailView):
    pass


class SemesterCoursesView(ApiView):
    http_method_names = ["get"]
    allowed_roles = STAFF_READ_ROLES + ("student",)

    def get(self, request, pk):
        semester = get_object_or_404(Semester, pk=pk)
        courses = services.courses_by_semester(semester).select_related("semester")
        return json_response({"semester": semester_dto(semester), "results": [course_dto(c) for c in courses]})


class SemesterTimetableView(ApiView):
    http_method_names = ["get"]
    allowed_roles = STAFF_READ_ROLES + ("student",)

    def get(self, request, pk):
        semester = get_object_or_404(Semester, pk=pk)
        entries = semester.timetable_entries.select_related("semester", "course", "lecturer")
        return json_response({"semester": semester_dto(semester), "results": [timetable_dto(e) for e in entries]})


class SemesterStudentsView(ApiView):
    http_method_names = ["get"]
    allowed_roles = PEOPLE_READ_ROLES

    def get(self, request, pk):
        semester = get_object_or_404(Semester, pk=pk)
        students = semester.current_students.select_related("program", "department", "current_semester")
        return json_response({"semester": semester_dto(semester), "results": [student_dto(s) for s in students]})


class SemesterEnrollmentStatsView(ApiView):
    http_method_names = ["get"]
    allowed_roles = ("registrar", "hod")

    def get(self, request, pk):
        semester = get_object_or_404(Semester, pk=pk)
        stats = [
            {
                "course_id": row["course_id"],
                "course_code": row["course__code"],
                "course_name": row["course__name"],
                "enrollments": row["enrollments"],
            }
            for row in services.enrollment_statistics(semester)
        ]
        return json_response({"semester": semester_dto(semester), "results": stats})


class GraduationListView(ApiView):
    http_method_names = ["get"]
    allowed_roles = ("registrar",)

    def get(self, request):
        form = GraduationFilterForm(data=request.GET)
        if not form.is_valid():
            return form_error_response(form)
        filters = form.cleaned_data
        outcome = services.graduation_list(
            semester=filters["semester"],
            program=filters["program"],
            department=filters["department"],
            status=filters["status"],
            query=filters["q"],
        )
        return json_response(outcome)


class CourseResource:
    model = Course
    form_class = CourseForm
    serializer = course_dto
    allowed_roles = STAFF_READ_ROLES + ("student",)
    write_roles = ACADEMIC_ROLES
    select_related = ("program", "semester", "lecturer")
    search_fields = ("name", "code")
    filter_params = {"program": "program", "semester": "semester", "lecturer": "lecturer"}


class CourseListView(CourseResource, ResourceListView):
    pass


class CourseDetailView(CourseResource, ResourceDetailView):
    pass


class CourseLecturerView(ApiView):
    http_method_names = ["put", "delete"]
    allowed_roles = ACADEMIC_ROLES

    def put(self, request, pk):
        course = get_object_or_404(Course, pk=pk)
        course.lecturer = get_object_or_404(StaffProfile, pk=id_param(self.payload(), "lecturer"))
        course.save(update_fields=["lecturer"])
        services.record_activity(request.user, "update", course, f"Assigned {course.lecturer} to {course.code}")
        return json_response(course_dto(course))

    def delete(self, request, pk):
        course = get_object_or_404(Course, pk=pk)
        course.lecturer = None
        course.save(update_fields=["lecturer"])
        services.record_activity(request.user, "update", course, f"Removed lecturer from {course.code}")
        return json_response(course_dto(course))


class CourseEnrollmentsView(ApiView):
    http_method_names = ["get"]
    allowed_roles = TEACHING_ROLES

    def get(self, request, pk):
        course = get_object_or_404(Course, pk=pk)
        semester = get_object_or_404(Semester, pk=id_param(request.GET, "semester") or course.semester_id)
        without_grades = request.GET.get("without_grades", "").lower() in {"1", "true", "yes"}
        enrollments = services.course_enrollments(course, semester, without_grades=without_grades)
        return json_response({"results": [enrollment_dto(item) for item in enrollments.select_related("course", "semester")]})


class CourseGradesView(ApiView):
    """Grades of a course; POST upserts a batch keyed by student."""

    allowed_roles = TEACHING_ROLES

    def get(self, request, pk):
        course = get_object_or_404(Course, pk=pk)
        grades = Grade.objects.filter(enrollment__course=course).select_related(
            "enrollment__student", "enrollment__course", "enrollment__semester"
        )
        return json_response({"results": [grade_dto(grade) for grade in grades]})

    def post(self, request, pk):
        course = get_object_or_404(Course, pk=pk)
        body = self.payload()
        semester = get_object_or_404(Semester, pk=id_param(body, "semester") or course.semester_id)
        rows = body.get("grades")
        if not isinstance(rows, list):
            raise ValidationError({"grades": ["Provide a list of grade rows."]})
        outcome = services.bulk_update_course_grades(course, semester, rows)
        services.record_activity(
            request.user,
            "update",
            course,
            f"Bulk graded {course.code}: {outcome['created']} created, {outcome['updated']} updated",
        )
        return json_response(outcome)


# Enrollments ----------------------------------------------------------------


class EnrollmentListView(ResourceListView):
    model = Enrollment
    form_class = EnrollmentForm
    serializer = enrollment_dto
    allowed_roles = TEACHING_ROLES
    write_roles = ("registrar",)
    paginated = True

    def get_queryset(self):
        return services.filter_enrollments(self.request.GET.get("q", ""))

    def filter_queryset(self, queryset):
        return queryset


class EnrollmentDetailView(ResourceDetailView):
    model = Enrollment
    form_class = EnrollmentForm
    serializer = enrollment_dto
    allowed_roles = TEACHING_ROLES
    write_roles = ("registrar",)
    select_related = ("student", "course", "semester")


class EnrollmentPagesView(ApiView):
    http_method_names = ["get"]
    allowed_roles = TEACHING_ROLES

    def get(self, request):
        return json_response({"total_pages": services.fetch_enrollments_total_pages(request.GET.get("q", ""))})


class EnrollmentExistsView(ApiView):
    http_method_names = ["get"]
    allowed_roles = TEACHING_ROLES

    def get(self, request):
        ids = {name: id_param(request.GET, name) for name in ("student", "course", "semester")}
        missing = [name for name, value in ids.items() if value is None]
        if missing:
            raise ValidationError({name: ["This parameter is required."] for name in missing})
        exists = services.check_enrollment_exists(ids["student"], ids["course"], ids["semester"])
        return json_response({"exists": exists})


# Timetables -----------------------------------------------------------------


class TimetableListView(ResourceListView):
    model = TimetableEntry
    form_class = TimetableEntryForm
    serializer = timetable_dto
    allowed_roles = STAFF_READ_ROLES + ("student",)
    write_roles = ACADEMIC_ROLES
    select_related = ("semester", "course", "lecturer")
    filter_params = {
        "semester": "semester",
        "course": "course",
        "lecturer": "lecturer",
        "day": "day_of_week",
        "room": "room__iexact",
    }


class TimetableDetailView(ResourceDetailView):
    model = TimetableEntry
    form_class = TimetableEntryForm
    serializer = timetable_dto
    allowed_roles = STAFF_READ_ROLES + ("student",)
    write_roles = ACADEMIC_ROLES
    select_related = ("semester", "course", "lecturer")


class TimetableConflictView(ApiView):
    """Report clashing entries for a prospective slot without saving anything."""

    http_method_names = ["get", "post"]
    allowed_roles = ACADEMIC_ROLES

    def check(self, data):
        form = ConflictCheckForm(data=data)
        if not form.is_valid():
            return form_error_response(form)
        cleaned = form.cleaned_data
        conflict, entries = services.check_timetable_conflict(
            cleaned["semester"],
            cleaned["day_of_week"],
            cleaned["start_time"],
            cleaned["end_time"],
            room=cleaned["room"],
            lecturer=cleaned["lecturer"],
            exclude_pk=cleaned["exclude"],
        )
        return json_response({"conflict": conflict, "conflicts": [timetable_dto(entry) for entry in entries]})

    def get(self, request):
        return self.check(request.GET)

    def post(self, request):
        return self.check(self.payload())


class TimetableRoomsView(ApiView):
    http_method_names = ["get"]
    allowed_roles = STAFF_READ_ROLES + ("student",)

    def get(self, request):
        rooms = (
            TimetableEntry.objects.exclude(room="")
            .order_by("room")
            .values_list("room", flat=True)
            .distinct()
        )
        return json_response({"results": list(rooms)})


# Grades ---------------------------------------------------------------------


class GradeListView(ResourceListView):
    model = Grade
    form_class = GradeForm
    serializer = grade_dto
    allowed_roles = TEACHING_ROLES
    select_related = ("enrollment__student", "enrollment__course", "enrollment__semester")
    filter_params = {
        "semester": "enrollment__semester",
        "course": "enrollment__course",
        "student": "enrollment__student",
    }


class GradeDetailView(ResourceDetailView):
    model = Grade
    form_class = GradeForm
    serializer = grade_dto
    allowed_roles = TEACHING_ROLES
    select_related = ("enrollment__student", "enrollment__course", "enrollment__semester")


# Quizzes --------------------------------------------------------------------


class QuizAccessMixin:
    def get_queryset(self):
        quizzes = Quiz.objects.select_related("course", "created_by").annotate(
            submission_count=Count("submissions")
        )
        if self.role != "admin":
            quizzes = quizzes.filter(created_by=self.staff_profile)
        return quizzes


class QuizListView(QuizAccessMixin, ResourceListView):
    model = Quiz
    form_class = QuizForm
    serializer = quiz_dto
    allowed_roles = ("lecturer",)
    filter_params = {"course": "course"}
    search_fields = ("title",)

    def perform_create(self, form):
        quiz = form.save(commit=False)
        quiz.created_by = self.staff_profile
        quiz.save()
        return quiz


class QuizDetailView(QuizAccessMixin, ResourceDetailView):
    model = Quiz
    form_class = QuizForm
    serializer = quiz_dto
    allowed_roles = ("lecturer",)

    def detail(self, obj):
        return quiz_dto(obj, with_submissions=True)

    def get_object(self):
        quiz = get_object_or_404(Quiz, pk=self.kwargs["pk"])
        if self.role != "admin" and quiz.created_by_id != getattr(self.staff_profile, "pk", None):
            raise PermissionDenied("You may only manage quizzes you created.")
        return quiz


class QuizSubmitView(ApiView):
    http_method_names = ["post"]
    allowed_roles = ("student",)

    def post(self, request, pk):
        quiz = get_object_or_404(Quiz, pk=pk)
        student = self.student_profile
        if student is None:
            raise PermissionDenied("Only students can submit quizzes.")
        if not Enrollment.objects.filter(student=student, course=quiz.course).exists():
            raise PermissionDenied("You are not enrolled in this course.")
        form = QuizSubmissionForm(
            data={"quiz": quiz.pk, "student": student.pk, "file_url": self.payload().get("file_url", "")}
        )
        if not form.is_valid():
            return form_error_response(form)
        submission = form.save()
        services.record_activity(request.user, "create", submission, f"Submitted {quiz}")
        return json_response(submission_dto(submission), status=201)


class QuizSubmissionGradeView(ApiView):
    http_method_names = ["post"]
    allowed_roles = ("lecturer",)

    def post(self, request, pk):
        submission = get_object_or_404(QuizSubmission.objects.select_related("quiz", "student"), pk=pk)
        if self.role != "admin" and submission.quiz.created_by_id != getattr(self.staff_profile, "pk", None):
            raise PermissionDenied("You may only grade submissions for your own quizzes.")
        body = self.payload()
        graded, form = services.grade_quiz_submission(submission, body.get("score"), body.get("feedback", ""))
        if graded is None:
            return form_error_response(form)
        submission = graded
        services.record_activity(request.user, "update", submission, f"Graded submission for {submission.quiz}")
        return json_response(submission_dto(submission))


# Activity logs --------------------------------------------------------------


class ActivityListView(ApiView):
    http_method_names = ["get"]

    def get(self, request, user_id=None):
        logs = ActivityLog.objects.select_related("user")
        params = request.GET
        user_id = user_id or id_param(params, "user")
        if user_id:
            logs = logs.filter(user_id=user_id)
        if params.get("action"):
            logs = logs.filter(action=params["action"])
        if params.get("target_table"):
            logs = logs.filter(target_table=params["target_table"])
        date_from, date_to = date_param(params, "date_from"), date_param(params, "date_to")
        if date_from:
            logs = logs.filter(timestamp__date__gte=date_from)
        if date_to:
            logs = logs.filter(timestamp__date__lte=date_to)
        return json_response(paginate(logs, params.get("page", 1), activity_dto))


class ActivityDetailView(ApiView):
    http_method_names = ["get"]

    def get(self, request, pk):
        return json_response(activity_dto(get_object_or_404(ActivityLog.objects.select_related("user"), pk=pk)))


class ActivitySummaryView(ApiView):
    http_method_names = ["get"]

    def get(self, request):
        summary = services.logs_summary()
        summary["recent"] = [activity_dto(entry) for entry in summary["recent"]]
        return json_response(summary)
