"""Admin configuration for the academic domain."""
from django import forms
from django.contrib import admin, messages
from django.contrib.admin.helpers import ActionForm

from . import services
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


class TimetableEntryInline(admin.TabularInline):
    model = TimetableEntry
    extra = 0
    fields = ("day_of_week", "start_time", "end_time", "room", "lecturer")


class EnrollmentInline(admin.TabularInline):
    model = Enrollment
    extra = 0
    fields = ("course", "semester", "enrollment_date", "get_letter_grade")
    readonly_fields = ("get_letter_grade",)

    @admin.display(description="Grade")
    def get_letter_grade(self, obj):
        grade = getattr(obj, "grade", None)
        return grade.letter_grade if grade else "-"


class TranscriptSemesterForm(ActionForm):
    semester = forms.ModelChoiceField(label="Semester", queryset=Semester.objects.all(), required=False)


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ("name", "head")
    search_fields = ("name",)


@admin.register(Program)
class ProgramAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "department", "duration_semesters")
    list_filter = ("department",)
    search_fields = ("code", "name")


@admin.register(Semester)
class SemesterAdmin(admin.ModelAdmin):
    list_display = ("name", "start_date", "end_date")
    list_filter = ("start_date",)
    search_fields = ("name",)


@admin.register(StaffProfile)
class StaffProfileAdmin(admin.ModelAdmin):
    list_display = ("email", "first_name", "last_name", "position", "role", "department")
    list_filter = ("role", "department")
    search_fields = ("email", "first_name", "last_name", "position")


@admin.register(StudentProfile)
class StudentProfileAdmin(admin.ModelAdmin):
    list_display = ("student_number", "registration_number", "first_name", "last_name", "program", "current_semester")
    list_filter = ("department", "program", "current_semester")
    search_fields = ("student_number", "registration_number", "first_name", "last_name", "email")
    inlines = [EnrollmentInline]
    action_form = TranscriptSemesterForm
    actions = ["generate_transcripts"]

    @admin.action(description="Generate transcripts for the chosen semester")
    def generate_transcripts(self, request, queryset):
        semester_id = request.POST.get("semester")
        if not semester_id:
            self.message_user(request, "Choose a semester in the action form first.", level=messages.ERROR)
            return
        semester = Semester.objects.get(pk=semester_id)
        for student in queryset:
            services.generate_transcript(student, semester)
        services.record_activity(
            request.user,
            "generate",
            table=Transcript._meta.db_table,
            description=f"Generated {queryset.count()} transcripts for {semester}",
        )
        self.message_user(request, f"Generated {queryset.count()} transcripts.", level=messages.SUCCESS)


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "program", "semester", "lecturer", "credits")
    list_filter = ("semester", "program")
    search_fields = ("code", "name")
    inlines = [TimetableEntryInline]


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ("student", "course", "semester", "enrollment_date")
    list_filter = ("semester", "course")
    search_fields = ("student__first_name", "student__last_name", "student__registration_number", "course__code")


@admin.register(Grade)
class GradeAdmin(admin.ModelAdmin):
    list_display = ("enrollment", "cat_score", "exam_score", "total_score", "letter_grade", "gpa")
    list_filter = ("letter_grade", "enrollment__semester")
    search_fields = ("enrollment__student__registration_number", "enrollment__course__code")
    readonly_fields = ("total_score", "letter_grade", "gpa")


@admin.register(Transcript)
class TranscriptAdmin(admin.ModelAdmin):
    list_display = ("student", "semester", "gpa", "cgpa", "generated_date")
    list_filter = ("semester",)


@admin.register(TimetableEntry)
class TimetableEntryAdmin(admin.ModelAdmin):
    list_display = ("course", "semester", "day_of_week", "start_time", "end_time", "room", "lecturer")
    list_filter = ("semester", "day_of_week", "room")
    search_fields = ("course__code", "room", "lecturer__last_name")


class QuizSubmissionInline(admin.TabularInline):
    model = QuizSubmission
    extra = 0
    fields = ("student", "file_url", "score", "feedback", "submitted_at")
    readonly_fields = ("submitted_at",)


@admin.register(Quiz)
class QuizAdmin(admin.ModelAdmin):
    list_display = ("title", "course", "created_by", "total_marks", "quiz_date")
    list_filter = ("course",)
    search_fields = ("title", "course__code")
    inlines = [QuizSubmissionInline]


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ("timestamp", "user", "action", "target_table", "target_id")
    list_filter = ("action", "target_table")
    search_fields = ("user__username", "description")
    readonly_fields = ("user", "action", "target_table", "target_id", "timestamp", "description")
