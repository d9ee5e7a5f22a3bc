"""Forms validating JSON payloads for the academic endpoints."""
from __future__ import annotations

from django import forms
from django.contrib.auth import get_user_model

from .models import (
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
)

User = get_user_model()


class DepartmentForm(forms.ModelForm):
    class Meta:
        model = Department
        fields = ("name", "head")


class ProgramForm(forms.ModelForm):
    class Meta:
        model = Program
        fields = ("department", "name", "code", "duration_semesters")

    def clean_code(self):
        return self.cleaned_data["code"].strip().upper()


class SemesterForm(forms.ModelForm):
    class Meta:
        model = Semester
        fields = ("name", "start_date", "end_date")


class CourseForm(forms.ModelForm):
    class Meta:
        model = Course
        fields = ("program", "semester", "lecturer", "name", "code", "credits", "description")

    def clean_code(self):
        return self.cleaned_data["code"].strip().upper()


class _AccountEmailMixin:
    """Reject emails already used as a login by another account."""

    def clean_email(self):
        email = self.cleaned_data["email"].strip().lower()
        accounts = User.objects.filter(username__iexact=email)
        if self.instance.pk:
            accounts = accounts.exclude(pk=self.instance.user_id)
        if accounts.exists():
            raise forms.ValidationError("An account with this email already exists.")
        return email


class StaffForm(_AccountEmailMixin, forms.ModelForm):
    class Meta:
        model = StaffProfile
        fields = ("department", "first_name", "last_name", "email", "position", "role")


class StudentForm(_AccountEmailMixin, forms.ModelForm):
    class Meta:
        model = StudentProfile
        fields = (
            "program",
            "department",
            "current_semester",
            "first_name",
            "last_name",
            "email",
            "registration_number",
            "student_number",
        )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Left blank, both numbers are generated on save.
        self.fields["registration_number"].required = False
        self.fields["student_number"].required = False

    def clean(self):
        cleaned = super().clean()
        program = cleaned.get("program")
        department = cleaned.get("department")
        if program and department and program.department_id != department.pk:
            raise forms.ValidationError("The program does not belong to the selected department.")
        return cleaned


class EnrollmentForm(forms.ModelForm):
    class Meta:
        model = Enrollment
        fields = ("student", "course", "semester", "enrollment_date")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["enrollment_date"].required = False

    def clean_enrollment_date(self):
        return self.cleaned_data.get("enrollment_date") or self.instance.enrollment_date

    def validate_unique(self):
        try:
            self.instance.validate_unique(exclude=self._get_validation_exclusions())
        except forms.ValidationError:
            self.add_error(None, "The student is already enrolled in this course for the semester.")


class TimetableEntryForm(forms.ModelForm):
    class Meta:
        model = TimetableEntry
        fields = ("semester", "course", "lecturer", "day_of_week", "start_time", "end_time", "room")

    def clean(self):
        cleaned = super().clean()
        course = cleaned.get("course")
        semester = cleaned.get("semester")
        if course and semester and course.semester_id != semester.pk:
            raise forms.ValidationError("The course is not offered in the selected semester.")
        return cleaned


class GradeForm(forms.ModelForm):
    class Meta:
        model = Grade
        fields = ("enrollment", "cat_score", "exam_score")

    def clean_enrollment(self):
        enrollment = self.cleaned_data["enrollment"]
        existing = Grade.objects.filter(enrollment=enrollment)
        if self.instance.pk:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise forms.ValidationError("A grade has already been recorded for this enrollment.")
        return enrollment


class QuizForm(forms.ModelForm):
    class Meta:
        model = Quiz
        fields = ("course", "title", "instructions", "total_marks", "quiz_date")


class QuizSubmissionForm(forms.ModelForm):
    class Meta:
        model = QuizSubmission
        fields = ("quiz", "student", "file_url")


class QuizGradingForm(forms.ModelForm):
    class Meta:
        model = QuizSubmission
        fields = ("score", "feedback")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["score"].required = True

    def clean_score(self):
        score = self.cleaned_data["score"]
        total = self.instance.quiz.total_marks
        if score < 0 or score > total:
            raise forms.ValidationError(f"Score must be between 0 and {total}.")
        return score


class ConflictCheckForm(forms.Form):
    semester = forms.ModelChoiceField(queryset=Semester.objects.all())
    day_of_week = forms.ChoiceField(choices=TimetableEntry.DAY_OF_WEEK_CHOICES)
    start_time = forms.TimeField()
    end_time = forms.TimeField()
    room = forms.CharField(required=False)
    lecturer = forms.ModelChoiceField(queryset=StaffProfile.objects.all(), required=False)
    exclude = forms.IntegerField(required=False)

    def clean(self):
        cleaned = super().clean()
        start, end = cleaned.get("start_time"), cleaned.get("end_time")
        if start and end and end <= start:
            raise forms.ValidationError("The class must end after it starts.")
        return cleaned


class GraduationFilterForm(forms.Form):
    GRADUATION_STATUS_CHOICES = [
        ("pending", "Pending"),
        ("approved", "Approved"),
        ("completed", "Completed"),
    ]

    semester = forms.ModelChoiceField(queryset=Semester.objects.all(), required=False)
    program = forms.ModelChoiceField(queryset=Program.objects.all(), required=False)
    department = forms.ModelChoiceField(queryset=Department.objects.all(), required=False)
    status = forms.ChoiceField(choices=GRADUATION_STATUS_CHOICES, required=False)
    q = forms.CharField(required=False, strip=True)
