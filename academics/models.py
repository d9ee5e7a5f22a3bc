"""Django models for the academic side of the portal."""
from __future__ import annotations

import datetime
from decimal import Decimal

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q

User = get_user_model()

TWO_PLACES = Decimal("0.01")


def grade_scale():
    return getattr(settings, "PORTAL_GRADE_SCALE", [(0, "F", "0.00")])


def letter_and_points(total: Decimal | None) -> tuple[str | None, Decimal | None]:
    """Map a total score onto the configured grade bands."""

    if total is None:
        return None, None
    for minimum, letter, points in grade_scale():
        if total >= Decimal(str(minimum)):
            return letter, Decimal(points)
    return None, None


class Department(models.Model):
    name = models.CharField("Department name", max_length=255, unique=True)
    head = models.ForeignKey(
        "StaffProfile",
        on_delete=models.SET_NULL,
        related_name="headed_departments",
        null=True,
        blank=True,
        verbose_name="Head of department",
    )

    class Meta:
        verbose_name = "Department"
        verbose_name_plural = "Departments"
        ordering = ["name"]

    def __str__(self) -> str:  # pragma: no cover - human readable labels
        return self.name

    def clean(self):
        super().clean()
        if self.head_id and self.head.department_id != self.pk:
            raise ValidationError({"head": "The head of department must be a member of its staff."})


class Program(models.Model):
    department = models.ForeignKey(Department, on_delete=models.PROTECT, related_name="programs", verbose_name="Department")
    name = models.CharField("Program name", max_length=255, unique=True)
    code = models.CharField("Program code", max_length=50, unique=True)
    duration_semesters = models.PositiveSmallIntegerField("Duration (semesters)", validators=[MinValueValidator(1)])

    class Meta:
        verbose_name = "Program"
        verbose_name_plural = "Programs"
        ordering = ["code"]

    def __str__(self) -> str:  # pragma: no cover - human readable labels
        return f"{self.code} - {self.name}"


class Semester(models.Model):
    name = models.CharField("Semester name", max_length=100, unique=True)
    start_date = models.DateField("Start date")
    end_date = models.DateField("End date")

    class Meta:
        verbose_name = "Semester"
        verbose_name_plural = "Semesters"
        ordering = ["-start_date"]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_date__gt=F("start_date")),
                name="semester_end_after_start",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover - human readable labels
        return self.name

    def clean(self):
        super().clean()
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValidationError("The semester must end after it starts.")


class StaffProfile(models.Model):
    ROLE_CHOICES = [
        ("admin", "Administrator"),
        ("registrar", "Registrar"),
        ("hod", "Head of department"),
        ("accountant", "Accountant"),
        ("lecturer", "Lecturer"),
        ("staff", "Staff"),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="staff_profile", verbose_name="Account")
    department = models.ForeignKey(Department, on_delete=models.PROTECT, related_name="staff", verbose_name="Department")
    first_name = models.CharField("First name", max_length=100)
    last_name = models.CharField("Last name", max_length=100)
    email = models.EmailField("Email", unique=True)
    position = models.CharField("Position", max_length=100)
    role = models.CharField("Role", max_length=20, choices=ROLE_CHOICES, default="staff")

    class Meta:
        verbose_name = "Staff member"
        verbose_name_plural = "Staff"
        ordering = ["last_name", "first_name"]

    def __str__(self) -> str:  # pragma: no cover - human readable labels
        return f"{self.full_name} ({self.position})"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class StudentProfile(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="student_profile", verbose_name="Account")
    program = models.ForeignKey(Program, on_delete=models.PROTECT, related_name="students", verbose_name="Program")
    department = models.ForeignKey(Department, on_delete=models.PROTECT, related_name="students", verbose_name="Department")
    current_semester = models.ForeignKey(
        Semester, on_delete=models.PROTECT, related_name="current_students", verbose_name="Current semester"
    )
    first_name = models.CharField("First name", max_length=100)
    last_name = models.CharField("Last name", max_length=100)
    email = models.EmailField("Email", unique=True)
    registration_number = models.CharField("Registration number", max_length=100, unique=True)
    student_number = models.CharField("Student number", max_length=100, unique=True)

    class Meta:
        verbose_name = "Student"
        verbose_name_plural = "Students"
        ordering = ["student_number"]

    def __str__(self) -> str:  # pragma: no cover - human readable labels
        return f"{self.full_name} ({self.registration_number})"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def generate_student_number(cls, department: Department) -> str:
        """Generate a student number in the format <year><dept id><seq>."""

        base_prefix = f"{datetime.date.today().year}{int(department.pk):03d}"
        last_number = (
            cls.objects.filter(student_number__startswith=base_prefix)
            .order_by("-student_number")
            .values_list("student_number", flat=True)
            .first()
        )
        if last_number and last_number[-3:].isdigit():
            sequence = int(last_number[-3:]) + 1
        else:
            sequence = 1
        return f"{base_prefix}{sequence:03d}"

    @classmethod
    def generate_registration_number(cls, program: Program) -> str:
        """Generate a registration number in the format <CODE>/<seq>/<year>."""

        year = datetime.date.today().year
        prefix = f"{program.code.upper()}/"
        suffix = f"/{year}"
        existing = cls.objects.filter(
            registration_number__startswith=prefix, registration_number__endswith=suffix
        ).values_list("registration_number", flat=True)
        sequence = 0
        for number in existing:
            middle = number[len(prefix):-len(suffix)]
            if middle.isdigit():
                sequence = max(sequence, int(middle))
        return f"{prefix}{sequence + 1:04d}{suffix}"

    def save(self, *args, **kwargs):
        if not self.student_number and self.department_id:
            self.student_number = self.generate_student_number(self.department)
        if not self.registration_number and self.program_id:
            self.registration_number = self.generate_registration_number(self.program)
        super().save(*args, **kwargs)


class Course(models.Model):
    program = models.ForeignKey(Program, on_delete=models.PROTECT, related_name="courses", verbose_name="Program")
    semester = models.ForeignKey(Semester, on_delete=models.PROTECT, related_name="courses", verbose_name="Semester")
    lecturer = models.ForeignKey(
        StaffProfile,
        on_delete=models.PROTECT,
        related_name="courses",
        null=True,
        blank=True,
        verbose_name="Lecturer",
    )
    name = models.CharField("Course name", max_length=255)
    code = models.CharField("Course code", max_length=50)
    credits = models.DecimalField(
        "Credits", max_digits=4, decimal_places=2, validators=[MinValueValidator(Decimal("0.01"))]
    )
    description = models.TextField("Description", blank=True)

    class Meta:
        verbose_name = "Course"
        verbose_name_plural = "Courses"
        unique_together = [("program", "code", "semester")]
        ordering = ["code"]

    def __str__(self) -> str:  # pragma: no cover - human readable labels
        return f"{self.code} - {self.name}"


class Enrollment(models.Model):
    student = models.ForeignKey(StudentProfile, on_delete=models.CASCADE, related_name="enrollments", verbose_name="Student")
    course = models.ForeignKey(Course, on_delete=models.PROTECT, related_name="enrollments", verbose_name="Course")
    semester = models.ForeignKey(Semester, on_delete=models.PROTECT, related_name="enrollments", verbose_name="Semester")
    enrollment_date = models.DateField("Enrollment date", default=datetime.date.today)

    class Meta:
        verbose_name = "Enrollment"
        verbose_name_plural = "Enrollments"
        unique_together = [("student", "course", "semester")]
        ordering = ["-enrollment_date", "-id"]

    def __str__(self) -> str:  # pragma: no cover - human readable labels
        return f"{self.student} -> {self.course} ({self.semester})"

    def clean(self):
        super().clean()
        if self.course_id and self.semester_id and self.course.semester_id != self.semester_id:
            raise ValidationError({"course": "The course is not offered in the selected semester."})


class Grade(models.Model):
    score_validators = [MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))]

    enrollment = models.OneToOneField(Enrollment, on_delete=models.CASCADE, related_name="grade", verbose_name="Enrollment")
    cat_score = models.DecimalField("CAT score", max_digits=5, decimal_places=2, null=True, blank=True, validators=score_validators)
    exam_score = models.DecimalField("Exam score", max_digits=5, decimal_places=2, null=True, blank=True, validators=score_validators)
    total_score = models.DecimalField("Total score", max_digits=5, decimal_places=2, null=True, blank=True, editable=False)
    letter_grade = models.CharField("Letter grade", max_length=5, blank=True, editable=False)
    gpa = models.DecimalField("Grade points", max_digits=3, decimal_places=2, null=True, blank=True, editable=False)

    class Meta:
        verbose_name = "Grade"
        verbose_name_plural = "Grades"
        ordering = ["enrollment__course__code", "enrollment__student__student_number"]

    def __str__(self) -> str:  # pragma: no cover - human readable labels
        return f"{self.enrollment}: {self.letter_grade or '-'}"

    def apply_scores(self) -> None:
        """Derive total, letter and grade points from whatever scores are present."""

        if self.cat_score is None and self.exam_score is None:
            self.total_score = None
            self.letter_grade = ""
            self.gpa = None
            return
        total = Decimal(self.cat_score or 0) + Decimal(self.exam_score or 0)
        self.total_score = total.quantize(TWO_PLACES)
        letter, points = letter_and_points(self.total_score)
        self.letter_grade = letter or ""
        self.gpa = points

    def save(self, *args, **kwargs):
        self.apply_scores()
        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            kwargs["update_fields"] = set(update_fields) | {"total_score", "letter_grade", "gpa"}
        super().save(*args, **kwargs)


class Transcript(models.Model):
    student = models.ForeignKey(StudentProfile, on_delete=models.CASCADE, related_name="transcripts", verbose_name="Student")
    semester = models.ForeignKey(Semester, on_delete=models.PROTECT, related_name="transcripts", verbose_name="Semester")
    gpa = models.DecimalField("Semester GPA", max_digits=3, decimal_places=2, null=True, blank=True)
    cgpa = models.DecimalField("Cumulative GPA", max_digits=3, decimal_places=2, null=True, blank=True)
    generated_date = models.DateTimeField("Generated at", auto_now=True)

    class Meta:
        verbose_name = "Transcript"
        verbose_name_plural = "Transcripts"
        unique_together = [("student", "semester")]
        ordering = ["semester__start_date"]

    def __str__(self) -> str:  # pragma: no cover - human readable labels
        return f"{self.student} - {self.semester}"


class TimetableEntry(models.Model):
    DAY_OF_WEEK_CHOICES = [
        ("Monday", "Monday"),
        ("Tuesday", "Tuesday"),
        ("Wednesday", "Wednesday"),
        ("Thursday", "Thursday"),
        ("Friday", "Friday"),
        ("Saturday", "Saturday"),
        ("Sunday", "Sunday"),
    ]

    semester = models.ForeignKey(Semester, on_delete=models.PROTECT, related_name="timetable_entries", verbose_name="Semester")
    course = models.ForeignKey(Course, on_delete=models.PROTECT, related_name="timetable_entries", verbose_name="Course")
    lecturer = models.ForeignKey(StaffProfile, on_delete=models.PROTECT, related_name="timetable_entries", verbose_name="Lecturer")
    day_of_week = models.CharField("Day", max_length=20, choices=DAY_OF_WEEK_CHOICES)
    start_time = models.TimeField("Start time")
    end_time = models.TimeField("End time")
    room = models.CharField("Room", max_length=50, blank=True)

    class Meta:
        verbose_name = "Timetable entry"
        verbose_name_plural = "Timetable"
        unique_together = [("semester", "course", "day_of_week", "start_time")]
        ordering = ["semester", "day_of_week", "start_time"]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_time__gt=F("start_time")),
                name="timetable_end_after_start",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover - human readable labels
        return f"{self.course.code} {self.day_of_week} {self.start_time}-{self.end_time} ({self.room or 'TBA'})"

    @classmethod
    def find_conflicts(
        cls,
        semester,
        day_of_week: str,
        start_time: datetime.time,
        end_time: datetime.time,
        room: str | None = None,
        lecturer=None,
        exclude_pk: int | None = None,
    ):
        """Entries overlapping the slot on the same day, by room or lecturer.

        Without a room every overlapping entry of the day counts as a clash.
        """

        overlapping = cls.objects.filter(
            semester=semester,
            day_of_week=day_of_week,
            start_time__lt=end_time,
            end_time__gt=start_time,
        )
        if exclude_pk:
            overlapping = overlapping.exclude(pk=exclude_pk)
        if not room:
            return overlapping.select_related("course", "lecturer")
        clash = Q(room__iexact=room)
        if lecturer is not None:
            clash |= Q(lecturer=lecturer)
        return overlapping.filter(clash).select_related("course", "lecturer")

    def clean(self):
        super().clean()
        if not (self.semester_id and self.day_of_week and self.start_time and self.end_time):
            return
        if self.end_time <= self.start_time:
            raise ValidationError("The class must end after it starts.")
        conflicts = self.find_conflicts(
            self.semester_id,
            self.day_of_week,
            self.start_time,
            self.end_time,
            room=self.room,
            lecturer=self.lecturer_id,
            exclude_pk=self.pk,
        )
        if conflicts.exists():
            labels = ", ".join(str(entry) for entry in conflicts)
            raise ValidationError(f"The slot clashes with existing timetable entries: {labels}.")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


class Quiz(models.Model):
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="quizzes", verbose_name="Course")
    created_by = models.ForeignKey(
        StaffProfile, on_delete=models.SET_NULL, null=True, related_name="quizzes", verbose_name="Created by"
    )
    title = models.CharField("Title", max_length=255)
    instructions = models.TextField("Instructions", blank=True)
    total_marks = models.PositiveIntegerField("Total marks", validators=[MinValueValidator(1)])
    quiz_date = models.DateTimeField("Quiz date")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Quiz"
        verbose_name_plural = "Quizzes"
        ordering = ["-quiz_date"]

    def __str__(self) -> str:  # pragma: no cover - human readable labels
        return f"{self.course.code}: {self.title}"


class QuizSubmission(models.Model):
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name="submissions", verbose_name="Quiz")
    student = models.ForeignKey(StudentProfile, on_delete=models.CASCADE, related_name="quiz_submissions", verbose_name="Student")
    file_url = models.URLField("Submission file", blank=True)
    score = models.DecimalField("Score", max_digits=5, decimal_places=2, null=True, blank=True)
    feedback = models.TextField("Feedback", blank=True)
    submitted_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Quiz submission"
        verbose_name_plural = "Quiz submissions"
        unique_together = [("quiz", "student")]
        ordering = ["-submitted_at"]

    def __str__(self) -> str:  # pragma: no cover - human readable labels
        return f"{self.student} -> {self.quiz}"

    def clean(self):
        super().clean()
        if self.score is not None and self.quiz_id:
            if self.score < 0 or self.score > self.quiz.total_marks:
                raise ValidationError({"score": f"Score must be between 0 and {self.quiz.total_marks}."})


class ActivityLog(models.Model):
    ACTION_CHOICES = [
        ("create", "Create"),
        ("update", "Update"),
        ("delete", "Delete"),
        ("generate", "Generate"),
        ("other", "Other"),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="activity_logs", verbose_name="User")
    action = models.CharField("Action", max_length=50, choices=ACTION_CHOICES)
    target_table = models.CharField("Target table", max_length=100, blank=True)
    target_id = models.BigIntegerField("Target id", null=True, blank=True)
    timestamp = models.DateTimeField("Time", auto_now_add=True)
    description = models.TextField("Description", blank=True)

    class Meta:
        verbose_name = "Activity log"
        verbose_name_plural = "Activity logs"
        ordering = ["-timestamp", "-id"]

    def __str__(self) -> str:  # pragma: no cover - human readable labels
        return f"{self.user} {self.action} {self.target_table}#{self.target_id}"
