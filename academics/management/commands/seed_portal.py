"""Populate the database with demo departments, people, courses, grades and invoices."""
from __future__ import annotations

import datetime
from decimal import Decimal

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from academics.models import (
    Course,
    Department,
    Enrollment,
    Grade,
    Program,
    Semester,
    StaffProfile,
    StudentProfile,
    TimetableEntry,
)
from academics.services import generate_transcript
from finance.models import FeeStructure, Payment
from finance.services import issue_invoices

User = get_user_model()


class Command(BaseCommand):
    help = "Seed the database with demo data for exploring the portal"

    def add_arguments(self, parser):
        parser.add_argument("--students", type=int, default=12, help="Number of generated students per program")

    def _account(self, email: str, first_name: str, last_name: str, is_staff: bool = False):
        user, created = User.objects.get_or_create(
            username=email,
            defaults={"email": email, "first_name": first_name, "last_name": last_name, "is_staff": is_staff},
        )
        if created or not user.has_usable_password():
            user.set_password(settings.DEFAULT_INITIAL_PASSWORD)
            user.save(update_fields=["password"])
        return user

    def _staff(self, email, first_name, last_name, department, position, role):
        user = self._account(email, first_name, last_name, is_staff=role == "admin")
        profile, _ = StaffProfile.objects.get_or_create(
            user=user,
            defaults={
                "department": department,
                "first_name": first_name,
                "last_name": last_name,
                "email": email,
                "position": position,
                "role": role,
            },
        )
        return profile

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write(self.style.WARNING("Creating demo data..."))

        admin_user, created_admin = User.objects.get_or_create(username="admin", defaults={"email": "admin@example.com"})
        if created_admin:
            admin_user.is_staff = True
            admin_user.is_superuser = True
            admin_user.set_password("admin123")
            admin_user.save()
            self.stdout.write(self.style.SUCCESS("Created admin / admin123"))

        computing, _ = Department.objects.get_or_create(name="School of Computing")
        business, _ = Department.objects.get_or_create(name="School of Business")

        bsc_cs, _ = Program.objects.get_or_create(
            code="BSCCS",
            defaults={"department": computing, "name": "BSc Computer Science", "duration_semesters": 8},
        )
        bcom, _ = Program.objects.get_or_create(
            code="BCOM",
            defaults={"department": business, "name": "Bachelor of Commerce", "duration_semesters": 8},
        )

        spring, _ = Semester.objects.get_or_create(
            name="2025 Spring",
            defaults={"start_date": datetime.date(2025, 1, 13), "end_date": datetime.date(2025, 5, 16)},
        )
        fall, _ = Semester.objects.get_or_create(
            name="2025 Fall",
            defaults={"start_date": datetime.date(2025, 9, 1), "end_date": datetime.date(2025, 12, 19)},
        )

        self._staff("registrar@example.com", "Rita", "Okafor", computing, "Registrar", "registrar")
        self._staff("bursar@example.com", "Amos", "Kariuki", business, "Accountant", "accountant")
        self._staff("records@example.com", "Joy", "Achieng", computing, "Records clerk", "staff")
        hod = self._staff("hod.computing@example.com", "Helen", "Mwangi", computing, "Professor", "hod")
        if computing.head_id is None:
            computing.head = hod
            computing.save(update_fields=["head"])
        carol = self._staff("carol@example.com", "Carol", "Njeri", computing, "Senior lecturer", "lecturer")
        dave = self._staff("dave@example.com", "Dave", "Otieno", business, "Lecturer", "lecturer")

        courses_data = [
            (bsc_cs, spring, carol, "CS101", "Introduction to Programming", "3.00"),
            (bsc_cs, spring, carol, "CS102", "Discrete Mathematics", "3.00"),
            (bsc_cs, fall, carol, "CS201", "Data Structures", "4.00"),
            (bcom, spring, dave, "BC101", "Principles of Accounting", "3.00"),
            (bcom, fall, dave, "BC201", "Business Law", "2.00"),
        ]
        courses: list[Course] = []
        for program, semester, lecturer, code, name, credits in courses_data:
            course, _ = Course.objects.get_or_create(
                program=program,
                code=code,
                semester=semester,
                defaults={"name": name, "credits": Decimal(credits), "lecturer": lecturer},
            )
            courses.append(course)

        rooms = ["LH1", "LH2", "LAB1"]
        days = [code for code, _ in TimetableEntry.DAY_OF_WEEK_CHOICES[:5]]
        for index, course in enumerate(courses):
            start = datetime.time(8 + 2 * (index % 4), 0)
            TimetableEntry.objects.get_or_create(
                semester=course.semester,
                course=course,
                day_of_week=days[index % len(days)],
                start_time=start,
                defaults={
                    "lecturer": course.lecturer,
                    "end_time": datetime.time(start.hour + 2, 0),
                    "room": rooms[index % len(rooms)],
                },
            )

        students: list[StudentProfile] = []
        for program in (bsc_cs, bcom):
            for idx in range(1, options["students"] + 1):
                email = f"{program.code.lower()}{idx:03d}@students.example.com"
                user = self._account(email, "Student", f"{program.code} {idx:03d}")
                profile, _ = StudentProfile.objects.get_or_create(
                    user=user,
                    defaults={
                        "program": program,
                        "department": program.department,
                        "current_semester": spring,
                        "first_name": "Student",
                        "last_name": f"{program.code} {idx:03d}",
                        "email": email,
                    },
                )
                students.append(profile)

        graded = 0
        for student in students:
            for course in courses:
                if course.program_id != student.program_id or course.semester_id != spring.pk:
                    continue
                enrollment, _ = Enrollment.objects.get_or_create(student=student, course=course, semester=spring)
                if not hasattr(enrollment, "grade"):
                    seed = (student.pk * 7 + course.pk * 13) % 40
                    Grade.objects.create(
                        enrollment=enrollment,
                        cat_score=Decimal(15 + seed % 16),
                        exam_score=Decimal(25 + seed),
                    )
                    graded += 1
            generate_transcript(student, spring)

        for program, amount in ((bsc_cs, "45000.00"), (bcom, "38000.00")):
            fee, _ = FeeStructure.objects.get_or_create(
                program=program,
                semester=spring,
                defaults={"total_amount": Decimal(amount), "description": "Tuition and registration"},
            )
            result = issue_invoices(fee, spring.start_date + datetime.timedelta(days=30))
            for invoice in result["invoices"]:
                if invoice.student.pk % 3 == 0:
                    continue
                share = invoice.amount_due if invoice.student.pk % 3 == 1 else invoice.amount_due / 2
                Payment.objects.create(
                    invoice=invoice,
                    amount=share.quantize(Decimal("0.01")),
                    payment_method="bank_transfer",
                    reference_number=f"SEED-{invoice.pk:05d}",
                )

        self.stdout.write(
            self.style.SUCCESS(
                f"Demo data ready: {len(students)} students, {len(courses)} courses, {graded} new grades."
            )
        )
        self.stdout.write(
            self.style.SUCCESS(f"Staff and students log in with their email and '{settings.DEFAULT_INITIAL_PASSWORD}'.")
        )
