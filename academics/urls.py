from django.urls import path

from . import views

app_name = "academics"

urlpatterns = [
    path("roles/", views.RoleListView.as_view(), name="roles"),
    path("students/", views.StudentListView.as_view(), name="student_list"),
    path("students/bulk/", views.StudentBulkCreateView.as_view(), name="student_bulk_create"),
    path("students/<int:pk>/", views.StudentDetailView.as_view(), name="student_detail"),
    path("students/<int:pk>/gpa/", views.StudentGpaView.as_view(), name="student_gpa"),
    path("students/<int:pk>/grades/", views.StudentGradesView.as_view(), name="student_grades"),
    path("students/<int:pk>/transcripts/", views.StudentTranscriptView.as_view(), name="student_transcripts"),
    path("staff/", views.StaffListView.as_view(), name="staff_list"),
    path("staff/<int:pk>/", views.StaffDetailView.as_view(), name="staff_detail"),
    path("departments/", views.DepartmentListView.as_view(), name="department_list"),
    path("departments/<int:pk>/", views.DepartmentDetailView.as_view(), name="department_detail"),
    path("departments/<int:pk>/head/", views.DepartmentHeadView.as_view(), name="department_head"),
    path("programs/", views.ProgramListView.as_view(), name="program_list"),
    path("programs/<int:pk>/", views.ProgramDetailView.as_view(), name="program_detail"),
    path("programs/<int:pk>/courses/", views.ProgramCoursesView.as_view(), name="program_courses"),
    path("programs/<int:pk>/students/", views.ProgramStudentsView.as_view(), name="program_students"),
    path("semesters/", views.SemesterListView.as_view(), name="semester_list"),
    path("semesters/<int:pk>/", views.SemesterDetailView.as_view(), name="semester_detail"),
    path("semesters/<int:pk>/courses/", views.SemesterCoursesView.as_view(), name="semester_courses"),
    path("semesters/<int:pk>/timetable/", views.SemesterTimetableView.as_view(), name="semester_timetable"),
    path("semesters/<int:pk>/students/", views.SemesterStudentsView.as_view(), name="semester_students"),
    path(
        "semesters/<int:pk>/enrollment-stats/",
        views.SemesterEnrollmentStatsView.as_view(),
        name="semester_enrollment_stats",
    ),
    path("graduation/", views.GraduationListView.as_view(), name="graduation_list"),
    path("courses/", views.CourseListView.as_view(), name="course_list"),
    path("courses/<int:pk>/", views.CourseDetailView.as_view(), name="course_detail"),
    path("courses/<int:pk>/lecturer/", views.CourseLecturerView.as_view(), name="course_lecturer"),
    path("courses/<int:pk>/enrollments/", views.CourseEnrollmentsView.as_view(), name="course_enrollments"),
    path("courses/<int:pk>/grades/", views.CourseGradesView.as_view(), name="course_grades"),
    path("enrollments/", views.EnrollmentListView.as_view(), name="enrollment_list"),
    path("enrollments/pages/", views.EnrollmentPagesView.as_view(), name="enrollment_pages"),
    path("enrollments/exists/", views.EnrollmentExistsView.as_view(), name="enrollment_exists"),
    path("enrollments/<int:pk>/", views.EnrollmentDetailView.as_view(), name="enrollment_detail"),
    path("timetable/", views.TimetableListView.as_view(), name="timetable_list"),
    path("timetable/conflicts/", views.TimetableConflictView.as_view(), name="timetable_conflicts"),
    path("timetable/rooms/", views.TimetableRoomsView.as_view(), name="timetable_rooms"),
    path("timetable/<int:pk>/", views.TimetableDetailView.as_view(), name="timetable_detail"),
    path("grades/", views.GradeListView.as_view(), name="grade_list"),
    path("grades/<int:pk>/", views.GradeDetailView.as_view(), name="grade_detail"),
    path("quizzes/", views.QuizListView.as_view(), name="quiz_list"),
    path("quizzes/<int:pk>/", views.QuizDetailView.as_view(), name="quiz_detail"),
    path("quizzes/<int:pk>/submit/", views.QuizSubmitView.as_view(), name="quiz_submit"),
    path(
        "quizzes/submissions/<int:pk>/grade/",
        views.QuizSubmissionGradeView.as_view(),
        name="quiz_submission_grade",
    ),
    path("activity/", views.ActivityListView.as_view(), name="activity_list"),
    path("activity/summary/", views.ActivitySummaryView.as_view(), name="activity_summary"),
    path("activity/<int:pk>/", views.ActivityDetailView.as_view(), name="activity_detail"),
    path("users/<int:user_id>/activity/", views.ActivityListView.as_view(), name="user_activity"),
]
