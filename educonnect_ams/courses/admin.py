from django.contrib import admin

from .models import Assessment, Course, Enrollment, Submission


# ---------------------------------------------------------------------
# COURSE ADMIN
# ---------------------------------------------------------------------
@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ("code", "title", "instructor", "created_at")
    search_fields = ("code", "title")
    ordering = ("code",)


# ---------------------------------------------------------------------
# ASSESSMENT ADMIN
# ---------------------------------------------------------------------
@admin.register(Assessment)
class AssessmentAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "course",
        "assessment_type",
        "due_date",
        "is_active",
        "is_published",
    )
    list_filter = ("assessment_type", "is_active", "is_published", "course")
    search_fields = ("title", "course__code", "course__title")
    ordering = ("due_date",)
    autocomplete_fields = ("course",)


# ---------------------------------------------------------------------
# ENROLLMENT ADMIN
# ---------------------------------------------------------------------
@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ("student", "course", "enrolled_at")
    list_filter = ("course",)
    search_fields = ("student__username", "student__email", "course__code")
    autocomplete_fields = ("course", "student")


# ---------------------------------------------------------------------
# SUBMISSION ADMIN
# ---------------------------------------------------------------------
@admin.register(Submission)
class SubmissionAdmin(admin.ModelAdmin):
    list_display = ("student", "assessment", "submitted_at")
    list_filter = ("assessment__course",)
    search_fields = ("student__username", "assessment__title")
    autocomplete_fields = ("assessment", "student")
    readonly_fields = ("submitted_at",)
