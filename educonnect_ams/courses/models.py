from django.conf import settings
from django.db import models
from django.utils import timezone


class Course(models.Model):
    code = models.CharField(max_length=20, unique=True)
    title = models.CharField(max_length=200)

    instructor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="taught_courses",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["code"]

    def __str__(self):
        return f"{self.code} - {self.title}"


class Assessment(models.Model):

    class Type(models.TextChoices):
        ASSIGNMENT = "assignment", "Assignment"
        QUIZ = "quiz", "Quiz"
        EXAMINATION = "examination", "Examination"
        PROJECT = "project", "Project"
        PRACTICAL = "practical", "Practical"
        OTHER = "other", "Other"

    course = models.ForeignKey(
        Course,
        on_delete=models.CASCADE,
        related_name="assessments",
    )

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)

    assessment_type = models.CharField(
        max_length=20,
        choices=Type.choices,
        default=Type.ASSIGNMENT,
    )

    due_date = models.DateTimeField(db_index=True)
    total_marks = models.PositiveIntegerField(default=100)

    # Reminders are only owed while both flags hold
    is_active = models.BooleanField(default=True, db_index=True)
    is_published = models.BooleanField(default=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["due_date"]

    def __str__(self):
        return f"{self.title} ({self.course.code})"

    @property
    def is_visible(self):
        return self.is_active and self.is_published

    def is_open(self, now=None):
        now = now or timezone.now()
        return self.is_visible and self.due_date > now


class Enrollment(models.Model):
    course = models.ForeignKey(
        Course,
        on_delete=models.CASCADE,
        related_name="enrollments",
    )
    student = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="enrollments",
    )

    enrolled_at = models.DateTimeField(default=timezone.now)

    class Meta:
        unique_together = ("course", "student")

    def __str__(self):
        return f"{self.student} in {self.course.code}"


class Submission(models.Model):
    assessment = models.ForeignKey(
        Assessment,
        on_delete=models.CASCADE,
        related_name="submissions",
    )
    student = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="submissions",
    )

    submitted_at = models.DateTimeField(default=timezone.now)

    class Meta:
        unique_together = ("assessment", "student")

    def __str__(self):
        return f"{self.student} - {self.assessment.title}"

    @property
    def is_late(self):
        return self.submitted_at > self.assessment.due_date
