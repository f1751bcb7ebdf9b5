from django.db import models
from django.contrib.auth.models import AbstractUser


class User(AbstractUser):
    """
    Platform account. Students receive deadline reminders;
    instructors and admins own the courses that emit them.
    """

    class Role(models.TextChoices):
        STUDENT = "student", "Student"
        INSTRUCTOR = "instructor", "Instructor"
        ADMIN = "admin", "Admin"

    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.STUDENT,
        db_index=True,
    )

    student_number = models.CharField(max_length=30, blank=True)

    def __str__(self):
        full = self.get_full_name()
        return f"{full} ({self.username})" if full else self.username

    @property
    def display_name(self):
        return self.get_full_name() or self.username
