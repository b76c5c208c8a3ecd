from django.contrib.auth.models import AbstractUser
from django.core.validators import RegexValidator
from django.db import models

from core.identity import Role


class UsernameValidator(RegexValidator):
    """Custom validator that allows spaces in usernames."""
    regex = r'^[\w\s.@+-]+$'
    message = 'Enter a valid username. This value may contain letters, numbers, spaces, and @/./+/-/_ characters.'
    flags = 0


class User(AbstractUser):
    """
    Base user model.
    Teachers, module leaders, students and admins are all users; the
    `role` decides which course-access and distribution rules apply.
    """
    username = models.CharField(
        max_length=150,
        unique=True,
        help_text='Required. 150 characters or fewer. Letters, numbers, spaces, and @/./+/-/_ characters.',
        validators=[UsernameValidator()],
        error_messages={
            'unique': 'A user with that username already exists.',
        },
    )
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.TEACHER, db_index=True)
    employee_id = models.CharField(max_length=32, blank=True, default='')
    designation = models.CharField(max_length=100, blank=True, default='')

    def __str__(self):
        return self.username

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username
