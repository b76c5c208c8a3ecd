from dataclasses import dataclass

from django.db import models


class Role(models.TextChoices):
    TEACHER = 'teacher', 'Teacher'
    MODULE_LEADER = 'module-leader', 'Module Leader'
    STUDENT = 'student', 'Student'
    ADMIN = 'admin', 'Admin'


@dataclass(frozen=True)
class Identity:
    """The caller of an operation, as supplied by the identity provider.

    Services trust this value; authentication happens before it is built.
    """
    id: int
    role: str
    name: str = ''

    @property
    def is_teacher(self) -> bool:
        return self.role == Role.TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT

    @property
    def is_module_leader(self) -> bool:
        return self.role == Role.MODULE_LEADER


def identity_for(user) -> Identity:
    """Build an Identity from an authenticated user instance."""
    name = user.get_full_name() if hasattr(user, 'get_full_name') else ''
    return Identity(id=user.pk, role=getattr(user, 'role', '') or '', name=name or user.get_username())
