from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from academics.models import Course, Semester
from course_access.services import assignment_registry


class Command(BaseCommand):
    help = 'Make a user the active module leader of a course (and optionally one batch).'

    def add_arguments(self, parser):
        parser.add_argument('course_code')
        parser.add_argument('username')
        parser.add_argument('--semester', choices=Semester.values, required=True)
        parser.add_argument('--year', type=int, default=timezone.now().year)
        parser.add_argument('--batch', type=int, default=None)
        parser.add_argument('--remarks', default='')

    def handle(self, *args, **options):
        course = Course.objects.filter(code=options['course_code']).first()
        if course is None:
            raise CommandError(f"Course {options['course_code']} not found")
        user = get_user_model().objects.filter(username=options['username']).first()
        if user is None:
            raise CommandError(f"User {options['username']} not found")

        assignment = assignment_registry.assign_module_leader(
            course,
            user,
            academic_year=options['year'],
            semester=options['semester'],
            batch=options['batch'],
            remarks=options['remarks'],
        )
        self.stdout.write(f'Assigned {user.username} to {course.code} ({assignment.semester} {assignment.academic_year})')
