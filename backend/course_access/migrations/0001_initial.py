import django.core.validators
import django.db.models.deletion
import django.db.models.functions
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

SEMESTER_CHOICES = [('Spring', 'Spring'), ('Summer', 'Summer'), ('Fall', 'Fall')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('academics', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AccessRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('batch', models.PositiveIntegerField()),
                ('semester', models.CharField(choices=SEMESTER_CHOICES, max_length=10)),
                ('section', models.CharField(max_length=50)),
                ('message', models.TextField(validators=[django.core.validators.MinLengthValidator(10), django.core.validators.MaxLengthValidator(1000)])),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], db_index=True, default='pending', max_length=10)),
                ('request_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('response_date', models.DateTimeField(blank=True, null=True)),
                ('response_message', models.TextField(blank=True, validators=[django.core.validators.MaxLengthValidator(1000)])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='access_requests', to='academics.course')),
                ('teacher', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='course_access_requests', to=settings.AUTH_USER_MODEL)),
                ('module_leader', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='received_access_requests', to=settings.AUTH_USER_MODEL)),
                ('responded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='responded_access_requests', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ('-request_date', '-id'),
                'indexes': [models.Index(fields=['module_leader', 'status'], name='accessreq_leader_status_idx')],
                'constraints': [models.UniqueConstraint(condition=models.Q(('status', 'pending')), fields=('course', 'teacher'), name='unique_pending_access_request')],
            },
        ),
        migrations.CreateModel(
            name='CourseAccessGrant',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('semester', models.CharField(choices=SEMESTER_CHOICES, max_length=10)),
                ('year', models.PositiveSmallIntegerField()),
                ('batch', models.PositiveIntegerField()),
                ('status', models.CharField(choices=[('ongoing', 'Ongoing'), ('completed', 'Completed')], db_index=True, default='ongoing', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='access_grants', to='academics.course')),
                ('module_leader', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='led_course_access_grants', to=settings.AUTH_USER_MODEL)),
                ('teachers', models.ManyToManyField(blank=True, related_name='course_access_grants', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ('-year', 'course_id', 'batch'),
                'constraints': [models.UniqueConstraint(fields=('course', 'semester', 'year', 'batch'), name='unique_course_access_grant')],
            },
        ),
        migrations.CreateModel(
            name='GrantSection',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=50)),
                ('added_at', models.DateTimeField(auto_now_add=True)),
                ('grant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='section_entries', to='course_access.courseaccessgrant')),
            ],
            options={
                'ordering': ('name',),
                'constraints': [models.UniqueConstraint(fields=('grant', 'name'), name='unique_grant_section')],
            },
        ),
        migrations.CreateModel(
            name='ModuleLeaderAssignment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('batch', models.PositiveIntegerField(blank=True, null=True)),
                ('academic_year', models.PositiveSmallIntegerField()),
                ('semester', models.CharField(choices=SEMESTER_CHOICES, max_length=10)),
                ('assigned_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('is_active', models.BooleanField(default=True)),
                ('remarks', models.TextField(blank=True)),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='module_leader_assignments', to='academics.course')),
                ('teacher', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='module_leader_assignments', to=settings.AUTH_USER_MODEL)),
                ('assigned_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='module_leader_assignments_made', to=settings.AUTH_USER_MODEL)),
                ('assigned_teachers', models.ManyToManyField(blank=True, related_name='assigned_module_courses', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ('-assigned_at',),
                'indexes': [
                    models.Index(fields=['teacher', 'is_active'], name='mlassign_teacher_active_idx'),
                    models.Index(fields=['course', 'academic_year', 'semester'], name='mlassign_course_term_idx'),
                ],
                'constraints': [models.UniqueConstraint(models.F('course'), django.db.models.functions.Coalesce('batch', models.Value(0)), condition=models.Q(('is_active', True)), name='unique_active_module_leader')],
            },
        ),
    ]
