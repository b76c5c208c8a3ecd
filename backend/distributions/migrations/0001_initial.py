import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import distributions.models

ACCESS_ACTION_CHOICES = [('view', 'View'), ('download', 'Download'), ('comment', 'Comment'), ('edit', 'Edit')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('academics', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='DocumentDistribution',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('distribution_id', models.CharField(max_length=40, unique=True)),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True, max_length=1000)),
                ('category', models.CharField(choices=[('lecture-notes', 'Lecture notes'), ('assignments', 'Assignments'), ('syllabus', 'Syllabus'), ('reading-material', 'Reading material'), ('exams', 'Exams'), ('templates', 'Templates'), ('other', 'Other')], max_length=20)),
                ('tags', models.JSONField(blank=True, default=list)),
                ('priority', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('urgent', 'Urgent')], default='medium', max_length=10)),
                ('storage_folder_id', models.CharField(blank=True, max_length=128)),
                ('storage_folder_path', models.CharField(blank=True, max_length=500)),
                ('folder_structure', models.JSONField(blank=True, default=dict)),
                ('course_code', models.CharField(max_length=32)),
                ('course_name', models.CharField(max_length=200)),
                ('credit_hours', models.PositiveSmallIntegerField(default=0)),
                ('department_name', models.CharField(blank=True, max_length=200)),
                ('academic_year', models.CharField(max_length=16)),
                ('semester', models.CharField(choices=[('Spring', 'Spring'), ('Summer', 'Summer'), ('Fall', 'Fall')], max_length=10)),
                ('batch', models.CharField(max_length=16)),
                ('section', models.CharField(blank=True, max_length=50)),
                ('class_count', models.PositiveIntegerField(blank=True, null=True)),
                ('module_leader_name', models.CharField(max_length=200)),
                ('module_leader_email', models.EmailField(blank=True, max_length=254)),
                ('module_leader_employee_id', models.CharField(blank=True, max_length=64)),
                ('permissions', models.JSONField(default=distributions.models.default_permissions)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('distributed', 'Distributed'), ('archived', 'Archived'), ('expired', 'Expired')], db_index=True, default='pending', max_length=12)),
                ('distributed_at', models.DateTimeField(blank=True, null=True)),
                ('distribution_notes', models.TextField(blank=True)),
                ('archived_at', models.DateTimeField(blank=True, null=True)),
                ('archive_reason', models.CharField(blank=True, max_length=500)),
                ('expires_at', models.DateTimeField(blank=True, null=True)),
                ('total_views', models.PositiveIntegerField(default=0)),
                ('total_downloads', models.PositiveIntegerField(default=0)),
                ('last_accessed_at', models.DateTimeField(blank=True, null=True)),
                ('file_count', models.PositiveIntegerField(default=0)),
                ('total_file_size', models.BigIntegerField(default=0)),
                ('version', models.PositiveIntegerField(default=1)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='distributions', to='academics.course')),
                ('module_leader', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='owned_distributions', to=settings.AUTH_USER_MODEL)),
                ('archived_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='archived_distributions', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='created_distributions', to=settings.AUTH_USER_MODEL)),
                ('last_modified_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='modified_distributions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ('-created_at', '-id'),
                'indexes': [
                    models.Index(fields=['module_leader', 'status'], name='dist_owner_status_idx'),
                    models.Index(fields=['course_code', 'academic_year', 'semester'], name='dist_course_term_idx'),
                    models.Index(fields=['category', 'status'], name='dist_category_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DistributionFile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('position', models.PositiveIntegerField()),
                ('original_name', models.CharField(max_length=255)),
                ('file_type', models.CharField(blank=True, max_length=32)),
                ('file_size', models.BigIntegerField(default=0)),
                ('mime_type', models.CharField(blank=True, max_length=128)),
                ('storage_file_id', models.CharField(blank=True, max_length=128)),
                ('live_view_link', models.URLField(blank=True, max_length=500)),
                ('download_link', models.URLField(blank=True, max_length=500)),
                ('thumbnail_link', models.URLField(blank=True, max_length=500)),
                ('checksum', models.CharField(blank=True, max_length=128)),
                ('uploaded_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('last_modified', models.DateTimeField(default=django.utils.timezone.now)),
                ('distribution', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='files', to='distributions.documentdistribution')),
            ],
            options={
                'ordering': ('position', 'id'),
                'constraints': [models.UniqueConstraint(fields=('distribution', 'position'), name='unique_distribution_file_position')],
            },
        ),
        migrations.CreateModel(
            name='DistributionTeacherShare',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('narrowed', models.BooleanField(default=False)),
                ('shared', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('distribution', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='teacher_shares', to='distributions.documentdistribution')),
                ('teacher', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='shared_distributions', to=settings.AUTH_USER_MODEL)),
                ('shared_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ('created_at', 'id'),
                'constraints': [models.UniqueConstraint(fields=('distribution', 'teacher'), name='unique_distribution_teacher_share')],
            },
        ),
        migrations.CreateModel(
            name='DistributionAccess',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=ACCESS_ACTION_CHOICES, max_length=10)),
                ('first_accessed_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('distribution', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='unique_accesses', to='distributions.documentdistribution')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'constraints': [models.UniqueConstraint(fields=('distribution', 'user', 'action'), name='unique_distribution_accessor')],
            },
        ),
        migrations.CreateModel(
            name='AccessLogEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=ACCESS_ACTION_CHOICES, max_length=10)),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.CharField(blank=True, max_length=512)),
                ('distribution', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='access_log', to='distributions.documentdistribution')),
                ('user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ('id',),
                'indexes': [models.Index(fields=['distribution', '-id'], name='dist_accesslog_recent_idx')],
            },
        ),
        migrations.CreateModel(
            name='AuditEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('created', 'Created'), ('updated', 'Updated'), ('distributed', 'Distributed'), ('archived', 'Archived'), ('permission-changed', 'Permission changed'), ('file-added', 'File added'), ('file-removed', 'File removed')], max_length=20)),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now)),
                ('actor_name', models.CharField(blank=True, max_length=200)),
                ('details', models.TextField(blank=True)),
                ('previous_state', models.JSONField(blank=True, null=True)),
                ('distribution', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='audit_trail', to='distributions.documentdistribution')),
                ('actor', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ('timestamp', 'id'),
            },
        ),
    ]
