from django.contrib import admin

from . import models


class DistributionFileInline(admin.TabularInline):
    model = models.DistributionFile
    extra = 0


class DistributionTeacherShareInline(admin.TabularInline):
    model = models.DistributionTeacherShare
    extra = 0


class DocumentDistributionAdmin(admin.ModelAdmin):
    list_display = ('distribution_id', 'title', 'course_code', 'module_leader', 'category', 'status', 'file_count', 'total_views', 'version')
    list_filter = ('status', 'category', 'priority', 'semester')
    search_fields = ('distribution_id', 'title', 'course_code', 'module_leader__username')
    readonly_fields = ('distribution_id', 'version', 'total_views', 'total_downloads', 'last_accessed_at', 'file_count', 'total_file_size', 'created_at', 'updated_at')
    inlines = [DistributionFileInline, DistributionTeacherShareInline]


class AuditEntryAdmin(admin.ModelAdmin):
    list_display = ('distribution', 'action', 'actor_name', 'timestamp')
    list_filter = ('action',)
    search_fields = ('distribution__distribution_id', 'actor_name')

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


admin.site.register(models.DocumentDistribution, DocumentDistributionAdmin)
admin.site.register(models.AuditEntry, AuditEntryAdmin)
