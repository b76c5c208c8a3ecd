from django.contrib import admin

from . import models


class AccessRequestAdmin(admin.ModelAdmin):
    list_display = ('id', 'course', 'teacher', 'module_leader', 'batch', 'semester', 'section', 'status', 'request_date')
    list_filter = ('status', 'semester')
    search_fields = ('course__code', 'teacher__username', 'module_leader__username')
    readonly_fields = ('request_date', 'response_date', 'responded_by', 'created_at', 'updated_at')


class GrantSectionInline(admin.TabularInline):
    model = models.GrantSection
    extra = 0
    readonly_fields = ('added_at',)


class CourseAccessGrantAdmin(admin.ModelAdmin):
    list_display = ('id', 'course', 'semester', 'year', 'batch', 'module_leader', 'status')
    list_filter = ('status', 'semester', 'year')
    search_fields = ('course__code', 'course__name')
    filter_horizontal = ('teachers',)
    inlines = [GrantSectionInline]


class ModuleLeaderAssignmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'course', 'batch', 'teacher', 'academic_year', 'semester', 'is_active', 'assigned_at')
    list_filter = ('is_active', 'semester', 'academic_year')
    search_fields = ('course__code', 'teacher__username')
    filter_horizontal = ('assigned_teachers',)


admin.site.register(models.AccessRequest, AccessRequestAdmin)
admin.site.register(models.CourseAccessGrant, CourseAccessGrantAdmin)
admin.site.register(models.ModuleLeaderAssignment, ModuleLeaderAssignmentAdmin)
