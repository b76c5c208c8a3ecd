from django.contrib import admin

from . import models


class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'type', 'recipient', 'sender', 'title', 'is_read', 'created_at')
    list_filter = ('type', 'is_read')
    search_fields = ('recipient__username', 'title')
    readonly_fields = ('created_at', 'read_at')


admin.site.register(models.Notification, NotificationAdmin)
