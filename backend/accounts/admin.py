from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    list_display = ('username', 'email', 'role', 'employee_id', 'is_staff', 'is_active')
    list_filter = ('role', 'is_staff', 'is_active')
    search_fields = ('username', 'email', 'employee_id', 'first_name', 'last_name')

    fieldsets = DjangoUserAdmin.fieldsets + (
        ('Academic role', {'fields': ('role', 'employee_id', 'designation')}),
    )
    add_fieldsets = DjangoUserAdmin.add_fieldsets + (
        ('Academic role', {'fields': ('role', 'employee_id', 'designation')}),
    )
