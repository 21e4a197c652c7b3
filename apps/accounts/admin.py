# ==========================================
# apps/accounts/admin.py
# ==========================================

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Admin interface for check-in clerks and meeting administrators.

    Granting ``is_staff`` promotes a clerk to meeting admin.
    """

    list_display = [
        'email',
        'display_name',
        'is_active',
        'is_staff',
        'created_at',
        'last_login',
    ]

    list_filter = [
        'is_active',
        'is_staff',
        'is_superuser',
        'created_at',
    ]

    search_fields = [
        'email',
        'display_name',
    ]

    ordering = ['-created_at']

    # Remove username field references from BaseUserAdmin
    fieldsets = (
        ('Basic Information', {
            'fields': ('email', 'display_name', 'password')
        }),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'last_login'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'display_name', 'password1', 'password2', 'is_staff'),
        }),
    )

    readonly_fields = ['created_at', 'last_login']

    actions = ['promote_to_admin', 'revoke_admin']

    def promote_to_admin(self, request, queryset):
        updated = queryset.update(is_staff=True)
        self.message_user(request, f"{updated} users can now approve undo requests")
    promote_to_admin.short_description = "Grant meeting admin"

    def revoke_admin(self, request, queryset):
        updated = queryset.filter(is_superuser=False).update(is_staff=False)
        self.message_user(request, f"Revoked meeting admin from {updated} users")
    revoke_admin.short_description = "Revoke meeting admin"
