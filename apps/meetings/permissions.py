from rest_framework import permissions


class IsMeetingAdmin(permissions.BasePermission):
    """
    Permission: User must carry the meeting admin capability (is_staff).
    """

    message = 'Admin access required.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_meeting_admin)
