from django.contrib.auth import get_user_model
from rest_framework import permissions

User = get_user_model()


class IsManager(permissions.BasePermission):
    message = "관리자만 사용할 수 있습니다."

    def has_permission(self, request, view):
        user = request.user
        return bool(
            user and user.is_authenticated and user.role == User.Role.MANAGER
        )
