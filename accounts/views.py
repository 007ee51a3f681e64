from rest_framework import viewsets
from rest_framework.permissions import IsAuthenticated

from .directory import IdentityDirectory
from .permissions import IsManager
from .serializers import UserSerializer


class UserViewSet(viewsets.ReadOnlyModelViewSet):
    """작업을 배정할 수 있는 일반 사용자 목록 (관리자 전용)"""

    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated, IsManager]

    def get_queryset(self):
        return IdentityDirectory().assignable_users()
