from django.contrib.auth import get_user_model

User = get_user_model()


class IdentityDirectory:
    """
    사용자 참조(id)를 실제 사용자로 풀어주는 조회 창구.

    담당자 검증과 응답 확장 모두 이 클래스를 거친다.
    """

    def resolve(self, identity_id):
        """활성 사용자만 찾는다. 비활성이거나 없으면 None"""
        if identity_id is None:
            return None
        try:
            return User.objects.get(pk=identity_id, is_active=True)
        except (User.DoesNotExist, ValueError, TypeError):
            return None

    def assignable_users(self):
        return User.objects.filter(
            role=User.Role.USER, is_active=True
        ).order_by("name", "username")
