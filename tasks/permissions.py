"""
작업 접근 권한 판단.

역할은 manager / user 두 가지뿐이며, 모든 분기는 두 역할을 모두 다루고
그 밖의 값이 들어오면 예외를 던진다.
"""
from django.contrib.auth import get_user_model

from .exceptions import AccessDenied, ForbiddenField
from .models import Task

User = get_user_model()

USER_WRITABLE_FIELDS = ("status",)


def _unknown_role(requester):
    return ValueError(f"알 수 없는 역할입니다: {requester.role!r}")


def can_view(requester, task):
    if requester.role == User.Role.USER:
        return task.assigned_to_id == requester.pk
    if requester.role == User.Role.MANAGER:
        return task.created_by_id == requester.pk
    raise _unknown_role(requester)


def check_visibility(requester, task):
    if not can_view(requester, task):
        raise AccessDenied()


def visible_tasks(requester, queryset=None):
    """역할별로 볼 수 있는 작업만 남긴 queryset"""
    if queryset is None:
        queryset = Task.objects.all()
    if requester.role == User.Role.USER:
        return queryset.filter(assigned_to=requester)
    if requester.role == User.Role.MANAGER:
        return queryset.filter(created_by=requester)
    raise _unknown_role(requester)


def authorize(requester, task, requested_fields):
    """
    요청된 필드 중 이 요청자가 쓸 수 있는 필드를 선언 순서대로 돌려준다.

    - user: status 외의 작업 필드가 있으면 ForbiddenField.
      status가 아예 없는 요청도 거부한다.
    - manager: id, created_by, 타임스탬프는 조용히 건너뛴다.
    """
    check_visibility(requester, task)

    attributes = Task.attribute_names()
    requested = [name for name in requested_fields if name in attributes]

    if requester.role == User.Role.USER:
        forbidden = [
            name for name in requested if name not in USER_WRITABLE_FIELDS
        ]
        if forbidden:
            raise ForbiddenField(forbidden)
        if "status" not in requested:
            raise ForbiddenField(
                detail="사용자는 작업 상태만 변경할 수 있습니다."
            )
        return ("status",)

    if requester.role == User.Role.MANAGER:
        return tuple(
            name for name in Task.MUTABLE_FIELDS if name in requested
        )

    raise _unknown_role(requester)


def authorize_create(requester):
    if requester.role == User.Role.MANAGER:
        return
    if requester.role == User.Role.USER:
        raise AccessDenied("작업은 관리자만 생성할 수 있습니다.")
    raise _unknown_role(requester)


def authorize_delete(requester, task):
    if task.created_by_id != requester.pk:
        raise AccessDenied("본인이 생성한 작업만 삭제할 수 있습니다.")
