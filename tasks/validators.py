from typing import Any, NamedTuple, Optional

from django.contrib.auth import get_user_model
from django.utils import timezone

from .exceptions import (
    CommentRequired,
    DueDateInPast,
    InvalidAssigneeRole,
    ReferenceNotFound,
    SelfAssignmentForbidden,
)

User = get_user_model()


class ChangeContext(NamedTuple):
    requester: Any
    directory: Any
    task: Optional[Any] = None
    comment: Optional[str] = None


def validate_assignee(value, context):
    """담당자 id를 검증하고 해당 사용자를 돌려준다."""
    assignee_id = getattr(value, "pk", value)
    if assignee_id is not None and str(assignee_id) == str(
        context.requester.pk
    ):
        raise SelfAssignmentForbidden()

    assignee = context.directory.resolve(assignee_id)
    if assignee is None:
        raise ReferenceNotFound()
    if assignee.role == User.Role.MANAGER:
        raise InvalidAssigneeRole()
    if assignee.role != User.Role.USER:
        raise ValueError(f"알 수 없는 역할입니다: {assignee.role!r}")
    return assignee


def validate_due_date(value, context):
    # 시간은 무시하고 날짜 단위로만 비교
    if value is None:
        return None
    if hasattr(value, "date") and callable(value.date):
        value = value.date()
    if value < timezone.localdate():
        raise DueDateInPast()
    return value


def validate_status(value, context):
    role = context.requester.role
    if role == User.Role.USER:
        comment = (context.comment or "").strip()
        if not comment:
            raise CommentRequired()
        return value
    if role == User.Role.MANAGER:
        return value
    raise ValueError(f"알 수 없는 역할입니다: {role!r}")


FIELD_VALIDATORS = {
    "assigned_to": validate_assignee,
    "due_date": validate_due_date,
    "status": validate_status,
}


def validate_change(field, value, context):
    """
    필드 하나의 변경 값을 검증한다.

    같은 값인지(no-op)는 호출하는 쪽에서 먼저 걸러야 한다.
    거부되면 Rejected 하위 예외를 던지고, 통과하면 저장할 값을 돌려준다.
    """
    validator = FIELD_VALIDATORS.get(field)
    if validator is None:
        return value
    return validator(value, context)
