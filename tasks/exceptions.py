from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler as drf_exception_handler


class TaskError(APIException):
    """작업 변경 과정에서 발생하는 모든 도메인 오류의 기반 클래스"""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "요청을 처리할 수 없습니다."
    default_code = "task_error"


class NotFound(TaskError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "작업을 찾을 수 없습니다."
    default_code = "not_found"


class AccessDenied(TaskError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "접근 권한이 없습니다."
    default_code = "access_denied"


class ForbiddenField(TaskError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "수정할 수 없는 필드가 포함되어 있습니다."
    default_code = "forbidden_field"

    def __init__(self, fields=(), detail=None):
        self.fields = tuple(fields)
        if detail is None and self.fields:
            detail = f"수정할 수 없는 필드입니다: {', '.join(self.fields)}"
        super().__init__(detail)


class Rejected(TaskError):
    """변경 검증기가 거부한 값"""

    default_code = "rejected"


class SelfAssignmentForbidden(Rejected):
    default_detail = "자기 자신에게 작업을 배정할 수 없습니다."
    default_code = "self_assignment_forbidden"


class InvalidAssigneeRole(Rejected):
    default_detail = "관리자에게는 작업을 배정할 수 없습니다."
    default_code = "invalid_assignee_role"


class ReferenceNotFound(Rejected):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "배정할 사용자를 찾을 수 없습니다."
    default_code = "reference_not_found"


class DueDateInPast(Rejected):
    default_detail = "마감일은 오늘 이전일 수 없습니다."
    default_code = "due_date_in_past"


class CommentRequired(Rejected):
    default_detail = "상태를 변경할 때는 코멘트가 필요합니다."
    default_code = "comment_required"


class PersistenceError(TaskError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "작업을 저장하지 못했습니다."
    default_code = "persistence_error"


def exception_handler(exc, context):
    response = drf_exception_handler(exc, context)
    if response is not None and isinstance(exc, APIException):
        codes = exc.get_codes()
        if isinstance(codes, str) and isinstance(response.data, dict):
            response.data["code"] = codes
    return response
