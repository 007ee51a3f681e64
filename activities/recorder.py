import logging

from django.db import DatabaseError, transaction

from .models import Activity

logger = logging.getLogger(__name__)


class ActivityRecorder:
    """
    변경 이력 기록기.

    기록 실패가 작업 변경을 막아서는 안 되므로 DB 오류는 로그만 남기고
    삼킨다. 이 경우 이력에서 한 건이 빠질 수 있다.
    """

    def record(
        self,
        task,
        user,
        action,
        field=None,
        old_value=None,
        new_value=None,
        comment=None,
    ):
        try:
            with transaction.atomic():
                return Activity.objects.create(
                    task_id=task.pk,
                    user=user,
                    action=action,
                    field=field or "",
                    old_value=old_value,
                    new_value=new_value,
                    comment=comment or "",
                )
        except DatabaseError:
            logger.exception(
                "Failed to record %s activity for task %s (field=%s)",
                action,
                task.pk,
                field,
            )
            return None
