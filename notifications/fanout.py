import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)


def group_name(identity_id):
    return f"user_{identity_id}"


def unique_recipients(identities):
    recipients = []
    seen = set()
    for identity in identities:
        if identity is None or identity.pk in seen:
            continue
        seen.add(identity.pk)
        recipients.append(identity)
    return recipients


class NotificationFanout:
    """
    작업 변경 결과를 관련 사용자 채널로 흘려보낸다.

    사용자마다 한 번씩 보내고 응답이나 재시도는 없다. 전송 실패는 로그만
    남기며 작업 변경과 이력에는 영향을 주지 않는다.
    """

    TASK_CREATED = "task-created"
    TASK_UPDATED = "task-updated"
    TASK_DELETED = "task-deleted"

    ACTIONS = {
        TASK_CREATED: "created",
        TASK_UPDATED: "updated",
        TASK_DELETED: "deleted",
    }

    def __init__(self, channel_layer=None):
        self._channel_layer = channel_layer

    @property
    def channel_layer(self):
        if self._channel_layer is None:
            self._channel_layer = get_channel_layer()
        return self._channel_layer

    @staticmethod
    def recipients_for_update(old_assignee, new_assignee, creator):
        """이전 담당자, 새 담당자, 생성자. 중복은 한 번만."""
        return unique_recipients((old_assignee, new_assignee, creator))

    def build_payload(self, event, task):
        if event == self.TASK_DELETED:
            return {"taskId": task.pk}

        from tasks.serializers import TaskSerializer

        return {
            "task": dict(TaskSerializer(task).data),
            "action": self.ACTIONS[event],
        }

    def notify(self, event, task, recipients):
        if event not in self.ACTIONS:
            raise ValueError(f"알 수 없는 알림 유형입니다: {event!r}")

        layer = self.channel_layer
        if layer is None:
            logger.warning(
                "No channel layer configured; dropping %s for task %s",
                event,
                task.pk,
            )
            return

        payload = self.build_payload(event, task)
        for recipient in unique_recipients(recipients):
            self.dispatch(layer, recipient.pk, event, payload)

    def dispatch(self, layer, identity_id, event, payload):
        try:
            async_to_sync(layer.group_send)(
                group_name(identity_id),
                {"type": "task.event", "event": event, "data": payload},
            )
        except Exception:
            logger.exception(
                "Failed to deliver %s to user %s", event, identity_id
            )
