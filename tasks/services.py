"""
작업 생성/수정/삭제의 전체 흐름.

1. 조회 → 2. 권한 확인 → 3. 필드별 검증 → 4. 메모리 사본에 반영
→ 5. 저장 → 6. 변경 이력 기록 → 7. 알림 발송

저장(5)이 실패하면 6, 7은 일어나지 않는다. 6과 7의 실패는 로그만 남기고
요청은 성공으로 끝난다. 세 단계는 하나의 트랜잭션이 아니다.
"""
import copy
import logging
from typing import Any, List, NamedTuple, Tuple

from django.contrib.auth import get_user_model

from accounts.directory import IdentityDirectory
from activities.models import Activity
from activities.recorder import ActivityRecorder
from notifications.fanout import NotificationFanout

from . import permissions
from .exceptions import ReferenceNotFound
from .models import Task
from .store import TaskStore
from .validators import ChangeContext, validate_change

logger = logging.getLogger(__name__)

User = get_user_model()


class Change(NamedTuple):
    field: str
    old_value: Any
    new_value: Any


def snapshot_value(value):
    """변경 이력에 남길 값. 사용자는 id, 날짜는 ISO 문자열로 남긴다."""
    if isinstance(value, User):
        return value.pk
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


class TaskMutator:
    def __init__(
        self, store=None, directory=None, recorder=None, notifier=None
    ):
        self.store = store or TaskStore()
        self.directory = directory or IdentityDirectory()
        self.recorder = recorder or ActivityRecorder()
        self.notifier = notifier or NotificationFanout()

    def get_task(self, requester, task_id):
        task = self.store.get(task_id)
        permissions.check_visibility(requester, task)
        return task

    def create_task(self, requester, fields) -> Task:
        permissions.authorize_create(requester)
        context = ChangeContext(requester=requester, directory=self.directory)

        if fields.get("assigned_to") is None:
            raise ReferenceNotFound()
        assignee = validate_change("assigned_to", fields["assigned_to"], context)
        due_date = validate_change("due_date", fields.get("due_date"), context)

        task = Task(
            title=fields["title"],
            description=fields.get("description") or "",
            status=Task.Status.PENDING,
            priority=fields.get("priority") or Task.Priority.MEDIUM,
            created_by=requester,
            assigned_to=assignee,
            due_date=due_date,
        )
        self.store.insert(task)
        logger.info(
            "Task %s created by %s, assigned to %s",
            task.pk,
            requester.pk,
            assignee.pk,
        )

        self.recorder.record(task, requester, Activity.Action.CREATED)
        self.notifier.notify(
            NotificationFanout.TASK_CREATED, task, [assignee]
        )
        return task

    def authorize_update(self, requester, task_id, requested_fields):
        """조회 후 권한을 확인하고 (작업, 쓸 수 있는 필드)를 돌려준다."""
        task = self.store.get(task_id)
        allowed = permissions.authorize(requester, task, requested_fields)
        return task, allowed

    def update_task(
        self, requester, task_id, fields, comment=None
    ) -> Tuple[Task, List[Change]]:
        task, allowed = self.authorize_update(
            requester, task_id, fields.keys()
        )

        context = ChangeContext(
            requester=requester,
            directory=self.directory,
            task=task,
            comment=comment,
        )

        # 요청 전체를 먼저 검증한다. 하나라도 거부되면 아무것도 반영하지 않는다.
        accepted = []
        for field in allowed:
            proposed = fields[field]
            current = task.value_of(field)
            if field == "assigned_to":
                proposed_key = getattr(proposed, "pk", proposed)
                if str(proposed_key) == str(current):
                    continue
            elif proposed == current:
                continue
            new_value = validate_change(field, proposed, context)
            accepted.append((field, getattr(task, field), new_value))

        if not accepted:
            return task, []

        updated = copy.copy(task)
        for field, _old, new_value in accepted:
            setattr(updated, field, new_value)
        self.store.update(updated, [field for field, _old, _new in accepted])

        changes = [
            Change(field, snapshot_value(old), snapshot_value(new))
            for field, old, new in accepted
        ]
        logger.info(
            "Task %s updated by %s: %s",
            updated.pk,
            requester.pk,
            ", ".join(change.field for change in changes),
        )

        for change in changes:
            if change.field == "status":
                self.recorder.record(
                    updated,
                    requester,
                    Activity.Action.STATUS_CHANGED,
                    field=change.field,
                    old_value=change.old_value,
                    new_value=change.new_value,
                    comment=comment,
                )
            else:
                self.recorder.record(
                    updated,
                    requester,
                    Activity.Action.UPDATED,
                    field=change.field,
                    old_value=change.old_value,
                    new_value=change.new_value,
                )

        recipients = self.notifier.recipients_for_update(
            task.assigned_to, updated.assigned_to, updated.created_by
        )
        self.notifier.notify(NotificationFanout.TASK_UPDATED, updated, recipients)
        return updated, changes

    def delete_task(self, requester, task_id) -> None:
        task = self.store.get(task_id)
        permissions.authorize_delete(requester, task)

        self.recorder.record(
            task,
            requester,
            Activity.Action.DELETED,
            old_value=task.snapshot(),
        )
        self.store.delete(task)
        logger.info("Task %s deleted by %s", task.pk, requester.pk)

        self.notifier.notify(
            NotificationFanout.TASK_DELETED, task, [task.assigned_to]
        )
