from datetime import timedelta
from unittest import mock

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from accounts.directory import IdentityDirectory
from activities.models import Activity
from notifications.fanout import NotificationFanout
from notifications.testing import RecordingChannelLayer
from . import permissions
from .exceptions import (
    AccessDenied,
    CommentRequired,
    DueDateInPast,
    ForbiddenField,
    InvalidAssigneeRole,
    NotFound,
    PersistenceError,
    ReferenceNotFound,
    SelfAssignmentForbidden,
)
from .models import Task
from .services import TaskMutator
from .store import TaskStore
from .validators import ChangeContext, validate_change

User = get_user_model()


def create_identity(username, role, name=None):
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="testpass123",
        name=name or username,
        role=role,
    )


class TaskFixtureMixin:
    def setUp(self):
        self.manager = create_identity("manager", User.Role.MANAGER, "김관리")
        self.other_manager = create_identity(
            "manager2", User.Role.MANAGER, "이관리"
        )
        self.user = create_identity("user", User.Role.USER, "박사용")
        self.other_user = create_identity("user2", User.Role.USER, "최사용")
        self.task = Task.objects.create(
            title="테스트 작업",
            description="테스트 설명",
            created_by=self.manager,
            assigned_to=self.user,
        )
        self.today = timezone.localdate()
        self.yesterday = self.today - timedelta(days=1)


class TaskModelTest(TaskFixtureMixin, TestCase):
    def test_task_defaults(self):
        self.assertEqual(self.task.status, Task.Status.PENDING)
        self.assertEqual(self.task.priority, Task.Priority.MEDIUM)
        self.assertIsNone(self.task.due_date)

    def test_task_str(self):
        self.assertEqual(str(self.task), "테스트 작업")

    def test_value_of_compares_assignee_by_id(self):
        self.assertEqual(self.task.value_of("assigned_to"), self.user.pk)
        self.assertEqual(self.task.value_of("title"), "테스트 작업")


class AuthorizationGateTest(TaskFixtureMixin, TestCase):
    def test_user_sees_only_assigned_tasks(self):
        self.assertTrue(permissions.can_view(self.user, self.task))
        self.assertFalse(permissions.can_view(self.other_user, self.task))

    def test_manager_sees_only_created_tasks(self):
        self.assertTrue(permissions.can_view(self.manager, self.task))
        self.assertFalse(permissions.can_view(self.other_manager, self.task))

    def test_visibility_denied_before_field_checks(self):
        with self.assertRaises(AccessDenied):
            permissions.authorize(self.other_user, self.task, ["title"])

    def test_user_may_only_write_status(self):
        allowed = permissions.authorize(self.user, self.task, ["status"])
        self.assertEqual(allowed, ("status",))

    def test_user_other_field_is_forbidden(self):
        with self.assertRaises(ForbiddenField) as ctx:
            permissions.authorize(
                self.user, self.task, ["status", "title", "created_by"]
            )
        self.assertEqual(ctx.exception.fields, ("title", "created_by"))

    def test_user_request_without_status_is_forbidden(self):
        with self.assertRaises(ForbiddenField):
            permissions.authorize(self.user, self.task, [])

    def test_manager_fields_follow_declaration_order(self):
        allowed = permissions.authorize(
            self.manager,
            self.task,
            ["due_date", "created_by", "title", "updated_at", "status"],
        )
        self.assertEqual(allowed, ("title", "status", "due_date"))

    def test_only_managers_create(self):
        permissions.authorize_create(self.manager)
        with self.assertRaises(AccessDenied):
            permissions.authorize_create(self.user)

    def test_only_creator_deletes(self):
        permissions.authorize_delete(self.manager, self.task)
        with self.assertRaises(AccessDenied):
            permissions.authorize_delete(self.other_manager, self.task)
        with self.assertRaises(AccessDenied):
            permissions.authorize_delete(self.user, self.task)

    def test_unknown_role_is_not_treated_as_either_role(self):
        stranger = User(pk=999, username="stranger", role="admin")
        with self.assertRaises(ValueError):
            permissions.can_view(stranger, self.task)
        with self.assertRaises(ValueError):
            permissions.authorize_create(stranger)


class ChangeValidatorTest(TaskFixtureMixin, TestCase):
    def context(self, requester, comment=None):
        return ChangeContext(
            requester=requester,
            directory=IdentityDirectory(),
            task=self.task,
            comment=comment,
        )

    def test_assign_to_self_is_rejected(self):
        with self.assertRaises(SelfAssignmentForbidden):
            validate_change(
                "assigned_to", self.manager.pk, self.context(self.manager)
            )

    def test_assign_to_unknown_identity_is_rejected(self):
        with self.assertRaises(ReferenceNotFound):
            validate_change("assigned_to", 987654, self.context(self.manager))

    def test_assign_to_manager_is_rejected(self):
        with self.assertRaises(InvalidAssigneeRole):
            validate_change(
                "assigned_to",
                self.other_manager.pk,
                self.context(self.manager),
            )

    def test_assign_to_user_returns_identity(self):
        assignee = validate_change(
            "assigned_to", self.other_user.pk, self.context(self.manager)
        )
        self.assertEqual(assignee, self.other_user)

    def test_due_date_today_is_accepted(self):
        value = validate_change(
            "due_date", self.today, self.context(self.manager)
        )
        self.assertEqual(value, self.today)

    def test_due_date_yesterday_is_rejected(self):
        with self.assertRaises(DueDateInPast):
            validate_change(
                "due_date", self.yesterday, self.context(self.manager)
            )

    def test_due_date_can_be_cleared(self):
        self.assertIsNone(
            validate_change("due_date", None, self.context(self.manager))
        )

    def test_user_status_change_requires_comment(self):
        with self.assertRaises(CommentRequired):
            validate_change(
                "status", Task.Status.COMPLETED, self.context(self.user)
            )
        with self.assertRaises(CommentRequired):
            validate_change(
                "status", Task.Status.COMPLETED, self.context(self.user, "  ")
            )

    def test_manager_status_change_without_comment(self):
        value = validate_change(
            "status", Task.Status.COMPLETED, self.context(self.manager)
        )
        self.assertEqual(value, Task.Status.COMPLETED)

    def test_status_change_by_unknown_role_is_not_accepted(self):
        stranger = User(pk=999, username="stranger", role="admin")
        with self.assertRaises(ValueError):
            validate_change(
                "status", Task.Status.COMPLETED, self.context(stranger)
            )

    def test_assign_to_inactive_identity_is_rejected(self):
        self.other_user.is_active = False
        self.other_user.save()
        with self.assertRaises(ReferenceNotFound):
            validate_change(
                "assigned_to", self.other_user.pk, self.context(self.manager)
            )

    def test_plain_field_passes_through(self):
        self.assertEqual(
            validate_change("title", "새 제목", self.context(self.manager)),
            "새 제목",
        )


class TaskMutatorTestBase(TaskFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.layer = RecordingChannelLayer()
        self.mutator = TaskMutator(
            notifier=NotificationFanout(channel_layer=self.layer)
        )

    def activities(self, task_id=None):
        return list(
            Activity.objects.filter(
                task_id=task_id or self.task.pk
            ).order_by("id")
        )


class TaskMutatorCreateTest(TaskMutatorTestBase):
    def test_manager_creates_task_due_today(self):
        task = self.mutator.create_task(
            self.manager,
            {
                "title": "새 작업",
                "assigned_to": self.user.pk,
                "due_date": self.today,
            },
        )

        task.refresh_from_db()
        self.assertEqual(task.status, Task.Status.PENDING)
        self.assertEqual(task.priority, Task.Priority.MEDIUM)
        self.assertEqual(task.created_by, self.manager)
        self.assertEqual(task.assigned_to, self.user)
        self.assertEqual(task.due_date, self.today)

        entries = self.activities(task.pk)
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].action, Activity.Action.CREATED)
        self.assertEqual(entries[0].user, self.manager)
        self.assertEqual(entries[0].field, "")

        self.assertEqual(self.layer.groups, [f"user_{self.user.pk}"])
        message = self.layer.sent[0][1]
        self.assertEqual(message["event"], "task-created")
        self.assertEqual(message["data"]["action"], "created")
        self.assertEqual(
            message["data"]["task"]["assigned_to"]["name"], "박사용"
        )
        self.assertEqual(
            message["data"]["task"]["created_by"]["email"],
            "manager@example.com",
        )

    def test_status_in_request_is_ignored_on_create(self):
        task = self.mutator.create_task(
            self.manager,
            {
                "title": "새 작업",
                "assigned_to": self.user.pk,
                "status": Task.Status.COMPLETED,
                "priority": Task.Priority.HIGH,
            },
        )
        self.assertEqual(task.status, Task.Status.PENDING)
        self.assertEqual(task.priority, Task.Priority.HIGH)

    def test_user_cannot_create(self):
        with self.assertRaises(AccessDenied):
            self.mutator.create_task(
                self.user,
                {"title": "새 작업", "assigned_to": self.other_user.pk},
            )
        self.assertEqual(Task.objects.count(), 1)

    def test_manager_cannot_assign_self_on_create(self):
        with self.assertRaises(SelfAssignmentForbidden):
            self.mutator.create_task(
                self.manager,
                {"title": "새 작업", "assigned_to": self.manager.pk},
            )
        self.assertEqual(Task.objects.count(), 1)
        self.assertEqual(Activity.objects.count(), 0)
        self.assertEqual(self.layer.sent, [])

    def test_cannot_assign_to_manager_on_create(self):
        with self.assertRaises(InvalidAssigneeRole):
            self.mutator.create_task(
                self.manager,
                {"title": "새 작업", "assigned_to": self.other_manager.pk},
            )

    def test_unknown_assignee_on_create(self):
        with self.assertRaises(ReferenceNotFound):
            self.mutator.create_task(
                self.manager, {"title": "새 작업", "assigned_to": 424242}
            )

    def test_due_date_yesterday_rejected_on_create(self):
        with self.assertRaises(DueDateInPast):
            self.mutator.create_task(
                self.manager,
                {
                    "title": "새 작업",
                    "assigned_to": self.user.pk,
                    "due_date": self.yesterday,
                },
            )
        self.assertEqual(Task.objects.count(), 1)


class TaskMutatorUpdateTest(TaskMutatorTestBase):
    def test_user_changes_status_with_comment(self):
        task, changes = self.mutator.update_task(
            self.user,
            self.task.pk,
            {"status": Task.Status.IN_PROGRESS},
            comment="starting",
        )

        self.assertEqual(task.status, Task.Status.IN_PROGRESS)
        self.assertEqual([change.field for change in changes], ["status"])

        entries = self.activities()
        self.assertEqual(len(entries), 1)
        entry = entries[0]
        self.assertEqual(entry.action, Activity.Action.STATUS_CHANGED)
        self.assertEqual(entry.field, "status")
        self.assertEqual(entry.old_value, "pending")
        self.assertEqual(entry.new_value, "in-progress")
        self.assertEqual(entry.comment, "starting")
        self.assertEqual(entry.user, self.user)

        self.assertEqual(
            self.layer.groups,
            [f"user_{self.user.pk}", f"user_{self.manager.pk}"],
        )
        for _group, message in self.layer.sent:
            self.assertEqual(message["event"], "task-updated")
            self.assertEqual(message["data"]["action"], "updated")
            self.assertEqual(message["data"]["task"]["status"], "in-progress")

    def test_same_status_is_noop(self):
        task, changes = self.mutator.update_task(
            self.user, self.task.pk, {"status": Task.Status.PENDING}
        )
        self.assertEqual(changes, [])
        self.assertEqual(task.status, Task.Status.PENDING)
        self.assertEqual(self.activities(), [])
        self.assertEqual(self.layer.sent, [])

    def test_user_status_change_without_comment_is_rejected(self):
        with self.assertRaises(CommentRequired):
            self.mutator.update_task(
                self.user, self.task.pk, {"status": Task.Status.COMPLETED}
            )
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, Task.Status.PENDING)
        self.assertEqual(self.activities(), [])
        self.assertEqual(self.layer.sent, [])

    def test_user_cannot_change_title(self):
        with self.assertRaises(ForbiddenField):
            self.mutator.update_task(self.user, self.task.pk, {"title": "new"})
        self.task.refresh_from_db()
        self.assertEqual(self.task.title, "테스트 작업")
        self.assertEqual(self.activities(), [])

    def test_other_user_cannot_update(self):
        with self.assertRaises(AccessDenied):
            self.mutator.update_task(
                self.other_user,
                self.task.pk,
                {"status": Task.Status.COMPLETED},
                comment="done",
            )

    def test_other_manager_cannot_update(self):
        with self.assertRaises(AccessDenied):
            self.mutator.update_task(
                self.other_manager, self.task.pk, {"title": "탈취"}
            )

    def test_missing_task(self):
        with self.assertRaises(NotFound):
            self.mutator.update_task(self.manager, 999999, {"title": "x"})

    def test_manager_changes_are_recorded_in_declaration_order(self):
        task, changes = self.mutator.update_task(
            self.manager,
            self.task.pk,
            {
                "priority": Task.Priority.HIGH,
                "description": "테스트 설명",
                "title": "수정된 작업",
            },
        )

        self.assertEqual(
            [change.field for change in changes], ["title", "priority"]
        )
        entries = self.activities()
        self.assertEqual(
            [(entry.action, entry.field) for entry in entries],
            [
                (Activity.Action.UPDATED, "title"),
                (Activity.Action.UPDATED, "priority"),
            ],
        )
        self.assertEqual(entries[0].old_value, "테스트 작업")
        self.assertEqual(entries[0].new_value, "수정된 작업")

        self.task.refresh_from_db()
        self.assertEqual(self.task.title, "수정된 작업")
        self.assertEqual(self.task.priority, Task.Priority.HIGH)

    def test_manager_status_change_is_status_changed(self):
        self.mutator.update_task(
            self.manager,
            self.task.pk,
            {"status": Task.Status.COMPLETED},
            comment="검수 완료",
        )
        entry = self.activities()[0]
        self.assertEqual(entry.action, Activity.Action.STATUS_CHANGED)
        self.assertEqual(entry.comment, "검수 완료")

    def test_reassignment_notifies_old_new_and_creator(self):
        task, changes = self.mutator.update_task(
            self.manager, self.task.pk, {"assigned_to": self.other_user.pk}
        )

        self.assertEqual(task.assigned_to, self.other_user)
        self.assertEqual(
            changes[0], ("assigned_to", self.user.pk, self.other_user.pk)
        )
        self.assertEqual(
            self.layer.groups,
            [
                f"user_{self.user.pk}",
                f"user_{self.other_user.pk}",
                f"user_{self.manager.pk}",
            ],
        )
        entry = self.activities()[0]
        self.assertEqual(entry.action, Activity.Action.UPDATED)
        self.assertEqual(entry.field, "assigned_to")
        self.assertEqual(entry.old_value, self.user.pk)
        self.assertEqual(entry.new_value, self.other_user.pk)

    def test_same_assignee_is_noop(self):
        _task, changes = self.mutator.update_task(
            self.manager, self.task.pk, {"assigned_to": self.user.pk}
        )
        self.assertEqual(changes, [])
        self.assertEqual(self.activities(), [])

    def test_manager_cannot_assign_self_on_update(self):
        with self.assertRaises(SelfAssignmentForbidden):
            self.mutator.update_task(
                self.manager, self.task.pk, {"assigned_to": self.manager.pk}
            )
        self.task.refresh_from_db()
        self.assertEqual(self.task.assigned_to, self.user)

    def test_cannot_reassign_to_manager(self):
        with self.assertRaises(InvalidAssigneeRole):
            self.mutator.update_task(
                self.manager,
                self.task.pk,
                {"assigned_to": self.other_manager.pk},
            )

    def test_due_date_today_accepted_on_update(self):
        _task, changes = self.mutator.update_task(
            self.manager, self.task.pk, {"due_date": self.today}
        )
        self.assertEqual(changes[0].new_value, self.today.isoformat())
        self.task.refresh_from_db()
        self.assertEqual(self.task.due_date, self.today)

    def test_due_date_yesterday_rejected_on_update(self):
        with self.assertRaises(DueDateInPast):
            self.mutator.update_task(
                self.manager, self.task.pk, {"due_date": self.yesterday}
            )

    def test_rejected_field_discards_whole_request(self):
        with self.assertRaises(DueDateInPast):
            self.mutator.update_task(
                self.manager,
                self.task.pk,
                {"title": "바뀌면 안 됨", "due_date": self.yesterday},
            )
        self.task.refresh_from_db()
        self.assertEqual(self.task.title, "테스트 작업")
        self.assertEqual(self.activities(), [])
        self.assertEqual(self.layer.sent, [])

    def test_manager_read_only_fields_are_skipped(self):
        _task, changes = self.mutator.update_task(
            self.manager,
            self.task.pk,
            {"created_by": self.other_manager.pk, "title": "제목만"},
        )
        self.assertEqual([change.field for change in changes], ["title"])
        self.task.refresh_from_db()
        self.assertEqual(self.task.created_by, self.manager)

    def test_store_failure_skips_audit_and_notification(self):
        with mock.patch.object(
            Task, "save", side_effect=DatabaseError("db down")
        ):
            with self.assertRaises(PersistenceError):
                self.mutator.update_task(
                    self.manager, self.task.pk, {"title": "저장 실패"}
                )
        self.task.refresh_from_db()
        self.assertEqual(self.task.title, "테스트 작업")
        self.assertEqual(self.activities(), [])
        self.assertEqual(self.layer.sent, [])

    def test_audit_failure_does_not_block_update(self):
        with mock.patch.object(
            Activity.objects, "create", side_effect=DatabaseError("log down")
        ):
            with self.assertLogs("activities.recorder", level="ERROR"):
                task, changes = self.mutator.update_task(
                    self.manager, self.task.pk, {"title": "이력 없이 저장"}
                )
        self.assertEqual(len(changes), 1)
        self.task.refresh_from_db()
        self.assertEqual(self.task.title, "이력 없이 저장")
        self.assertEqual(self.activities(), [])
        self.assertEqual(len(self.layer.sent), 2)

    def test_dispatch_failure_does_not_block_update(self):
        layer = RecordingChannelLayer(fail_for={f"user_{self.manager.pk}"})
        mutator = TaskMutator(notifier=NotificationFanout(channel_layer=layer))
        with self.assertLogs("notifications.fanout", level="ERROR"):
            task, _changes = mutator.update_task(
                self.user,
                self.task.pk,
                {"status": Task.Status.COMPLETED},
                comment="끝",
            )
        self.assertEqual(task.status, Task.Status.COMPLETED)
        self.assertEqual(layer.groups, [f"user_{self.user.pk}"])
        self.assertEqual(len(self.activities()), 1)


class ConcurrentUpdateTest(TaskMutatorTestBase):
    """두 요청이 같은 작업을 동시에 고치면 나중에 저장한 쪽이 이긴다."""

    def test_last_write_wins_with_stale_audit(self):
        stale = Task.objects.get(pk=self.task.pk)

        self.mutator.update_task(self.manager, self.task.pk, {"title": "첫 번째"})
        with mock.patch.object(TaskStore, "get", return_value=stale):
            self.mutator.update_task(
                self.manager, self.task.pk, {"title": "두 번째"}
            )

        self.task.refresh_from_db()
        self.assertEqual(self.task.title, "두 번째")

        first, second = self.activities()
        self.assertEqual(first.old_value, "테스트 작업")
        self.assertEqual(first.new_value, "첫 번째")
        # 두 번째 요청은 이미 지나간 값을 기준으로 계산됐다
        self.assertEqual(second.old_value, "테스트 작업")
        self.assertEqual(second.new_value, "두 번째")


class TaskMutatorDeleteTest(TaskMutatorTestBase):
    def test_creator_deletes_task(self):
        task_id = self.task.pk
        self.mutator.delete_task(self.manager, task_id)

        self.assertFalse(Task.objects.filter(pk=task_id).exists())
        entries = self.activities(task_id)
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].action, Activity.Action.DELETED)
        self.assertEqual(entries[0].old_value["title"], "테스트 작업")
        self.assertEqual(entries[0].old_value["assigned_to"], self.user.pk)

        self.assertEqual(self.layer.groups, [f"user_{self.user.pk}"])
        message = self.layer.sent[0][1]
        self.assertEqual(message["event"], "task-deleted")
        self.assertEqual(message["data"], {"taskId": task_id})

    def test_other_manager_cannot_delete(self):
        with self.assertRaises(AccessDenied):
            self.mutator.delete_task(self.other_manager, self.task.pk)
        self.assertTrue(Task.objects.filter(pk=self.task.pk).exists())
        self.assertEqual(self.activities(), [])

    def test_assignee_cannot_delete(self):
        with self.assertRaises(AccessDenied):
            self.mutator.delete_task(self.user, self.task.pk)

    def test_history_survives_deletion(self):
        task_id = self.task.pk
        self.mutator.update_task(self.manager, task_id, {"title": "곧 삭제"})
        self.mutator.delete_task(self.manager, task_id)
        actions = [entry.action for entry in self.activities(task_id)]
        self.assertEqual(
            actions, [Activity.Action.UPDATED, Activity.Action.DELETED]
        )


class TaskAPITest(TaskFixtureMixin, APITestCase):
    def test_user_lists_assigned_tasks(self):
        Task.objects.create(
            title="다른 사람 작업",
            created_by=self.manager,
            assigned_to=self.other_user,
        )
        self.client.force_authenticate(user=self.user)
        response = self.client.get(reverse("task-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["title"], "테스트 작업")

    def test_manager_lists_created_tasks(self):
        Task.objects.create(
            title="다른 관리자 작업",
            created_by=self.other_manager,
            assigned_to=self.user,
        )
        self.client.force_authenticate(user=self.manager)
        response = self.client.get(reverse("task-list"))

        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["total_pages"], 1)
        self.assertEqual(
            response.data["results"][0]["assigned_to"]["name"], "박사용"
        )

    def test_list_filters_by_status(self):
        Task.objects.create(
            title="완료 작업",
            status=Task.Status.COMPLETED,
            created_by=self.manager,
            assigned_to=self.user,
        )
        self.client.force_authenticate(user=self.manager)
        response = self.client.get(
            reverse("task-list"), {"status": "completed"}
        )
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["title"], "완료 작업")

    def test_get_task(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.get(
            reverse("task-detail", kwargs={"pk": self.task.pk})
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["created_by"]["name"], "김관리")

    def test_get_missing_task(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.get(reverse("task-detail", kwargs={"pk": 999}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_get_invisible_task(self):
        self.client.force_authenticate(user=self.other_user)
        response = self.client.get(
            reverse("task-detail", kwargs={"pk": self.task.pk})
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["code"], "access_denied")

    def test_manager_creates_task(self):
        self.client.force_authenticate(user=self.manager)
        response = self.client.post(
            reverse("task-list"),
            {
                "title": "API 작업",
                "assigned_to": self.user.pk,
                "due_date": self.today.isoformat(),
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["status"], "pending")
        self.assertEqual(response.data["assigned_to"]["id"], self.user.pk)
        self.assertEqual(
            Activity.objects.filter(task_id=response.data["id"]).count(), 1
        )

    def test_user_cannot_create_task(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.post(
            reverse("task-list"),
            {"title": "API 작업", "assigned_to": self.other_user.pk},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_with_past_due_date(self):
        self.client.force_authenticate(user=self.manager)
        response = self.client.post(
            reverse("task-list"),
            {
                "title": "API 작업",
                "assigned_to": self.user.pk,
                "due_date": self.yesterday.isoformat(),
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "due_date_in_past")

    def test_create_requires_title(self):
        self.client.force_authenticate(user=self.manager)
        response = self.client.post(
            reverse("task-list"),
            {"title": "", "assigned_to": self.user.pk},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("title", response.data)

    def test_user_updates_status(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.patch(
            reverse("task-detail", kwargs={"pk": self.task.pk}),
            {"status": "in-progress", "comment": "starting"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "in-progress")
        self.assertEqual(response.data["changes"], ["status"])

    def test_user_status_without_comment(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.put(
            reverse("task-detail", kwargs={"pk": self.task.pk}),
            {"status": "completed"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "comment_required")

    def test_user_cannot_update_title(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.patch(
            reverse("task-detail", kwargs={"pk": self.task.pk}),
            {"title": "new"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["code"], "forbidden_field")

    def test_invalid_status_value(self):
        self.client.force_authenticate(user=self.manager)
        response = self.client.patch(
            reverse("task-detail", kwargs={"pk": self.task.pk}),
            {"status": "archived"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_user_malformed_title_is_forbidden(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.patch(
            reverse("task-detail", kwargs={"pk": self.task.pk}),
            {"title": ""},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["code"], "forbidden_field")

    def test_user_status_with_bad_priority_is_forbidden(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.patch(
            reverse("task-detail", kwargs={"pk": self.task.pk}),
            {"status": "completed", "comment": "c", "priority": "urgent"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["code"], "forbidden_field")
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, Task.Status.PENDING)

    def test_malformed_body_on_missing_task(self):
        self.client.force_authenticate(user=self.manager)
        response = self.client.patch(
            reverse("task-detail", kwargs={"pk": 99999}),
            {"status": "bogus"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_malformed_body_on_invisible_task(self):
        self.client.force_authenticate(user=self.other_manager)
        response = self.client.patch(
            reverse("task-detail", kwargs={"pk": self.task.pk}),
            {"status": "bogus"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_other_manager_cannot_delete(self):
        self.client.force_authenticate(user=self.other_manager)
        response = self.client.delete(
            reverse("task-detail", kwargs={"pk": self.task.pk})
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Task.objects.filter(pk=self.task.pk).exists())

    def test_creator_deletes_task(self):
        self.client.force_authenticate(user=self.manager)
        response = self.client.delete(
            reverse("task-detail", kwargs={"pk": self.task.pk})
        )
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Task.objects.filter(pk=self.task.pk).exists())

    def test_assigned_and_created_lists(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.get(reverse("task-assigned"))
        self.assertEqual(response.data["count"], 1)

        response = self.client.get(reverse("task-created"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.manager)
        response = self.client.get(reverse("task-created"))
        self.assertEqual(response.data["count"], 1)

    def test_task_activities_newest_first(self):
        self.client.force_authenticate(user=self.manager)
        url = reverse("task-detail", kwargs={"pk": self.task.pk})
        self.client.patch(url, {"title": "하나"}, format="json")
        self.client.patch(url, {"priority": "high"}, format="json")

        response = self.client.get(
            reverse("task-activities", kwargs={"pk": self.task.pk})
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [entry["field"] for entry in response.data],
            ["priority", "title"],
        )
        self.assertEqual(response.data[0]["task_title"], "하나")
        self.assertEqual(response.data[0]["user"]["name"], "김관리")


class TaskAdminTest(TaskFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.admin = User.objects.create_superuser(
            username="admin",
            email="admin@example.com",
            password="testpass123",
        )
        self.client.force_login(self.admin)

    def test_change_form_does_not_save(self):
        response = self.client.post(
            reverse("admin:tasks_task_change", args=[self.task.pk]),
            {
                "title": self.task.title,
                "description": self.task.description,
                "status": self.task.status,
                "priority": self.task.priority,
                "created_by": self.manager.pk,
                "assigned_to": self.manager.pk,
                "due_date": "2000-01-01",
            },
        )
        self.assertEqual(response.status_code, 403)

        self.task.refresh_from_db()
        self.assertEqual(self.task.assigned_to, self.user)
        self.assertIsNone(self.task.due_date)
        self.assertFalse(Activity.objects.exists())

    def test_change_list_is_readable(self):
        response = self.client.get(reverse("admin:tasks_task_changelist"))
        self.assertEqual(response.status_code, 200)

    def test_add_and_delete_are_not_offered(self):
        response = self.client.get(reverse("admin:tasks_task_add"))
        self.assertEqual(response.status_code, 403)
        response = self.client.post(
            reverse("admin:tasks_task_delete", args=[self.task.pk]),
            {"post": "yes"},
        )
        self.assertEqual(response.status_code, 403)
        self.assertTrue(Task.objects.filter(pk=self.task.pk).exists())
