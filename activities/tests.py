from unittest import mock

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from tasks.models import Task
from .models import Activity, ActivityAppendOnlyError
from .recorder import ActivityRecorder

User = get_user_model()


class ActivityTestMixin:
    def setUp(self):
        self.manager = User.objects.create_user(
            username="manager",
            email="manager@example.com",
            password="testpass123",
            name="관리자",
            role=User.Role.MANAGER,
        )
        self.user = User.objects.create_user(
            username="user",
            email="user@example.com",
            password="testpass123",
            name="사용자",
        )
        self.task = Task.objects.create(
            title="테스트 작업",
            created_by=self.manager,
            assigned_to=self.user,
        )
        self.recorder = ActivityRecorder()


class ActivityRecorderTest(ActivityTestMixin, TestCase):
    def test_record_field_change(self):
        entry = self.recorder.record(
            self.task,
            self.user,
            Activity.Action.STATUS_CHANGED,
            field="status",
            old_value="pending",
            new_value="completed",
            comment="완료했습니다",
        )

        entry.refresh_from_db()
        self.assertEqual(entry.task_id, self.task.pk)
        self.assertEqual(entry.field, "status")
        self.assertEqual(entry.old_value, "pending")
        self.assertEqual(entry.new_value, "completed")
        self.assertEqual(entry.comment, "완료했습니다")

    def test_record_lifecycle_event_has_no_field(self):
        entry = self.recorder.record(
            self.task, self.manager, Activity.Action.CREATED
        )
        self.assertEqual(entry.field, "")
        self.assertIsNone(entry.old_value)

    def test_failure_is_logged_and_swallowed(self):
        with mock.patch.object(
            Activity.objects, "create", side_effect=DatabaseError("down")
        ):
            with self.assertLogs("activities.recorder", level="ERROR") as logs:
                entry = self.recorder.record(
                    self.task, self.manager, Activity.Action.CREATED
                )
        self.assertIsNone(entry)
        self.assertIn("Failed to record created activity", logs.output[0])


class ActivityAppendOnlyTest(ActivityTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.entry = self.recorder.record(
            self.task, self.manager, Activity.Action.CREATED
        )

    def test_existing_entry_cannot_be_saved(self):
        self.entry.comment = "고쳐 쓰기"
        with self.assertRaises(ActivityAppendOnlyError):
            self.entry.save()

    def test_entry_cannot_be_deleted(self):
        with self.assertRaises(ActivityAppendOnlyError):
            self.entry.delete()
        with self.assertRaises(ActivityAppendOnlyError):
            Activity.objects.filter(pk=self.entry.pk).delete()
        with self.assertRaises(ActivityAppendOnlyError):
            Activity.objects.filter(pk=self.entry.pk).update(comment="x")

    def test_entry_survives_task_deletion(self):
        task_id = self.task.pk
        Task.objects.filter(pk=task_id).delete()

        entry = Activity.objects.with_task_title().get(pk=self.entry.pk)
        self.assertEqual(entry.task_id, task_id)
        self.assertIsNone(entry.task_title)


class ActivityAPITest(ActivityTestMixin, APITestCase):
    def setUp(self):
        super().setUp()
        self.recorder.record(self.task, self.manager, Activity.Action.CREATED)
        self.recorder.record(
            self.task,
            self.manager,
            Activity.Action.UPDATED,
            field="title",
            old_value="테스트 작업",
            new_value="새 제목",
        )
        self.client.force_authenticate(user=self.user)

    def test_list_newest_first(self):
        response = self.client.get(reverse("activity-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 2)
        actions = [row["action"] for row in response.data["results"]]
        self.assertEqual(actions, ["updated", "created"])
        first = response.data["results"][0]
        self.assertEqual(first["user"]["name"], "관리자")
        self.assertEqual(first["task_title"], "테스트 작업")

    def test_filter_by_task(self):
        other = Task.objects.create(
            title="다른 작업", created_by=self.manager, assigned_to=self.user
        )
        self.recorder.record(other, self.manager, Activity.Action.CREATED)

        response = self.client.get(
            reverse("activity-list"), {"task": self.task.pk}
        )
        self.assertEqual(response.data["count"], 2)

        response = self.client.get(reverse("activity-list"), {"task": "abc"})
        self.assertEqual(response.data["count"], 0)

    def test_history_of_deleted_task_is_listed(self):
        task_id = self.task.pk
        Task.objects.filter(pk=task_id).delete()

        response = self.client.get(
            reverse("task-activities", kwargs={"pk": task_id})
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        self.assertIsNone(response.data[0]["task_title"])

    def test_activities_are_read_only(self):
        response = self.client.post(
            reverse("activity-list"), {"action": "created"}, format="json"
        )
        self.assertEqual(
            response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED
        )
