from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.test import SimpleTestCase, TestCase, override_settings

from tasks.models import Task
from .consumers import NotificationConsumer
from .fanout import NotificationFanout, group_name
from .testing import RecordingChannelLayer

User = get_user_model()


class RecipientTest(SimpleTestCase):
    def setUp(self):
        self.a = User(pk=1, username="a", role=User.Role.USER)
        self.b = User(pk=2, username="b", role=User.Role.USER)
        self.c = User(pk=3, username="c", role=User.Role.MANAGER)

    def test_reassignment_reaches_everyone_once(self):
        recipients = NotificationFanout.recipients_for_update(
            self.a, self.b, self.c
        )
        self.assertEqual(recipients, [self.a, self.b, self.c])

    def test_creator_who_is_new_assignee_is_notified_once(self):
        recipients = NotificationFanout.recipients_for_update(
            self.a, self.b, self.b
        )
        self.assertEqual(recipients, [self.a, self.b])

    def test_unchanged_assignee(self):
        recipients = NotificationFanout.recipients_for_update(
            self.a, self.a, self.c
        )
        self.assertEqual(recipients, [self.a, self.c])


class NotificationFanoutTest(TestCase):
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
        self.layer = RecordingChannelLayer()
        self.fanout = NotificationFanout(channel_layer=self.layer)

    def test_update_payload_carries_resolved_task(self):
        self.fanout.notify(
            NotificationFanout.TASK_UPDATED,
            self.task,
            [self.user, self.manager, self.user],
        )

        self.assertEqual(
            self.layer.groups,
            [group_name(self.user.pk), group_name(self.manager.pk)],
        )
        message = self.layer.events_for(group_name(self.user.pk))[0]
        self.assertEqual(message["type"], "task.event")
        self.assertEqual(message["event"], "task-updated")
        self.assertEqual(message["data"]["action"], "updated")
        self.assertEqual(
            message["data"]["task"]["assigned_to"],
            {"id": self.user.pk, "name": "사용자", "email": "user@example.com"},
        )

    def test_deleted_payload_has_task_id_only(self):
        self.fanout.notify(
            NotificationFanout.TASK_DELETED, self.task, [self.user]
        )
        message = self.layer.sent[0][1]
        self.assertEqual(message["data"], {"taskId": self.task.pk})

    def test_unknown_event_is_rejected(self):
        with self.assertRaises(ValueError):
            self.fanout.notify("task-archived", self.task, [self.user])

    def test_dispatch_failure_is_swallowed(self):
        layer = RecordingChannelLayer(fail_for={group_name(self.user.pk)})
        fanout = NotificationFanout(channel_layer=layer)
        with self.assertLogs("notifications.fanout", level="ERROR"):
            fanout.notify(
                NotificationFanout.TASK_UPDATED,
                self.task,
                [self.user, self.manager],
            )
        self.assertEqual(layer.groups, [group_name(self.manager.pk)])

    @override_settings(CHANNEL_LAYERS={})
    def test_missing_channel_layer_is_logged(self):
        fanout = NotificationFanout()
        with self.assertLogs("notifications.fanout", level="WARNING"):
            fanout.notify(
                NotificationFanout.TASK_CREATED, self.task, [self.user]
            )


class NotificationConsumerTest(SimpleTestCase):
    # channels closes stale DB connections around each consumer call
    databases = {"default"}

    def setUp(self):
        self.user = User(pk=7, username="user", role=User.Role.USER)

    def communicator(self, user):
        app = NotificationConsumer.as_asgi()
        communicator = WebsocketCommunicator(app, "/ws/notifications/")
        communicator.scope["user"] = user
        return communicator

    async def test_authenticated_user_receives_own_events(self):
        communicator = self.communicator(self.user)
        connected, _ = await communicator.connect()
        self.assertTrue(connected)
        layer = get_channel_layer()
        await layer.group_send(
            group_name(self.user.pk),
            {
                "type": "task.event",
                "event": "task-deleted",
                "data": {"taskId": 3},
            },
        )
        response = await communicator.receive_json_from()
        self.assertEqual(
            response, {"event": "task-deleted", "data": {"taskId": 3}}
        )
        await communicator.disconnect()

    async def test_join_room_only_for_own_id(self):
        communicator = self.communicator(self.user)
        connected, _ = await communicator.connect()
        self.assertTrue(connected)

        await communicator.send_json_to({"type": "join-room", "user_id": 8})
        response = await communicator.receive_json_from()
        self.assertEqual(response["event"], "error")

        await communicator.send_json_to({"type": "join-room", "user_id": 7})
        response = await communicator.receive_json_from()
        self.assertEqual(response, {"event": "joined", "data": {"user_id": 7}})
        await communicator.disconnect()

    async def test_anonymous_cannot_join(self):
        communicator = self.communicator(AnonymousUser())
        await communicator.connect()
        await communicator.send_json_to({"type": "join-room", "user_id": 7})
        response = await communicator.receive_json_from()
        self.assertEqual(response["event"], "error")
        await communicator.disconnect()
