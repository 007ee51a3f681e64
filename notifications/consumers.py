from channels.generic.websocket import AsyncJsonWebsocketConsumer

from .fanout import group_name


class NotificationConsumer(AsyncJsonWebsocketConsumer):
    """
    사용자별 알림 채널.

    인증된 연결은 접속 즉시 자기 그룹에 들어간다. 클라이언트가
    {"type": "join-room", "user_id": ...} 로 자신의 id를 알려도 되지만
    본인 id만 허용한다.
    """

    async def connect(self):
        self.groups_joined = set()
        await self.accept()
        user = self.scope.get("user")
        if user is not None and user.is_authenticated:
            await self.join(user.pk)

    async def disconnect(self, close_code):
        for name in self.groups_joined:
            await self.channel_layer.group_discard(name, self.channel_name)

    async def receive_json(self, content, **kwargs):
        if content.get("type") != "join-room":
            await self.send_json(
                {"event": "error", "data": {"detail": "unknown message"}}
            )
            return

        user = self.scope.get("user")
        if (
            user is None
            or not user.is_authenticated
            or str(content.get("user_id")) != str(user.pk)
        ):
            await self.send_json(
                {"event": "error", "data": {"detail": "access denied"}}
            )
            return

        await self.join(user.pk)
        await self.send_json({"event": "joined", "data": {"user_id": user.pk}})

    async def join(self, identity_id):
        name = group_name(identity_id)
        if name not in self.groups_joined:
            await self.channel_layer.group_add(name, self.channel_name)
            self.groups_joined.add(name)

    async def task_event(self, event):
        await self.send_json({"event": event["event"], "data": event["data"]})
