class RecordingChannelLayer:
    """group_send 호출을 기록만 하는 채널 레이어 (테스트용)"""

    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    async def group_send(self, group, message):
        if group in self.fail_for:
            raise ConnectionError(f"channel layer unavailable for {group}")
        self.sent.append((group, message))

    @property
    def groups(self):
        return [group for group, _message in self.sent]

    def events_for(self, group):
        return [
            message for name, message in self.sent if name == group
        ]
