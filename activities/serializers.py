from rest_framework import serializers

from accounts.serializers import IdentitySummarySerializer
from .models import Activity


class ActivitySerializer(serializers.ModelSerializer):
    user = IdentitySummarySerializer(read_only=True)
    # 삭제된 작업이면 None
    task_title = serializers.CharField(
        read_only=True, allow_null=True, default=None
    )

    class Meta:
        model = Activity
        fields = [
            "id",
            "task_id",
            "task_title",
            "user",
            "action",
            "field",
            "old_value",
            "new_value",
            "comment",
            "created_at",
        ]
        read_only_fields = fields
