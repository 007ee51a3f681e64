from rest_framework import serializers

from accounts.serializers import IdentitySummarySerializer
from .models import Task


class TaskSerializer(serializers.ModelSerializer):
    """응답용. 생성자/담당자를 이름과 이메일까지 펼친다."""

    created_by = IdentitySummarySerializer(read_only=True)
    assigned_to = IdentitySummarySerializer(read_only=True)

    class Meta:
        model = Task
        fields = [
            "id",
            "title",
            "description",
            "status",
            "priority",
            "created_by",
            "assigned_to",
            "due_date",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class TaskWriteSerializer(serializers.Serializer):
    """
    요청 본문의 형식만 검사한다 (선택지, 빈 제목, 날짜 형식).

    권한과 값의 의미 검증은 TaskMutator가 맡는다.
    """

    title = serializers.CharField(max_length=200)
    description = serializers.CharField(allow_blank=True, required=False)
    status = serializers.ChoiceField(
        choices=Task.Status.choices, required=False
    )
    priority = serializers.ChoiceField(
        choices=Task.Priority.choices, required=False
    )
    assigned_to = serializers.IntegerField()
    due_date = serializers.DateField(allow_null=True, required=False)
    comment = serializers.CharField(
        allow_blank=True, required=False, write_only=True
    )

    def task_fields(self):
        """comment를 뺀, 작업 필드에 해당하는 값만"""
        data = dict(self.validated_data)
        data.pop("comment", None)
        return data
