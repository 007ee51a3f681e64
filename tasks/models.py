from django.db import models
from django.conf import settings


class Task(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "대기"
        IN_PROGRESS = "in-progress", "진행중"
        COMPLETED = "completed", "완료"

    class Priority(models.TextChoices):
        LOW = "low", "낮음"
        MEDIUM = "medium", "보통"
        HIGH = "high", "높음"

    # 변경 가능한 필드의 선언 순서. 변경 이력은 항상 이 순서로 기록된다.
    MUTABLE_FIELDS = (
        "title",
        "description",
        "status",
        "priority",
        "assigned_to",
        "due_date",
    )
    READ_ONLY_FIELDS = ("id", "created_by", "created_at", "updated_at")

    title = models.CharField(max_length=200, verbose_name="작업명")
    description = models.TextField(blank=True, verbose_name="작업 설명")
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        verbose_name="상태",
    )
    priority = models.CharField(
        max_length=20,
        choices=Priority.choices,
        default=Priority.MEDIUM,
        verbose_name="우선순위",
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="created_tasks",
        verbose_name="생성자",
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="assigned_tasks",
        verbose_name="담당자",
    )

    due_date = models.DateField(null=True, blank=True, verbose_name="마감일")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "작업"
        verbose_name_plural = "작업들"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["assigned_to", "-created_at"],
                name="task_assignee_created_idx",
            ),
            models.Index(
                fields=["created_by", "-created_at"],
                name="task_creator_created_idx",
            ),
        ]

    def __str__(self):
        return self.title

    @classmethod
    def attribute_names(cls):
        return cls.MUTABLE_FIELDS + cls.READ_ONLY_FIELDS

    def value_of(self, field):
        """필드의 비교용 값. 사용자 참조는 id로 비교한다."""
        if field == "assigned_to":
            return self.assigned_to_id
        return getattr(self, field)

    def snapshot(self):
        return {
            "id": self.pk,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "created_by": self.created_by_id,
            "assigned_to": self.assigned_to_id,
            "due_date": self.due_date.isoformat() if self.due_date else None,
        }
