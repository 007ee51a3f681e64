from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


class ActivityAppendOnlyError(Exception):
    pass


class ActivityQuerySet(models.QuerySet):
    def with_task_title(self):
        from tasks.models import Task

        return self.annotate(
            task_title=models.Subquery(
                Task.objects.filter(pk=models.OuterRef("task_id")).values(
                    "title"
                )[:1]
            )
        )

    def update(self, **kwargs):
        raise ActivityAppendOnlyError("변경 이력은 수정할 수 없습니다.")

    def delete(self):
        raise ActivityAppendOnlyError("변경 이력은 삭제할 수 없습니다.")


class Activity(models.Model):
    class Action(models.TextChoices):
        CREATED = "created", "작업 생성"
        UPDATED = "updated", "작업 수정"
        DELETED = "deleted", "작업 삭제"
        STATUS_CHANGED = "status_changed", "상태 변경"
        ASSIGNED = "assigned", "담당자 배정"

    # 작업이 삭제돼도 이력은 남아야 하므로 FK 제약 없이 id만 보관한다.
    task = models.ForeignKey(
        "tasks.Task",
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="activities",
        verbose_name="작업",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="task_activities",
        verbose_name="변경자",
    )
    action = models.CharField(
        max_length=20, choices=Action.choices, verbose_name="활동 유형"
    )
    field = models.CharField(max_length=50, blank=True, verbose_name="필드")
    old_value = models.JSONField(
        null=True, blank=True, encoder=DjangoJSONEncoder, verbose_name="이전 값"
    )
    new_value = models.JSONField(
        null=True, blank=True, encoder=DjangoJSONEncoder, verbose_name="새 값"
    )
    comment = models.TextField(blank=True, verbose_name="코멘트")
    created_at = models.DateTimeField(auto_now_add=True)

    objects = ActivityQuerySet.as_manager()

    class Meta:
        verbose_name = "활동"
        verbose_name_plural = "활동들"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(
                fields=["task", "-created_at"],
                name="activity_task_created_idx",
            ),
        ]

    def __str__(self):
        return f"{self.get_action_display()} #{self.task_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ActivityAppendOnlyError("변경 이력은 수정할 수 없습니다.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ActivityAppendOnlyError("변경 이력은 삭제할 수 없습니다.")
