import django.core.serializers.json
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("tasks", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Activity",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("created", "작업 생성"),
                            ("updated", "작업 수정"),
                            ("deleted", "작업 삭제"),
                            ("status_changed", "상태 변경"),
                            ("assigned", "담당자 배정"),
                        ],
                        max_length=20,
                        verbose_name="활동 유형",
                    ),
                ),
                (
                    "field",
                    models.CharField(blank=True, max_length=50, verbose_name="필드"),
                ),
                (
                    "old_value",
                    models.JSONField(
                        blank=True,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                        null=True,
                        verbose_name="이전 값",
                    ),
                ),
                (
                    "new_value",
                    models.JSONField(
                        blank=True,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                        null=True,
                        verbose_name="새 값",
                    ),
                ),
                ("comment", models.TextField(blank=True, verbose_name="코멘트")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "task",
                    models.ForeignKey(
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="activities",
                        to="tasks.task",
                        verbose_name="작업",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="task_activities",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="변경자",
                    ),
                ),
            ],
            options={
                "verbose_name": "활동",
                "verbose_name_plural": "활동들",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(
                        fields=["task", "-created_at"],
                        name="activity_task_created_idx",
                    ),
                ],
            },
        ),
    ]
