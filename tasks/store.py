import logging

from django.db import DatabaseError

from .exceptions import NotFound, PersistenceError
from .models import Task

logger = logging.getLogger(__name__)


class TaskStore:
    """Task 영속화 창구. DB 오류는 PersistenceError로 바꿔 올린다."""

    def get(self, task_id):
        try:
            return Task.objects.select_related(
                "created_by", "assigned_to"
            ).get(pk=task_id)
        except (Task.DoesNotExist, ValueError, TypeError):
            raise NotFound()

    def insert(self, task):
        try:
            task.save(force_insert=True)
        except DatabaseError as e:
            logger.error("Task insert failed: %s", e)
            raise PersistenceError() from e
        return task

    def update(self, task, fields):
        try:
            task.save(update_fields=list(fields) + ["updated_at"])
        except DatabaseError as e:
            logger.error("Task %s update failed: %s", task.pk, e)
            raise PersistenceError() from e
        return task

    def delete(self, task):
        try:
            Task.objects.filter(pk=task.pk).delete()
        except DatabaseError as e:
            logger.error("Task %s delete failed: %s", task.pk, e)
            raise PersistenceError() from e
