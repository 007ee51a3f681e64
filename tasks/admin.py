from django.contrib import admin
from .models import Task


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "status",
        "priority",
        "created_by",
        "assigned_to",
        "due_date",
        "created_at",
    )
    list_filter = ("status", "priority")
    search_fields = ("title", "description")
    raw_id_fields = ("created_by", "assigned_to")

    # 작업 변경은 TaskMutator를 거치는 API로만 한다
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
