from django.contrib import admin
from .models import Activity


@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = ("action", "task_id", "user", "field", "created_at")
    list_filter = ("action",)
    search_fields = ("field", "comment")

    # 변경 이력은 추가 전용이므로 관리자 화면에서도 읽기만 허용
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
