from rest_framework import viewsets

from tasks.views import StandardResultsSetPagination
from .models import Activity
from .serializers import ActivitySerializer


class ActivityResultsSetPagination(StandardResultsSetPagination):
    page_size = 20


class ActivityViewSet(viewsets.ReadOnlyModelViewSet):
    """변경 이력 조회. 최신순, ?task=<id> 로 특정 작업만 볼 수 있다."""

    serializer_class = ActivitySerializer
    pagination_class = ActivityResultsSetPagination

    def get_queryset(self):
        queryset = Activity.objects.select_related("user").with_task_title()
        task_id = self.request.query_params.get("task")
        if task_id:
            if not task_id.isdigit():
                return queryset.none()
            queryset = queryset.filter(task_id=task_id)
        return queryset.order_by("-created_at", "-id")
