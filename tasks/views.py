import math

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from accounts.permissions import IsManager
from activities.models import Activity
from activities.serializers import ActivitySerializer
from . import permissions
from .exceptions import NotFound
from .filters import TaskFilter
from .models import Task
from .serializers import TaskSerializer, TaskWriteSerializer
from .services import TaskMutator


class StandardResultsSetPagination(PageNumberPagination):
    page_size = 10
    page_size_query_param = "page_size"
    max_page_size = 100

    def get_paginated_response(self, data):
        count = self.page.paginator.count
        page_size = self.get_page_size(self.request) or self.page_size
        return Response({
            "count": count,
            "next": self.get_next_link(),
            "previous": self.get_previous_link(),
            "total_pages": math.ceil(count / page_size),
            "current_page": self.page.number,
            "results": data,
        })


class TaskViewSet(viewsets.ModelViewSet):
    serializer_class = TaskSerializer
    pagination_class = StandardResultsSetPagination
    filter_backends = [DjangoFilterBackend]
    filterset_class = TaskFilter
    mutator_class = TaskMutator

    def get_queryset(self):
        queryset = Task.objects.select_related("created_by", "assigned_to")
        return permissions.visible_tasks(self.request.user, queryset).order_by(
            "-created_at", "-id"
        )

    def get_mutator(self):
        return self.mutator_class()

    def paginated(self, queryset):
        queryset = self.filter_queryset(queryset)
        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = self.get_serializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        serializer = self.get_serializer(queryset, many=True)
        return Response(serializer.data)

    def retrieve(self, request, *args, **kwargs):
        task = self.get_mutator().get_task(request.user, kwargs["pk"])
        return Response(TaskSerializer(task).data)

    def create(self, request, *args, **kwargs):
        permissions.authorize_create(request.user)
        serializer = TaskWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        task = self.get_mutator().create_task(
            request.user, serializer.task_fields()
        )
        return Response(
            TaskSerializer(task).data, status=status.HTTP_201_CREATED
        )

    def update(self, request, *args, **kwargs):
        # PUT도 부분 수정으로 처리한다.
        # 조회(404)와 권한 확인(403)이 본문 형식 검사(400)보다 먼저다.
        mutator = self.get_mutator()
        _task, allowed = mutator.authorize_update(
            request.user, kwargs["pk"], list(request.data.keys())
        )

        data = {
            name: request.data[name]
            for name in (*allowed, "comment")
            if name in request.data
        }
        serializer = TaskWriteSerializer(data=data, partial=True)
        serializer.is_valid(raise_exception=True)

        task, changes = mutator.update_task(
            request.user,
            kwargs["pk"],
            serializer.task_fields(),
            comment=serializer.validated_data.get("comment"),
        )
        data = TaskSerializer(task).data
        data["changes"] = [change.field for change in changes]
        return Response(data)

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        self.get_mutator().delete_task(request.user, kwargs["pk"])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"])
    def assigned(self, request):
        """나에게 배정된 작업"""
        queryset = Task.objects.select_related(
            "created_by", "assigned_to"
        ).filter(assigned_to=request.user)
        return self.paginated(queryset.order_by("-created_at", "-id"))

    @action(detail=False, methods=["get"], permission_classes=[IsManager])
    def created(self, request):
        """내가 생성한 작업 (관리자 전용)"""
        queryset = Task.objects.select_related(
            "created_by", "assigned_to"
        ).filter(created_by=request.user)
        return self.paginated(queryset.order_by("-created_at", "-id"))

    @action(detail=True, methods=["get"])
    def activities(self, request, pk=None):
        """작업의 변경 이력 (최신순). 삭제된 작업의 이력도 조회된다."""
        if not str(pk).isdigit():
            raise NotFound()
        activities = (
            Activity.objects.filter(task_id=pk)
            .select_related("user")
            .with_task_title()
            .order_by("-created_at", "-id")
        )
        serializer = ActivitySerializer(activities, many=True)
        return Response(serializer.data)
