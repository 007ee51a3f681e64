from django_filters import rest_framework as filters
from .models import Task


class TaskFilter(filters.FilterSet):
    status = filters.ChoiceFilter(choices=Task.Status.choices)
    priority = filters.ChoiceFilter(choices=Task.Priority.choices)
    due_date_before = filters.DateFilter(
        field_name="due_date", lookup_expr="lte"
    )
    search = filters.CharFilter(field_name="title", lookup_expr="icontains")

    class Meta:
        model = Task
        fields = ["status", "priority"]
