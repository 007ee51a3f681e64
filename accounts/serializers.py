from rest_framework import serializers
from django.contrib.auth import get_user_model

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "name",
            "email",
            "role",
        ]
        read_only_fields = fields


class IdentitySummarySerializer(serializers.ModelSerializer):
    """작업/활동 응답에 펼쳐 넣는 사용자 요약"""

    name = serializers.CharField(source="display_name", read_only=True)

    class Meta:
        model = User
        fields = ["id", "name", "email"]
        read_only_fields = fields
