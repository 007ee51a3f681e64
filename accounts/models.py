from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    class Role(models.TextChoices):
        MANAGER = "manager", "관리자"
        USER = "user", "일반 사용자"

    name = models.CharField(max_length=100, blank=True, verbose_name="이름")
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.USER,
        verbose_name="역할",
    )

    class Meta:
        verbose_name = "사용자"
        verbose_name_plural = "사용자들"
        ordering = ["name"]

    @property
    def is_manager(self):
        return self.role == self.Role.MANAGER

    @property
    def display_name(self):
        return self.name or self.username
