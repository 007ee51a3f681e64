from django.test import TestCase
from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase
from rest_framework import status
from django.urls import reverse

from .directory import IdentityDirectory

User = get_user_model()


class UserModelTest(TestCase):
    def test_create_user(self):
        user = User.objects.create_user(
            username="testuser",
            email="test@example.com",
            password="testpass123",
            name="홍길동",
        )

        self.assertEqual(user.username, "testuser")
        self.assertEqual(user.email, "test@example.com")
        self.assertEqual(user.role, User.Role.USER)
        self.assertFalse(user.is_manager)
        self.assertTrue(user.is_active)
        self.assertFalse(user.is_staff)

    def test_create_manager(self):
        manager = User.objects.create_user(
            username="boss",
            password="testpass123",
            role=User.Role.MANAGER,
        )
        self.assertTrue(manager.is_manager)
        self.assertIn(manager.role, dict(User.Role.choices))

    def test_display_name_falls_back_to_username(self):
        user = User.objects.create_user(
            username="noname", password="testpass123"
        )
        self.assertEqual(user.display_name, "noname")


class IdentityDirectoryTest(TestCase):
    def setUp(self):
        self.directory = IdentityDirectory()
        self.user = User.objects.create_user(
            username="user", password="testpass123", name="사용자"
        )

    def test_resolve_existing_identity(self):
        self.assertEqual(self.directory.resolve(self.user.pk), self.user)

    def test_resolve_missing_identity(self):
        self.assertIsNone(self.directory.resolve(987654))
        self.assertIsNone(self.directory.resolve(None))
        self.assertIsNone(self.directory.resolve("not-an-id"))

    def test_resolve_inactive_identity(self):
        self.user.is_active = False
        self.user.save()
        self.assertIsNone(self.directory.resolve(self.user.pk))


class UserAPITest(APITestCase):
    def setUp(self):
        self.manager = User.objects.create_user(
            username="manager",
            password="testpass123",
            name="관리자",
            role=User.Role.MANAGER,
        )
        User.objects.create_user(
            username="zeta", password="testpass123", name="하사용"
        )
        User.objects.create_user(
            username="alpha", password="testpass123", name="가사용"
        )

    def test_manager_lists_assignable_users(self):
        self.client.force_authenticate(user=self.manager)
        response = self.client.get(reverse("user-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [row["name"] for row in response.data], ["가사용", "하사용"]
        )
        self.assertTrue(all(row["role"] == "user" for row in response.data))

    def test_user_cannot_list_users(self):
        user = User.objects.get(username="alpha")
        self.client.force_authenticate(user=user)
        response = self.client.get(reverse("user-list"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
