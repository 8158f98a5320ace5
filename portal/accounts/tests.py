import hashlib
import json
import shutil
import tempfile
from pathlib import Path
from unittest import mock

from django.contrib.auth.models import AnonymousUser
from django.core.exceptions import ValidationError
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from portal.errors import AuthenticationRequired, InsufficientPrivilege

from .credentials import hash_password, verify_password, wrap_legacy_hash
from .models import AcademicDetails, PersonalDetails, User
from .policy import authorize, enforce

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def legacy_hash(password, salt="0123456789abcdef0123456789abcdef"):
    digest = hashlib.scrypt(password.encode(), salt=salt.encode(), n=2**14, r=8, p=1, dklen=64).hex()
    return f"{digest}.{salt}"


def post_json(client, url, payload):
    return client.post(url, data=json.dumps(payload), content_type="application/json")


class CredentialTests(SimpleTestCase):
    def test_same_password_hashes_differently(self):
        first = hash_password("pw123")
        second = hash_password("pw123")
        self.assertNotEqual(first, second)
        self.assertTrue(first.startswith("scrypt$"))
        self.assertTrue(verify_password("pw123", first))
        self.assertTrue(verify_password("pw123", second))

    def test_wrong_password_rejected(self):
        self.assertFalse(verify_password("nope", hash_password("pw123")))

    def test_malformed_stored_values_return_false(self):
        for stored in ["", "garbage", "abc.def", "legacy_scrypt$", "scrypt$1$2", "legacy_scrypt$zz.yy"]:
            self.assertFalse(verify_password("pw123", stored), stored)
        self.assertFalse(verify_password("", hash_password("pw123")))

    def test_legacy_digest_salt_values_verify(self):
        stored = legacy_hash("pw123")
        self.assertTrue(wrap_legacy_hash(stored).startswith("legacy_scrypt$"))
        self.assertTrue(verify_password("pw123", stored))
        self.assertFalse(verify_password("pw124", stored))

    def test_non_legacy_value_left_alone(self):
        self.assertEqual(wrap_legacy_hash("scrypt$abc"), "scrypt$abc")


class PolicyTests(TestCase):
    def setUp(self):
        self.student = User.objects.create_user(username="stu", password="pw", role="student", full_name="S", phone="1")
        self.other = User.objects.create_user(username="stu2", password="pw", role="student", full_name="T", phone="2")
        self.admin = User.objects.create_user(username="adm", password="pw", role="admin", full_name="A", phone="3")

    def test_anonymous_needs_authentication(self):
        decision = authorize(AnonymousUser(), role="student")
        self.assertFalse(decision)
        self.assertEqual(decision.status, 401)
        with self.assertRaises(AuthenticationRequired):
            enforce(None)

    def test_role_mismatch_is_forbidden(self):
        self.assertEqual(authorize(self.student, role="admin").status, 403)
        self.assertEqual(authorize(self.admin, role="student").status, 403)
        with self.assertRaises(InsufficientPrivilege):
            enforce(self.student, role="admin")

    def test_owner_scoping(self):
        self.assertTrue(authorize(self.student, owner_id=self.student.pk))
        self.assertEqual(authorize(self.student, owner_id=self.other.pk).status, 403)
        self.assertTrue(authorize(self.admin, owner_id=self.student.pk))

    def test_role_cannot_change_after_creation(self):
        self.student.role = User.Role.ADMIN
        with self.assertRaises(ValidationError):
            self.student.save()
        self.student.refresh_from_db()
        self.assertEqual(self.student.role, "student")

    def test_createsuperuser_defaults_to_admin(self):
        root = User.objects.create_superuser(username="root", email="root@example.com", password="pw")
        self.assertEqual(root.role, "admin")


class AuthApiTests(TestCase):
    def register_payload(self, **overrides):
        payload = {
            "username": "alice",
            "password": "pw123",
            "role": "student",
            "full_name": "Alice Doe",
            "email": "alice@example.com",
            "phone": "9999999999",
        }
        payload.update(overrides)
        return payload

    def test_register_logs_in_and_hides_password(self):
        resp = post_json(self.client, reverse("register"), self.register_payload())
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertEqual(body["username"], "alice")
        self.assertEqual(body["role"], "student")
        self.assertNotIn("password", body)
        self.assertIn("tp_portal_session", resp.cookies)

        me = self.client.get(reverse("current_user"))
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["username"], "alice")

    def test_register_duplicate_username_conflicts(self):
        post_json(self.client, reverse("register"), self.register_payload())
        self.client.logout()
        resp = post_json(self.client, reverse("register"), self.register_payload(email="other@example.com"))
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["error"], "conflict")
        self.assertEqual(User.objects.filter(username="alice").count(), 1)

    def test_register_missing_fields(self):
        resp = post_json(self.client, reverse("register"), {"username": "bob"})
        self.assertEqual(resp.status_code, 400)
        body = resp.json()
        self.assertFalse(body["ok"])
        self.assertEqual(body["error"], "validation_failed")
        self.assertIn("password", body["errors"])

    def test_register_rejects_unknown_role(self):
        resp = post_json(self.client, reverse("register"), self.register_payload(role="superuser"))
        self.assertEqual(resp.status_code, 400)
        self.assertIn("role", resp.json()["errors"])

    @override_settings(PORTAL_ALLOW_ADMIN_SIGNUP=False)
    def test_admin_signup_can_be_disabled(self):
        resp = post_json(self.client, reverse("register"), self.register_payload(role="admin"))
        self.assertEqual(resp.status_code, 403)
        self.assertFalse(User.objects.filter(username="alice").exists())

    def test_login_failures_look_identical(self):
        User.objects.create_user(username="alice", password="pw123", role="student", full_name="A", phone="1")
        wrong_password = post_json(self.client, reverse("login"), {"username": "alice", "password": "bad"})
        unknown_user = post_json(self.client, reverse("login"), {"username": "nobody", "password": "bad"})
        self.assertEqual(wrong_password.status_code, 401)
        self.assertEqual(unknown_user.status_code, 401)
        self.assertEqual(wrong_password.json(), unknown_user.json())
        self.assertEqual(wrong_password.json()["error"], "authentication_failed")

    def test_login_then_logout(self):
        User.objects.create_user(username="alice", password="pw123", role="student", full_name="A", phone="1")
        resp = post_json(self.client, reverse("login"), {"username": "alice", "password": "pw123"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["role"], "student")

        self.assertEqual(self.client.post(reverse("logout")).json(), {"ok": True})
        self.assertEqual(self.client.get(reverse("current_user")).status_code, 401)
        # Logging out twice is harmless.
        self.assertEqual(self.client.post(reverse("logout")).status_code, 200)

    def test_login_form_encoded(self):
        User.objects.create_user(username="alice", password="pw123", role="student", full_name="A", phone="1")
        resp = self.client.post(reverse("login"), {"username": "alice", "password": "pw123"})
        self.assertEqual(resp.status_code, 200)

    def test_malformed_json_is_a_validation_error(self):
        resp = self.client.post(reverse("login"), data="{not json", content_type="application/json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "validation_failed")

    def test_legacy_hash_upgraded_on_login(self):
        user = User.objects.create_user(username="old", password="unused", role="student", full_name="O", phone="1")
        User.objects.filter(pk=user.pk).update(password=legacy_hash("pw123"))

        resp = post_json(self.client, reverse("login"), {"username": "old", "password": "pw123"})
        self.assertEqual(resp.status_code, 200)
        user.refresh_from_db()
        self.assertTrue(user.password.startswith("scrypt$"))
        self.assertTrue(user.check_password("pw123"))


class StudentDetailsTests(TestCase):
    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        cls.media_root = tempfile.mkdtemp(prefix="portal-test-media-")
        cls._media = override_settings(MEDIA_ROOT=cls.media_root)
        cls._media.enable()

    @classmethod
    def tearDownClass(cls):
        cls._media.disable()
        shutil.rmtree(cls.media_root, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.alice = User.objects.create_user(username="alice", password="pw", role="student", full_name="Alice", phone="1")
        self.bob = User.objects.create_user(username="bob", password="pw", role="student", full_name="Bob", phone="2")
        self.admin = User.objects.create_user(username="tpo", password="pw", role="admin", full_name="TPO", phone="3")

    def academic_url(self, user_id):
        return reverse("academic_details", args=[user_id])

    def test_empty_state_before_first_save(self):
        self.client.force_login(self.alice)
        resp = self.client.get(self.academic_url(self.alice.pk))
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(resp.json()["course"])
        self.assertFalse(AcademicDetails.objects.exists())

    def test_owner_upserts_and_partially_updates(self):
        self.client.force_login(self.alice)
        url = self.academic_url(self.alice.pk)
        first = self.client.put(url, data=json.dumps({"course": "B.Tech", "branch": "CSE"}), content_type="application/json")
        self.assertEqual(first.status_code, 200)
        second = self.client.put(url, data=json.dumps({"semester": "5"}), content_type="application/json")
        self.assertEqual(second.status_code, 200)

        details = AcademicDetails.objects.get(user=self.alice)
        self.assertEqual((details.course, details.branch, details.semester), ("B.Tech", "CSE", "5"))
        self.assertEqual(AcademicDetails.objects.filter(user=self.alice).count(), 1)

    def test_student_cannot_touch_another_student(self):
        self.client.force_login(self.alice)
        self.assertEqual(self.client.get(self.academic_url(self.bob.pk)).status_code, 403)
        resp = self.client.put(
            self.academic_url(self.bob.pk), data=json.dumps({"course": "X"}), content_type="application/json"
        )
        self.assertEqual(resp.status_code, 403)
        self.assertFalse(AcademicDetails.objects.filter(user=self.bob).exists())

    def test_missing_student_hidden_from_students(self):
        self.client.force_login(self.alice)
        self.assertEqual(self.client.get(self.academic_url(99999)).status_code, 403)
        self.client.force_login(self.admin)
        self.assertEqual(self.client.get(self.academic_url(99999)).status_code, 404)

    def test_anonymous_gets_401(self):
        self.assertEqual(self.client.get(self.academic_url(self.alice.pk)).status_code, 401)

    def test_admin_can_edit_student(self):
        self.client.force_login(self.admin)
        resp = self.client.put(
            self.academic_url(self.bob.pk), data=json.dumps({"backlogs": "none"}), content_type="application/json"
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(AcademicDetails.objects.get(user=self.bob).backlogs, "none")

    def test_personal_details_with_photo(self):
        self.client.force_login(self.alice)
        resp = self.client.post(
            reverse("personal_details", args=[self.alice.pk]),
            {"phone": "12345", "photo": SimpleUploadedFile("me.png", PNG_BYTES, content_type="image/png")},
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["phone"], "12345")
        self.assertTrue(body["photo"].startswith("student-photos/"))
        self.assertTrue(body["photo"].endswith(".png"))

    def test_social_handles_are_free_text(self):
        self.client.force_login(self.alice)
        resp = self.client.put(
            reverse("personal_details", args=[self.alice.pk]),
            data=json.dumps({"linkedin": "@alice", "github": "alice-dev"}),
            content_type="application/json",
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["linkedin"], "@alice")
        self.assertEqual(PersonalDetails.objects.get(user=self.alice).github, "alice-dev")

    def test_photo_removed_when_save_fails(self):
        PersonalDetails.objects.create(user=self.alice)
        photos = Path(self.media_root) / "student-photos"
        before = set(photos.iterdir()) if photos.exists() else set()

        self.client.force_login(self.alice)
        with mock.patch.object(PersonalDetails, "save", side_effect=DatabaseError("disk full")):
            resp = self.client.post(
                reverse("personal_details", args=[self.alice.pk]),
                {"photo": SimpleUploadedFile("me.png", PNG_BYTES, content_type="image/png")},
            )
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["error"], "internal_error")
        self.assertEqual(set(photos.iterdir()) if photos.exists() else set(), before)
        self.assertIsNone(PersonalDetails.objects.get(user=self.alice).photo.name or None)

    def test_personal_details_rejects_bad_photo_type(self):
        self.client.force_login(self.alice)
        resp = self.client.post(
            reverse("personal_details", args=[self.alice.pk]),
            {"photo": SimpleUploadedFile("me.gif", b"GIF89a", content_type="image/gif")},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "invalid_file_type")


class AdminDirectoryTests(TestCase):
    def setUp(self):
        self.alice = User.objects.create_user(username="alice", password="pw", role="student", full_name="Alice", phone="1")
        self.admin = User.objects.create_user(username="tpo", password="pw", role="admin", full_name="TPO", phone="3")
        AcademicDetails.objects.create(user=self.alice, course="B.Tech")

    def test_students_list_is_admin_only(self):
        self.client.force_login(self.alice)
        self.assertEqual(self.client.get(reverse("admin_students")).status_code, 403)

        self.client.force_login(self.admin)
        items = self.client.get(reverse("admin_students")).json()["items"]
        self.assertEqual([i["user"]["username"] for i in items], ["alice"])
        self.assertEqual(items[0]["academic"]["course"], "B.Tech")
        self.assertIsNone(items[0]["personal"])

    def test_lookup_by_username_and_id(self):
        self.client.force_login(self.admin)
        by_name = self.client.get(reverse("student_lookup"), {"username": "alice"})
        self.assertEqual(by_name.status_code, 200)
        self.assertEqual(by_name.json()["user"]["id"], self.alice.pk)

        by_id = self.client.get(reverse("student_lookup"), {"userId": str(self.alice.pk)})
        self.assertEqual(by_id.json()["user"]["username"], "alice")

    def test_lookup_errors(self):
        self.client.force_login(self.admin)
        self.assertEqual(self.client.get(reverse("student_lookup")).status_code, 400)
        self.assertEqual(self.client.get(reverse("student_lookup"), {"username": "ghost"}).status_code, 404)
        self.assertEqual(self.client.get(reverse("student_lookup"), {"username": "tpo"}).status_code, 404)
