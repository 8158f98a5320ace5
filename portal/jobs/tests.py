import io
import json
import shutil
import tempfile
from pathlib import Path
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.urls import reverse

from accounts.models import User
from portal.errors import Conflict, InsufficientPrivilege, NotFound, ValidationFailure

from . import lifecycle
from .models import Application, Job

MEDIA_ROOT = tempfile.mkdtemp(prefix="portal-test-jobs-")


def pdf_file(name="resume.pdf", size=10 * 1024):
    body = b"%PDF-1.4\n" + b"0" * (size - 9)
    return SimpleUploadedFile(name, body, content_type="application/pdf")


def job_payload(**overrides):
    payload = {
        "title": "Backend Developer",
        "company": "NorthBridge Labs",
        "description": "Build APIs",
        "requirements": "Python",
        "location": "Hyderabad",
        "type": "fulltime",
    }
    payload.update(overrides)
    return payload


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class PortalTestCase(TestCase):
    @classmethod
    def tearDownClass(cls):
        super().tearDownClass()
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)

    def setUp(self):
        self.alice = User.objects.create_user(username="alice", password="pw123", role="student", full_name="Alice", phone="1")
        self.bob = User.objects.create_user(username="bob", password="pw123", role="student", full_name="Bob", phone="2")
        self.admin = User.objects.create_user(username="tpo", password="pw123", role="admin", full_name="TPO", phone="3")
        self.job = Job.objects.create(**job_payload())

    def apply(self, student, job=None):
        return lifecycle.submit(student, (job or self.job).id, pdf_file())


class LifecycleTests(PortalTestCase):
    def test_submit_creates_pending_application(self):
        application = self.apply(self.alice)
        self.assertEqual(application.status, "pending")
        self.assertTrue(application.resume.name.startswith("resumes/"))
        self.assertTrue(application.resume.name.endswith(".pdf"))

    def test_duplicate_applications_are_allowed(self):
        self.apply(self.alice)
        self.apply(self.alice)
        self.assertEqual(Application.objects.filter(student=self.alice, job=self.job).count(), 2)

    def test_submit_requires_student_and_resume(self):
        with self.assertRaises(InsufficientPrivilege):
            lifecycle.submit(self.admin, self.job.id, pdf_file())
        with self.assertRaises(ValidationFailure):
            lifecycle.submit(self.alice, self.job.id, None)
        with self.assertRaises(NotFound):
            lifecycle.submit(self.alice, 99999, pdf_file())
        self.assertFalse(Application.objects.exists())

    def test_conditional_transition(self):
        application = self.apply(self.alice)
        self.assertEqual(Application.objects.transition(application.id, "accepted"), 1)
        self.assertEqual(Application.objects.transition(application.id, "rejected"), 0)
        application.refresh_from_db()
        self.assertEqual(application.status, "accepted")
        self.assertIsNotNone(application.status_changed_at)

    def test_terminal_status_is_final(self):
        application = self.apply(self.alice)
        lifecycle.set_status(self.admin, application.id, "rejected")
        with self.assertRaises(Conflict):
            lifecycle.set_status(self.admin, application.id, "accepted")
        application.refresh_from_db()
        self.assertEqual(application.status, "rejected")

    def test_set_status_validation(self):
        application = self.apply(self.alice)
        with self.assertRaises(ValidationFailure):
            lifecycle.set_status(self.admin, application.id, "pending")
        with self.assertRaises(InsufficientPrivilege):
            lifecycle.set_status(self.alice, application.id, "accepted")
        with self.assertRaises(NotFound):
            lifecycle.set_status(self.admin, 99999, "accepted")

    def test_students_only_see_their_own(self):
        mine = self.apply(self.alice)
        self.apply(self.bob)
        self.assertEqual([a.id for a in lifecycle.list_for_student(self.alice, self.bob.id)], [mine.id])
        self.assertEqual(len(lifecycle.list_for_student(self.admin, self.bob.id)), 1)

    def test_grouped_by_job(self):
        other_job = Job.objects.create(**job_payload(title="QA Intern", type="internship"))
        self.apply(self.alice)
        self.apply(self.bob)
        self.apply(self.alice, other_job)
        groups = {g["job"]["id"]: g["applications"] for g in lifecycle.grouped_by_job(self.admin)}
        self.assertEqual(len(groups[self.job.id]), 2)
        self.assertEqual(len(groups[other_job.id]), 1)
        self.assertEqual(groups[other_job.id][0]["student"]["username"], "alice")


class JobApiTests(PortalTestCase):
    def test_job_list_is_public_and_marks_applied(self):
        resp = self.client.get(reverse("jobs"))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()["items"][0]["already_applied"])

        self.apply(self.alice)
        self.client.force_login(self.alice)
        self.assertTrue(self.client.get(reverse("jobs")).json()["items"][0]["already_applied"])

    def test_create_job_without_image(self):
        self.client.force_login(self.admin)
        resp = self.client.post(reverse("jobs"), data=json.dumps(job_payload(title="Data Analyst")), content_type="application/json")
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertIsNone(body["image"])
        self.assertIsNone(body["salary"])

        detail = self.client.get(reverse("job_item", args=[body["id"]]))
        self.assertEqual(detail.json()["title"], "Data Analyst")

    def test_create_job_with_image(self):
        self.client.force_login(self.admin)
        data = job_payload(title="Designer", contactDetails="tpo@example.com")
        data["jobImage"] = SimpleUploadedFile("logo.png", b"\x89PNG\r\n\x1a\n" + b"\x00" * 32, content_type="image/png")
        resp = self.client.post(reverse("jobs"), data)
        self.assertEqual(resp.status_code, 201)
        self.assertTrue(resp.json()["image"].startswith("job-images/"))
        self.assertEqual(resp.json()["contact_details"], "tpo@example.com")

    def test_image_removed_when_job_save_fails(self):
        images = Path(MEDIA_ROOT) / "job-images"
        before = set(images.iterdir()) if images.exists() else set()

        self.client.force_login(self.admin)
        data = job_payload(title="Broken")
        data["jobImage"] = SimpleUploadedFile("logo.png", b"\x89PNG\r\n\x1a\n" + b"\x00" * 32, content_type="image/png")
        with mock.patch.object(Job, "save", side_effect=DatabaseError("disk full")):
            resp = self.client.post(reverse("jobs"), data)
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(set(images.iterdir()) if images.exists() else set(), before)
        self.assertFalse(Job.objects.filter(title="Broken").exists())

    def test_create_job_validation(self):
        self.client.force_login(self.admin)
        resp = self.client.post(reverse("jobs"), data=json.dumps(job_payload(type="contract")), content_type="application/json")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("type", resp.json()["errors"])

    def test_students_cannot_create_or_delete_jobs(self):
        self.client.force_login(self.alice)
        resp = self.client.post(reverse("jobs"), data=json.dumps(job_payload()), content_type="application/json")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(self.client.delete(reverse("job_item", args=[self.job.id])).status_code, 403)
        self.assertEqual(Job.objects.count(), 1)

    def test_delete_job_cascades_to_applications(self):
        self.apply(self.alice)
        self.apply(self.bob)
        self.client.force_login(self.admin)
        resp = self.client.delete(reverse("job_item", args=[self.job.id]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["deleted_applications"], 2)
        self.assertFalse(Application.objects.exists())
        self.assertEqual(self.client.get(reverse("job_item", args=[self.job.id])).status_code, 404)


class ApplicationApiTests(PortalTestCase):
    def test_student_apply_and_admin_review(self):
        self.client.logout()
        resp = self.client.post(reverse("register"), data=json.dumps({
            "username": "carol",
            "password": "pw123",
            "role": "student",
            "full_name": "Carol",
            "email": "carol@example.com",
            "phone": "5",
        }), content_type="application/json")
        self.assertEqual(resp.status_code, 201)

        resp = self.client.post(reverse("applications"), {"jobId": str(self.job.id), "resume": pdf_file()})
        self.assertEqual(resp.status_code, 201)
        application_id = resp.json()["id"]
        self.assertEqual(resp.json()["status"], "pending")

        self.client.force_login(self.admin)
        listing = self.client.get(reverse("job_applications", args=[self.job.id])).json()["items"]
        self.assertEqual([(a["id"], a["status"]) for a in listing], [(application_id, "pending")])

        status_url = reverse("update_application_status", args=[application_id])
        accepted = self.client.patch(status_url, data=json.dumps({"status": "accepted"}), content_type="application/json")
        self.assertEqual(accepted.status_code, 200)
        self.assertEqual(accepted.json()["status"], "accepted")

        again = self.client.patch(status_url, data=json.dumps({"status": "rejected"}), content_type="application/json")
        self.assertEqual(again.status_code, 409)
        self.assertEqual(again.json()["error"], "conflict")
        self.assertEqual(Application.objects.get(pk=application_id).status, "accepted")

        self.client.force_login(User.objects.get(username="carol"))
        mine = self.client.get(reverse("my_applications")).json()["items"]
        self.assertEqual(mine[0]["status"], "accepted")
        self.assertEqual(mine[0]["job"]["title"], "Backend Developer")

    def test_apply_rejects_wrong_type_before_storing(self):
        self.client.force_login(self.alice)
        resume = SimpleUploadedFile("cv.txt", b"plain text", content_type="text/plain")
        resp = self.client.post(reverse("applications"), {"job_id": str(self.job.id), "resume": resume})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "invalid_file_type")
        self.assertFalse(Application.objects.exists())

    @override_settings(RESUME_MAX_BYTES=1024)
    def test_apply_rejects_oversized_resume(self):
        self.client.force_login(self.alice)
        resp = self.client.post(reverse("applications"), {"job_id": str(self.job.id), "resume": pdf_file(size=1025)})
        self.assertEqual(resp.status_code, 413)
        self.assertEqual(resp.json()["error"], "file_too_large")

    def test_apply_requires_resume_and_known_job(self):
        self.client.force_login(self.alice)
        missing_resume = self.client.post(reverse("applications"), {"job_id": str(self.job.id)})
        self.assertEqual(missing_resume.status_code, 400)
        unknown_job = self.client.post(reverse("applications"), {"job_id": "99999", "resume": pdf_file()})
        self.assertEqual(unknown_job.status_code, 404)
        bad_id = self.client.post(reverse("applications"), {"job_id": "abc", "resume": pdf_file()})
        self.assertEqual(bad_id.status_code, 400)

    def test_admin_cannot_apply(self):
        self.client.force_login(self.admin)
        resp = self.client.post(reverse("applications"), {"job_id": str(self.job.id), "resume": pdf_file()})
        self.assertEqual(resp.status_code, 403)

    def test_anonymous_cannot_apply(self):
        resp = self.client.post(reverse("applications"), {"job_id": str(self.job.id), "resume": pdf_file()})
        self.assertEqual(resp.status_code, 401)

    def test_my_applications_ignores_user_id_for_students(self):
        self.apply(self.alice)
        self.apply(self.bob)
        self.client.force_login(self.alice)
        items = self.client.get(reverse("my_applications"), {"userId": str(self.bob.id)}).json()["items"]
        self.assertEqual({a["student_id"] for a in items}, {self.alice.id})

        self.client.force_login(self.admin)
        items = self.client.get(reverse("my_applications"), {"userId": str(self.bob.id)}).json()["items"]
        self.assertEqual({a["student_id"] for a in items}, {self.bob.id})

    def test_admin_grouped_listing(self):
        self.apply(self.alice)
        self.client.force_login(self.alice)
        self.assertEqual(self.client.get(reverse("applications")).status_code, 403)

        self.client.force_login(self.admin)
        items = self.client.get(reverse("applications")).json()["items"]
        self.assertEqual(items[0]["job"]["id"], self.job.id)
        self.assertEqual(items[0]["applications"][0]["student"]["username"], "alice")

    def test_application_detail_visibility(self):
        application = self.apply(self.alice)
        url = reverse("application_detail", args=[application.id])

        self.client.force_login(self.alice)
        self.assertEqual(self.client.get(url).status_code, 200)

        self.client.force_login(self.bob)
        self.assertEqual(self.client.get(url).status_code, 403)
        self.assertEqual(self.client.get(reverse("application_detail", args=[99999])).status_code, 403)

        self.client.force_login(self.admin)
        self.assertEqual(self.client.get(url).json()["student"]["username"], "alice")
        self.assertEqual(self.client.get(reverse("application_detail", args=[99999])).status_code, 404)

    def test_status_update_rules(self):
        application = self.apply(self.alice)
        url = reverse("update_application_status", args=[application.id])

        self.client.force_login(self.alice)
        resp = self.client.patch(url, data=json.dumps({"status": "accepted"}), content_type="application/json")
        self.assertEqual(resp.status_code, 403)

        self.client.force_login(self.admin)
        resp = self.client.patch(url, data=json.dumps({"status": "maybe"}), content_type="application/json")
        self.assertEqual(resp.status_code, 400)
        missing = self.client.patch(
            reverse("update_application_status", args=[99999]),
            data=json.dumps({"status": "accepted"}),
            content_type="application/json",
        )
        self.assertEqual(missing.status_code, 404)
        application.refresh_from_db()
        self.assertEqual(application.status, "pending")


class SeedCommandTests(PortalTestCase):
    def test_seed_portal_is_repeatable(self):
        call_command("seed_portal", "--students", "2", "--jobs", "2", stdout=io.StringIO())
        call_command("seed_portal", "--students", "2", "--jobs", "2", stdout=io.StringIO())
        self.assertEqual(User.objects.filter(username__startswith="demo_student_").count(), 2)
        self.assertTrue(User.objects.get(username="demo_admin").is_portal_admin)
        self.assertEqual(Application.objects.filter(student__username__startswith="demo_").count(), 4)
