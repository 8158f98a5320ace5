import io
import shutil
import tempfile
from pathlib import Path

from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from accounts.models import User
from jobs import lifecycle
from jobs.models import Application, Job
from portal.errors import FileNotFound, FileTooLarge, InvalidFileType

from .sniff import content_type_for, sniff_content_type
from .storage import Purpose, accept, canonical_reference, candidate_paths, resolve, validate_upload

PDF_BYTES = b"%PDF-1.4\n%test\n"


class MediaRootMixin:
    """Points MEDIA_ROOT at a fresh directory for every test."""

    def setUp(self):
        super().setUp()
        self.base = Path(tempfile.mkdtemp(prefix="portal-test-uploads-"))
        self.root = self.base / "uploads"
        self.root.mkdir()
        media = override_settings(MEDIA_ROOT=str(self.root))
        media.enable()
        self.addCleanup(media.disable)
        self.addCleanup(shutil.rmtree, self.base, True)

    def write(self, relative, content=PDF_BYTES):
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path


class ValidationTests(MediaRootMixin, SimpleTestCase):
    def test_resume_size_limit_is_inclusive(self):
        exactly = SimpleUploadedFile("cv.pdf", b"0" * (5 * 1024 * 1024))
        self.assertEqual(validate_upload(Purpose.RESUME, exactly), ".pdf")

        over = SimpleUploadedFile("cv.pdf", b"0" * (5 * 1024 * 1024 + 1))
        with self.assertRaises(FileTooLarge) as ctx:
            validate_upload(Purpose.RESUME, over)
        self.assertEqual(ctx.exception.status, 413)
        self.assertIn("5MB", ctx.exception.message)

    def test_extension_checked_case_insensitively(self):
        self.assertEqual(validate_upload(Purpose.RESUME, SimpleUploadedFile("CV.PDF", b"x")), ".pdf")
        self.assertEqual(validate_upload(Purpose.JOB_IMAGE, SimpleUploadedFile("a.GIF", b"x")), ".gif")

    def test_resume_extension_allow_list(self):
        for name in ["cv.docx", "cv.doc", "cv.jpeg"]:
            validate_upload(Purpose.RESUME, SimpleUploadedFile(name, b"x"))
        for name in ["cv.jpg", "cv.txt", "cv", "cv.pdf.exe"]:
            with self.assertRaises(InvalidFileType):
                validate_upload(Purpose.RESUME, SimpleUploadedFile(name, b"x"))

    def test_rejected_upload_writes_nothing(self):
        with self.assertRaises(InvalidFileType):
            accept(Purpose.RESUME, SimpleUploadedFile("cv.txt", b"hello"))
        self.assertEqual([p for p in self.root.rglob("*") if p.is_file()], [])

    def test_accept_stores_under_purpose_subdir_with_fresh_names(self):
        first = accept(Purpose.RESUME, SimpleUploadedFile("cv.pdf", PDF_BYTES))
        second = accept(Purpose.RESUME, SimpleUploadedFile("cv.pdf", PDF_BYTES))
        self.assertNotEqual(first, second)
        for reference in (first, second):
            self.assertTrue(reference.startswith("resumes/"))
            self.assertTrue(reference.endswith(".pdf"))
            self.assertEqual((self.root / reference).read_bytes(), PDF_BYTES)


class ResolveTests(MediaRootMixin, SimpleTestCase):
    def test_canonical_reference(self):
        path = self.write("resumes/abc.pdf")
        self.assertEqual(resolve("resumes/abc.pdf"), path.resolve())

    def test_bare_name_found_in_purpose_subdir(self):
        path = self.write("job-images/logo.png")
        self.assertEqual(resolve("logo.png", Purpose.JOB_IMAGE), path.resolve())
        self.assertEqual(resolve("logo.png"), path.resolve())

    def test_legacy_flat_file(self):
        path = self.write("4f2a9c0e77b1")
        self.assertEqual(resolve("4f2a9c0e77b1", Purpose.RESUME), path.resolve())

    def test_absolute_path_under_old_project_root(self):
        path = self.write("resumes/abc.pdf")
        self.assertEqual(resolve("/srv/old-portal/uploads/resumes/abc.pdf"), path.resolve())
        self.assertEqual(resolve("uploads/resumes/abc.pdf"), path.resolve())

    def test_hint_orders_candidates(self):
        candidates = candidate_paths("x.png", Purpose.STUDENT_PHOTO)
        self.assertEqual(candidates[0], self.root / "x.png")
        self.assertEqual(candidates[1], self.root / "student-photos" / "x.png")

    def test_allowed_purposes_limit_resolution(self):
        resume = self.write("resumes/abc.pdf")
        photo = self.write("student-photos/me.png", b"\x89PNG\r\n\x1a\n")
        public = {Purpose.JOB_IMAGE, Purpose.STUDENT_PHOTO}
        with self.assertRaises(FileNotFound):
            resolve("resumes/abc.pdf", allowed=public)
        with self.assertRaises(FileNotFound):
            resolve("abc.pdf", allowed=public)
        self.assertEqual(resolve("me.png", allowed=public), photo.resolve())
        self.assertEqual(resolve("abc.pdf", allowed={Purpose.RESUME}), resume.resolve())
        self.assertNotIn(self.root / "resumes" / "abc.pdf", candidate_paths("abc.pdf", allowed=public))

    def test_missing_file(self):
        with self.assertRaises(FileNotFound):
            resolve("resumes/nothing.pdf")
        with self.assertRaises(FileNotFound):
            resolve("")

    def test_paths_outside_root_never_resolve(self):
        outside = self.base / "secret.pdf"
        outside.write_bytes(PDF_BYTES)
        with self.assertRaises(FileNotFound):
            resolve("../secret.pdf")
        with self.assertRaises(FileNotFound):
            resolve("resumes/../../secret.pdf")

    def test_canonical_reference_is_relative(self):
        path = self.write("resumes/abc.pdf")
        self.assertEqual(canonical_reference(path), "resumes/abc.pdf")


class SniffTests(MediaRootMixin, SimpleTestCase):
    def test_signatures(self):
        self.assertEqual(sniff_content_type(b"%PDF-1.7"), ("application/pdf", ".pdf"))
        self.assertEqual(sniff_content_type(b"\x89PNG\r\n\x1a\n"), ("image/png", ".png"))
        self.assertEqual(sniff_content_type(b"\xff\xd8\xff\xe0"), ("image/jpeg", ".jpg"))
        self.assertEqual(sniff_content_type(b"GIF89a"), ("image/gif", ".gif"))
        self.assertEqual(sniff_content_type(b"\xd0\xcf\x11\xe0\xa1\xb1"), ("application/msword", ".doc"))
        self.assertEqual(sniff_content_type(b"PK\x03\x04")[1], ".docx")
        self.assertEqual(sniff_content_type(b"hello"), ("application/octet-stream", ""))

    def test_extension_wins_over_content(self):
        path = self.write("resumes/cv.docx", PDF_BYTES)
        self.assertEqual(content_type_for(path)[1], ".docx")

    def test_extensionless_file_is_sniffed(self):
        path = self.write("a1b2c3", PDF_BYTES)
        self.assertEqual(content_type_for(path), ("application/pdf", ".pdf"))


class UploadViewTests(MediaRootMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.student = User.objects.create_user(username="alice", password="pw", role="student", full_name="A", phone="1")
        self.admin = User.objects.create_user(username="tpo", password="pw", role="admin", full_name="T", phone="2")

    def test_resume_streams_inline_with_sniffed_type(self):
        self.write("0d9e8f7a6b5c", PDF_BYTES)
        self.client.force_login(self.admin)
        resp = self.client.get(reverse("view_resume", args=["0d9e8f7a6b5c"]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp["Content-Type"], "application/pdf")
        self.assertTrue(resp["Content-Disposition"].startswith("inline"))
        self.assertIn('filename="resume.pdf"', resp["Content-Disposition"])
        self.assertEqual(b"".join(resp.streaming_content), PDF_BYTES)

    def test_resume_view_is_admin_only(self):
        self.write("resumes/abc.pdf")
        self.assertEqual(self.client.get(reverse("view_resume", args=["resumes/abc.pdf"])).status_code, 401)
        self.client.force_login(self.student)
        self.assertEqual(self.client.get(reverse("view_resume", args=["resumes/abc.pdf"])).status_code, 403)

    def test_missing_resume_is_json_404(self):
        self.client.force_login(self.admin)
        resp = self.client.get(reverse("view_resume", args=["resumes/gone.pdf"]))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"], "not_found")

    def test_public_uploads_never_serve_resumes(self):
        self.write("resumes/4c1d.pdf")
        for reference in ["resumes/4c1d.pdf", "uploads/resumes/4c1d.pdf"]:
            self.assertEqual(self.client.get(reverse("serve_upload", args=[reference])).status_code, 404)
        self.write("resumes/only-resume.pdf")
        self.assertEqual(self.client.get(reverse("serve_upload", args=["only-resume.pdf"])).status_code, 404)

    def test_public_uploads_hide_submitted_resume(self):
        job = Job.objects.create(
            title="T", company="C", description="D", requirements="R", location="L", type="fulltime",
        )
        application = lifecycle.submit(self.student, job.id, SimpleUploadedFile("cv.pdf", PDF_BYTES))
        bare_name = Path(application.resume.name).name
        for reference in [application.resume.name, bare_name]:
            self.assertEqual(self.client.get(reverse("serve_upload", args=[reference])).status_code, 404)

        self.client.force_login(self.admin)
        resp = self.client.get(reverse("view_resume", args=[application.resume.name]))
        self.assertEqual(resp.status_code, 200)
        resp.close()

    def test_public_uploads_legacy_flat_files(self):
        self.write("a7f3e9", b"\x89PNG\r\n\x1a\n")
        self.write("b8e4f0", PDF_BYTES)
        resp = self.client.get(reverse("serve_upload", args=["a7f3e9"]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp["Content-Type"], "image/png")
        resp.close()
        self.assertEqual(self.client.get(reverse("serve_upload", args=["b8e4f0"])).status_code, 404)

    def test_public_uploads(self):
        self.write("job-images/logo.png", b"\x89PNG\r\n\x1a\n")
        resp = self.client.get(reverse("serve_upload", args=["job-images/logo.png"]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp["Content-Type"], "image/png")
        resp.close()
        self.assertEqual(self.client.get(reverse("serve_upload", args=["job-images/none.png"])).status_code, 404)


class NormalizeCommandTests(MediaRootMixin, TestCase):
    def setUp(self):
        super().setUp()
        student = User.objects.create_user(username="alice", password="pw", role="student", full_name="A", phone="1")
        job = Job.objects.create(
            title="T", company="C", description="D", requirements="R", location="L", type="fulltime",
            image="/srv/old/uploads/job-images/logo.png",
        )
        self.write("job-images/logo.png", b"\x89PNG\r\n\x1a\n")
        self.write("legacyresume")
        self.application = Application.objects.create(student=student, job=job, resume="legacyresume")
        self.missing = Application.objects.create(student=student, job=job, resume="resumes/gone.pdf")
        self.job = job

    def test_dry_run_changes_nothing(self):
        out = io.StringIO()
        call_command("normalize_upload_refs", "--dry-run", stdout=out)
        self.assertIn("Would update 1", out.getvalue())
        self.job.refresh_from_db()
        self.assertEqual(self.job.image.name, "/srv/old/uploads/job-images/logo.png")

    def test_rewrites_to_canonical_form(self):
        out = io.StringIO()
        call_command("normalize_upload_refs", stdout=out)
        self.job.refresh_from_db()
        self.application.refresh_from_db()
        self.missing.refresh_from_db()
        self.assertEqual(self.job.image.name, "job-images/logo.png")
        # A flat legacy file is already relative to the root, so it is left as is.
        self.assertEqual(self.application.resume.name, "legacyresume")
        self.assertEqual(self.missing.resume.name, "resumes/gone.pdf")
        self.assertIn("1 missing", out.getvalue())
