import random

from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from accounts.models import AcademicDetails
from jobs.models import Application, Job

User = get_user_model()

MINIMAL_PDF = b"%PDF-1.4\n1 0 obj<</Type/Catalog>>endobj\ntrailer<</Root 1 0 R>>\n%%EOF\n"


class Command(BaseCommand):
    help = "Seed demo data for the placement portal (one admin, students, jobs, applications)."

    def add_arguments(self, parser):
        parser.add_argument("--prefix", type=str, default="demo")
        parser.add_argument("--students", type=int, default=8)
        parser.add_argument("--jobs", type=int, default=6)
        parser.add_argument("--applications-per-student", type=int, default=2)
        parser.add_argument("--password", type=str, default="DemoPass123!")
        parser.add_argument("--seed", type=int, default=42)
        parser.add_argument("--wipe", action="store_true", help="Delete existing users starting with prefix before seeding.")

    def _make_user(self, username, role, password, full_name):
        user, _ = User.objects.get_or_create(
            username=username,
            defaults={
                "email": f"{username}@example.com",
                "role": role,
                "full_name": full_name,
                "phone": "0000000000",
            },
        )
        # Keep demo credentials predictable.
        user.full_name = full_name
        user.set_password(password)
        user.save(update_fields=["full_name", "password"])
        return user

    @transaction.atomic
    def handle(self, *args, **opts):
        rnd = random.Random(opts["seed"])
        prefix = (opts["prefix"] or "demo").strip().lower()
        students_n = max(1, int(opts["students"]))
        jobs_n = max(1, int(opts["jobs"]))
        apps_per_student = max(0, int(opts["applications_per_student"]))
        password = opts["password"]

        if opts["wipe"]:
            User.objects.filter(username__startswith=f"{prefix}_").delete()
            Job.objects.filter(company__startswith=f"{prefix.title()} ").delete()

        company_names = [
            "NorthBridge Labs",
            "Harbor Metrics",
            "BluePeak Systems",
            "CedarStone Digital",
            "OrbitGrid Tech",
            "Skyforge Data",
        ]
        job_templates = [
            ("Backend Developer", "Build and maintain APIs and PostgreSQL schemas.", "Python, SQL"),
            ("Frontend Engineer", "Develop responsive interfaces with modern JavaScript.", "JavaScript, CSS"),
            ("Data Analyst", "Turn campus hiring data into dashboards.", "SQL, Excel"),
            ("QA Intern", "Write test cases and automate regression suites.", "Any programming language"),
            ("DevOps Intern", "Automate CI/CD pipelines and deployments.", "Linux, Git"),
        ]
        courses = [("B.Tech", "CSE"), ("B.Tech", "ECE"), ("Diploma", "Mechanical"), ("MCA", "Computer Applications")]

        admin = self._make_user(f"{prefix}_admin", User.Role.ADMIN, password, "Placement Officer")

        jobs = []
        for i in range(1, jobs_n + 1):
            title, description, requirements = job_templates[(i - 1) % len(job_templates)]
            job_type = Job.Type.INTERNSHIP if "Intern" in title else Job.Type.FULLTIME
            job, _ = Job.objects.get_or_create(
                title=title,
                company=f"{prefix.title()} {company_names[(i - 1) % len(company_names)]}",
                defaults={
                    "description": description,
                    "requirements": requirements,
                    "location": rnd.choice(["Hyderabad", "Bengaluru", "Remote"]),
                    "type": job_type,
                    "salary": f"{rnd.randint(3, 12)} LPA" if job_type == Job.Type.FULLTIME else None,
                    "contact_details": admin.email,
                },
            )
            jobs.append(job)

        students = []
        for i in range(1, students_n + 1):
            student = self._make_user(f"{prefix}_student_{i}", User.Role.STUDENT, password, f"Demo Student {i}")
            course, branch = courses[(i - 1) % len(courses)]
            AcademicDetails.objects.get_or_create(
                user=student,
                defaults={
                    "course": course,
                    "branch": branch,
                    "semester": str(rnd.randint(1, 8)),
                    "academic_year": "2024-2025",
                    "percentage": f"{rnd.randint(60, 95)}",
                },
            )
            students.append(student)

        created_apps = 0
        for student in students:
            for job in rnd.sample(jobs, k=min(apps_per_student, len(jobs))):
                if Application.objects.filter(student=student, job=job).exists():
                    continue
                reference = default_storage.save(f"resumes/{student.username}_{job.id}.pdf", ContentFile(MINIMAL_PDF))
                application = Application.objects.create(student=student, job=job, resume=reference)
                status = rnd.choices(["pending", "accepted", "rejected"], weights=[60, 20, 20], k=1)[0]
                if status != Application.Status.PENDING:
                    Application.objects.filter(pk=application.pk).update(status=status, status_changed_at=timezone.now())
                created_apps += 1

        self.stdout.write(self.style.SUCCESS("Seeded portal demo data successfully."))
        self.stdout.write(f"Jobs: {len(jobs)}")
        self.stdout.write(f"Students: {len(students)}")
        self.stdout.write(f"New applications: {created_apps}")
        self.stdout.write("")
        self.stdout.write("Sample credentials:")
        self.stdout.write(f"  {admin.username} / {password}")
        for student in students[:3]:
            self.stdout.write(f"  {student.username} / {password}")
