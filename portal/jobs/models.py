from django.conf import settings
from django.db import models
from django.utils import timezone


class JobQuerySet(models.QuerySet):
    def recent(self):
        return self.order_by("-created_at", "-id")


class Job(models.Model):
    class Type(models.TextChoices):
        FULLTIME = "fulltime", "Full-time"
        INTERNSHIP = "internship", "Internship"

    title = models.CharField(max_length=255)
    company = models.CharField(max_length=255)
    description = models.TextField()
    requirements = models.TextField()
    location = models.CharField(max_length=255)
    type = models.CharField(max_length=20, choices=Type.choices)
    salary = models.CharField(max_length=100, blank=True, null=True)
    contact_details = models.TextField(blank=True, null=True)
    image = models.FileField(upload_to="job-images/", max_length=500, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = JobQuerySet.as_manager()

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=models.Q(type__in=["fulltime", "internship"]),
                name="jobs_job_type_valid",
            ),
        ]

    def __str__(self):
        return f"{self.title} @ {self.company}"

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "company": self.company,
            "description": self.description,
            "requirements": self.requirements,
            "location": self.location,
            "type": self.type,
            "salary": self.salary,
            "contact_details": self.contact_details,
            "image": self.image.name if self.image else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class ApplicationQuerySet(models.QuerySet):
    def for_student(self, student_id):
        return self.filter(student_id=student_id)

    def for_job(self, job_id):
        return self.filter(job_id=job_id)

    def recent(self):
        return self.order_by("-applied_at", "-id")

    def transition(self, application_id, new_status) -> int:
        """Move a pending application to ``new_status`` in one conditional UPDATE.

        Returns the number of rows changed: 0 when the application is missing
        or no longer pending (for example another admin finalised it first).
        """
        return self.filter(pk=application_id, status=Application.Status.PENDING).update(
            status=new_status,
            status_changed_at=timezone.now(),
        )


class Application(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        ACCEPTED = "accepted", "Accepted"
        REJECTED = "rejected", "Rejected"

    TERMINAL_STATUSES = frozenset({Status.ACCEPTED, Status.REJECTED})

    student = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="applications",
        limit_choices_to={"role": "student"},
    )
    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name="applications")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    resume = models.FileField(upload_to="resumes/", max_length=500)
    applied_at = models.DateTimeField(auto_now_add=True)
    status_changed_at = models.DateTimeField(blank=True, null=True)

    objects = ApplicationQuerySet.as_manager()

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=models.Q(status__in=["pending", "accepted", "rejected"]),
                name="jobs_application_status_valid",
            ),
            models.CheckConstraint(
                condition=~models.Q(resume=""),
                name="jobs_application_resume_required",
            ),
        ]
        indexes = [
            models.Index(fields=["student", "-applied_at"], name="jobs_applic_student_6f1c2a_idx"),
            models.Index(fields=["job", "-applied_at"], name="jobs_applic_job_id_3b8e41_idx"),
        ]

    def __str__(self):
        return f"{self.student.username} → {self.job.title}"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    def as_dict(self, *, include_student=False, include_job=False) -> dict:
        data = {
            "id": self.id,
            "student_id": self.student_id,
            "job_id": self.job_id,
            "status": self.status,
            "resume": self.resume.name,
            "applied_at": self.applied_at.isoformat() if self.applied_at else None,
            "status_changed_at": self.status_changed_at.isoformat() if self.status_changed_at else None,
        }
        if include_student:
            data["student"] = self.student.as_public_dict()
        if include_job:
            data["job"] = self.job.as_dict()
        return data
