"""Application lifecycle: pending → accepted | rejected, terminal states final."""
from __future__ import annotations

import logging

from django.core.files.storage import default_storage
from django.db import transaction

from accounts.policy import enforce
from portal.errors import Conflict, NotFound, ValidationFailure
from uploads.storage import Purpose, accept

from .models import Application, Job

logger = logging.getLogger(__name__)


def submit(student, job_id: int, resume_file, log=None) -> Application:
    """Create one pending application for ``student`` against ``job_id``.

    Duplicate submissions to the same job are allowed; nothing at this layer
    prevents them.
    """
    log = log or logger
    enforce(student, role="student")
    if resume_file is None:
        raise ValidationFailure("Resume is required", errors={"resume": ["Resume is required"]})

    job = Job.objects.filter(pk=job_id).first()
    if job is None:
        raise NotFound("Job not found")

    reference = accept(Purpose.RESUME, resume_file)
    try:
        with transaction.atomic():
            application = Application.objects.create(student=student, job=job, resume=reference)
    except Exception:
        default_storage.delete(reference)
        raise

    log.info(
        "Application submitted: app_id=%s job_id=%s user=%s resume=%s",
        application.id,
        job.id,
        student.username,
        reference,
    )
    return application


def list_for_student(principal, requested_id: int | None = None):
    """Applications owned by a student.

    Students always get their own rows whatever id they pass; admins may ask
    for any student.
    """
    enforce(principal)
    if principal.role == "admin" and requested_id is not None:
        owner_id = requested_id
    else:
        owner_id = principal.pk
    return Application.objects.for_student(owner_id).select_related("job").recent()


def list_for_job(principal, job_id: int):
    enforce(principal, role="admin")
    if not Job.objects.filter(pk=job_id).exists():
        raise NotFound("Job not found")
    return Application.objects.for_job(job_id).select_related("student").recent()


def grouped_by_job(principal) -> list[dict]:
    """Every application, grouped under its job (admin dashboard)."""
    enforce(principal, role="admin")
    groups: dict[int, dict] = {}
    applications = Application.objects.select_related("job", "student").order_by("job_id", "-applied_at", "-id")
    for application in applications:
        group = groups.setdefault(application.job_id, {"job": application.job.as_dict(), "applications": []})
        group["applications"].append(application.as_dict(include_student=True))
    return list(groups.values())


def set_status(principal, application_id: int, new_status: str, log=None) -> Application:
    """Finalise a pending application.

    The write is a single ``UPDATE ... WHERE status = 'pending'`` so two admins
    acting at once cannot both win; the loser gets a ``Conflict``.
    """
    log = log or logger
    enforce(principal, role="admin")
    if new_status not in Application.TERMINAL_STATUSES:
        allowed = ", ".join(sorted(Application.TERMINAL_STATUSES))
        raise ValidationFailure(
            f"Status must be one of: {allowed}",
            errors={"status": [f"Status must be one of: {allowed}"]},
        )

    updated = Application.objects.transition(application_id, new_status)
    application = Application.objects.select_related("job", "student").filter(pk=application_id).first()
    if application is None:
        raise NotFound("Application not found")
    if not updated:
        log.info(
            "Status change refused: app_id=%s current=%s requested=%s admin=%s",
            application.id,
            application.status,
            new_status,
            principal.username,
        )
        raise Conflict(f"Application already {application.status}")

    log.info("Application %s: app_id=%s admin=%s", new_status, application.id, principal.username)
    return application
