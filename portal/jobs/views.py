from django.contrib.auth import get_user_model
from django.core.files.storage import default_storage
from django.db import transaction
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_http_methods

from accounts.decorators import admin_required, login_required_json, student_required
from accounts.policy import enforce
from portal.errors import NotFound, ValidationFailure
from portal.http import parse_id, request_data
from portal.middleware import get_request_log
from uploads.storage import Purpose, accept

from . import lifecycle
from .forms import JobForm
from .models import Application, Job

User = get_user_model()


# -----------------------------
# Jobs: public browsing, admin create/delete
# -----------------------------
@require_http_methods(["GET", "POST"])
def jobs_collection(request):
    if request.method == "POST":
        return create_job(request)
    return job_list(request)


def job_list(request):
    applied_job_ids = set()
    if request.user.is_authenticated and request.user.role == User.Role.STUDENT:
        # Presentation hint only; duplicate applications are still accepted.
        applied_job_ids = set(
            Application.objects.for_student(request.user.pk).values_list("job_id", flat=True)
        )

    items = []
    for job in Job.objects.recent():
        data = job.as_dict()
        data["already_applied"] = job.id in applied_job_ids
        items.append(data)
    return JsonResponse({"items": items})


@admin_required
def create_job(request):
    log = get_request_log(request)
    data = request_data(request).copy()
    if "contactDetails" in data and "contact_details" not in data:
        data["contact_details"] = data.get("contactDetails")
    form = JobForm(data)
    if not form.is_valid():
        log.warning("Job create failed: errors=%s", form.errors.get_json_data())
        raise ValidationFailure.from_form(form)

    image = request.FILES.get("image") or request.FILES.get("jobImage")
    stored = None
    try:
        with transaction.atomic():
            job = form.save(commit=False)
            if image is not None:
                stored = accept(Purpose.JOB_IMAGE, image)
                job.image = stored
            job.save()
    except Exception:
        if stored:
            default_storage.delete(stored)
        raise

    log.info("Job created: job_id=%s admin=%s image=%s", job.id, request.user.username, job.image.name or None)
    return JsonResponse(job.as_dict(), status=201)


@require_http_methods(["GET", "DELETE"])
def job_item(request, job_id):
    if request.method == "DELETE":
        return delete_job(request, job_id)
    job = Job.objects.filter(pk=job_id).first()
    if job is None:
        raise NotFound("Job not found")
    return JsonResponse(job.as_dict())


@admin_required
def delete_job(request, job_id):
    job = Job.objects.filter(pk=job_id).first()
    if job is None:
        raise NotFound("Job not found")
    application_count = job.applications.count()
    # Applications go with the job (ForeignKey CASCADE); stored files stay on disk.
    job.delete()
    get_request_log(request).info(
        "Job deleted: job_id=%s applications=%s admin=%s", job_id, application_count, request.user.username
    )
    return JsonResponse({"ok": True, "id": job_id, "deleted_applications": application_count})


# -----------------------------
# Applications
# -----------------------------
@require_http_methods(["GET", "POST"])
def applications_collection(request):
    if request.method == "POST":
        return submit_application(request)
    return all_applications(request)


@student_required
def submit_application(request):
    data = request_data(request)
    job_id = parse_id(data.get("job_id") or data.get("jobId"), field="job_id")
    application = lifecycle.submit(
        request.user,
        job_id,
        request.FILES.get("resume"),
        log=get_request_log(request),
    )
    return JsonResponse(application.as_dict(include_job=True), status=201)


@admin_required
def all_applications(request):
    return JsonResponse({"items": lifecycle.grouped_by_job(request.user)})


@require_GET
@login_required_json
def my_applications(request):
    requested_id = None
    if request.user.role == User.Role.ADMIN and request.GET.get("userId"):
        requested_id = parse_id(request.GET["userId"], field="userId")
    applications = lifecycle.list_for_student(request.user, requested_id)
    return JsonResponse({"items": [a.as_dict(include_job=True) for a in applications]})


@require_GET
@admin_required
def job_applications(request, job_id):
    applications = lifecycle.list_for_job(request.user, job_id)
    return JsonResponse({"items": [a.as_dict(include_student=True) for a in applications]})


@require_GET
@login_required_json
def application_detail(request, application_id):
    application = Application.objects.select_related("job", "student").filter(pk=application_id).first()
    # Ids start at 1, so a missing row never matches a student's own id: students
    # get the same 403 for "not yours" and "does not exist".
    enforce(request.user, owner_id=application.student_id if application is not None else 0)
    if application is None:
        raise NotFound("Application not found")
    return JsonResponse(application.as_dict(include_student=True, include_job=True))


@require_http_methods(["PATCH", "POST"])
@admin_required
def update_status(request, application_id):
    data = request_data(request)
    application = lifecycle.set_status(
        request.user,
        application_id,
        (data.get("status") or "").strip().lower(),
        log=get_request_log(request),
    )
    return JsonResponse(application.as_dict(include_student=True))
