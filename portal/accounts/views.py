import logging

from django.conf import settings
from django.contrib.auth import authenticate, login, logout, get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.core.files.storage import default_storage
from django.db import IntegrityError, transaction
from django.forms.models import model_to_dict
from django.http import JsonResponse
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from portal.errors import (
    AuthenticationFailed,
    AuthenticationRequired,
    Conflict,
    InsufficientPrivilege,
    NotFound,
    ValidationFailure,
)
from portal.http import parse_id, request_data
from portal.middleware import get_request_log
from uploads.storage import Purpose, accept

from .decorators import admin_required, owner_or_admin
from .forms import AcademicDetailsForm, LoginForm, PersonalDetailsForm, RegistrationForm
from .models import AcademicDetails, PersonalDetails

logger = logging.getLogger(__name__)
User = get_user_model()


def _related_or_none(user, attr):
    try:
        return getattr(user, attr)
    except ObjectDoesNotExist:
        return None


def _student_record(user) -> dict:
    academic = _related_or_none(user, "academic_details")
    personal = _related_or_none(user, "personal_details")
    return {
        "user": user.as_public_dict(),
        "academic": academic.as_dict() if academic else None,
        "personal": personal.as_dict() if personal else None,
    }


# -----------------------------
# Register / Login / Logout
# -----------------------------
@require_POST
def register(request):
    log = get_request_log(request)
    form = RegistrationForm(request_data(request))
    if not form.is_valid():
        log.warning("Registration failed: errors=%s", form.errors.get_json_data())
        raise ValidationFailure.from_form(form)

    data = form.cleaned_data
    if data["role"] == User.Role.ADMIN and not settings.PORTAL_ALLOW_ADMIN_SIGNUP:
        raise InsufficientPrivilege("Admin registration is disabled")

    if User.objects.filter(username=data["username"]).exists():
        log.info("Registration rejected (duplicate): username=%s", data["username"])
        raise Conflict("Username already exists")

    try:
        with transaction.atomic():
            user = User.objects.create_user(
                username=data["username"],
                email=data["email"],
                password=data["password"],
                role=data["role"],
                full_name=data["full_name"],
                phone=data["phone"],
            )
    except IntegrityError:
        # Lost a race with a concurrent registration of the same handle.
        raise Conflict("Username already exists")

    # Registration implies login.
    login(request, user, backend="django.contrib.auth.backends.ModelBackend")
    log.info("Registered: username=%s role=%s", user.username, user.role)
    return JsonResponse(user.as_public_dict(), status=201)


@require_POST
def user_login(request):
    log = get_request_log(request)
    form = LoginForm(request_data(request))
    if not form.is_valid():
        raise ValidationFailure.from_form(form)

    username = form.cleaned_data["username"]
    user = authenticate(request, username=username, password=form.cleaned_data["password"])
    if user is None:
        # Same response for an unknown handle and a wrong password.
        log.info("Login failed: username=%s", username)
        raise AuthenticationFailed()

    login(request, user)
    log.info("Login success: username=%s role=%s", user.username, user.role)
    return JsonResponse(user.as_public_dict())


@require_POST
def user_logout(request):
    username = request.user.username if request.user.is_authenticated else None
    logout(request)
    if username:
        get_request_log(request).info("Logout: username=%s", username)
    return JsonResponse({"ok": True})


@require_GET
@ensure_csrf_cookie
def current_user(request):
    if not request.user.is_authenticated:
        # Returned rather than raised so the CSRF cookie still goes out.
        error = AuthenticationRequired()
        return JsonResponse(error.as_dict(), status=error.status)
    return JsonResponse(request.user.as_public_dict())


# -----------------------------
# Academic / personal details
# -----------------------------
def _get_student(user_id: int):
    student = User.objects.filter(pk=user_id, role=User.Role.STUDENT).first()
    if student is None:
        raise NotFound("Student not found")
    return student


def _merged_form_data(instance, data, form_class) -> dict:
    """Current values overlaid with the submitted ones, so updates may be partial."""
    fields = form_class._meta.fields
    merged = model_to_dict(instance, fields=fields)
    merged.update({key: data.get(key) for key in fields if key in data})
    return merged


@require_http_methods(["GET", "PUT", "POST"])
@owner_or_admin("user_id")
def academic_details(request, user_id):
    student = _get_student(user_id)
    if request.method == "GET":
        details = AcademicDetails.objects.filter(user=student).first() or AcademicDetails(user=student)
        return JsonResponse(details.as_dict())

    data = request_data(request)
    with transaction.atomic():
        details, created = AcademicDetails.objects.get_or_create(user=student)
        form = AcademicDetailsForm(_merged_form_data(details, data, AcademicDetailsForm), instance=details)
        if not form.is_valid():
            raise ValidationFailure.from_form(form)
        details = form.save()

    get_request_log(request).info(
        "Academic details %s: user_id=%s by=%s",
        "created" if created else "updated",
        student.id,
        request.user.username,
    )
    return JsonResponse(details.as_dict())


@require_http_methods(["GET", "PUT", "POST"])
@owner_or_admin("user_id")
def personal_details(request, user_id):
    student = _get_student(user_id)
    if request.method == "GET":
        details = PersonalDetails.objects.filter(user=student).first() or PersonalDetails(user=student)
        return JsonResponse(details.as_dict())

    data = request_data(request)
    photo = request.FILES.get("photo")
    stored = None
    try:
        with transaction.atomic():
            details, created = PersonalDetails.objects.get_or_create(user=student)
            form = PersonalDetailsForm(_merged_form_data(details, data, PersonalDetailsForm), instance=details)
            if not form.is_valid():
                raise ValidationFailure.from_form(form)
            details = form.save(commit=False)
            if photo is not None:
                stored = accept(Purpose.STUDENT_PHOTO, photo)
                details.photo = stored
            details.save()
    except Exception:
        if stored:
            default_storage.delete(stored)
        raise

    get_request_log(request).info(
        "Personal details %s: user_id=%s photo=%s by=%s",
        "created" if created else "updated",
        student.id,
        details.photo.name if details.photo else None,
        request.user.username,
    )
    return JsonResponse(details.as_dict())


# -----------------------------
# Admin: student directory
# -----------------------------
@require_GET
@admin_required
def admin_students(request):
    students = (
        User.objects.filter(role=User.Role.STUDENT)
        .select_related("academic_details", "personal_details")
        .order_by("username")
    )
    return JsonResponse({"items": [_student_record(s) for s in students]})


@require_GET
@admin_required
def student_lookup(request):
    username = (request.GET.get("username") or "").strip()
    raw_id = (request.GET.get("userId") or "").strip()
    if not username and not raw_id:
        raise ValidationFailure(
            "Provide a username or userId",
            errors={"username": ["Provide a username or userId"]},
        )

    students = User.objects.filter(role=User.Role.STUDENT).select_related("academic_details", "personal_details")
    if raw_id:
        student = students.filter(pk=parse_id(raw_id, field="userId")).first()
    else:
        student = students.filter(username=username).first()
    if student is None:
        raise NotFound("Student not found")

    logger.info("Student lookup: admin=%s student_id=%s", request.user.username, student.id)
    return JsonResponse(_student_record(student))
