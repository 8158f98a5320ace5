from django.contrib.auth.models import AbstractUser, UserManager
from django.core.exceptions import ValidationError
from django.db import models

from .credentials import verify_password


class PortalUserManager(UserManager):
    def create_superuser(self, username, email=None, password=None, **extra_fields):
        extra_fields.setdefault("role", User.Role.ADMIN)
        return super().create_superuser(username, email, password, **extra_fields)


class User(AbstractUser):
    class Role(models.TextChoices):
        STUDENT = "student", "Student"
        ADMIN = "admin", "Admin"

    role = models.CharField(max_length=20, choices=Role.choices)
    full_name = models.CharField(max_length=150)
    phone = models.CharField(max_length=20)

    objects = PortalUserManager()

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=models.Q(role__in=["student", "admin"]),
                name="accounts_user_role_valid",
            ),
        ]

    def __str__(self):
        return self.username

    @property
    def is_student(self) -> bool:
        return self.role == self.Role.STUDENT

    @property
    def is_portal_admin(self) -> bool:
        return self.role == self.Role.ADMIN

    def check_password(self, raw_password):
        def setter(raw_password):
            self.set_password(raw_password)
            self._password = None
            self.save(update_fields=["password"])

        return verify_password(raw_password, self.password, setter)

    def save(self, *args, **kwargs):
        update_fields = kwargs.get("update_fields")
        if self.pk and (update_fields is None or "role" in update_fields):
            stored_role = type(self).objects.filter(pk=self.pk).values_list("role", flat=True).first()
            if stored_role is not None and stored_role != self.role:
                raise ValidationError({"role": "Role cannot be changed once set."})
        super().save(*args, **kwargs)

    def as_public_dict(self) -> dict:
        """Principal view sent to clients; never includes the password hash."""
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
        }


class AcademicDetails(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="academic_details")
    course = models.CharField(max_length=100, blank=True, null=True)
    branch = models.CharField(max_length=100, blank=True, null=True)
    semester = models.CharField(max_length=20, blank=True, null=True)
    academic_year = models.CharField(max_length=20, blank=True, null=True)
    percentage = models.CharField(max_length=20, blank=True, null=True)
    registration_pin = models.CharField(max_length=50, blank=True, null=True)
    previous_semester_grades = models.TextField(blank=True, null=True)
    backlogs = models.TextField(blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "academic details"

    def __str__(self):
        return f"Academic details of {self.user.username}"

    def as_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "course": self.course,
            "branch": self.branch,
            "semester": self.semester,
            "academic_year": self.academic_year,
            "percentage": self.percentage,
            "registration_pin": self.registration_pin,
            "previous_semester_grades": self.previous_semester_grades,
            "backlogs": self.backlogs,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class PersonalDetails(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="personal_details")
    phone = models.CharField(max_length=20, blank=True, null=True)
    email = models.EmailField(blank=True, null=True)
    address = models.TextField(blank=True, null=True)
    linkedin = models.CharField(max_length=255, blank=True, null=True)
    github = models.CharField(max_length=255, blank=True, null=True)
    social_media = models.CharField(max_length=255, blank=True, null=True)
    photo = models.FileField(upload_to="student-photos/", max_length=500, blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "personal details"

    def __str__(self):
        return f"Personal details of {self.user.username}"

    def as_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "linkedin": self.linkedin,
            "github": self.github,
            "social_media": self.social_media,
            "photo": self.photo.name if self.photo else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
