# Generated manually (custom user model with role, academic/personal details)
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.contrib.auth.validators
import django.utils.timezone

import accounts.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                ("is_superuser", models.BooleanField(default=False, help_text="Designates that this user has all permissions without explicitly assigning them.", verbose_name="superuser status")),
                ("username", models.CharField(error_messages={"unique": "A user with that username already exists."}, help_text="Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.", max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name="username")),
                ("first_name", models.CharField(blank=True, max_length=150, verbose_name="first name")),
                ("last_name", models.CharField(blank=True, max_length=150, verbose_name="last name")),
                ("email", models.EmailField(blank=True, max_length=254, verbose_name="email address")),
                ("is_staff", models.BooleanField(default=False, help_text="Designates whether the user can log into this admin site.", verbose_name="staff status")),
                ("is_active", models.BooleanField(default=True, help_text="Designates whether this user should be treated as active. Unselect this instead of deleting accounts.", verbose_name="active")),
                ("date_joined", models.DateTimeField(default=django.utils.timezone.now, verbose_name="date joined")),
                ("role", models.CharField(choices=[("student", "Student"), ("admin", "Admin")], max_length=20)),
                ("full_name", models.CharField(max_length=150)),
                ("phone", models.CharField(max_length=20)),
                ("groups", models.ManyToManyField(blank=True, help_text="The groups this user belongs to. A user will get all permissions granted to each of their groups.", related_name="user_set", related_query_name="user", to="auth.group", verbose_name="groups")),
                ("user_permissions", models.ManyToManyField(blank=True, help_text="Specific permissions for this user.", related_name="user_set", related_query_name="user", to="auth.permission", verbose_name="user permissions")),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(role__in=["student", "admin"]),
                        name="accounts_user_role_valid",
                    ),
                ],
            },
            managers=[("objects", accounts.models.PortalUserManager()),],
        ),
        migrations.CreateModel(
            name="AcademicDetails",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("course", models.CharField(blank=True, max_length=100, null=True)),
                ("branch", models.CharField(blank=True, max_length=100, null=True)),
                ("semester", models.CharField(blank=True, max_length=20, null=True)),
                ("academic_year", models.CharField(blank=True, max_length=20, null=True)),
                ("percentage", models.CharField(blank=True, max_length=20, null=True)),
                ("registration_pin", models.CharField(blank=True, max_length=50, null=True)),
                ("previous_semester_grades", models.TextField(blank=True, null=True)),
                ("backlogs", models.TextField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="academic_details", to=settings.AUTH_USER_MODEL)),
            ],
            options={"verbose_name_plural": "academic details"},
        ),
        migrations.CreateModel(
            name="PersonalDetails",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("phone", models.CharField(blank=True, max_length=20, null=True)),
                ("email", models.EmailField(blank=True, max_length=254, null=True)),
                ("address", models.TextField(blank=True, null=True)),
                ("linkedin", models.CharField(blank=True, max_length=255, null=True)),
                ("github", models.CharField(blank=True, max_length=255, null=True)),
                ("social_media", models.CharField(blank=True, max_length=255, null=True)),
                ("photo", models.FileField(blank=True, max_length=500, null=True, upload_to="student-photos/")),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="personal_details", to=settings.AUTH_USER_MODEL)),
            ],
            options={"verbose_name_plural": "personal details"},
        ),
    ]
