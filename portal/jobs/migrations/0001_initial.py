# Generated manually (jobs and applications)
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Job",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("company", models.CharField(max_length=255)),
                ("description", models.TextField()),
                ("requirements", models.TextField()),
                ("location", models.CharField(max_length=255)),
                ("type", models.CharField(choices=[("fulltime", "Full-time"), ("internship", "Internship")], max_length=20)),
                ("salary", models.CharField(blank=True, max_length=100, null=True)),
                ("contact_details", models.TextField(blank=True, null=True)),
                ("image", models.FileField(blank=True, max_length=500, null=True, upload_to="job-images/")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(type__in=["fulltime", "internship"]),
                        name="jobs_job_type_valid",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Application",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("status", models.CharField(choices=[("pending", "Pending"), ("accepted", "Accepted"), ("rejected", "Rejected")], default="pending", max_length=20)),
                ("resume", models.FileField(max_length=500, upload_to="resumes/")),
                ("applied_at", models.DateTimeField(auto_now_add=True)),
                ("status_changed_at", models.DateTimeField(blank=True, null=True)),
                ("job", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="applications", to="jobs.job")),
                ("student", models.ForeignKey(limit_choices_to={"role": "student"}, on_delete=django.db.models.deletion.CASCADE, related_name="applications", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["student", "-applied_at"], name="jobs_applic_student_6f1c2a_idx"),
                    models.Index(fields=["job", "-applied_at"], name="jobs_applic_job_id_3b8e41_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(status__in=["pending", "accepted", "rejected"]),
                        name="jobs_application_status_valid",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("resume", ""), _negated=True),
                        name="jobs_application_resume_required",
                    ),
                ],
            },
        ),
    ]
