from django.core.management.base import BaseCommand
from django.db import transaction

from accounts.models import PersonalDetails
from jobs.models import Application, Job
from portal.errors import FileNotFound
from uploads.storage import Purpose, canonical_reference, resolve


class Command(BaseCommand):
    help = "Rewrite stored upload references (resumes, job images, photos) to canonical <subdir>/<name> form."

    TARGETS = (
        (Application, "resume", Purpose.RESUME),
        (Job, "image", Purpose.JOB_IMAGE),
        (PersonalDetails, "photo", Purpose.STUDENT_PHOTO),
    )

    def add_arguments(self, parser):
        parser.add_argument("--dry-run", action="store_true", help="Report changes without writing them.")

    def handle(self, *args, **opts):
        dry_run = opts["dry_run"]
        totals = {"checked": 0, "changed": 0, "missing": 0}

        with transaction.atomic():
            for model, field, purpose in self.TARGETS:
                rows = model.objects.exclude(**{f"{field}__isnull": True}).exclude(**{field: ""})
                for pk, reference in rows.values_list("pk", field):
                    totals["checked"] += 1
                    try:
                        path = resolve(reference, purpose)
                    except FileNotFound:
                        totals["missing"] += 1
                        self.stdout.write(self.style.WARNING(f"{model.__name__} {pk}: missing file for {reference!r}"))
                        continue

                    canonical = canonical_reference(path)
                    if canonical == reference:
                        continue
                    totals["changed"] += 1
                    self.stdout.write(f"{model.__name__} {pk}: {reference!r} -> {canonical!r}")
                    if not dry_run:
                        model.objects.filter(pk=pk).update(**{field: canonical})

        prefix = "Would update" if dry_run else "Updated"
        self.stdout.write(self.style.SUCCESS(
            f"{prefix} {totals['changed']} of {totals['checked']} references ({totals['missing']} missing)."
        ))
