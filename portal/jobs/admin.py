from django.contrib import admin

from .models import Application, Job


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ("title", "company", "type", "location", "created_at")
    list_filter = ("type",)
    search_fields = ("title", "company", "location")


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    list_display = ("id", "student", "job", "status", "applied_at", "status_changed_at")
    list_filter = ("status",)
    search_fields = ("student__username", "job__title")
    # Status moves only through the API's pending -> accepted/rejected transition.
    readonly_fields = ("status", "status_changed_at", "applied_at")
