from django.urls import path
from . import views

urlpatterns = [
    path("jobs", views.jobs_collection, name="jobs"),
    path("jobs/<int:job_id>", views.job_item, name="job_item"),
    path("applications", views.applications_collection, name="applications"),
    path("applications/user", views.my_applications, name="my_applications"),
    path("applications/job/<int:job_id>", views.job_applications, name="job_applications"),
    path("applications/<int:application_id>", views.application_detail, name="application_detail"),
    path("applications/<int:application_id>/status", views.update_status, name="update_application_status"),
]
