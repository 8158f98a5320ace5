from django.urls import path
from . import views

urlpatterns = [
    path("api/applications/resume/<path:reference>", views.view_resume, name="view_resume"),
    path("uploads/<path:reference>", views.serve_upload, name="serve_upload"),
]
