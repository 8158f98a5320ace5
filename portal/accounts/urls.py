from django.urls import path
from . import views

urlpatterns = [
    path("register", views.register, name="register"),
    path("login", views.user_login, name="login"),
    path("logout", views.user_logout, name="logout"),
    path("user", views.current_user, name="current_user"),
    path("users/<int:user_id>/academic-details", views.academic_details, name="academic_details"),
    path("users/<int:user_id>/personal-details", views.personal_details, name="personal_details"),
    path("admin/students", views.admin_students, name="admin_students"),
    path("admin/student-lookup", views.student_lookup, name="student_lookup"),
]
