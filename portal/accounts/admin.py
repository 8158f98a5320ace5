from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from .models import User, AcademicDetails, PersonalDetails


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    # show extra fields in admin
    fieldsets = DjangoUserAdmin.fieldsets + (
        ("Portal", {"fields": ("role", "full_name", "phone")}),
    )
    add_fieldsets = DjangoUserAdmin.add_fieldsets + (
        ("Portal", {"fields": ("role", "full_name", "phone", "email")}),
    )
    list_display = ("username", "full_name", "email", "role", "is_active", "is_staff")
    list_filter = ("role", "is_active", "is_staff")

    def get_readonly_fields(self, request, obj=None):
        # Role is fixed once the account exists.
        readonly = super().get_readonly_fields(request, obj)
        return (*readonly, "role") if obj else readonly


@admin.register(AcademicDetails)
class AcademicDetailsAdmin(admin.ModelAdmin):
    list_display = ("user", "course", "branch", "semester", "updated_at")
    search_fields = ("user__username", "registration_pin")


@admin.register(PersonalDetails)
class PersonalDetailsAdmin(admin.ModelAdmin):
    list_display = ("user", "phone", "email", "updated_at")
    search_fields = ("user__username", "email")
