from django import forms
from django.contrib.auth import get_user_model

from .models import AcademicDetails, PersonalDetails

User = get_user_model()


class RegistrationForm(forms.Form):
    username = forms.CharField(max_length=150)
    password = forms.CharField(max_length=128, strip=False)
    role = forms.ChoiceField(choices=User.Role.choices)
    full_name = forms.CharField(max_length=150)
    email = forms.EmailField()
    phone = forms.CharField(max_length=20)

    def clean_username(self):
        return self.cleaned_data["username"].strip()


class LoginForm(forms.Form):
    username = forms.CharField(max_length=150)
    password = forms.CharField(max_length=128, strip=False)


class AcademicDetailsForm(forms.ModelForm):
    class Meta:
        model = AcademicDetails
        fields = [
            "course",
            "branch",
            "semester",
            "academic_year",
            "percentage",
            "registration_pin",
            "previous_semester_grades",
            "backlogs",
        ]


class PersonalDetailsForm(forms.ModelForm):
    class Meta:
        model = PersonalDetails
        fields = ["phone", "email", "address", "linkedin", "github", "social_media"]
