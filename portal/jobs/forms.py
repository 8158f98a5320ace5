from django import forms

from .models import Job


class JobForm(forms.ModelForm):
    class Meta:
        model = Job
        fields = [
            "title",
            "company",
            "description",
            "requirements",
            "location",
            "type",
            "salary",
            "contact_details",
        ]
