"""Request parsing helpers for the JSON API."""
from __future__ import annotations

import json

from .errors import ValidationFailure


def request_data(request):
    """Return the request body as a mapping.

    JSON bodies are decoded; form-encoded and multipart bodies come back as
    ``request.POST`` so Django forms can consume either shape.
    """
    content_type = (request.content_type or "").lower()
    if content_type == "application/json":
        if not request.body:
            return {}
        try:
            data = json.loads(request.body)
        except (ValueError, UnicodeDecodeError):
            raise ValidationFailure("Malformed JSON body")
        if not isinstance(data, dict):
            raise ValidationFailure("JSON body must be an object")
        return data
    if request.method in {"PUT", "PATCH"} and content_type.startswith("multipart/"):
        # Django only parses multipart bodies for POST.
        data, files = request.parse_file_upload(request.META, request)
        request._files = files
        return data
    return request.POST


def parse_id(value, *, field: str = "id") -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationFailure(f"Invalid {field}", errors={field: [f"Invalid {field}"]})
    if parsed < 1:
        raise ValidationFailure(f"Invalid {field}", errors={field: [f"Invalid {field}"]})
    return parsed
