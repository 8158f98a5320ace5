from django.http import FileResponse, Http404
from django.views.decorators.http import require_GET

from accounts.decorators import admin_required
from portal.errors import FileNotFound
from portal.middleware import get_request_log

from .sniff import content_type_for
from .storage import PUBLIC_PURPOSES, Purpose, resolve


@require_GET
def serve_upload(request, reference):
    """Public file surface for images; resumes and missing files are a plain 404."""
    try:
        path = resolve(reference, allowed=PUBLIC_PURPOSES)
    except FileNotFound:
        raise Http404("File not found")
    content_type, _ext = content_type_for(path)
    return FileResponse(path.open("rb"), content_type=content_type)


@require_GET
@admin_required
def view_resume(request, reference):
    """Stream a resume inline so the browser renders it instead of downloading."""
    log = get_request_log(request)
    path = resolve(reference, Purpose.RESUME)
    content_type, ext = content_type_for(path)
    log.info("Resume viewed: reference=%s content_type=%s admin=%s", reference, content_type, request.user.username)
    return FileResponse(
        path.open("rb"),
        content_type=content_type,
        as_attachment=False,
        filename=f"resume{ext}",
    )
