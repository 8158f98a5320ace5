import logging
import secrets
import time

from django.http import Http404, JsonResponse

from .errors import PortalError

request_logger = logging.getLogger("portal.request")


class RequestLogAdapter(logging.LoggerAdapter):
    """Prefixes every record with the id of the request that produced it."""

    def process(self, msg, kwargs):
        return f"[{self.extra['request_id']}] {msg}", kwargs


def get_request_log(request) -> logging.LoggerAdapter:
    """Return the logger bound to ``request``, creating one if the middleware did not run."""
    log = getattr(request, "log", None)
    if log is None:
        log = RequestLogAdapter(request_logger, {"request_id": "-"})
        request.log = log
    return log


class RequestLogMiddleware:
    """Binds a request-scoped logger to ``request.log`` and writes one access line per API call."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.log = RequestLogAdapter(request_logger, {"request_id": secrets.token_hex(4)})
        started = time.monotonic()
        response = self.get_response(request)
        if request.path.startswith("/api/"):
            elapsed_ms = int((time.monotonic() - started) * 1000)
            request.log.info("%s %s %s in %sms", request.method, request.path, response.status_code, elapsed_ms)
        return response


class ApiErrorMiddleware:
    """Renders errors raised by API views as JSON bodies."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if isinstance(exception, PortalError):
            if exception.status >= 500:
                get_request_log(request).error("Request failed: %s", exception.message)
            return JsonResponse(exception.as_dict(), status=exception.status)

        if not request.path.startswith("/api/"):
            return None

        if isinstance(exception, Http404):
            return JsonResponse({"ok": False, "error": "not_found", "message": "Not found"}, status=404)

        # Database and filesystem failures end up here; no retries, no details to the client.
        get_request_log(request).exception("Unhandled error: %s %s", request.method, request.path)
        return JsonResponse(
            {"ok": False, "error": "internal_error", "message": "Internal server error"},
            status=500,
        )
