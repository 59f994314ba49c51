import logging
import traceback

from django.conf import settings
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404, JsonResponse
from rest_framework import exceptions
from rest_framework.response import Response

from .errors import AppError

logger = logging.getLogger(__name__)

GENERIC_MESSAGE = "Something went wrong please try again later"


def _status_label(status_code):
    return "fail" if 400 <= status_code < 500 else "error"


def _message_from_detail(detail):
    # DRF details can be nested dicts/lists of ErrorDetail; surface the first one
    if isinstance(detail, dict):
        for field, value in detail.items():
            inner = _message_from_detail(value)
            return inner if field == "non_field_errors" else f"{field}: {inner}"
        return GENERIC_MESSAGE
    if isinstance(detail, (list, tuple)):
        return _message_from_detail(detail[0]) if detail else GENERIC_MESSAGE
    return str(detail)


def api_exception_handler(exc, context):
    """Single boundary translator: every API error leaves as {status, message}."""
    if isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, DjangoPermissionDenied):
        exc = exceptions.PermissionDenied()

    if isinstance(exc, AppError):
        status_code = exc.status_code
        message = exc.message
        operational = True
    elif isinstance(exc, exceptions.APIException):
        status_code = exc.status_code
        message = _message_from_detail(exc.detail)
        operational = True
    else:
        status_code = 500
        message = str(exc)
        operational = False

    view = context.get("view") if context else None
    if status_code >= 500:
        logger.error(
            f"[API ERROR] {type(exc).__name__} in {type(view).__name__ if view else 'unknown view'}: {message}",
            exc_info=(type(exc), exc, exc.__traceback__),
        )

    if settings.DEBUG:
        body = {
            "status": _status_label(status_code),
            "message": message,
            "stackTrace": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        }
    elif operational and status_code < 500:
        body = {"status": _status_label(status_code), "message": message}
    else:
        body = {"status": "error", "message": GENERIC_MESSAGE}

    response = Response(body, status=status_code)
    wait = getattr(exc, "wait", None)
    if wait:
        response["Retry-After"] = str(int(wait))
    auth_header = getattr(exc, "auth_header", None)
    if auth_header:
        response["WWW-Authenticate"] = auth_header
    return response


def route_not_found(request, exception=None):
    return JsonResponse(
        {"status": "fail", "message": f"{request.path} Route not found"},
        status=404,
    )


def server_error(request):
    return JsonResponse({"status": "error", "message": GENERIC_MESSAGE}, status=500)
