from rest_framework import status
from rest_framework.exceptions import APIException


class AppError(APIException):
    """
    Operational error raised by the domain layer.

    Carries an HTTP status code and a message that is safe to show to the
    client. The API exception handler and the socket consumers both translate
    it into a `{status, message}` payload.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Something went wrong please try again later"
    is_operational = True

    def __init__(self, message=None, status_code=None):
        if status_code is not None:
            self.status_code = status_code
        self.message = message or self.default_detail
        super().__init__(detail=self.message)

    @property
    def status(self):
        return "fail" if 400 <= self.status_code < 500 else "error"

    def __str__(self):
        return self.message


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input"


class InvalidOperation(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Operation not allowed"


class AlreadyExists(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Resource already exists"


Conflict = AlreadyExists


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Please login to access this resource"


class PermissionDenied(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You do not have permission to perform this action"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"


class Internal(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
