import logging

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Domain error raised by service functions; rendered by the API exception handler."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be processed."

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class BadRequest(ServiceError):
    pass


class Forbidden(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You do not have permission to perform this action."


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."


class Conflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource is not in a state that allows this action."


class PaymentProviderError(ServiceError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Payment provider request failed."


def _flatten_errors(detail, prefix: str = "") -> list[dict]:
    """Turn DRF's nested error detail into a flat list of {field, message} pairs."""
    errors: list[dict] = []
    if isinstance(detail, dict):
        for key, value in detail.items():
            field = key if not prefix else f"{prefix}.{key}"
            if key == "non_field_errors" and not prefix:
                field = None
            errors.extend(_flatten_errors(value, field or ""))
    elif isinstance(detail, list):
        for index, item in enumerate(detail):
            if isinstance(item, (dict, list)):
                errors.extend(_flatten_errors(item, f"{prefix}.{index}" if prefix else str(index)))
            else:
                errors.append({"field": prefix or None, "message": str(item)})
    else:
        errors.append({"field": prefix or None, "message": str(detail)})
    return errors


def api_exception_handler(exc, context):
    if isinstance(exc, ServiceError):
        return Response({"detail": exc.detail}, status=exc.status_code)

    if isinstance(exc, exceptions.ValidationError):
        return Response(
            {"detail": "Validation failed.", "errors": _flatten_errors(exc.detail)},
            status=status.HTTP_400_BAD_REQUEST,
        )

    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get("view")
    logger.exception(
        "Unhandled error in %s: %s",
        view.__class__.__name__ if view is not None else "unknown view",
        exc,
    )
    return Response(
        {"detail": "Internal server error."},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
