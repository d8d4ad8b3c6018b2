"""
Error mapping for API responses.
"""
import logging

from django.http import JsonResponse

from shop.domain.errors import ShopError

logger = logging.getLogger(__name__)


class ErrorHandler:
    """Maps error codes to HTTP statuses and renders error payloads."""

    ERROR_CODES = {
        "BAD_REQUEST": 400,
        "VALIDATION_ERROR": 400,
        "EMPTY_CART": 400,
        "INVALID_STATE": 400,
        "UNAUTHENTICATED": 401,
        "FORBIDDEN": 403,
        "NOT_FOUND": 404,
        "INSUFFICIENT_STOCK": 409,
        "INTERNAL_ERROR": 500,
    }

    @classmethod
    def status_for(cls, code: str | None) -> int:
        if code is None:
            return 400
        return cls.ERROR_CODES.get(code, 400)

    @classmethod
    def status_for_errors(cls, errors: list[dict]) -> int:
        """HTTP status for a GraphQL ``errors`` list: the most severe one wins."""
        statuses = [
            cls.status_for((error.get("extensions") or {}).get("code"))
            for error in errors
        ]
        return max(statuses, default=400)

    @classmethod
    def handle_error(cls, error: Exception) -> JsonResponse:
        """Handle error raised outside GraphQL execution and return JSON response."""
        if isinstance(error, ShopError):
            return JsonResponse(
                {"error": error.message, "code": error.code},
                status=cls.status_for(error.code),
            )

        logger.error(
            "unexpected_error",
            extra={
                "error_type": type(error).__name__,
                "error_message": str(error),
            },
            exc_info=error,
        )
        return JsonResponse(
            {"error": "An internal error occurred", "code": "INTERNAL_ERROR"},
            status=500,
        )
