"""
GraphQL view with request tracing, structured logging and error mapping.
"""
import json
import logging
from uuid import uuid4

from ariadne import format_error, graphql_sync, unwrap_graphql_error
from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_http_methods
from graphql import GraphQLError

from shop.api.middleware import ErrorHandler
from shop.api.permissions import get_principal
from shop.api.schema import schema
from shop.domain.errors import ShopError

logger = logging.getLogger(__name__)


def format_shop_error(error: GraphQLError, debug: bool = False) -> dict:
    """Attach an error code to every GraphQL error, hiding unexpected failures."""
    original = unwrap_graphql_error(error)

    if isinstance(original, ShopError):
        formatted = dict(error.formatted)
        formatted["message"] = original.message
        formatted["extensions"] = {"code": original.code}
        return formatted

    if original is not None and not isinstance(original, GraphQLError):
        logger.error(
            "unexpected_error",
            extra={
                "error_type": type(original).__name__,
                "error_message": str(original),
                "path": error.path,
            },
            exc_info=original,
        )
        formatted = dict(error.formatted)
        formatted["message"] = "An internal error occurred"
        formatted["extensions"] = {"code": "INTERNAL_ERROR"}
        return formatted

    # Parse and validation errors, and scalar parsing failures.
    formatted = format_error(error, debug)
    formatted.setdefault("extensions", {})["code"] = "BAD_REQUEST"
    return formatted


class StorefrontGraphQLView:
    """GraphQL view with request id and structured logging."""

    def dispatch(self, request, *args, **kwargs):
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        principal = get_principal(request)

        logger.info(
            "graphql_request",
            extra={
                "request_id": request_id,
                "user_id": principal.user_id if principal else None,
                "method": request.method,
            },
        )

        try:
            response = self._process_graphql_request(request)
        except Exception as e:
            response = ErrorHandler.handle_error(e)

        response["X-Request-ID"] = request_id
        logger.info(
            "graphql_response",
            extra={
                "request_id": request_id,
                "user_id": principal.user_id if principal else None,
                "status": response.status_code,
            },
        )
        return response

    def _process_graphql_request(self, request):
        if request.method == "GET":
            return JsonResponse({"message": "GraphQL endpoint. Use POST for queries."})

        try:
            data = json.loads(request.body)
        except json.JSONDecodeError:
            return JsonResponse({"error": "Invalid JSON", "code": "BAD_REQUEST"}, status=400)

        success, result = graphql_sync(
            schema,
            data,
            context_value={"request": request},
            error_formatter=format_shop_error,
            debug=settings.DEBUG,
        )

        errors = result.get("errors") if isinstance(result, dict) else None
        if not errors:
            return JsonResponse(result, status=200 if success else 400)

        result["error"] = errors[0]["message"]
        return JsonResponse(result, status=ErrorHandler.status_for_errors(errors))


@ensure_csrf_cookie
@require_http_methods(["GET", "POST"])
def graphql_view(request):
    """GraphQL endpoint."""
    view = StorefrontGraphQLView()
    return view.dispatch(request)
