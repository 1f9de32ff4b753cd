"""
JSON API helpers shared by every Django app.

- json_response: standard {success, data/error, meta} envelope
- parse_json_body: request body -> dict
- resolve_actor: X-Actor-Id header -> Actor (role from the user directory)
- paginate: page/per_page slicing of list results
- BaseAPIView: container access and exception -> status mapping

Status mapping:
    ValidationError -> 400
    missing/unknown actor -> 401
    AuthorizationError -> 403
    EntityNotFoundError -> 404
    ConflictError (transitions, stock, concurrency, rules) -> 409
    anything else -> 500
"""

from typing import Any, Dict, Optional
import json
import logging

from django.http import HttpRequest, JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from src.core.shared.collaborators import Actor
from src.core.shared.exceptions import (
    AuthorizationError,
    ConcurrencyError,
    ConflictError,
    DomainException,
    EntityNotFoundError,
    IllegalTransitionError,
    ValidationError,
)

from .repository import PaginatedResult, PaginationParams

logger = logging.getLogger(__name__)

ACTOR_HEADER = 'HTTP_X_ACTOR_ID'


class UnauthenticatedError(AuthorizationError):
    """No actor, or an actor the directory does not know."""


def json_response(success: bool, data: Any = None, error: str = None,
                  status: int = 200, meta: Dict = None) -> JsonResponse:
    """
    Build the standard JSON response.

    Args:
        success: Whether the operation succeeded
        data: Response payload
        error: Error message, if any
        status: HTTP status code
        meta: Extra metadata
    """
    response = {'success': success}

    if data is not None:
        response['data'] = data

    if error is not None:
        response['error'] = error

    if meta is not None:
        response['meta'] = meta

    return JsonResponse(response, status=status)


def parse_json_body(request: HttpRequest) -> Dict:
    """
    Parse the JSON body.

    Raises:
        ValidationError: Malformed JSON or not an object
    """
    if not request.body:
        return {}

    try:
        data = json.loads(request.body)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON: {e}", field='body')
    if not isinstance(data, dict):
        raise ValidationError("JSON body must be an object", field='body')
    return data


def paginate(request: HttpRequest, rows: list):
    """
    Slice ``rows`` with the page and per_page query parameters.

    Returns:
        (page rows, meta dict)
    """
    try:
        params = PaginationParams(
            page=max(int(request.GET.get('page', 1)), 1),
            per_page=max(int(request.GET.get('per_page', 20)), 1),
        )
    except ValueError:
        raise ValidationError("page and per_page must be integers", field='page')
    result = PaginatedResult.from_list(rows, params)
    return result.items, result.meta()


def client_ip(request: HttpRequest) -> Optional[str]:
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def resolve_actor(request: HttpRequest, user_directory) -> Actor:
    """
    Actor for the request.

    The caller is identified by the X-Actor-Id header; the role always
    comes from the user directory, never from the client.

    Raises:
        UnauthenticatedError: Header missing, user unknown or inactive
    """
    user_id = (request.META.get(ACTOR_HEADER) or '').strip()
    if not user_id:
        raise UnauthenticatedError("X-Actor-Id header is required", action='authenticate')
    user = user_directory.get_user(user_id)
    if user is None or not user.is_active:
        raise UnauthenticatedError(f"Unknown or inactive user: {user_id}", actor_id=user_id,
                                   action='authenticate')
    return Actor(user_id=user.user_id, role=user.role, ip_address=client_ip(request))


@method_decorator(csrf_exempt, name='dispatch')
class BaseAPIView(View):
    """
    Base view for JSON APIs.

    Provides:
    - JSON parsing
    - Access to the DI container
    - Actor resolution
    - Standard error handling
    """

    def get_container(self):
        from src.config.container import get_container
        return get_container()

    def get_service(self, service_name: str):
        return getattr(self.get_container().services, service_name)()

    def get_actor(self, request: HttpRequest) -> Actor:
        directory = self.get_container().collaborators.user_directory()
        return resolve_actor(request, directory)

    def parse_body(self, request: HttpRequest) -> Dict:
        return parse_json_body(request)

    def handle_exception(self, e: Exception) -> JsonResponse:
        """
        Translate an exception into a JSON error response.

        Args:
            e: Caught exception
        """
        if isinstance(e, ValidationError):
            return json_response(success=False, error=e.message, status=400, meta=e.to_dict())

        if isinstance(e, UnauthenticatedError):
            return json_response(success=False, error=e.message, status=401)

        if isinstance(e, AuthorizationError):
            return json_response(success=False, error=e.message, status=403, meta=e.to_dict())

        if isinstance(e, EntityNotFoundError):
            return json_response(success=False, error=e.message, status=404, meta=e.to_dict())

        if isinstance(e, ConflictError):
            meta = e.to_dict()
            if isinstance(e, IllegalTransitionError):
                meta.update(current=e.current, requested=e.requested)
            elif isinstance(e, ConcurrencyError):
                meta["retry"] = True
            return json_response(success=False, error=e.message, status=409, meta=meta)

        if isinstance(e, DomainException):
            return json_response(success=False, error=e.message, status=400, meta=e.to_dict())

        logger.exception(f"Unexpected API error: {e}")
        return json_response(
            success=False,
            error="Internal server error",
            status=500
        )
