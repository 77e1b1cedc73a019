"""Error taxonomy shared by the services and the HTTP layer."""

from contextlib import asynccontextmanager

from sqlalchemy.exc import InterfaceError, OperationalError


class FoodShareError(Exception):
    http_status = 500
    kind = "internal_error"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FoodShareError):
    http_status = 400
    kind = "validation_error"


class AuthenticationError(FoodShareError):
    http_status = 401
    kind = "authentication_error"


class InvalidTransitionError(FoodShareError):
    """Illegal source state, or an actor not allowed to make the change."""

    http_status = 422
    kind = "invalid_transition"


class ConflictError(FoodShareError):
    """Another actor changed the record first."""

    http_status = 409
    kind = "conflict"


class NotFoundError(FoodShareError):
    http_status = 404
    kind = "not_found"


class UpstreamUnavailableError(FoodShareError):
    http_status = 503
    kind = "upstream_unavailable"
    retryable = True


@asynccontextmanager
async def upstream_guard(what: str = "database"):
    """Translate driver-level connectivity failures into UpstreamUnavailableError."""
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        raise UpstreamUnavailableError(f"The {what} is temporarily unavailable, please retry.") from exc
