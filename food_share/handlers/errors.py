import logging

from aiohttp import web
from pydantic import ValidationError as SchemaError
from sqlalchemy.exc import InterfaceError, OperationalError

from food_share.errors import FoodShareError, UpstreamUnavailableError

logger = logging.getLogger(__name__)


def _render(exc: FoodShareError) -> web.Response:
    headers = {"Retry-After": "5"} if exc.retryable else None
    return web.json_response(
        {"error": exc.kind, "message": exc.message, "retryable": exc.retryable},
        status=exc.http_status,
        headers=headers,
    )


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Render service errors as JSON so every surface shows the same explanation."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except FoodShareError as exc:
        if exc.http_status >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, exc.message)
        return _render(exc)
    except (OperationalError, InterfaceError) as exc:
        logger.error("%s %s: database unavailable: %s", request.method, request.path, exc)
        return _render(UpstreamUnavailableError("The database is temporarily unavailable, please retry."))
    except SchemaError as exc:
        details = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        return web.json_response(
            {"error": "validation_error", "message": "Invalid request data.", "details": details},
            status=400,
        )
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return web.json_response(
            {"error": "internal_error", "message": "Something went wrong. Please try again later."},
            status=500,
        )
