from aiohttp import web

from food_share.errors import AuthenticationError
from food_share.handlers.common import identity_key

PUBLIC_PATHS = frozenset({"/api/health"})


@web.middleware
async def auth_middleware(request: web.Request, handler):
    """Verify the bearer token and remember the caller's uid on the request."""
    if request.path in PUBLIC_PATHS or not request.path.startswith("/api/"):
        return await handler(request)

    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Missing bearer token.")

    request["uid"] = request.app[identity_key].authenticate(token.strip())
    return await handler(request)
