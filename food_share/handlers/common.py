from typing import Type, TypeVar

from aiohttp import web
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import async_sessionmaker

from food_share.config import Settings
from food_share.errors import InvalidTransitionError, ValidationError
from food_share.services.identity import Identity, IdentityProvider
from food_share.services.lifecycle import DonationLifecycle

settings_key = web.AppKey("settings", Settings)
session_pool_key = web.AppKey("session_pool", async_sessionmaker)
identity_key = web.AppKey("identity", IdentityProvider)
lifecycle_key = web.AppKey("lifecycle", DonationLifecycle)

M = TypeVar("M", bound=BaseModel)


def current_uid(request: web.Request) -> str:
    return request["uid"]


async def current_identity(request: web.Request) -> Identity:
    if "identity" not in request:
        request["identity"] = await request.app[identity_key].resolve(current_uid(request))
    return request["identity"]


async def require_role(request: web.Request, *roles: str) -> Identity:
    actor = await current_identity(request)
    if actor.role not in roles:
        raise InvalidTransitionError(f"This action requires the {' or '.join(roles)} role.")
    return actor


async def json_body(request: web.Request) -> dict:
    try:
        body = await request.json()
    except ValueError as exc:
        raise ValidationError("Request body must be valid JSON.") from exc
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object.")
    return body


async def parse_body(request: web.Request, model: Type[M]) -> M:
    # pydantic errors are rendered by the error middleware
    return model.model_validate(await json_body(request))


def int_param(request: web.Request, name: str, default: int) -> int:
    raw = request.query.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValidationError(f"Query parameter {name!r} must be an integer.") from exc
