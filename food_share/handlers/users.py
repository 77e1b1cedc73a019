from aiohttp import web

from food_share.handlers.common import current_uid, json_body, parse_body, session_pool_key
from food_share.models.user import UserCreate
from food_share.services.users import create_user, require_user, touch_login, update_user

routes = web.RouteTableDef()


@routes.post("/api/users")
async def register_profile(request: web.Request):
    data = await parse_body(request, UserCreate)
    async with request.app[session_pool_key]() as session:
        user = await create_user(session, current_uid(request), data)
    return web.json_response(user.to_dict(), status=201)


@routes.get("/api/users/me")
async def my_profile(request: web.Request):
    async with request.app[session_pool_key]() as session:
        await touch_login(session, current_uid(request))
        user = await require_user(session, current_uid(request))
    return web.json_response(user.to_dict())


@routes.patch("/api/users/me")
async def edit_profile(request: web.Request):
    body = await json_body(request)
    async with request.app[session_pool_key]() as session:
        user = await update_user(session, current_uid(request), body)
    return web.json_response(user.to_dict())


@routes.get("/api/auth/verification-status")
async def verification_status(request: web.Request):
    async with request.app[session_pool_key]() as session:
        user = await require_user(session, current_uid(request))
    return web.json_response({"uid": user.id, "email": user.email, "email_verified": user.email_verified})
