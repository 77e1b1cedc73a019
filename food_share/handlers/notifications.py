from aiohttp import web

from food_share.handlers.common import current_uid, session_pool_key
from food_share.services.notifications import list_notifications, mark_all_read, mark_read

routes = web.RouteTableDef()


@routes.get("/api/notifications")
async def get_notifications(request: web.Request):
    unread_only = request.query.get("unread", "").lower() in {"1", "true", "yes"}
    async with request.app[session_pool_key]() as session:
        items = await list_notifications(session, current_uid(request), unread_only=unread_only)
    return web.json_response({"notifications": [n.to_dict() for n in items]})


@routes.post("/api/notifications/read-all")
async def read_all(request: web.Request):
    async with request.app[session_pool_key]() as session:
        count = await mark_all_read(session, current_uid(request))
    return web.json_response({"updated": count})


@routes.post("/api/notifications/{notification_id}/read")
async def read_one(request: web.Request):
    async with request.app[session_pool_key]() as session:
        notification = await mark_read(session, current_uid(request), request.match_info["notification_id"])
    return web.json_response(notification.to_dict())
