from aiohttp import web

from food_share.handlers.common import current_identity, parse_body, session_pool_key
from food_share.models.food_request import FoodRequestCreate
from food_share.services.requests import create_request, delete_request, list_requests

routes = web.RouteTableDef()


@routes.get("/api/requests")
async def get_requests(request: web.Request):
    async with request.app[session_pool_key]() as session:
        items = await list_requests(
            session,
            recipient_id=request.query.get("userId") or None,
            status=request.query.get("status") or None,
        )
    return web.json_response({"requests": [r.to_dict() for r in items]})


@routes.post("/api/requests")
async def post_request(request: web.Request):
    actor = await current_identity(request)
    data = await parse_body(request, FoodRequestCreate)
    async with request.app[session_pool_key]() as session:
        food_request = await create_request(session, actor, data)
    return web.json_response(food_request.to_dict(), status=201)


@routes.delete("/api/requests/{request_id}")
async def remove_request(request: web.Request):
    actor = await current_identity(request)
    async with request.app[session_pool_key]() as session:
        await delete_request(session, actor, request.match_info["request_id"])
    return web.json_response({"message": "Request deleted successfully"})
