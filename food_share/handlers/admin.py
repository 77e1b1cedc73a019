import asyncio
import os
from tempfile import NamedTemporaryFile

from aiohttp import web

from food_share.errors import ValidationError
from food_share.handlers.common import lifecycle_key, require_role, session_pool_key
from food_share.models import UserRole
from food_share.services.reports import donation_stats, export_donations, export_users
from food_share.services.users import list_users, set_email_verified

routes = web.RouteTableDef()

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@routes.get("/api/admin/users")
async def admin_users(request: web.Request):
    await require_role(request, "admin")
    raw = request.query.get("role")
    try:
        role = UserRole(raw) if raw else None
    except ValueError as exc:
        raise ValidationError(f"Unknown role {raw!r}.") from exc
    async with request.app[session_pool_key]() as session:
        users = await list_users(session, role)
    return web.json_response({"users": [u.to_dict() for u in users]})


@routes.post("/api/admin/users/{uid}/verified")
async def admin_mark_verified(request: web.Request):
    await require_role(request, "admin")
    async with request.app[session_pool_key]() as session:
        user = await set_email_verified(session, request.match_info["uid"], True)
    return web.json_response(user.to_dict())


@routes.get("/api/admin/stats")
async def admin_stats(request: web.Request):
    await require_role(request, "admin")
    async with request.app[session_pool_key]() as session:
        stats = await donation_stats(session)
    return web.json_response(stats)


@routes.post("/api/admin/sweep")
async def admin_sweep(request: web.Request):
    await require_role(request, "admin")
    expired = await request.app[lifecycle_key].sweep_expired()
    return web.json_response({"expired": expired, "count": len(expired)})


def _read_file(path: str) -> bytes:
    with open(path, "rb") as fh:
        return fh.read()


async def _xlsx_response(request: web.Request, exporter, filename: str) -> web.Response:
    tmp = NamedTemporaryFile(delete=False, suffix=".xlsx")
    tmp.close()
    loop = asyncio.get_running_loop()
    try:
        async with request.app[session_pool_key]() as session:
            await exporter(session, tmp.name)
        body = await loop.run_in_executor(None, _read_file, tmp.name)
    finally:
        os.unlink(tmp.name)
    return web.Response(
        body=body,
        content_type=XLSX,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@routes.get("/api/admin/export/donations")
async def admin_export_donations(request: web.Request):
    await require_role(request, "admin")
    return await _xlsx_response(request, export_donations, "donations.xlsx")


@routes.get("/api/admin/export/users")
async def admin_export_users(request: web.Request):
    await require_role(request, "admin")
    return await _xlsx_response(request, export_users, "users.xlsx")
