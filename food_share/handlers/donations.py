from aiohttp import web

from food_share.errors import ValidationError
from food_share.handlers.common import (
    current_uid,
    int_param,
    lifecycle_key,
    parse_body,
    require_role,
    settings_key,
)
from food_share.models import DonationStatus, FoodCategory
from food_share.models.donation import ActiveFilter, DonationCreate, DonationUpdate

routes = web.RouteTableDef()


def _status(raw: str) -> DonationStatus:
    try:
        return DonationStatus(raw)
    except ValueError as exc:
        raise ValidationError(f"Unknown donation status {raw!r}.") from exc


def _donations(items) -> web.Response:
    return web.json_response({"donations": [d.to_dict() for d in items]})


@routes.get("/api/donations")
async def list_available(request: web.Request):
    category = request.query.get("category")
    try:
        flt = ActiveFilter(
            category=FoodCategory(category) if category else None,
            search=request.query.get("q") or None,
            limit=int_param(request, "limit", request.app[settings_key].LIST_PAGE_SIZE),
            offset=int_param(request, "offset", 0),
        )
    except ValueError as exc:
        raise ValidationError(f"Invalid listing filter: {exc}") from exc
    return _donations(await request.app[lifecycle_key].list_active(flt))


@routes.post("/api/donations")
async def create_donation(request: web.Request):
    data = await parse_body(request, DonationCreate)
    donation = await request.app[lifecycle_key].create(current_uid(request), data)
    return web.json_response(donation.to_dict(), status=201)


@routes.get("/api/donations/mine")
async def list_mine(request: web.Request):
    actor = await require_role(request, "donor")
    raw = request.query.get("status")
    status = _status(raw) if raw else None
    return _donations(await request.app[lifecycle_key].list_owned_by(actor.uid, status))


@routes.get("/api/donations/reserved")
async def list_reserved(request: web.Request):
    actor = await require_role(request, "recipient")
    statuses = [_status(raw) for raw in request.query.getall("status", [])]
    return _donations(await request.app[lifecycle_key].list_reserved_by(actor.uid, statuses or None))


@routes.get("/api/donations/{donation_id}")
async def donation_detail(request: web.Request):
    lifecycle = request.app[lifecycle_key]
    donation = await lifecycle.get(request.match_info["donation_id"])
    payload = donation.to_dict()
    uid = current_uid(request)
    if uid in (donation.donor_id, donation.reserved_by):
        payload["reservations"] = [r.to_dict() for r in await lifecycle.reservations_for(donation.id)]
    return web.json_response(payload)


@routes.patch("/api/donations/{donation_id}")
async def edit_donation(request: web.Request):
    changes = await parse_body(request, DonationUpdate)
    donation = await request.app[lifecycle_key].edit(request.match_info["donation_id"], current_uid(request), changes)
    return web.json_response(donation.to_dict())


@routes.post("/api/donations/{donation_id}/reserve")
async def reserve(request: web.Request):
    donation = await request.app[lifecycle_key].reserve(request.match_info["donation_id"], current_uid(request))
    return web.json_response(donation.to_dict())


@routes.post("/api/donations/{donation_id}/cancel")
async def cancel(request: web.Request):
    donation = await request.app[lifecycle_key].cancel(request.match_info["donation_id"], current_uid(request))
    return web.json_response(donation.to_dict())


@routes.post("/api/donations/{donation_id}/complete")
async def complete(request: web.Request):
    donation = await request.app[lifecycle_key].complete(request.match_info["donation_id"], current_uid(request))
    return web.json_response(donation.to_dict())
