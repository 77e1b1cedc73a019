"""aiohttp application exposing the donation API.

``create_app`` wires explicitly constructed services into a fresh
``web.Application``; nothing here is a module-level singleton, so tests build
as many apps as they like against throwaway databases.
"""

import asyncio
import logging

from aiohttp import web
from sqlalchemy.ext.asyncio import async_sessionmaker

from food_share.config import Settings
from food_share.handlers import (
    admin_routes,
    donation_routes,
    health_routes,
    notification_routes,
    request_routes,
    user_routes,
)
from food_share.handlers.auth import auth_middleware
from food_share.handlers.common import identity_key, lifecycle_key, session_pool_key, settings_key
from food_share.handlers.errors import error_middleware
from food_share.services.identity import IdentityProvider
from food_share.services.lifecycle import DonationLifecycle

logger = logging.getLogger(__name__)


def create_app(
    cfg: Settings,
    session_pool: async_sessionmaker,
    identity: IdentityProvider,
    lifecycle: DonationLifecycle,
) -> web.Application:
    app = web.Application(middlewares=[error_middleware, auth_middleware])
    app[settings_key] = cfg
    app[session_pool_key] = session_pool
    app[identity_key] = identity
    app[lifecycle_key] = lifecycle

    app.add_routes(health_routes)
    app.add_routes(user_routes)
    app.add_routes(donation_routes)
    app.add_routes(request_routes)
    app.add_routes(notification_routes)
    app.add_routes(admin_routes)
    return app


async def start_webapp_server(app: web.Application, host: str, port: int) -> None:
    """Serve *app* until the task is cancelled."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=host, port=port)
    await site.start()

    logger.info("API is being served at http://%s:%d/", host, port)

    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await runner.cleanup()
