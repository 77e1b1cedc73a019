import asyncio
import logging
import sys
from datetime import timedelta

from food_share.config import Settings, settings
from food_share.db import SessionLocal, engine, init_db
from food_share.services.identity import IdentityProvider
from food_share.services.lifecycle import DonationLifecycle
from food_share.services.scheduler import schedule_jobs
from food_share.webapp.server import create_app, start_webapp_server


def configure_logging(cfg: Settings) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if cfg.LOG_DIR:
        cfg.LOG_DIR.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(cfg.LOG_DIR / "food_share.log", encoding="utf-8"))

    logging.basicConfig(
        level=cfg.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )


async def main(cfg: Settings = settings):
    configure_logging(cfg)
    logging.info("Food share API starting…")

    await init_db(engine)

    identity = IdentityProvider(SessionLocal, cfg.AUTH_SECRET or "", issuer=cfg.AUTH_ISSUER)
    lifecycle = DonationLifecycle(
        SessionLocal,
        identity,
        pickup_window=timedelta(hours=cfg.PICKUP_WINDOW_HOURS),
    )

    scheduler = schedule_jobs(lifecycle, cfg)
    scheduler.start()

    app = create_app(cfg, SessionLocal, identity, lifecycle)
    try:
        await start_webapp_server(app, cfg.WEB_HOST, cfg.WEB_PORT)
    finally:
        scheduler.shutdown(wait=False)
        await engine.dispose()


def run() -> None:
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass


if __name__ == "__main__":
    run()
