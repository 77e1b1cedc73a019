import asyncio
import logging
import pathlib

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker
from sqlmodel import SQLModel

from food_share.config import settings

logger = logging.getLogger(__name__)


def make_engine(url: str | None = None) -> AsyncEngine:
    return create_async_engine(url or settings.database_url)


def make_session_pool(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=bind,
        autoflush=False,
        expire_on_commit=False,
    )


# Default engine and session factory for the running application
engine = make_engine()
SessionLocal = make_session_pool(engine)


def _sync_url(url: str) -> str:
    # Alembic runs synchronously, so it needs the plain sqlite driver
    return url.replace("sqlite+aiosqlite", "sqlite")


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Run migrations when an alembic.ini is present, then create missing tables."""
    bind = bind or engine

    root_path = pathlib.Path(__file__).resolve().parent.parent
    alembic_ini = root_path / "alembic.ini"
    if alembic_ini.exists():
        from alembic import command
        from alembic.config import Config as AlembicConfig

        cfg = AlembicConfig(str(alembic_ini))
        cfg.set_main_option("script_location", str(root_path / "alembic"))
        url = _sync_url(bind.url.render_as_string(hide_password=False))
        # configparser interpolation
        cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
        cfg.attributes["configure_logger"] = False
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, command.upgrade, cfg, "head")
        except Exception:
            logger.exception("alembic_migration_error")

    # Ensure all models are imported so SQLModel metadata includes them
    import food_share.models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

