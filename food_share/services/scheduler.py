import logging
import shutil
from datetime import datetime
from pathlib import Path

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from food_share.config import Settings
from food_share.errors import UpstreamUnavailableError
from food_share.services.lifecycle import DonationLifecycle

logger = logging.getLogger(__name__)


async def run_expiry_sweep(lifecycle: DonationLifecycle) -> int:
    try:
        expired = await lifecycle.sweep_expired()
    except UpstreamUnavailableError:
        # next tick retries
        logger.warning("expiry_sweep_skipped: database unavailable")
        return 0
    return len(expired)


def daily_backup(db_path: Path) -> Path | None:
    if not db_path.exists():
        logger.warning("backup_skipped: %s does not exist", db_path)
        return None
    backup_dir = db_path.parent / "backups"
    backup_dir.mkdir(exist_ok=True)
    backup_path = backup_dir / f"{db_path.name}_{datetime.now().strftime('%Y-%m-%d_%H-%M-%S')}"
    shutil.copy(db_path, backup_path)
    logger.info("backup_written %s", backup_path)
    return backup_path


def schedule_jobs(lifecycle: DonationLifecycle, cfg: Settings) -> AsyncIOScheduler:
    """Create the job scheduler. The caller starts and shuts it down."""
    scheduler = AsyncIOScheduler(timezone=cfg.SCHEDULER_TIMEZONE)
    scheduler.add_job(
        run_expiry_sweep,
        "interval",
        minutes=cfg.SWEEP_INTERVAL_MINUTES,
        args=[lifecycle],
        id="expiry_sweep",
        coalesce=True,
        max_instances=1,
    )
    if not cfg.DATABASE_URL:
        scheduler.add_job(daily_backup, "cron", hour=cfg.BACKUP_HOUR, minute=0, args=[cfg.DB_PATH], id="daily_backup")
    return scheduler
