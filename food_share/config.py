from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DB_PATH: Path = Path.home() / "food_share.db"
    # Full SQLAlchemy URL, takes precedence over DB_PATH when set
    DATABASE_URL: str | None = None

    # Identity provider tokens (HS256)
    AUTH_SECRET: str | None = None
    AUTH_ISSUER: str | None = None

    WEB_HOST: str = "127.0.0.1"
    WEB_PORT: int = 8080

    SWEEP_INTERVAL_MINUTES: int = 60
    BACKUP_HOUR: int = 3
    SCHEDULER_TIMEZONE: str = "UTC"

    # Default pickup time offset for a fresh reservation
    PICKUP_WINDOW_HOURS: int = 24
    LIST_PAGE_SIZE: int = 20

    LOG_LEVEL: str = "INFO"
    LOG_DIR: Path | None = None

    GOOGLE_MAPS_API_KEY: str | None = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL or f"sqlite+aiosqlite:///{self.DB_PATH}"


REQUIRED_SETTINGS = ("AUTH_SECRET",)


def missing_settings(cfg: "Settings") -> list[str]:
    return [name for name in REQUIRED_SETTINGS if not getattr(cfg, name)]


settings = Settings()
