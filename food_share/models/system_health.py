from datetime import datetime

from sqlmodel import Field, SQLModel

from food_share.utils.time import naive_utc_column, utcnow


class SystemHealth(SQLModel, table=True):
    __tablename__ = "system_health"

    key: str = Field(primary_key=True)
    status: str
    last_check: datetime = Field(default_factory=utcnow, sa_column=naive_utc_column())
