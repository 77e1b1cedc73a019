from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from food_share.models.donation import new_id
from food_share.utils.time import naive_utc_column, utcnow


class Notification(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(index=True)
    title: str
    message: str
    type: str = Field(default="info")  # info | success | warning
    read: bool = Field(default=False)
    link: Optional[str] = None
    related_entity_id: Optional[str] = None
    related_entity_type: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_column=naive_utc_column(index=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "read": self.read,
            "link": self.link,
            "related_entity_id": self.related_entity_id,
            "related_entity_type": self.related_entity_type,
            "created_at": self.created_at.isoformat(),
        }
