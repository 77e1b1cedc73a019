from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from food_share.models.donation import new_id
from food_share.utils.time import naive_utc_column, utcnow


class Reservation(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    donation_id: str = Field(foreign_key="donation.id", index=True)
    recipient_id: str = Field(index=True)
    recipient_name: Optional[str] = None
    status: str = Field(default="reserved")  # reserved | completed | cancelled
    pickup_time: Optional[datetime] = Field(default=None, sa_column=naive_utc_column(nullable=True))
    created_at: datetime = Field(default_factory=utcnow, sa_column=naive_utc_column())
    completed_at: Optional[datetime] = Field(default=None, sa_column=naive_utc_column(nullable=True))
    cancelled_at: Optional[datetime] = Field(default=None, sa_column=naive_utc_column(nullable=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "donation_id": self.donation_id,
            "recipient_id": self.recipient_id,
            "recipient_name": self.recipient_name,
            "status": self.status,
            "pickup_time": self.pickup_time.isoformat() if self.pickup_time else None,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
