from datetime import datetime
from enum import Enum

from sqlmodel import Field, SQLModel

from food_share.models.donation import FoodCategory, new_id
from food_share.utils.time import naive_utc_column, utcnow


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FoodRequestBase(SQLModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    quantity: float = Field(gt=0)
    category: FoodCategory
    urgency: Urgency = Urgency.MEDIUM


class FoodRequest(FoodRequestBase, table=True):
    """A recipient's posted need, independent of any donation."""

    __tablename__ = "food_request"

    id: str = Field(default_factory=new_id, primary_key=True)
    category: str
    urgency: str = Field(default=Urgency.MEDIUM.value)
    recipient_id: str = Field(index=True)
    status: str = Field(default="pending", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_column=naive_utc_column(index=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=naive_utc_column())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "quantity": self.quantity,
            "category": self.category,
            "urgency": self.urgency,
            "recipient_id": self.recipient_id,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
        }


class FoodRequestCreate(FoodRequestBase):
    pass
