from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional
from uuid import uuid4

from pydantic import field_validator
from sqlalchemy import Column, JSON
from sqlmodel import Field, SQLModel

from food_share.utils.time import naive_utc_column, utcnow


class DonationStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    RESERVED = "reserved"
    COMPLETED = "completed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset(
    {DonationStatus.COMPLETED, DonationStatus.EXPIRED, DonationStatus.CANCELLED}
)
# reserved_by is set exactly for these
CLAIMED_STATUSES = frozenset({DonationStatus.RESERVED, DonationStatus.COMPLETED})


class FoodCategory(str, Enum):
    FRESH_PRODUCE = "fresh-produce"
    BAKERY = "bakery"
    PREPARED_FOOD = "prepared-food"
    CANNED_GOODS = "canned-goods"
    DAIRY = "dairy"
    OTHER = "other"


def new_id() -> str:
    return uuid4().hex


class DonationBase(SQLModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    category: FoodCategory
    quantity: float = Field(gt=0)
    quantity_unit: str = Field(min_length=1, max_length=32)
    pickup_address: str = Field(min_length=1)
    pickup_instructions: Optional[str] = None
    expiry_date: datetime


class Donation(DonationBase, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    category: str = Field(index=True)
    donor_id: str = Field(index=True)
    donor_name: Optional[str] = None
    image_urls: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    status: str = Field(default=DonationStatus.ACTIVE.value, index=True)
    reserved_by: Optional[str] = Field(default=None, index=True)
    expiry_date: datetime = Field(sa_column=naive_utc_column())
    reserved_at: Optional[datetime] = Field(default=None, sa_column=naive_utc_column(nullable=True))
    completed_at: Optional[datetime] = Field(default=None, sa_column=naive_utc_column(nullable=True))
    created_at: datetime = Field(default_factory=utcnow, sa_column=naive_utc_column(index=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=naive_utc_column())
    # Optimistic-concurrency token, bumped on every transition
    version: int = Field(default=1)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "quantity": self.quantity,
            "quantity_unit": self.quantity_unit,
            "pickup_address": self.pickup_address,
            "pickup_instructions": self.pickup_instructions,
            "image_urls": list(self.image_urls or []),
            "expiry_date": self.expiry_date.isoformat(),
            "donor_id": self.donor_id,
            "donor_name": self.donor_name,
            "status": self.status,
            "reserved_by": self.reserved_by,
            "reserved_at": self.reserved_at.isoformat() if self.reserved_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "version": self.version,
        }


class DonationCreate(DonationBase):
    image_urls: list[str] = Field(min_length=1)

    @field_validator("image_urls")
    @classmethod
    def _no_blank_images(cls, value: list[str]) -> list[str]:
        if any(not url.strip() for url in value):
            raise ValueError("image references must not be blank")
        return value


class DonationUpdate(SQLModel):
    """Fields a donor may edit while the donation is still active."""

    # NOT NULL columns; an explicit null is rejected
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = (
        "title", "description", "category", "quantity",
        "quantity_unit", "pickup_address", "expiry_date", "image_urls",
    )

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[FoodCategory] = None
    quantity: Optional[float] = Field(default=None, gt=0)
    quantity_unit: Optional[str] = Field(default=None, min_length=1, max_length=32)
    pickup_address: Optional[str] = Field(default=None, min_length=1)
    pickup_instructions: Optional[str] = None
    expiry_date: Optional[datetime] = None
    image_urls: Optional[list[str]] = Field(default=None, min_length=1)

    @field_validator("image_urls")
    @classmethod
    def _no_blank_images(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        if value is not None and any(not url.strip() for url in value):
            raise ValueError("image references must not be blank")
        return value


class ActiveFilter(SQLModel):
    category: Optional[FoodCategory] = None
    search: Optional[str] = None
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)
