from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from food_share.utils.time import naive_utc_column, utcnow


class UserRole(str, Enum):
    DONOR = "donor"
    RECIPIENT = "recipient"
    ADMIN = "admin"


class User(SQLModel, table=True):
    # Same id the identity provider puts into the token's ``sub`` claim
    id: str = Field(primary_key=True)
    email: str = Field(index=True, unique=True)
    display_name: str
    role: str = Field(index=True)  # donor | recipient | admin
    email_verified: bool = Field(default=False)
    organization_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_column=naive_utc_column())
    last_login: Optional[datetime] = Field(default=None, sa_column=naive_utc_column(nullable=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "display_name": self.display_name,
            "role": self.role,
            "email_verified": self.email_verified,
            "organization_name": self.organization_name,
            "phone_number": self.phone_number,
            "address": self.address,
            "created_at": self.created_at.isoformat(),
            "last_login": self.last_login.isoformat() if self.last_login else None,
        }


class UserCreate(SQLModel):
    email: str = Field(min_length=3, max_length=254)
    display_name: str = Field(min_length=1, max_length=100)
    role: UserRole
    organization_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None

    @field_validator("role")
    @classmethod
    def _self_service_role(cls, value: UserRole) -> UserRole:
        # admins are promoted out of band
        if value == UserRole.ADMIN:
            raise ValueError("role must be donor or recipient")
        return value


class UserUpdate(SQLModel):
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    organization_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
