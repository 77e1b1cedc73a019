from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from food_share.errors import ConflictError, NotFoundError, ValidationError
from food_share.models import User, UserRole
from food_share.models.user import UserCreate, UserUpdate
from food_share.utils.time import utcnow


async def get_user(session: AsyncSession, uid: str) -> Optional[User]:
    return await session.get(User, uid)


async def require_user(session: AsyncSession, uid: str) -> User:
    user = await get_user(session, uid)
    if user is None:
        raise NotFoundError(f"No profile registered for user {uid}.")
    return user


async def create_user(
    session: AsyncSession,
    uid: str,
    data: UserCreate,
    email_verified: bool = False,
) -> User:
    """Register the profile for an account the identity provider already created.

    The role chosen here is permanent.
    """
    if await get_user(session, uid) is not None:
        raise ConflictError("A profile already exists for this account.")

    user = User(
        id=uid,
        email=data.email.strip().lower(),
        display_name=data.display_name,
        role=data.role.value,
        email_verified=email_verified,
        organization_name=data.organization_name,
        phone_number=data.phone_number,
        address=data.address,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ConflictError("This e-mail address is already registered.") from exc
    await session.refresh(user)
    return user


async def update_user(session: AsyncSession, uid: str, raw: dict) -> User:
    if "role" in raw:
        raise ValidationError("Role cannot be changed after registration.")
    changes = UserUpdate.model_validate(raw).model_dump(exclude_unset=True)
    if changes.get("display_name", "") is None:
        raise ValidationError("display_name cannot be empty.")

    user = await require_user(session, uid)
    for key, value in changes.items():
        setattr(user, key, value)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def touch_login(session: AsyncSession, uid: str) -> None:
    user = await get_user(session, uid)
    if user is None:
        return
    user.last_login = utcnow()
    session.add(user)
    await session.commit()


async def set_email_verified(session: AsyncSession, uid: str, verified: bool = True) -> User:
    """Mirror the provider's verification flag onto the stored profile."""
    user = await require_user(session, uid)
    if user.email_verified != verified:
        user.email_verified = verified
        session.add(user)
        await session.commit()
        await session.refresh(user)
    return user


async def list_users(session: AsyncSession, role: Optional[UserRole] = None) -> List[User]:
    query = select(User)
    if role is not None:
        query = query.where(User.role == role.value)
    query = query.order_by(User.created_at.desc(), User.id)  # type: ignore[attr-defined]
    result = await session.execute(query)
    return list(result.scalars().all())
