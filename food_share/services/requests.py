from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from food_share.errors import InvalidTransitionError, NotFoundError
from food_share.models import FoodRequest
from food_share.models.food_request import FoodRequestCreate
from food_share.services.identity import Identity


async def create_request(session: AsyncSession, actor: Identity, data: FoodRequestCreate) -> FoodRequest:
    if actor.role != "recipient":
        raise InvalidTransitionError("Only recipients can post food requests.")
    food_request = FoodRequest(
        title=data.title,
        description=data.description,
        quantity=data.quantity,
        category=data.category.value,
        urgency=data.urgency.value,
        recipient_id=actor.uid,
    )
    session.add(food_request)
    await session.commit()
    await session.refresh(food_request)
    return food_request


async def list_requests(
    session: AsyncSession,
    recipient_id: Optional[str] = None,
    status: Optional[str] = None,
) -> List[FoodRequest]:
    query = select(FoodRequest)
    if recipient_id:
        query = query.where(FoodRequest.recipient_id == recipient_id)
    if status:
        query = query.where(FoodRequest.status == status)
    query = query.order_by(FoodRequest.created_at.desc(), FoodRequest.id)  # type: ignore[attr-defined]
    result = await session.execute(query)
    return list(result.scalars().all())


async def delete_request(session: AsyncSession, actor: Identity, request_id: str) -> None:
    food_request = await session.get(FoodRequest, request_id)
    if food_request is None:
        raise NotFoundError("Request not found.")
    if food_request.recipient_id != actor.uid and actor.role != "admin":
        raise InvalidTransitionError("You can only delete your own requests.")
    await session.delete(food_request)
    await session.commit()
