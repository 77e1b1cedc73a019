from enum import Enum
from typing import List

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from food_share.errors import NotFoundError
from food_share.models import Donation, Notification

# --- CRUD helpers ---


def add_notification(session: AsyncSession, user_id: str, title: str, message: str, **extra) -> Notification:
    """Stage a notification in the caller's transaction; the caller commits."""
    notification = Notification(user_id=user_id, title=title, message=message, **extra)
    session.add(notification)
    return notification


async def list_notifications(session: AsyncSession, user_id: str, unread_only: bool = False) -> List[Notification]:
    query = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        query = query.where(Notification.read == False)  # noqa: E712
    query = query.order_by(Notification.created_at.desc(), Notification.id)  # type: ignore[attr-defined]
    result = await session.execute(query)
    return list(result.scalars().all())


async def mark_read(session: AsyncSession, user_id: str, notification_id: str) -> Notification:
    notification = await session.get(Notification, notification_id)
    if not notification or notification.user_id != user_id:
        raise NotFoundError("Notification not found.")
    notification.read = True
    session.add(notification)
    await session.commit()
    return notification


async def mark_all_read(session: AsyncSession, user_id: str) -> int:
    result = await session.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read == False)  # noqa: E712
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    return result.rowcount or 0


# --- donation event messages ---


class DonationEvent(str, Enum):
    RESERVED = "reserved"
    COMPLETED = "completed"
    # donor cancelled a reservation; the donation is active again
    RESERVATION_VOIDED = "reservation_voided"
    EXPIRED = "expired"


def notify_donation_event(
    session: AsyncSession,
    donation: Donation,
    event: DonationEvent,
    recipient_id: str | None = None,
    recipient_name: str | None = None,
) -> None:
    """Stage the in-app notifications for one donation transition."""
    link_donor = f"/donor/donations/{donation.id}"
    link_recipient = f"/recipient/donations/{donation.id}"
    common = {"related_entity_id": donation.id, "related_entity_type": "donation"}

    if event == DonationEvent.RESERVED:
        who = recipient_name or "A recipient"
        add_notification(
            session, donation.donor_id, "Donation Reserved",
            f'{who} reserved your donation "{donation.title}".',
            type="success", link=link_donor, **common,
        )
        if recipient_id:
            add_notification(
                session, recipient_id, "Reservation Confirmed",
                f'You reserved "{donation.title}". Please pick it up on time.',
                type="success", link=link_recipient, **common,
            )
    elif event == DonationEvent.COMPLETED:
        add_notification(
            session, donation.donor_id, "Donation Completed",
            f'Your donation "{donation.title}" was picked up. Thank you!',
            type="success", link=link_donor, **common,
        )
        if recipient_id:
            add_notification(
                session, recipient_id, "Pickup Completed",
                f'Pickup of "{donation.title}" is complete.',
                type="success", link=link_recipient, **common,
            )
    elif event == DonationEvent.RESERVATION_VOIDED:
        if recipient_id:
            add_notification(
                session, recipient_id, "Reservation Cancelled",
                f'The donor withdrew your reservation of "{donation.title}".',
                type="warning", link=link_recipient, **common,
            )
    elif event == DonationEvent.EXPIRED:
        add_notification(
            session, donation.donor_id, "Donation Expired",
            f'Your donation "{donation.title}" has expired.',
            type="warning", link=link_donor, **common,
        )
