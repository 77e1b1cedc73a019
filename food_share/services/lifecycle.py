"""Donation lifecycle: the one place allowed to change a donation's status.

::

    active --reserve--> reserved --complete--> completed
      |                    |
      | cancel             | cancel (reservation voided)
      v                    v
    cancelled            active

    active --expire (expiry_date < now)--> expired

Every transition reads the record, checks the actor and the source state,
then writes with ``UPDATE ... WHERE status = :seen AND version = :seen``.
A zero row count means another writer got there first, and the whole unit of
work (donation, reservation and notifications) is rolled back.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from food_share.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    upstream_guard,
)
from food_share.models import Donation, DonationStatus, Reservation, UserRole
from food_share.models.donation import (
    CLAIMED_STATUSES,
    TERMINAL_STATUSES,
    ActiveFilter,
    DonationCreate,
    DonationUpdate,
)
from food_share.services.identity import Identity, IdentityProvider
from food_share.services.notifications import DonationEvent, notify_donation_event
from food_share.utils.time import as_naive_utc, utcnow

logger = logging.getLogger(__name__)

CLOSED = frozenset(s.value for s in TERMINAL_STATUSES)

HISTORY_STATUSES = frozenset(CLAIMED_STATUSES)


class DonationLifecycle:
    def __init__(
        self,
        session_pool: async_sessionmaker,
        identity: IdentityProvider,
        clock: Callable[[], datetime] = utcnow,
        pickup_window: timedelta = timedelta(hours=24),
    ):
        self.session_pool = session_pool
        self.identity = identity
        self.clock = clock
        self.pickup_window = pickup_window

    # ---------- helpers ----------

    async def _load(self, session: AsyncSession, donation_id: str) -> Donation:
        donation = await session.get(Donation, donation_id)
        if donation is None:
            raise NotFoundError(f"Donation {donation_id} not found.")
        return donation

    async def _actor(self, uid: str) -> Identity:
        try:
            return await self.identity.resolve(uid)
        except NotFoundError as exc:
            raise InvalidTransitionError(f"Unknown actor {uid}.") from exc

    @staticmethod
    async def _swap(session: AsyncSession, donation: Donation, **values) -> None:
        """Conditional write keyed on the status and version we read."""
        result = await session.execute(
            update(Donation)
            .where(
                Donation.id == donation.id,
                Donation.status == donation.status,
                Donation.version == donation.version,
            )
            .values(version=Donation.version + 1, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError("This donation was changed by someone else in the meantime. Please refresh.")

    def _refuse(self, message: str, donation: Donation, actor: str) -> InvalidTransitionError:
        logger.warning("transition_refused id=%s status=%s actor=%s: %s", donation.id, donation.status, actor, message)
        return InvalidTransitionError(message)

    # ---------- create / edit ----------

    async def create(self, donor_id: str, data: DonationCreate) -> Donation:
        actor = await self._actor(donor_id)
        if actor.role != UserRole.DONOR.value:
            raise InvalidTransitionError("Only donors can list donations.")

        now = self.clock()
        expiry = as_naive_utc(data.expiry_date)
        if expiry <= now:
            raise ValidationError("Expiry date must be in the future.")

        donation = Donation(
            title=data.title,
            description=data.description,
            category=data.category.value,
            quantity=data.quantity,
            quantity_unit=data.quantity_unit,
            pickup_address=data.pickup_address,
            pickup_instructions=data.pickup_instructions,
            image_urls=list(data.image_urls),
            expiry_date=expiry,
            donor_id=actor.uid,
            donor_name=actor.display_name,
            status=DonationStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
        )
        async with upstream_guard():
            async with self.session_pool() as session:
                session.add(donation)
                await session.commit()
                await session.refresh(donation)
        logger.info("donation_created id=%s donor=%s", donation.id, donor_id)
        return donation

    async def edit(self, donation_id: str, donor_id: str, changes: DonationUpdate) -> Donation:
        values = changes.model_dump(exclude_unset=True)
        if not values:
            raise ValidationError("Nothing to update.")
        if "category" in values and values["category"] is not None:
            values["category"] = values["category"].value
        if values.get("expiry_date") is not None:
            values["expiry_date"] = as_naive_utc(values["expiry_date"])
            if values["expiry_date"] <= self.clock():
                raise ValidationError("Expiry date must be in the future.")
        for key in DonationUpdate.REQUIRED_FIELDS:
            if key in values and values[key] is None:
                raise ValidationError(f"{key} cannot be empty.")

        async with upstream_guard():
            async with self.session_pool() as session:
                async with session.begin():
                    donation = await self._load(session, donation_id)
                    if donation.donor_id != donor_id:
                        raise self._refuse("Only the donor who listed this donation can edit it.", donation, donor_id)
                    if donation.status != DonationStatus.ACTIVE.value:
                        raise self._refuse(f"A {donation.status} donation can no longer be edited.", donation, donor_id)
                    await self._swap(session, donation, updated_at=self.clock(), **values)
                await session.refresh(donation)
        logger.info("donation_edited id=%s fields=%s", donation_id, ",".join(sorted(values)))
        return donation

    async def get(self, donation_id: str) -> Donation:
        async with upstream_guard():
            async with self.session_pool() as session:
                return await self._load(session, donation_id)

    # ---------- transitions ----------

    async def reserve(self, donation_id: str, recipient_id: str) -> Donation:
        actor = await self._actor(recipient_id)
        now = self.clock()

        async with upstream_guard():
            async with self.session_pool() as session:
                async with session.begin():
                    donation = await self._load(session, donation_id)
                    if actor.role != UserRole.RECIPIENT.value:
                        raise self._refuse("Only recipients can reserve donations.", donation, recipient_id)
                    if donation.status in {s.value for s in CLAIMED_STATUSES}:
                        raise ConflictError("This donation was already reserved by someone else.")
                    if donation.status != DonationStatus.ACTIVE.value:
                        raise self._refuse(f"A {donation.status} donation cannot be reserved.", donation, recipient_id)
                    if donation.expiry_date <= now:
                        raise self._refuse("This donation has expired.", donation, recipient_id)

                    await self._swap(
                        session,
                        donation,
                        status=DonationStatus.RESERVED.value,
                        reserved_by=actor.uid,
                        reserved_at=now,
                        updated_at=now,
                    )
                    session.add(
                        Reservation(
                            donation_id=donation.id,
                            recipient_id=actor.uid,
                            recipient_name=actor.display_name,
                            status="reserved",
                            pickup_time=now + self.pickup_window,
                            created_at=now,
                        )
                    )
                    notify_donation_event(
                        session, donation, DonationEvent.RESERVED,
                        recipient_id=actor.uid, recipient_name=actor.display_name,
                    )
                await session.refresh(donation)

        logger.info("donation_reserved id=%s by=%s", donation_id, recipient_id)
        return donation

    async def complete(self, donation_id: str, actor_id: str) -> Donation:
        now = self.clock()

        async with upstream_guard():
            async with self.session_pool() as session:
                async with session.begin():
                    donation = await self._load(session, donation_id)
                    if actor_id not in (donation.donor_id, donation.reserved_by):
                        raise self._refuse(
                            "Only the donor or the recipient holding the reservation can complete it.",
                            donation, actor_id,
                        )
                    if donation.status != DonationStatus.RESERVED.value:
                        raise self._refuse(
                            f"Only reserved donations can be completed (this one is {donation.status}).",
                            donation, actor_id,
                        )

                    recipient_id = donation.reserved_by
                    await self._swap(
                        session,
                        donation,
                        status=DonationStatus.COMPLETED.value,
                        completed_at=now,
                        updated_at=now,
                    )
                    await self._close_reservation(session, donation.id, recipient_id, "completed", now)
                    notify_donation_event(session, donation, DonationEvent.COMPLETED, recipient_id=recipient_id)
                await session.refresh(donation)

        logger.info("donation_completed id=%s by=%s", donation_id, actor_id)
        return donation

    async def cancel(self, donation_id: str, donor_id: str) -> Donation:
        """Withdraw a listing or void its reservation.

        From ``active`` the donation becomes ``cancelled``. From ``reserved``
        the reservation is voided and the donation goes back to ``active``.
        """
        now = self.clock()

        async with upstream_guard():
            async with self.session_pool() as session:
                async with session.begin():
                    donation = await self._load(session, donation_id)
                    if donation.donor_id != donor_id:
                        raise self._refuse("Only the donor who listed this donation can cancel it.", donation, donor_id)

                    if donation.status == DonationStatus.ACTIVE.value:
                        await self._swap(session, donation, status=DonationStatus.CANCELLED.value, updated_at=now)
                    elif donation.status == DonationStatus.RESERVED.value:
                        recipient_id = donation.reserved_by
                        await self._swap(
                            session,
                            donation,
                            status=DonationStatus.ACTIVE.value,
                            reserved_by=None,
                            reserved_at=None,
                            updated_at=now,
                        )
                        await self._close_reservation(session, donation.id, recipient_id, "cancelled", now)
                        notify_donation_event(session, donation, DonationEvent.RESERVATION_VOIDED, recipient_id=recipient_id)
                    elif donation.status in CLOSED:
                        raise self._refuse(f"This donation is already {donation.status} and can no longer change.", donation, donor_id)
                    else:
                        raise self._refuse(f"A {donation.status} donation cannot be cancelled.", donation, donor_id)
                await session.refresh(donation)

        logger.info("donation_cancelled id=%s now=%s", donation_id, donation.status)
        return donation

    async def expire(self, donation_id: str, now: Optional[datetime] = None) -> Donation:
        """Expire a single donation. Already expired is a no-op."""
        now = now or self.clock()

        async with upstream_guard():
            async with self.session_pool() as session:
                async with session.begin():
                    donation = await self._load(session, donation_id)
                    if donation.status == DonationStatus.EXPIRED.value:
                        return donation
                    if donation.status in CLOSED:
                        raise self._refuse(f"This donation is already {donation.status} and can no longer change.", donation, "system")
                    if donation.status != DonationStatus.ACTIVE.value:
                        raise self._refuse(f"A {donation.status} donation cannot expire.", donation, "system")
                    if donation.expiry_date >= now:
                        raise self._refuse("This donation has not reached its expiry date yet.", donation, "system")
                    await self._swap(session, donation, status=DonationStatus.EXPIRED.value, updated_at=now)
                    notify_donation_event(session, donation, DonationEvent.EXPIRED)
                await session.refresh(donation)

        logger.info("donation_expired id=%s", donation_id)
        return donation

    async def sweep_expired(self, now: Optional[datetime] = None) -> List[str]:
        """Move every active donation past its expiry date to ``expired``.

        Returns the ids that changed; running it twice returns an empty list.
        """
        now = now or self.clock()
        expired: list[str] = []

        async with upstream_guard():
            async with self.session_pool() as session:
                async with session.begin():
                    candidates = (
                        await session.execute(
                            select(Donation).where(
                                Donation.status == DonationStatus.ACTIVE.value,
                                Donation.expiry_date < now,
                            )
                        )
                    ).scalars().all()

                    for donation in candidates:
                        try:
                            await self._swap(session, donation, status=DonationStatus.EXPIRED.value, updated_at=now)
                        except ConflictError:
                            # reserved or cancelled after we read it; nothing was written
                            continue
                        notify_donation_event(session, donation, DonationEvent.EXPIRED)
                        expired.append(donation.id)

        logger.info("expiry_sweep expired=%d", len(expired))
        return expired

    # ---------- queries ----------

    async def list_active(self, flt: Optional[ActiveFilter] = None) -> List[Donation]:
        """Available donations for recipients, newest first.

        Expiry is checked against the clock at query time, so a donation the
        sweep has not reached yet is still hidden.
        """
        flt = flt or ActiveFilter()
        query = select(Donation).where(
            Donation.status == DonationStatus.ACTIVE.value,
            Donation.expiry_date > self.clock(),
        )
        if flt.category:
            query = query.where(Donation.category == flt.category.value)
        if flt.search:
            pattern = f"%{flt.search.strip()}%"
            query = query.where(
                or_(Donation.title.ilike(pattern), Donation.description.ilike(pattern))  # type: ignore[attr-defined]
            )
        query = (
            query.order_by(Donation.created_at.desc(), Donation.id)  # type: ignore[attr-defined]
            .offset(flt.offset)
            .limit(flt.limit)
        )
        async with upstream_guard():
            async with self.session_pool() as session:
                return list((await session.execute(query)).scalars().all())

    async def list_owned_by(self, donor_id: str, status: Optional[DonationStatus] = None) -> List[Donation]:
        query = select(Donation).where(Donation.donor_id == donor_id)
        if status is not None:
            query = query.where(Donation.status == status.value)
        query = query.order_by(Donation.created_at.desc(), Donation.id)  # type: ignore[attr-defined]
        async with upstream_guard():
            async with self.session_pool() as session:
                return list((await session.execute(query)).scalars().all())

    async def list_reserved_by(
        self,
        recipient_id: str,
        statuses: Optional[Iterable[DonationStatus]] = None,
    ) -> List[Donation]:
        wanted = set(statuses) if statuses else set(HISTORY_STATUSES)
        if not wanted <= HISTORY_STATUSES:
            bad = ", ".join(sorted(s.value for s in wanted - HISTORY_STATUSES))
            raise ValidationError(f"Reservation history only holds reserved or completed donations, not: {bad}.")

        query = (
            select(Donation)
            .where(
                Donation.reserved_by == recipient_id,
                Donation.status.in_([s.value for s in wanted]),  # type: ignore[attr-defined]
            )
            .order_by(Donation.reserved_at.desc(), Donation.id)  # type: ignore[union-attr]
        )
        async with upstream_guard():
            async with self.session_pool() as session:
                return list((await session.execute(query)).scalars().all())

    async def reservations_for(self, donation_id: str) -> List[Reservation]:
        async with upstream_guard():
            async with self.session_pool() as session:
                result = await session.execute(
                    select(Reservation)
                    .where(Reservation.donation_id == donation_id)
                    .order_by(Reservation.created_at, Reservation.id)  # type: ignore[arg-type]
                )
                return list(result.scalars().all())

    @staticmethod
    async def _close_reservation(
        session: AsyncSession,
        donation_id: str,
        recipient_id: Optional[str],
        status: str,
        now: datetime,
    ) -> None:
        stamp = {"completed_at": now} if status == "completed" else {"cancelled_at": now}
        await session.execute(
            update(Reservation)
            .where(
                Reservation.donation_id == donation_id,
                Reservation.recipient_id == recipient_id,
                Reservation.status == "reserved",
            )
            .values(status=status, **stamp)
            .execution_options(synchronize_session=False)
        )
