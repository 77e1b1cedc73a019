import asyncio
from collections import Counter

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from food_share.models import Donation, DonationStatus, User


async def donation_stats(session: AsyncSession) -> dict:
    """Counts per status and per category, plus the share of reservations that were picked up."""
    donations = (await session.execute(select(Donation))).scalars().all()

    by_status = Counter(d.status for d in donations)
    by_category = Counter(d.category for d in donations)
    for status in DonationStatus:
        by_status.setdefault(status.value, 0)

    completed = by_status[DonationStatus.COMPLETED.value]
    claimed = completed + by_status[DonationStatus.RESERVED.value]
    total_quantity = sum(d.quantity for d in donations if d.status == DonationStatus.COMPLETED.value)

    return {
        "total": len(donations),
        "by_status": dict(by_status),
        "by_category": dict(by_category),
        "completion_rate": round(completed / claimed, 4) if claimed else 0.0,
        "completed_quantity": total_quantity,
    }


async def _write_sheet(rows: list[dict], file_path: str) -> str:
    # to_excel blocks, keep it off the event loop
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, lambda: pd.DataFrame(rows).to_excel(file_path, index=False))
    return file_path


async def export_donations(session: AsyncSession, file_path: str) -> str:
    """Write every donation into one Excel sheet."""
    donations = (
        await session.execute(select(Donation).order_by(Donation.created_at))  # type: ignore[arg-type]
    ).scalars().all()

    rows = []
    for d in donations:
        rows.append(
            {
                "ID": d.id,
                "Title": d.title,
                "Category": d.category,
                "Quantity": d.quantity,
                "Unit": d.quantity_unit,
                "Status": d.status,
                "Donor": d.donor_name or d.donor_id,
                "Reserved by": d.reserved_by,
                "Created": d.created_at,
                "Expires": d.expiry_date,
                "Completed": d.completed_at,
            }
        )
    if not rows:
        rows.append({"ID": "-", "Title": "no data"})
    return await _write_sheet(rows, file_path)


async def export_users(session: AsyncSession, file_path: str) -> str:
    users = (await session.execute(select(User))).scalars().all()
    rows = [
        {
            "ID": u.id,
            "Name": u.display_name,
            "E-mail": u.email,
            "Role": u.role,
            "Verified": u.email_verified,
            "Organization": u.organization_name,
            "Phone": u.phone_number,
            "Registered": u.created_at,
        }
        for u in users
    ]
    if not rows:
        rows.append({"ID": "-", "Name": "no data"})
    return await _write_sheet(rows, file_path)

