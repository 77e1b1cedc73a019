from datetime import timedelta

import pytest

from food_share.errors import ValidationError
from food_share.models import DonationStatus, FoodCategory
from food_share.models.donation import ActiveFilter


async def test_active_listing_is_newest_first(lifecycle, donor, donation_data, clock):
    first = await lifecycle.create(donor.id, donation_data(title="first"))
    clock.advance(minutes=1)
    second = await lifecycle.create(donor.id, donation_data(title="second"))
    clock.advance(minutes=1)
    third = await lifecycle.create(donor.id, donation_data(title="third"))

    listed = await lifecycle.list_active()
    assert [d.id for d in listed] == [third.id, second.id, first.id]


async def test_active_listing_breaks_ties_by_id(lifecycle, donor, donation_data):
    created = [await lifecycle.create(donor.id, donation_data(title=f"item {i}")) for i in range(4)]

    listed = await lifecycle.list_active()
    assert [d.id for d in listed] == sorted(d.id for d in created)


async def test_active_listing_hides_unswept_expired(lifecycle, donor, donation_data, clock):
    """Expiry is evaluated at query time, not only through the stored status."""
    short = await lifecycle.create(donor.id, donation_data(title="short", expiry_date=clock() + timedelta(hours=1)))
    long = await lifecycle.create(donor.id, donation_data(title="long", expiry_date=clock() + timedelta(days=3)))

    clock.advance(hours=2)
    listed = await lifecycle.list_active()

    assert [d.id for d in listed] == [long.id]
    # the sweep has not run, so the stored status is still active
    assert (await lifecycle.get(short.id)).status == "active"


async def test_active_listing_excludes_other_statuses(lifecycle, donor, recipient, donation_data, clock):
    open_one = await lifecycle.create(donor.id, donation_data(title="open"))
    reserved = await lifecycle.create(donor.id, donation_data(title="reserved"))
    cancelled = await lifecycle.create(donor.id, donation_data(title="cancelled"))
    await lifecycle.reserve(reserved.id, recipient.id)
    await lifecycle.cancel(cancelled.id, donor.id)

    assert [d.id for d in await lifecycle.list_active()] == [open_one.id]


async def test_active_listing_filters(lifecycle, donor, donation_data, clock):
    bread = await lifecycle.create(donor.id, donation_data(title="Sourdough", category="bakery"))
    clock.advance(minutes=1)
    milk = await lifecycle.create(donor.id, donation_data(title="Milk", description="whole milk", category="dairy"))

    by_category = await lifecycle.list_active(ActiveFilter(category=FoodCategory.DAIRY))
    assert [d.id for d in by_category] == [milk.id]

    by_text = await lifecycle.list_active(ActiveFilter(search="sourdough"))
    assert [d.id for d in by_text] == [bread.id]

    page = await lifecycle.list_active(ActiveFilter(limit=1, offset=1))
    assert [d.id for d in page] == [bread.id]


async def test_owned_listing_includes_every_status(lifecycle, donor, recipient, make_user, donation_data, clock):
    a = await lifecycle.create(donor.id, donation_data(title="a"))
    clock.advance(minutes=1)
    b = await lifecycle.create(donor.id, donation_data(title="b"))
    clock.advance(minutes=1)
    c = await lifecycle.create(donor.id, donation_data(title="c"))
    await lifecycle.reserve(b.id, recipient.id)
    await lifecycle.cancel(c.id, donor.id)

    other = await make_user("donor")
    await lifecycle.create(other.id, donation_data(title="not mine"))

    owned = await lifecycle.list_owned_by(donor.id)
    assert [(d.id, d.status) for d in owned] == [(c.id, "cancelled"), (b.id, "reserved"), (a.id, "active")]

    only_reserved = await lifecycle.list_owned_by(donor.id, DonationStatus.RESERVED)
    assert [d.id for d in only_reserved] == [b.id]


async def test_reserved_listing_is_per_recipient(lifecycle, donor, recipient, make_user, donation_data, clock):
    mine_done = await lifecycle.create(donor.id, donation_data(title="done"))
    mine_open = await lifecycle.create(donor.id, donation_data(title="open"))
    theirs = await lifecycle.create(donor.id, donation_data(title="theirs"))
    other = await make_user("recipient")

    await lifecycle.reserve(mine_done.id, recipient.id)
    await lifecycle.complete(mine_done.id, donor.id)
    clock.advance(minutes=1)
    await lifecycle.reserve(mine_open.id, recipient.id)
    await lifecycle.reserve(theirs.id, other.id)

    history = await lifecycle.list_reserved_by(recipient.id)
    assert [d.id for d in history] == [mine_open.id, mine_done.id]

    completed = await lifecycle.list_reserved_by(recipient.id, [DonationStatus.COMPLETED])
    assert [d.id for d in completed] == [mine_done.id]


async def test_reserved_listing_drops_voided_reservations(lifecycle, donation, donor, recipient):
    await lifecycle.reserve(donation.id, recipient.id)
    await lifecycle.cancel(donation.id, donor.id)

    assert await lifecycle.list_reserved_by(recipient.id) == []


async def test_reserved_listing_rejects_other_statuses(lifecycle, recipient):
    with pytest.raises(ValidationError):
        await lifecycle.list_reserved_by(recipient.id, [DonationStatus.ACTIVE])
