"""
Tests for the weighted lottery: selection, conservation, idempotence and
interaction with direct bookings.
"""

import random

import pytest
from sqlalchemy import select

from court_lottery.core.errors import InvalidTimeSlotError
from court_lottery.models.booking_request import BookingRequest, RequestStatus
from court_lottery.models.reservation import Reservation, ReservationStatus
from court_lottery.services.availability_service import available_court_ids
from court_lottery.services.lottery_service import run_lottery, select_weighted_index
from court_lottery.services.usage_service import increment_usage

from tests.conftest import days_ahead


class ScriptedRandom(random.Random):
    """Returns the queued values from uniform(), always 0 from randrange()."""

    def __init__(self, *values):
        super().__init__(0)
        self.values = list(values)
        self.randrange_calls = 0

    def uniform(self, a, b):
        return self.values.pop(0)

    def randrange(self, *args, **kwargs):
        self.randrange_calls += 1
        return 0


# select_weighted_index

def test_walk_follows_cumulative_weights():
    weights = [1.0, 2.0, 1.0]
    assert select_weighted_index(weights, ScriptedRandom(0.5)) == 0
    assert select_weighted_index(weights, ScriptedRandom(1.0)) == 0
    assert select_weighted_index(weights, ScriptedRandom(2.5)) == 1
    assert select_weighted_index(weights, ScriptedRandom(3.9)) == 2


def test_zero_weight_entries_are_skipped():
    rng = ScriptedRandom(0.0)
    assert select_weighted_index([0.0, None, 1.5], rng) == 2


def test_all_zero_weights_fall_back_to_uniform():
    rng = ScriptedRandom()
    assert select_weighted_index([0.0, None, 0.0], rng) == 0
    assert rng.randrange_calls == 1


def test_empty_pool_rejected():
    with pytest.raises(ValueError):
        select_weighted_index([], random.Random(0))


def test_draws_are_proportional_to_weight():
    rng = random.Random(2024)
    draws = [select_weighted_index([2.0, 1.0], rng) for _ in range(6000)]
    share = draws.count(0) / len(draws)
    assert share == pytest.approx(2 / 3, abs=0.03)


# run_lottery

@pytest.mark.asyncio
async def test_empty_pool_is_a_no_op(db_session, court):
    result = await run_lottery(db_session, days_ahead(2), "10:00")
    assert result.assignments == []
    assert result.unassigned == []
    assert result.total_requests == 0


@pytest.mark.asyncio
async def test_single_request_single_court(db_session, standard_user, court, make_request, rng):
    request = await make_request(standard_user, days_ahead(2), players=4)

    result = await run_lottery(db_session, days_ahead(2), "10:00", rng)

    assert len(result.assignments) == 1
    assert result.unassigned == []
    assignment = result.assignments[0]
    assert assignment.request_id == request.id
    assert assignment.court_id == court.id

    await db_session.refresh(request)
    assert request.status == RequestStatus.RESOLVED.value
    assert request.weight == pytest.approx(1.0)

    reservation = await db_session.get(Reservation, assignment.reservation_id)
    assert reservation.status == ReservationStatus.CONFIRMED.value
    assert reservation.request_id == request.id
    assert reservation.user_id == standard_user.id
    assert reservation.player_count == 4
    assert reservation.participant_ids == request.participant_ids
    assert reservation.target_date == request.target_date
    assert reservation.slot_key == "10:00"


@pytest.mark.asyncio
async def test_scarcity_leaves_requests_pending(
    db_session, standard_user, priority_user, players, court, make_request, rng,
):
    target = days_ahead(3)
    requests = [
        await make_request(standard_user, target),
        await make_request(priority_user, target),
        await make_request(players[0], target),
    ]

    result = await run_lottery(db_session, target, "10:00", rng)

    assert len(result.assignments) == 1
    assert len(result.unassigned) == 2

    statuses = {}
    for request in requests:
        await db_session.refresh(request)
        statuses[request.id] = request.status
        assert request.weight is not None  # losers are weighted too
    winner = result.assignments[0].request_id
    assert statuses[winner] == RequestStatus.RESOLVED.value
    assert all(statuses[rid] == RequestStatus.PENDING.value for rid in result.unassigned)


@pytest.mark.asyncio
async def test_conservation_and_no_double_booking(
    db_session, standard_user, priority_user, players, court, second_court, closed_court,
    make_request, rng,
):
    target = days_ahead(4)
    accounts = [standard_user, priority_user, *players]
    for account in accounts:
        await make_request(account, target)

    result = await run_lottery(db_session, target, "10:00", rng)

    # Two active courts, six requests
    assert len(result.assignments) == 2
    assert len(result.assignments) + len(result.unassigned) == len(accounts)
    assert {a.court_id for a in result.assignments} == {court.id, second_court.id}
    assert closed_court.id not in {a.court_id for a in result.assignments}
    assert await available_court_ids(db_session, target, "10:00") == set()


@pytest.mark.asyncio
async def test_more_courts_than_requests(db_session, standard_user, court, second_court, make_request, rng):
    await make_request(standard_user, days_ahead(2))

    result = await run_lottery(db_session, days_ahead(2), "10:00", rng)

    assert len(result.assignments) == 1
    assert len(await available_court_ids(db_session, days_ahead(2), "10:00")) == 1


@pytest.mark.asyncio
async def test_rerun_only_touches_pending_requests(
    db_session, standard_user, priority_user, players, court, make_request, rng,
):
    target = days_ahead(3)
    for account in (standard_user, priority_user, players[0]):
        await make_request(account, target)

    first = await run_lottery(db_session, target, "10:00", rng)
    first_winner = first.assignments[0].request_id

    # No court left: the rerun sees the two losers and assigns nothing
    second = await run_lottery(db_session, target, "10:00", rng)
    assert second.assignments == []
    assert sorted(second.unassigned) == sorted(first.unassigned)
    assert first_winner not in second.unassigned

    rows = await db_session.execute(
        select(Reservation).where(Reservation.request_id == first_winner)
    )
    assert len(rows.scalars().all()) == 1


@pytest.mark.asyncio
async def test_rerun_after_cancellation_assigns_freed_court(
    db_session, standard_user, priority_user, court, make_request, rng,
):
    target = days_ahead(3)
    await make_request(standard_user, target)
    await make_request(priority_user, target)

    first = await run_lottery(db_session, target, "10:00", rng)
    reservation = await db_session.get(Reservation, first.assignments[0].reservation_id)
    reservation.status = ReservationStatus.CANCELLED.value
    await db_session.commit()

    second = await run_lottery(db_session, target, "10:00", rng)
    assert len(second.assignments) == 1
    assert second.assignments[0].request_id == first.unassigned[0]
    assert second.unassigned == []


@pytest.mark.asyncio
async def test_court_held_by_direct_booking_is_excluded(
    db_session, standard_user, priority_user, court, second_court, make_request, rng,
):
    target = days_ahead(2)
    db_session.add(Reservation(
        user_id=priority_user.id, court_id=court.id, target_date=target, slot_key="10:00",
        player_count=2, participant_ids=[1, 2], status=ReservationStatus.CONFIRMED.value,
    ))
    await db_session.commit()
    await make_request(standard_user, target)

    result = await run_lottery(db_session, target, "10:00", rng)
    assert [a.court_id for a in result.assignments] == [second_court.id]


@pytest.mark.asyncio
async def test_weights_reflect_tier_and_usage(
    db_session, standard_user, priority_user, court, make_request, rng,
):
    target = days_ahead(3)
    heavy = await make_request(priority_user, target)
    fresh = await make_request(standard_user, target)
    for _ in range(4):
        await increment_usage(db_session, priority_user.id)
    await db_session.commit()

    await run_lottery(db_session, target, "10:00", rng)

    stored = {
        r.id: r.weight
        for r in (await db_session.execute(select(BookingRequest))).scalars().all()
    }
    assert stored[heavy.id] == pytest.approx(1.25)
    assert stored[fresh.id] == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_lottery_ignores_other_slots(db_session, standard_user, priority_user, court, make_request, rng):
    target = days_ahead(3)
    other = await make_request(priority_user, target, "11:30")
    await make_request(standard_user, target, "10:00")

    await run_lottery(db_session, target, "10:00", rng)

    await db_session.refresh(other)
    assert other.status == RequestStatus.PENDING.value
    assert other.weight is None


@pytest.mark.asyncio
async def test_malformed_slot_key_rejected(db_session, court):
    with pytest.raises(InvalidTimeSlotError):
        await run_lottery(db_session, days_ahead(2), "9am")
