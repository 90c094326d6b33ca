import asyncio

import pytest

from doctors_portal.models.db_models import Booking
from doctors_portal.services.booking_service import BookingManager


def _booking(patient="a@x.com", slot="9am", **kwargs):
    data = {"treatment": "Cleaning", "date": "12-12-2025", "slot": slot, "patient": patient, "patientName": "Alice"}
    data.update(kwargs)
    return Booking(**data)


@pytest.mark.asyncio
async def test_same_patient_same_day_is_duplicate_regardless_of_slot(manager, store):
    first = await manager.create_booking(_booking(slot="9am"))
    second = await manager.create_booking(_booking(slot="11am"))

    assert first.success is True
    assert first.booking_id is not None
    assert second.success is False
    # The existing record comes back, with the slot of the first call
    assert second.booking.id == first.booking_id
    assert second.booking.slot == "9am"
    assert len(await store.bookings.find({})) == 1


@pytest.mark.asyncio
async def test_same_slot_different_patients_both_succeed(manager, store):
    first = await manager.create_booking(_booking(patient="a@x.com", slot="10am"))
    second = await manager.create_booking(_booking(patient="b@x.com", slot="10am"))

    assert first.success is True
    assert second.success is True
    assert len(await store.bookings.find({"slot": "10am"})) == 2


@pytest.mark.asyncio
async def test_same_patient_other_treatment_or_date_succeeds(manager):
    assert (await manager.create_booking(_booking())).success is True
    assert (await manager.create_booking(_booking(treatment="Whitening"))).success is True
    assert (await manager.create_booking(_booking(date="13-12-2025"))).success is True


@pytest.mark.asyncio
async def test_booking_is_stored_verbatim(manager, store):
    outcome = await manager.create_booking(_booking(slot="not-a-real-slot"))

    stored = await store.bookings.find_one({"id": outcome.booking_id})
    assert stored.slot == "not-a-real-slot"
    assert stored.patient_name == "Alice"
    assert stored.paid is False
    assert stored.transaction_id is None


@pytest.mark.asyncio
async def test_concurrent_identical_requests_race_in_default_mode(manager, store):
    results = await asyncio.gather(
        manager.create_booking(_booking(slot="9am")),
        manager.create_booking(_booking(slot="11am")),
    )

    assert [r.success for r in results] == [True, True]
    assert len(await store.bookings.find({"patient": "a@x.com"})) == 2


@pytest.mark.asyncio
async def test_atomic_mode_admits_exactly_one_concurrent_request(store, notifier):
    manager = BookingManager(store.services, store.bookings, notifier=notifier, atomic=True)

    results = await asyncio.gather(
        manager.create_booking(_booking(slot="9am")),
        manager.create_booking(_booking(slot="11am")),
    )

    assert sorted(r.success for r in results) == [False, True]
    winner = next(r for r in results if r.success)
    loser = next(r for r in results if not r.success)
    assert loser.booking.id == winner.booking_id
    assert len(await store.bookings.find({})) == 1


@pytest.mark.asyncio
async def test_slot_guard_rejects_second_patient_on_same_slot(store, notifier):
    manager = BookingManager(store.services, store.bookings, notifier=notifier, guard="slot")

    first = await manager.create_booking(_booking(patient="a@x.com", slot="10am"))
    second = await manager.create_booking(_booking(patient="b@x.com", slot="10am"))
    third = await manager.create_booking(_booking(patient="a@x.com", slot="11am"))

    assert first.success is True
    assert second.success is False
    assert second.booking.patient == "a@x.com"
    assert third.success is True


def test_unknown_guard_is_rejected(store):
    with pytest.raises(ValueError):
        BookingManager(store.services, store.bookings, guard="room")


@pytest.mark.asyncio
async def test_confirmation_sent_only_for_new_bookings(manager, notifier):
    await manager.create_booking(_booking())
    await manager.create_booking(_booking(slot="11am"))
    await manager.drain_notifications()

    notifier.notify_booking_confirmed.assert_awaited_once()
    sent = notifier.notify_booking_confirmed.await_args.args[0]
    assert sent.slot == "9am"
    assert sent.id is not None


@pytest.mark.asyncio
async def test_notification_failure_does_not_reach_caller(manager, notifier, store):
    notifier.notify_booking_confirmed.side_effect = RuntimeError("smtp down")

    outcome = await manager.create_booking(_booking())
    await manager.drain_notifications()

    assert outcome.success is True
    assert await store.bookings.find_one({"id": outcome.booking_id}) is not None


@pytest.mark.asyncio
async def test_booking_without_notifier(store):
    manager = BookingManager(store.services, store.bookings)

    outcome = await manager.create_booking(_booking())
    await manager.drain_notifications()

    assert outcome.success is True
