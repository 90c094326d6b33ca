import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Protocol, Set, Tuple

from doctors_portal.core.errors import BookingNotFound
from doctors_portal.core.logger import logger
from doctors_portal.models.db_models import Booking, Service
from doctors_portal.services.db_service import BookingLedger, ServiceCatalog

# Fields identifying a duplicate booking, per guard policy
DUPLICATE_GUARD_KEYS = {
    "patient": ("treatment", "date", "patient"),
    "slot": ("treatment", "date", "slot"),
}


class Notifier(Protocol):
    async def notify_booking_confirmed(self, booking: Booking) -> bool: ...

    async def notify_payment_confirmed(self, booking: Booking) -> bool: ...


@dataclass
class BookingOutcome:
    success: bool
    booking: Booking
    booking_id: Optional[str] = None


@dataclass
class PaymentOutcome:
    booking: Booking
    modified: bool


class BookingManager:
    """
    Computes free slots and accepts bookings behind a duplicate guard.

    The default guard is keyed on the patient: the same patient cannot book
    the same treatment twice on one date, but two patients can still take
    the same slot. With `atomic=False` the guard is a plain read followed by
    a write, so two concurrent identical requests may both be stored.
    """

    def __init__(
        self,
        services: ServiceCatalog,
        bookings: BookingLedger,
        notifier: Optional[Notifier] = None,
        guard: str = "patient",
        atomic: bool = False,
    ):
        if guard not in DUPLICATE_GUARD_KEYS:
            raise ValueError(f"Unknown duplicate guard '{guard}', expected one of {sorted(DUPLICATE_GUARD_KEYS)}")
        self.services = services
        self.bookings = bookings
        self.notifier = notifier
        self.guard_keys: Tuple[str, ...] = DUPLICATE_GUARD_KEYS[guard]
        self.atomic = atomic
        self._pending: Set[asyncio.Task] = set()

    async def list_services(self) -> List[Service]:
        return await self.services.list_all()

    async def compute_availability(self, date: str) -> List[Service]:
        """
        Returns every service with the slots already booked on `date` removed.
        Slot order and service order are kept.
        """
        if not date:
            logger.warning("⚠️ Availability requested without a date, matching bookings with an empty date")
            date = ""

        services = await self.services.list_all()
        day_bookings = await self.bookings.find({"date": date})

        available = []
        for service in services:
            booked_slots = {b.slot for b in day_bookings if b.treatment == service.name}
            remaining = [slot for slot in service.slots if slot not in booked_slots]
            available.append(service.model_copy(update={"slots": remaining}))
        return available

    async def create_booking(self, booking: Booking) -> BookingOutcome:
        guard = {key: getattr(booking, key) for key in self.guard_keys}
        logger.info(f"📥 Booking Request - {booking.treatment} on {booking.date!r} at {booking.slot} for {booking.patient}")

        if self.atomic:
            inserted, stored = await self.bookings.insert_if_absent(guard, booking)
            if not inserted:
                logger.info(f"↩️ Duplicate booking for {guard}, returning existing {stored.id}")
                return BookingOutcome(success=False, booking=stored)
        else:
            existing = await self.bookings.find_one(guard)
            if existing:
                logger.info(f"↩️ Duplicate booking for {guard}, returning existing {existing.id}")
                return BookingOutcome(success=False, booking=existing)
            booking_id = await self.bookings.insert_one(booking)
            stored = booking.model_copy(update={"id": booking_id})

        logger.info(f"✅ Booking {stored.id} created")
        self._dispatch("booking_confirmed", self._notifier_call("notify_booking_confirmed"), stored)
        return BookingOutcome(success=True, booking=stored, booking_id=stored.id)

    async def list_patient_bookings(self, patient: str) -> List[Booking]:
        return await self.bookings.find({"patient": patient})

    async def mark_paid(self, booking_id: str, transaction_id: str) -> PaymentOutcome:
        current = await self.bookings.find_one({"id": booking_id})
        if current is None:
            logger.warning(f"⚠️ Payment for unknown booking {booking_id}")
            raise BookingNotFound(booking_id)

        if current.paid and current.transaction_id == transaction_id:
            logger.info(f"↩️ Booking {booking_id} already paid with {transaction_id}")
            return PaymentOutcome(booking=current, modified=False)

        updated = await self.bookings.update_one(
            {"id": booking_id},
            {"paid": True, "transaction_id": transaction_id},
        )
        if updated is None:
            raise BookingNotFound(booking_id)

        logger.info(f"💳 Booking {booking_id} marked paid ({transaction_id})")
        self._dispatch("payment_confirmed", self._notifier_call("notify_payment_confirmed"), updated)
        return PaymentOutcome(booking=updated, modified=True)

    def _notifier_call(self, name: str) -> Optional[Callable[[Booking], Awaitable[bool]]]:
        if self.notifier is None:
            return None
        return getattr(self.notifier, name)

    def _dispatch(self, kind: str, send: Optional[Callable[[Booking], Awaitable[bool]]], booking: Booking):
        """Runs a notification in the background; failures only reach the log."""
        if send is None:
            return

        async def run():
            try:
                await send(booking)
            except Exception as e:
                logger.error(f"❌ Notification '{kind}' for booking {booking.id} failed: {e}")

        task = asyncio.create_task(run())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain_notifications(self):
        """Waits for notifications still in flight."""
        if self._pending:
            await asyncio.gather(*list(self._pending))
