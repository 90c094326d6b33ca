import pytest
from unittest.mock import AsyncMock

from doctors_portal.services.booking_service import BookingManager
from doctors_portal.services.db_service import MemoryStore

SERVICES = [
    {"name": "Cleaning", "slots": ["9am", "10am", "11am"]},
    {"name": "Whitening", "slots": ["9am", "1pm"]},
]


@pytest.fixture
def store():
    return MemoryStore(SERVICES)


@pytest.fixture
def notifier():
    mock = AsyncMock()
    mock.notify_booking_confirmed.return_value = True
    mock.notify_payment_confirmed.return_value = True
    return mock


@pytest.fixture
def manager(store, notifier):
    return BookingManager(store.services, store.bookings, notifier=notifier)
