"""
Data access for the booking core.

The core only talks to the small protocols below. Two backends implement
them: Supabase (production) and an in-process store (development, tests).
Store handles are created once at startup and closed at shutdown.
"""
import asyncio
import itertools
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from supabase import AsyncClient, create_async_client

from doctors_portal.core.errors import UpstreamFault
from doctors_portal.core.logger import logger
from doctors_portal.models.db_models import Booking, Service, User

SERVICES_TABLE = "services"
BOOKINGS_TABLE = "bookings"
USERS_TABLE = "users"

Filter = Dict[str, Any]


class ServiceCatalog(Protocol):
    async def list_all(self) -> List[Service]: ...

    async def list_projected(self, fields: Sequence[str]) -> List[Dict[str, Any]]: ...


class BookingLedger(Protocol):
    async def find(self, filter: Filter) -> List[Booking]: ...

    async def find_one(self, filter: Filter) -> Optional[Booking]: ...

    async def insert_one(self, booking: Booking) -> str: ...

    async def insert_if_absent(self, filter: Filter, booking: Booking) -> Tuple[bool, Booking]: ...

    async def update_one(self, filter: Filter, patch: Dict[str, Any]) -> Optional[Booking]: ...


class UserDirectory(Protocol):
    async def upsert(self, email: str, fields: Dict[str, Any]) -> bool: ...

    async def list_all(self) -> List[User]: ...


class Store(Protocol):
    services: ServiceCatalog
    bookings: BookingLedger
    users: UserDirectory

    async def close(self) -> None: ...


def _matches(record: Dict[str, Any], filter: Filter) -> bool:
    return all(record.get(key) == value for key, value in filter.items())


# --- In-process backend ---

class MemoryServiceCatalog:
    def __init__(self, services: Optional[List[Dict[str, Any]]] = None):
        self._services: List[Service] = []
        for i, raw in enumerate(services or [], start=1):
            data = dict(raw)
            data.setdefault("id", str(i))
            self._services.append(Service.model_validate(data))

    async def list_all(self) -> List[Service]:
        await asyncio.sleep(0)
        return [s.model_copy(deep=True) for s in self._services]

    async def list_projected(self, fields: Sequence[str]) -> List[Dict[str, Any]]:
        await asyncio.sleep(0)
        return [s.model_dump(include=set(fields)) for s in self._services]


class MemoryBookingLedger:
    """
    Every call yields to the event loop before touching data, so
    concurrent callers interleave the way they would against a database.
    """

    def __init__(self):
        self._rows: Dict[str, Dict[str, Any]] = {}
        self._ids = itertools.count(1)

    def _to_booking(self, booking_id: str) -> Booking:
        return Booking.model_validate({"id": booking_id, **self._rows[booking_id]})

    def _first_match(self, filter: Filter) -> Optional[Booking]:
        for booking_id, row in self._rows.items():
            if _matches({"id": booking_id, **row}, filter):
                return self._to_booking(booking_id)
        return None

    def _insert(self, booking: Booking) -> str:
        booking_id = str(next(self._ids))
        self._rows[booking_id] = booking.to_record()
        return booking_id

    async def find(self, filter: Filter) -> List[Booking]:
        await asyncio.sleep(0)
        return [
            self._to_booking(booking_id)
            for booking_id, row in self._rows.items()
            if _matches({"id": booking_id, **row}, filter)
        ]

    async def find_one(self, filter: Filter) -> Optional[Booking]:
        await asyncio.sleep(0)
        return self._first_match(filter)

    async def insert_one(self, booking: Booking) -> str:
        await asyncio.sleep(0)
        return self._insert(booking)

    async def insert_if_absent(self, filter: Filter, booking: Booking) -> Tuple[bool, Booking]:
        await asyncio.sleep(0)
        # No await between the check and the insert
        existing = self._first_match(filter)
        if existing:
            return False, existing
        booking_id = self._insert(booking)
        return True, self._to_booking(booking_id)

    async def update_one(self, filter: Filter, patch: Dict[str, Any]) -> Optional[Booking]:
        await asyncio.sleep(0)
        match = self._first_match(filter)
        if match is None:
            return None
        self._rows[match.id].update(patch)
        return self._to_booking(match.id)


class MemoryUserDirectory:
    def __init__(self):
        self._users: Dict[str, Dict[str, Any]] = {}

    async def upsert(self, email: str, fields: Dict[str, Any]) -> bool:
        await asyncio.sleep(0)
        existed = email in self._users
        self._users.setdefault(email, {"email": email}).update(fields)
        return existed

    async def list_all(self) -> List[User]:
        await asyncio.sleep(0)
        return [User.model_validate(u) for u in self._users.values()]


class MemoryStore:
    def __init__(self, services: Optional[List[Dict[str, Any]]] = None):
        self.services = MemoryServiceCatalog(services)
        self.bookings = MemoryBookingLedger()
        self.users = MemoryUserDirectory()

    async def close(self) -> None:
        logger.info("🗄️ In-memory store released")


# --- Supabase backend ---

async def _execute(operation: str, query) -> List[Dict[str, Any]]:
    try:
        response = await query.execute()
    except Exception as e:
        logger.error(f"❌ DB Error ({operation}): {e}")
        raise UpstreamFault(operation, str(e)) from e
    return response.data or []


def _apply_filter(query, filter: Filter):
    for key, value in filter.items():
        query = query.is_(key, "null") if value is None else query.eq(key, value)
    return query


def _id_can_match(filter: Filter) -> bool:
    # bookings.id is a bigint column; other ids cannot match any row
    booking_id = filter.get("id")
    return booking_id is None or str(booking_id).isdigit()


def _row_to_booking(row: Dict[str, Any]) -> Booking:
    data = dict(row)
    if data.get("id") is not None:
        data["id"] = str(data["id"])
    return Booking.model_validate(data)


class SupabaseServiceCatalog:
    def __init__(self, client: AsyncClient):
        self._client = client

    async def list_all(self) -> List[Service]:
        query = self._client.table(SERVICES_TABLE).select("*").order("id")
        rows = await _execute("list_services", query)
        return [
            Service(id=str(r["id"]) if r.get("id") is not None else None, name=r["name"], slots=r.get("slots") or [])
            for r in rows
        ]

    async def list_projected(self, fields: Sequence[str]) -> List[Dict[str, Any]]:
        query = self._client.table(SERVICES_TABLE).select(",".join(fields)).order("id")
        return await _execute("list_services_projected", query)


class SupabaseBookingLedger:
    def __init__(self, client: AsyncClient):
        self._client = client

    async def find(self, filter: Filter) -> List[Booking]:
        if not _id_can_match(filter):
            return []
        query = _apply_filter(self._client.table(BOOKINGS_TABLE).select("*"), filter).order("id")
        rows = await _execute("find_bookings", query)
        return [_row_to_booking(r) for r in rows]

    async def find_one(self, filter: Filter) -> Optional[Booking]:
        if not _id_can_match(filter):
            return None
        query = _apply_filter(self._client.table(BOOKINGS_TABLE).select("*"), filter).limit(1)
        rows = await _execute("find_booking", query)
        return _row_to_booking(rows[0]) if rows else None

    async def insert_one(self, booking: Booking) -> str:
        query = self._client.table(BOOKINGS_TABLE).insert(booking.to_record())
        rows = await _execute("insert_booking", query)
        if not rows:
            raise UpstreamFault("insert_booking", "insert returned no row")
        logger.info(f"✅ Booking {rows[0]['id']} stored")
        return str(rows[0]["id"])

    async def insert_if_absent(self, filter: Filter, booking: Booking) -> Tuple[bool, Booking]:
        """
        Relies on a unique index over the filter columns, e.g.
        UNIQUE (treatment, date, patient) for the patient guard.
        """
        query = self._client.table(BOOKINGS_TABLE).upsert(
            booking.to_record(),
            on_conflict=",".join(filter.keys()),
            ignore_duplicates=True,
        )
        rows = await _execute("insert_booking_if_absent", query)
        if rows:
            return True, _row_to_booking(rows[0])

        existing = await self.find_one(filter)
        if existing is None:
            raise UpstreamFault("insert_booking_if_absent", "conflicting row vanished")
        return False, existing

    async def update_one(self, filter: Filter, patch: Dict[str, Any]) -> Optional[Booking]:
        if not _id_can_match(filter):
            return None
        query = _apply_filter(self._client.table(BOOKINGS_TABLE).update(patch), filter)
        rows = await _execute("update_booking", query)
        return _row_to_booking(rows[0]) if rows else None


class SupabaseUserDirectory:
    def __init__(self, client: AsyncClient):
        self._client = client

    async def upsert(self, email: str, fields: Dict[str, Any]) -> bool:
        existing = await _execute(
            "find_user", self._client.table(USERS_TABLE).select("email").eq("email", email).limit(1)
        )
        await _execute(
            "upsert_user",
            self._client.table(USERS_TABLE).upsert({**fields, "email": email}, on_conflict="email"),
        )
        return bool(existing)

    async def list_all(self) -> List[User]:
        rows = await _execute("list_users", self._client.table(USERS_TABLE).select("*"))
        return [User.model_validate(r) for r in rows]


class SupabaseStore:
    def __init__(self, client: AsyncClient):
        self._client = client
        self.services = SupabaseServiceCatalog(client)
        self.bookings = SupabaseBookingLedger(client)
        self.users = SupabaseUserDirectory(client)

    @classmethod
    async def connect(cls, url: str, key: str) -> "SupabaseStore":
        try:
            client = await create_async_client(url, key)
        except Exception as e:
            logger.error(f"❌ Failed to initialize Supabase Async: {e}")
            raise UpstreamFault("connect", str(e)) from e
        logger.info("✅ Supabase Async client initialized")
        return cls(client)

    async def close(self) -> None:
        try:
            await self._client.postgrest.aclose()
            logger.info("🗄️ Supabase client closed")
        except Exception as e:
            logger.warning(f"⚠️ Failed to close Supabase client cleanly: {e}")


async def open_store(settings, services: Optional[List[Dict[str, Any]]] = None) -> Store:
    """
    Opens the configured backend: Supabase when credentials are set,
    otherwise the in-process store seeded with `services`.
    """
    if settings.SUPABASE_URL and settings.SUPABASE_KEY:
        return await SupabaseStore.connect(settings.SUPABASE_URL, settings.SUPABASE_KEY)

    logger.warning("⚠️ Supabase credentials missing, using in-memory store")
    return MemoryStore(services)
