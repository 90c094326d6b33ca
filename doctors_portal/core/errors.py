class PortalError(Exception):
    """Base class for errors surfaced by the booking core."""


class UpstreamFault(PortalError):
    """
    A data source was unavailable or a query failed.
    Propagated to the caller as-is, never retried.
    """

    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}" if detail else f"{operation} failed")


class NotFound(PortalError):
    pass


class BookingNotFound(NotFound):
    def __init__(self, booking_id: str):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} not found")
