from fastapi import Request

from doctors_portal.services.booking_service import BookingManager
from doctors_portal.services.user_service import UserService


def get_booking_manager(request: Request) -> BookingManager:
    return request.app.state.booking_manager


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service
