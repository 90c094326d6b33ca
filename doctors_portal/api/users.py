from typing import List

from fastapi import APIRouter, Depends

from doctors_portal.api.dependencies import get_user_service
from doctors_portal.core.security import TokenPayload, verify_token
from doctors_portal.models.api_models import UserUpsertRequest, UserUpsertResponse
from doctors_portal.models.db_models import User
from doctors_portal.services.user_service import UserService

router = APIRouter()


@router.get("/user", response_model=List[User])
async def list_users(
    user: TokenPayload = Depends(verify_token),
    users: UserService = Depends(get_user_service),
):
    return await users.list_users()


@router.put("/user/{email}", response_model=UserUpsertResponse)
async def upsert_user(email: str, body: UserUpsertRequest, users: UserService = Depends(get_user_service)):
    """Stores the user and hands back a fresh access token."""
    result, token = await users.upsert_user(email, body.model_dump(exclude_none=True))
    return UserUpsertResponse(result=result, token=token)
