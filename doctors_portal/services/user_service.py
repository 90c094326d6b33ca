from typing import Any, Dict, List, Tuple

from doctors_portal.core.logger import logger
from doctors_portal.core.security import create_access_token
from doctors_portal.models.api_models import UpsertResult
from doctors_portal.models.db_models import User
from doctors_portal.services.db_service import UserDirectory


class UserService:
    def __init__(self, users: UserDirectory):
        self.users = users

    async def upsert_user(self, email: str, fields: Dict[str, Any]) -> Tuple[UpsertResult, str]:
        """
        Creates or updates the user by email and issues an access token for it.
        Role changes are not accepted here.
        """
        fields = {k: v for k, v in fields.items() if k not in ("email", "role")}
        existed = await self.users.upsert(email, fields)
        if existed:
            logger.info(f"👤 User updated: {email}")
        else:
            logger.info(f"🆕 New user created: {email}")

        token = create_access_token(email)
        result = UpsertResult(upserted=not existed, matched_count=1 if existed else 0)
        return result, token

    async def list_users(self) -> List[User]:
        return await self.users.list_all()
