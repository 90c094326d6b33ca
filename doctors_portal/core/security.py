from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from doctors_portal.core.config import settings
from doctors_portal.core.logger import logger

ALGORITHM = "HS256"

bearer_scheme = HTTPBearer(auto_error=False)


class TokenPayload(BaseModel):
    """Claims carried by an access token."""
    email: str
    iat: Optional[int] = None
    exp: Optional[int] = None


def create_access_token(email: str, expires_hours: Optional[int] = None) -> str:
    """Issue a signed access token for the given email."""
    hours = settings.ACCESS_TOKEN_EXPIRE_HOURS if expires_hours is None else expires_hours
    now = datetime.now(timezone.utc)
    to_encode = {"email": email, "iat": now, "exp": now + timedelta(hours=hours)}
    return jwt.encode(to_encode, settings.ACCESS_SECRET, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[TokenPayload]:
    """Verify and decode an access token. Returns None if invalid or expired."""
    try:
        payload = jwt.decode(token, settings.ACCESS_SECRET, algorithms=[ALGORITHM])
        return TokenPayload(**payload)
    except jwt.ExpiredSignatureError:
        logger.info("🔒 Access token expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"🔒 Invalid access token: {e}")
        return None


async def verify_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> TokenPayload:
    """
    Require a bearer token on the request.
    Missing header -> 401, bad or expired token -> 403.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthorized access")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="forbidden access")
    return payload
