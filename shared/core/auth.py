from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from shared.core.config import settings
from shared.core.schemas import UserToken
from shared.helpers.json_response_helper import error_response
from shared.utils.app_status_code import AppStatusCode

security = HTTPBearer()


def create_access_token(data: dict, expires_minutes: Optional[int] = None):
    payload = {k: str(v) if k == "user_id" else v for k, v in data.items()}
    minutes = settings.JWT_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    payload["exp"] = datetime.now(timezone.utc) + timedelta(minutes=minutes)

    return jwt.encode(payload, settings.JWT_SECRET,
                      algorithm=settings.JWT_ALGORITHM)


def authenticate(token: str) -> Optional[UserToken]:
    """Decode a bearer token into the caller identity, or None if invalid."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET,
                             algorithms=[settings.JWT_ALGORITHM])
        return UserToken(**payload)
    except (JWTError, PydanticValidationError):
        return None


def validate_current_token(credentials: HTTPAuthorizationCredentials = Depends(security)) -> UserToken:
    user = authenticate(credentials.credentials)
    if user is None:
        return error_response(
            message="Invalid or expired token",
            status_code=str(AppStatusCode.AUTHENTICATION_TOKEN_INVALID),
            http_status=status.HTTP_401_UNAUTHORIZED
        )
    return user
