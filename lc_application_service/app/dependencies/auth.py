import datetime
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from motor.motor_asyncio import AsyncIOMotorDatabase

from lc_application_service.app.config import settings
from lc_application_service.app.models import UserDB
from lc_application_service.app.service.authorization import has_role
from lc_application_service.app.service.exceptions import AuthenticationError, AuthorizationError
from lc_application_service.infrastructure.database.connection import get_db
from lc_application_service.infrastructure.database.user_store import get_user_by_id

logger = logging.getLogger(__name__)
bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(user_id: str, expires_delta: Optional[datetime.timedelta] = None) -> str:
    """
    Issues a token in the identity service's format (``sub`` = user id).

    Only used by tooling and tests; this service never logs users in.
    """
    expire = datetime.datetime.now(datetime.UTC) + (expires_delta or datetime.timedelta(minutes=15))
    return jwt.encode({"sub": user_id, "exp": expire}, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[str]:
    """Returns the user id carried by the token, or None if it is invalid or expired."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.info(f"Rejected access token: {e}")
        return None
    return payload.get("sub")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> UserDB:
    if credentials is None:
        raise AuthenticationError("Not authorized to access this route")

    user_id = decode_access_token(credentials.credentials)
    if not user_id:
        raise AuthenticationError("Not authorized to access this route")

    user = await get_user_by_id(db, user_id)
    if user is None or not user.is_active:
        logger.warning(f"Token subject {user_id} does not resolve to an active user.")
        raise AuthenticationError("Not authorized to access this route")
    return user


def require_roles(*roles: str):
    """Route dependency: the actor must hold one of ``roles``."""
    async def role_checker(current_user: UserDB = Depends(get_current_user)) -> UserDB:
        if not has_role(current_user, roles):
            raise AuthorizationError(f"User role {current_user.role} is not authorized to access this route")
        return current_user
    return role_checker
