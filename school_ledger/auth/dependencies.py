from typing import Dict

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from school_ledger.auth.schemas import CurrentUser
from school_ledger.core.config import settings

# Tokens are minted by the school's identity service; this service never logs anyone in.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


async def get_current_user(token: str = Depends(oauth2_scheme)) -> CurrentUser:
    """Resolve the verified caller identity and permissions from the access token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise credentials_exception

    user_id = payload.get("user_id") or payload.get("sub")
    role_name = payload.get("role")
    if not user_id or not role_name:
        raise credentials_exception

    permissions: Dict[str, Dict[str, bool]] = payload.get("permissions") or {}
    if not isinstance(permissions, dict):
        raise credentials_exception

    return CurrentUser(id=str(user_id), role=role_name, permissions=permissions)
