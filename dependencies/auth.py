# dependencies/auth.py
from fastapi import Depends, HTTPException, status
import jwt
from typing import Annotated

from config import (
    oauth2_scheme,
    JWT_SECRET_KEY,
    JWT_ALGORITHM
)
from models.auth_model import AuthenticatedUser, TokenData
from models.enums import UserType

async def get_current_user(token: str = Depends(oauth2_scheme)) -> AuthenticatedUser:
    """Get the current authenticated user from the JWT token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
        token_data = TokenData(
            username=payload.get("sub"),
            user_id=payload.get("id"),
            user_type=payload.get("type"),
        )
    except jwt.PyJWTError:
        raise credentials_exception

    if token_data.user_id is None:
        raise credentials_exception

    user_type = UserType.ADMIN if token_data.user_type == UserType.ADMIN.value else UserType.USER
    return AuthenticatedUser(id=token_data.user_id, user_type=user_type)

async def get_admin_user(current_user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
    """Get the current authenticated user and verify they have admin privileges."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions"
        )
    return current_user

# Create annotated types for cleaner dependency injection
CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
AdminUser = Annotated[AuthenticatedUser, Depends(get_admin_user)]
