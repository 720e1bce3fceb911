# /oracle_assistant/core/deps.py

from typing import Generator, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..models.auth_model import AuthenticatedUser
from ..services.database_service import DatabaseService
from .context import AppContext

_BEARER = HTTPBearer(auto_error=False)


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_db_service(context: AppContext = Depends(get_context)) -> Generator[DatabaseService, None, None]:
    """FastAPI dependency that provides a DatabaseService bound to a fresh session."""
    with context.open_db() as db:
        yield db


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_BEARER),
) -> str:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


def get_current_user(
    token: str = Depends(get_bearer_token),
    context: AppContext = Depends(get_context),
    db: DatabaseService = Depends(get_db_service),
) -> AuthenticatedUser:
    """
    Resolves the bearer token through the identity gateway. Protected routes
    depend on this, so every service call downstream is scoped to one user.
    """
    user = context.identity.get_current_session(db, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
