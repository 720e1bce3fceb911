# /oracle_assistant/routers/auth_router.py

"""
This module defines the public-facing API for all authentication-related actions.

It includes endpoints for:
- Account registration (`/sign-up`) and e-mail confirmation (`/confirm`)
- Sign-in (`/sign-in`), which also returns the initial chat workspace
- Token lookup (`/session`), rotation (`/refresh`) and revocation (`/sign-out`)

The router only translates HTTP to calls on the identity gateway held by the
application context; every rule lives in `auth_service`.
"""

from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from ..core.context import AppContext
from ..core.deps import get_bearer_token, get_context, get_current_user, get_db_service
from ..models.auth_model import (
    AuthenticatedUser,
    AuthSessionInfo,
    CredentialsRequest,
    SignOutResponse,
    SignUpRequest,
    SignUpResponse,
)
from ..models.workspace_model import SignInResponse, WorkspaceView
from ..services import render_service, session_service
from ..services.database_service import DatabaseService

# --- Router Initialization ---
router = APIRouter()


@router.post("/sign-up", response_model=SignUpResponse, summary="Register a New Account")
def sign_up(
    payload: SignUpRequest,
    context: AppContext = Depends(get_context),
    db: DatabaseService = Depends(get_db_service),
):
    """
    Creates an unconfirmed account. No session is granted; the user must
    follow the confirmation link first.
    """
    notice = context.identity.sign_up(db, payload.email, payload.password, payload.redirect_to)
    return SignUpResponse(notice=notice)


@router.post("/sign-in", response_model=SignInResponse, summary="Sign In")
def sign_in(
    payload: CredentialsRequest,
    context: AppContext = Depends(get_context),
    db: DatabaseService = Depends(get_db_service),
):
    """
    Authenticates with e-mail and password. The response carries the new
    bearer token together with the first screen: the user's sessions, the
    most recent one selected, and its messages.
    """
    session = context.identity.sign_in(db, payload.email, payload.password)
    data = session_service.load_workspace(db, session.user)
    workspace = WorkspaceView(
        authenticated=True,
        user=session.user,
        sessions=render_service.render_sessions(data.sessions, data.active_session_id),
        active_session_id=data.active_session_id,
        has_active_session=data.active_session_id is not None,
        messages=render_service.render_messages(data.messages),
    )
    return SignInResponse(session=session, workspace=workspace)


@router.get("/confirm", summary="Confirm an E-mail Address")
def confirm_email(
    token: str = Query(...),
    redirect_to: Optional[str] = Query(None),
    context: AppContext = Depends(get_context),
    db: DatabaseService = Depends(get_db_service),
):
    """
    Target of the confirmation link. Confirms the account, signs the user in
    and sends the browser back with the token in the URL fragment.
    """
    session = context.identity.confirm_email(db, token)
    fragment = urlencode({
        "access_token": session.access_token,
        "token_type": session.token_type,
        "expires_at": session.expires_at.isoformat(),
    })
    target = redirect_to or context.settings.site_url
    return RedirectResponse(url=f"{target}#{fragment}")


@router.get("/session", response_model=AuthenticatedUser, summary="Get the Current Session User")
def read_current_session(current_user: AuthenticatedUser = Depends(get_current_user)):
    return current_user


@router.post("/refresh", response_model=AuthSessionInfo, summary="Rotate the Bearer Token")
def refresh_session(
    token: str = Depends(get_bearer_token),
    context: AppContext = Depends(get_context),
    db: DatabaseService = Depends(get_db_service),
):
    return context.identity.refresh_session(db, token)


@router.post("/sign-out", response_model=SignOutResponse, summary="Sign Out")
def sign_out(
    token: str = Depends(get_bearer_token),
    context: AppContext = Depends(get_context),
    db: DatabaseService = Depends(get_db_service),
):
    return SignOutResponse(ok=context.identity.sign_out(db, token))
