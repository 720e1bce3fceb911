# /oracle_assistant/services/auth_service.py

"""
The identity gateway.

This service owns sign-up, e-mail confirmation, sign-in, sign-out, token
refresh and session lookup. It keeps no per-user state in memory: credentials
and session tokens live in the database, hashed. The only in-memory state is
the list of auth-state listeners, which lets open workspaces react when their
token is revoked or rotated elsewhere.
"""

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, List, Optional
from urllib.parse import urlencode

from sqlalchemy.exc import IntegrityError

from ..core import security
from ..core.config import Settings
from ..core.errors import AuthError
from ..models.auth_model import AuthenticatedUser, AuthSessionInfo
from .database_service import DatabaseService

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
SIGN_UP_NOTICE = "Check your email for the confirmation link."


class AuthEventType(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


@dataclass(frozen=True)
class AuthEvent:
    type: AuthEventType
    user: AuthenticatedUser
    # Digest of the token the event is about (the revoked or replaced one).
    token_hash: str
    # The new session for SIGNED_IN and TOKEN_REFRESHED.
    session: Optional[AuthSessionInfo] = None


AuthListener = Callable[[AuthEvent], None]


class Subscription:
    def __init__(self, gateway: "IdentityGateway", callback: AuthListener):
        self._gateway = gateway
        self.callback = callback

    def unsubscribe(self) -> None:
        self._gateway._remove_listener(self.callback)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _to_user(row) -> AuthenticatedUser:
    return AuthenticatedUser(id=row.id, email=row.email)


class IdentityGateway:
    def __init__(self, settings: Settings):
        self.settings = settings
        self._listeners: List[AuthListener] = []
        self._lock = threading.Lock()

    # --- Subscription channel ---

    def on_auth_state_change(self, callback: AuthListener) -> Subscription:
        with self._lock:
            self._listeners.append(callback)
        return Subscription(self, callback)

    def _remove_listener(self, callback: AuthListener) -> None:
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def _emit(self, event: AuthEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                # A broken listener must not undo a sign-in that already committed.
                logger.exception("Auth listener failed while handling %s", event.type.value)

    # --- Internal helpers ---

    def _start_session(self, db: DatabaseService, user_row) -> AuthSessionInfo:
        token = security.new_token()
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=self.settings.auth_session_ttl_seconds)
        db.add_auth_session({
            "user_id": user_row.id,
            "token_hash": security.hash_token(token),
            "created_at": now,
            "expires_at": expires_at,
        })
        return AuthSessionInfo(access_token=token, expires_at=expires_at, user=_to_user(user_row))

    def _confirmation_link(self, token: str, redirect_to: Optional[str]) -> str:
        query = urlencode({"token": token, "redirect_to": redirect_to or self.settings.site_url})
        return f"{self.settings.site_url}/api/auth/confirm?{query}"

    # --- Public gateway operations ---

    def sign_up(self, db: DatabaseService, email: str, password: str, redirect_to: Optional[str] = None) -> str:
        """
        Registers an unconfirmed account and returns the notice to display.
        No session is granted until the e-mail address is confirmed.
        """
        email = _normalize_email(email)
        if "@" not in email or email.startswith("@") or email.endswith("@"):
            raise AuthError("Unable to validate email address: invalid format")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters.")
        if db.get_user_by_email(email):
            raise AuthError("User already registered")

        salt_b64, hash_b64, iterations = security.hash_password(
            password, pepper=self.settings.auth_password_pepper
        )
        confirmation_token = security.new_token()
        try:
            user = db.add_user({
                "id": f"usr_{uuid.uuid4().hex[:12]}",
                "email": email,
                "password_hash": hash_b64,
                "password_salt": salt_b64,
                "password_iterations": iterations,
                "confirmation_token_hash": security.hash_token(confirmation_token),
            })
        except IntegrityError:
            raise AuthError("User already registered")

        # No mail transport is wired in; the link is handed to the operator log.
        logger.info(
            "Confirmation link for %s: %s",
            user.email,
            self._confirmation_link(confirmation_token, redirect_to),
        )
        return SIGN_UP_NOTICE

    def confirm_email(self, db: DatabaseService, token: str) -> AuthSessionInfo:
        user = db.get_user_by_confirmation_hash(security.hash_token(token))
        if not user:
            raise AuthError("Email link is invalid or has already been used")
        db.mark_email_confirmed(user, datetime.now(timezone.utc))
        session = self._start_session(db, user)
        logger.info("User %s confirmed their e-mail address.", user.id)
        self._emit(AuthEvent(
            type=AuthEventType.SIGNED_IN,
            user=session.user,
            token_hash=security.hash_token(session.access_token),
            session=session,
        ))
        return session

    def sign_in(self, db: DatabaseService, email: str, password: str) -> AuthSessionInfo:
        user = db.get_user_by_email(_normalize_email(email))
        if not user or not security.verify_password(
            password,
            salt_b64=user.password_salt,
            hash_b64=user.password_hash,
            iterations=user.password_iterations,
            pepper=self.settings.auth_password_pepper,
        ):
            raise AuthError("Invalid login credentials")
        if user.email_confirmed_at is None:
            raise AuthError("Email not confirmed")

        session = self._start_session(db, user)
        logger.info("User %s signed in.", user.id)
        self._emit(AuthEvent(
            type=AuthEventType.SIGNED_IN,
            user=session.user,
            token_hash=security.hash_token(session.access_token),
            session=session,
        ))
        return session

    def get_current_session(self, db: DatabaseService, token: Optional[str]) -> Optional[AuthenticatedUser]:
        """Resolves a bearer token to its user, or None when it is unknown or expired."""
        if not token:
            return None
        row = db.get_live_auth_session(security.hash_token(token), datetime.now(timezone.utc))
        if row is None:
            return None
        return _to_user(row.user)

    def refresh_session(self, db: DatabaseService, token: str) -> AuthSessionInfo:
        token_hash = security.hash_token(token)
        row = db.get_live_auth_session(token_hash, datetime.now(timezone.utc))
        if row is None:
            raise AuthError("Invalid Refresh Token")
        user_row = row.user
        session = self._start_session(db, user_row)
        db.delete_auth_session(token_hash)
        self._emit(AuthEvent(
            type=AuthEventType.TOKEN_REFRESHED,
            user=session.user,
            token_hash=token_hash,
            session=session,
        ))
        return session

    def sign_out(self, db: DatabaseService, token: str) -> bool:
        token_hash = security.hash_token(token)
        row = db.get_live_auth_session(token_hash, datetime.now(timezone.utc))
        user = _to_user(row.user) if row is not None else None
        was_deleted = db.delete_auth_session(token_hash)
        if user is not None:
            logger.info("User %s signed out.", user.id)
            self._emit(AuthEvent(type=AuthEventType.SIGNED_OUT, user=user, token_hash=token_hash))
        return was_deleted
