# /oracle_assistant/services/workspace.py

"""
The chat screen as a state object.

One `ChatWorkspace` exists per connected client. It mirrors the auth state,
lists sessions, shows the active thread, and runs question/answer turns,
reacting to one discrete event at a time. After each event the owner sends
`snapshot()` back to the client.

Failures never leave the screen silently unchanged: auth errors are shown
verbatim on the credential form and store failures raise a retryable banner.
"""

import logging
from typing import Awaitable, Callable, Dict, List, Optional

from ..core import security
from ..core.context import AppContext
from ..core.errors import AppError, AuthError, MessageRejected, NotFoundError, PersistenceError
from ..models.auth_model import AuthenticatedUser
from ..models.workspace_model import WorkspaceView
from . import chatbot_service, render_service, session_service
from .auth_service import AuthEvent, AuthEventType

logger = logging.getLogger(__name__)

Publisher = Callable[[], Awaitable[None]]

AUTH_MODES = ("sign_in", "sign_up")


async def _no_publish() -> None:
    return None


async def _push(publish: Publisher) -> None:
    """Sends a state update; a gone client must not interrupt a turn."""
    try:
        await publish()
    except Exception as e:
        logger.warning("Dropped a state update for a closed client: %s", e)


class ChatWorkspace:
    def __init__(self, context: AppContext):
        self.context = context
        self.user: Optional[AuthenticatedUser] = None
        self.token: Optional[str] = None
        self.auth_mode = "sign_in"
        self.auth_loading = False
        self.notice: Optional[str] = None
        self.error: Optional[str] = None
        self.retryable = False
        self.sessions: List = []
        self.active_session_id: Optional[str] = None
        self.messages: List = []
        self.draft = ""
        self.loading = False
        self.show_sidebar = True

    # --- State helpers ---

    @property
    def authenticated(self) -> bool:
        return self.user is not None

    def _clear_banner(self) -> None:
        self.error = None
        self.retryable = False

    def _show_error(self, error: AppError) -> None:
        self.error = error.message
        self.retryable = isinstance(error, PersistenceError)

    def _reset(self) -> None:
        self.user = None
        self.token = None
        self.sessions = []
        self.messages = []
        self.active_session_id = None
        self.draft = ""
        self.loading = False

    def _adopt_session(self, token: str, user: AuthenticatedUser) -> None:
        self.user = user
        self.token = token
        self.notice = None
        self._clear_banner()
        self.refresh_sessions()

    # --- Authentication gate ---

    def toggle_auth_mode(self) -> None:
        self.auth_mode = "sign_up" if self.auth_mode == "sign_in" else "sign_in"
        self.notice = None
        self._clear_banner()

    def submit_auth(self, email: str, password: str, redirect_to: Optional[str] = None) -> None:
        """Signs in or signs up depending on the current mode."""
        self.auth_loading = True
        self.notice = None
        self._clear_banner()
        try:
            with self.context.open_db() as db:
                if self.auth_mode == "sign_up":
                    self.notice = self.context.identity.sign_up(db, email, password, redirect_to)
                    return
                session = self.context.identity.sign_in(db, email, password)
            self._adopt_session(session.access_token, session.user)
        except (AuthError, PersistenceError) as e:
            self._show_error(e)
        finally:
            self.auth_loading = False

    def restore(self, token: str) -> bool:
        """Re-enters the authenticated view from an existing token (reconnect, confirmation redirect)."""
        try:
            with self.context.open_db() as db:
                user = self.context.identity.get_current_session(db, token)
        except PersistenceError as e:
            self._show_error(e)
            return False
        if user is None:
            return False
        self._adopt_session(token, user)
        return True

    def sign_out(self) -> None:
        if self.token:
            try:
                with self.context.open_db() as db:
                    self.context.identity.sign_out(db, self.token)
            except PersistenceError as e:
                logger.warning("Sign-out could not revoke the token: %s", e.message)
        self._reset()
        self._clear_banner()

    def handle_auth_event(self, event: AuthEvent) -> bool:
        """
        Reacts to identity-gateway notifications about this workspace's own
        token. Returns True when the state changed.
        """
        if self.token is None or security.hash_token(self.token) != event.token_hash:
            return False
        if event.type is AuthEventType.SIGNED_OUT:
            self._reset()
            self.notice = "You have been signed out."
            return True
        if event.type is AuthEventType.TOKEN_REFRESHED and event.session is not None:
            self.token = event.session.access_token
            self.user = event.session.user
            return True
        return False

    # --- Session list ---

    def refresh_sessions(self) -> None:
        """One session-list fetch; keeps the selection or picks the newest session."""
        try:
            with self.context.open_db() as db:
                data = session_service.load_workspace(db, self.user, self.active_session_id)
        except PersistenceError as e:
            self._show_error(e)
            return
        self.sessions = data.sessions
        self.active_session_id = data.active_session_id
        self.messages = data.messages

    def create_session(self) -> None:
        if not self.authenticated:
            return
        try:
            with self.context.open_db() as db:
                row = session_service.create_session(db, self.user)
        except PersistenceError as e:
            self._show_error(e)
            return
        self._clear_banner()
        self.sessions = [row, *self.sessions]
        self.active_session_id = row.id
        self.messages = []

    def select_session(self, session_id: str) -> None:
        if not self.authenticated:
            return
        try:
            with self.context.open_db() as db:
                messages = chatbot_service.get_messages(db, self.user, session_id)
        except (NotFoundError, PersistenceError) as e:
            self._show_error(e)
            return
        self._clear_banner()
        self.active_session_id = session_id
        self.messages = messages

    # --- Message thread ---

    def set_draft(self, text: str) -> None:
        self.draft = text

    async def send_message(self, publish: Publisher = _no_publish) -> bool:
        """
        Runs one turn from the current draft. Returns False without touching
        the store when the draft is blank, no session is active, or a turn
        is already in flight.
        """
        if self.loading or not self.authenticated:
            return False
        text = self.draft
        if not text.strip() or not self.active_session_id:
            return False

        session_id = self.active_session_id
        self.loading = True
        self._clear_banner()
        await _push(publish)

        async def _show_question(row) -> None:
            self.draft = ""
            if self.active_session_id == session_id:
                self.messages = [*self.messages, row]
            await _push(publish)

        try:
            with self.context.open_db() as db:
                result = await chatbot_service.send_message(
                    db, self.context.assistant, self.user, session_id, text,
                    on_user_message=_show_question,
                )
            # The user may have switched threads while waiting.
            if self.active_session_id == session_id:
                self.messages = [*self.messages, result.assistant_message]
            return True
        except (MessageRejected, NotFoundError, PersistenceError) as e:
            self._show_error(e)
            return False
        finally:
            self.loading = False

    def toggle_sidebar(self) -> None:
        self.show_sidebar = not self.show_sidebar

    # --- Event dispatch ---

    async def dispatch(self, event: Dict, publish: Publisher = _no_publish) -> None:
        """Applies one client event of the form {"type": ..., "payload": {...}}."""
        kind = event.get("type")
        payload = event.get("payload") or {}

        if kind in AUTH_MODES:
            self.auth_mode = kind
            self.submit_auth(payload.get("email", ""), payload.get("password", ""), payload.get("redirect_to"))
        elif kind == "toggle_auth_mode":
            self.toggle_auth_mode()
        elif kind == "restore":
            if not self.restore(payload.get("token", "")):
                self.error = self.error or "Your session has expired. Please sign in again."
        elif kind == "sign_out":
            self.sign_out()
        elif kind == "toggle_sidebar":
            self.toggle_sidebar()
        elif not self.authenticated:
            self.error = "Please sign in first."
        elif kind == "new_session":
            self.create_session()
        elif kind == "select_session":
            self.select_session(payload.get("session_id", ""))
        elif kind == "set_draft":
            self.set_draft(payload.get("text", ""))
        elif kind == "send_message":
            if "text" in payload and not self.loading:
                self.set_draft(payload["text"])
            await self.send_message(publish)
        else:
            self.error = f"Unknown event type: {kind!r}"

    # --- Rendering ---

    def snapshot(self) -> WorkspaceView:
        return WorkspaceView(
            authenticated=self.authenticated,
            user=self.user,
            auth_mode=self.auth_mode,
            notice=self.notice,
            error=self.error,
            retryable=self.retryable,
            sessions=render_service.render_sessions(self.sessions, self.active_session_id),
            active_session_id=self.active_session_id,
            has_active_session=self.active_session_id is not None,
            messages=render_service.render_messages(self.messages),
            draft=self.draft,
            loading=self.loading,
            auth_loading=self.auth_loading,
            show_sidebar=self.show_sidebar,
        )
