# /oracle_assistant/services/session_service.py

"""
Business logic for the session list: listing a user's conversations,
starting a new one, and choosing which one is active.

Every function is scoped by the authenticated user; a session owned by
somebody else is reported exactly like a missing one.
"""

import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from ..core.errors import NotFoundError
from ..models.auth_model import AuthenticatedUser
from .database_service import DatabaseService

DEFAULT_SESSION_TITLE = "New Chat"


@dataclass
class WorkspaceData:
    """What the authenticated screen needs right after sign-in."""
    sessions: List = field(default_factory=list)
    active_session_id: Optional[str] = None
    messages: List = field(default_factory=list)


def list_sessions(db: DatabaseService, user: AuthenticatedUser) -> List:
    """All of the user's sessions, newest first."""
    return db.get_chat_sessions_by_user_id(user.id)


def get_owned_session(db: DatabaseService, user: AuthenticatedUser, session_id: str):
    session = db.get_chat_session_by_id(session_id)
    if not session or session.user_id != user.id:
        raise NotFoundError(f"Chat session with ID {session_id} not found or user does not have permission.")
    return session


def create_session(db: DatabaseService, user: AuthenticatedUser):
    """Inserts a session with the default title and returns the stored row."""
    session_record = {
        "id": f"session_{uuid.uuid4().hex[:12]}",
        "user_id": user.id,
        "title": DEFAULT_SESSION_TITLE,
        # created_at is assigned by the store
    }
    return db.create_chat_session(session_record)


def pick_active_session_id(sessions: List, current_session_id: Optional[str]) -> Optional[str]:
    """Keeps the current selection if it is still listed, otherwise picks the most recent session."""
    if current_session_id and any(s.id == current_session_id for s in sessions):
        return current_session_id
    return sessions[0].id if sessions else None


def load_workspace(
    db: DatabaseService,
    user: AuthenticatedUser,
    current_session_id: Optional[str] = None,
) -> WorkspaceData:
    """
    One session-list fetch, followed by the message fetch for whichever
    session ends up active.
    """
    sessions = list_sessions(db, user)
    active_session_id = pick_active_session_id(sessions, current_session_id)
    messages = db.get_messages_by_session_id(active_session_id) if active_session_id else []
    return WorkspaceData(sessions=sessions, active_session_id=active_session_id, messages=messages)
