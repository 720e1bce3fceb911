# /oracle_assistant/models/workspace_model.py

from typing import List, Optional

from pydantic import BaseModel

from .auth_model import AuthenticatedUser, AuthSessionInfo
from .chatbot_model import MessageBubble, SessionListItem


class WorkspaceView(BaseModel):
    """
    Snapshot of everything the chat screen shows. Sent after every event on
    the WebSocket and returned by sign-in as the initial screen.
    """
    authenticated: bool
    user: Optional[AuthenticatedUser] = None
    auth_mode: str = "sign_in"
    notice: Optional[str] = None
    error: Optional[str] = None
    retryable: bool = False
    sessions: List[SessionListItem] = []
    active_session_id: Optional[str] = None
    has_active_session: bool = False
    messages: List[MessageBubble] = []
    draft: str = ""
    loading: bool = False
    auth_loading: bool = False
    show_sidebar: bool = True


class SignInResponse(BaseModel):
    session: AuthSessionInfo
    workspace: WorkspaceView
