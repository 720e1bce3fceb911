# /oracle_assistant/services/render_service.py

"""
Turns stored rows into what the chat screen draws: message bubbles aligned by
role with HTML bodies and short time stamps, and session list entries.
"""

import html
from datetime import datetime, timezone
from typing import Iterable, List, Optional

import markdown

from ..models.chatbot_model import MessageBubble, MessageRole, SessionListItem

MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "sane_lists"]


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_message_time(value: datetime) -> str:
    return _as_utc(value).strftime("%H:%M")


def format_session_date(value: datetime) -> str:
    value = _as_utc(value)
    return f"{value:%b} {value.day}, {value.year}"


def render_markdown(text: str) -> str:
    return markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)


def render_plain_text(text: str) -> str:
    """User input is shown as typed: escaped, with line breaks kept."""
    return "<p>" + html.escape(text).replace("\n", "<br />") + "</p>"


def render_message(message) -> MessageBubble:
    role = MessageRole(message.role)
    is_user = role is MessageRole.USER
    return MessageBubble(
        id=message.id,
        role=role,
        align="right" if is_user else "left",
        html=render_plain_text(message.content) if is_user else render_markdown(message.content),
        time=format_message_time(message.created_at),
        degraded=bool(getattr(message, "degraded", False)),
    )


def render_messages(messages: Iterable) -> List[MessageBubble]:
    return [render_message(m) for m in messages]


def render_session(session, active_session_id: Optional[str] = None) -> SessionListItem:
    return SessionListItem(
        id=session.id,
        title=session.title,
        date=format_session_date(session.created_at),
        active=session.id == active_session_id,
    )


def render_sessions(sessions: Iterable, active_session_id: Optional[str] = None) -> List[SessionListItem]:
    return [render_session(s, active_session_id) for s in sessions]
