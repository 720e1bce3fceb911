# /oracle_assistant/services/chatbot_service.py

"""
Business logic for a single conversation thread: loading its messages and
running one question/answer turn.

A turn is strictly sequential: persist the user's message, ask the assistant
gateway, persist the reply. The rows handed back are the ones the store
returned, so ids and timestamps are always the server's.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from ..core.errors import MessageRejected
from ..models.auth_model import AuthenticatedUser
from ..models.chatbot_model import MessageRole
from .database_service import DatabaseService
from .gemini_service import GeminiAssistantGateway
from .session_service import get_owned_session

logger = logging.getLogger(__name__)


@dataclass
class TurnResult:
    user_message: object
    assistant_message: object
    degraded: bool


def get_messages(db: DatabaseService, user: AuthenticatedUser, session_id: str) -> List:
    """Messages of one of the user's sessions, oldest first."""
    get_owned_session(db, user, session_id)
    return db.get_messages_by_session_id(session_id)


def _message_record(session_id: str, role: MessageRole, content: str, degraded: bool = False) -> dict:
    return {
        "id": f"msg_{uuid.uuid4().hex[:12]}",
        "session_id": session_id,
        "role": role.value,
        "content": content,
        "degraded": degraded,
    }


async def send_message(
    db: DatabaseService,
    assistant: GeminiAssistantGateway,
    user: AuthenticatedUser,
    session_id: Optional[str],
    text: str,
    on_user_message: Optional[Callable[[object], Awaitable[None]]] = None,
) -> TurnResult:
    """
    Runs one turn and returns both persisted rows.

    `on_user_message` is awaited as soon as the user's row is stored, before
    the assistant is asked, so a screen can show the question immediately.
    """
    if not session_id:
        raise MessageRejected("Select or start a chat session first.")
    if not text or not text.strip():
        raise MessageRejected("Message cannot be empty.")
    get_owned_session(db, user, session_id)

    user_message = db.add_chat_message(_message_record(session_id, MessageRole.USER, text))
    if on_user_message is not None:
        await on_user_message(user_message)

    reply = await assistant.ask(text)
    if reply.degraded:
        logger.warning("Session %s received a degraded reply: %s", session_id, reply.error)

    assistant_message = db.add_chat_message(
        _message_record(session_id, MessageRole.ASSISTANT, reply.text, degraded=reply.degraded)
    )
    return TurnResult(user_message=user_message, assistant_message=assistant_message, degraded=reply.degraded)
