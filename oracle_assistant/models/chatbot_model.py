# /oracle_assistant/models/chatbot_model.py

from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class MessageBubble(BaseModel):
    """
    Render-ready view of one message: which side it sits on, its body as
    HTML, and a short time stamp.
    """
    id: str
    role: MessageRole
    align: str = Field(..., description="'right' for the user's messages, 'left' for the assistant's.")
    html: str
    time: str = Field(..., description="Creation time formatted as HH:MM.")
    degraded: bool = False


class SessionListItem(BaseModel):
    id: str
    title: str
    date: str = Field(..., description="Creation date formatted like 'Jan 5, 2025'.")
    active: bool = False


class SessionListResponse(BaseModel):
    sessions: List[SessionListItem]


class SessionMessagesResponse(BaseModel):
    session_id: str
    messages: List[MessageBubble]


class SendMessageRequest(BaseModel):
    text: str = Field(..., description="The user's question, stored verbatim.")


class SendMessageResponse(BaseModel):
    """Both rows persisted by one turn, user message first."""
    user_message: MessageBubble
    assistant_message: MessageBubble
    degraded: bool
