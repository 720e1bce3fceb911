# /oracle_assistant/db/base.py

# This file acts as a central registry for all our SQLAlchemy models.
# Importing them here guarantees the Base metadata knows every table
# before `create_all` runs at startup.

from .base_class import Base

from .models.chat_models import ChatSession, ChatMessage
from .models.user_models import AuthUser, AuthSession
