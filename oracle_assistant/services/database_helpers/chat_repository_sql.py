# /oracle_assistant/services/database_helpers/chat_repository_sql.py

import logging
from typing import List, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...core.errors import PersistenceError
from ...db.models.chat_models import ChatSession, ChatMessage

logger = logging.getLogger(__name__)


class ChatRepositorySQL:
    def __init__(self, db_session: Session):
        self.db = db_session

    def _insert(self, row):
        try:
            self.db.add(row)
            self.db.commit()
            # Pull back the store-assigned values (created_at, defaults).
            self.db.refresh(row)
            return row
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Insert into %s failed: %s", row.__tablename__, e)
            raise PersistenceError(f"Could not save to {row.__tablename__}. Please try again.") from e

    def _select(self, query, table: str):
        try:
            return query.all()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Select from %s failed: %s", table, e)
            raise PersistenceError(f"Could not load {table}. Please try again.") from e

    # --- Chat Session Methods ---
    def create_session(self, record: Dict) -> ChatSession:
        return self._insert(ChatSession(**record))

    def get_sessions_by_user_id(self, user_id: str) -> List[ChatSession]:
        query = (
            self.db.query(ChatSession)
            .filter(ChatSession.user_id == user_id)
            .order_by(ChatSession.created_at.desc())
        )
        return self._select(query, ChatSession.__tablename__)

    def get_session_by_id(self, session_id: str) -> Optional[ChatSession]:
        try:
            return self.db.query(ChatSession).filter(ChatSession.id == session_id).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Lookup of chat session %s failed: %s", session_id, e)
            raise PersistenceError("Could not load the chat session. Please try again.") from e

    # --- Chat Message Methods ---
    def add_message(self, record: Dict) -> ChatMessage:
        return self._insert(ChatMessage(**record))

    def get_messages_by_session_id(self, session_id: str) -> List[ChatMessage]:
        query = (
            self.db.query(ChatMessage)
            .filter(ChatMessage.session_id == session_id)
            .order_by(ChatMessage.created_at.asc())
        )
        return self._select(query, ChatMessage.__tablename__)
