# /oracle_assistant/services/database_service.py

from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional
from datetime import datetime

from sqlalchemy.orm import Session, sessionmaker

from .database_helpers.chat_repository_sql import ChatRepositorySQL
from .database_helpers.auth_repository_sql import AuthRepositorySQL


class DatabaseService:
    def __init__(self, db_session: Session):
        """
        Facade over the SQL repositories. One instance wraps one SQLAlchemy
        session and is never shared between requests.
        """
        self.chat_repo = ChatRepositorySQL(db_session)
        self.auth_repo = AuthRepositorySQL(db_session)

    # --- CHAT SESSION METHODS (DELEGATED) ---
    def create_chat_session(self, session_record: Dict): return self.chat_repo.create_session(session_record)
    def get_chat_sessions_by_user_id(self, user_id: str) -> List: return self.chat_repo.get_sessions_by_user_id(user_id)
    def get_chat_session_by_id(self, session_id: str) -> Optional[object]: return self.chat_repo.get_session_by_id(session_id)

    # --- CHAT MESSAGE METHODS (DELEGATED) ---
    def add_chat_message(self, message_record: Dict): return self.chat_repo.add_message(message_record)
    def get_messages_by_session_id(self, session_id: str) -> List: return self.chat_repo.get_messages_by_session_id(session_id)

    # --- IDENTITY METHODS (DELEGATED) ---
    def add_user(self, user_record: Dict): return self.auth_repo.add_user(user_record)
    def get_user_by_email(self, email: str): return self.auth_repo.get_user_by_email(email)
    def get_user_by_confirmation_hash(self, token_hash: str): return self.auth_repo.get_user_by_confirmation_hash(token_hash)
    def mark_email_confirmed(self, user, confirmed_at: datetime): return self.auth_repo.mark_email_confirmed(user, confirmed_at)
    def add_auth_session(self, session_record: Dict): return self.auth_repo.add_session(session_record)
    def get_live_auth_session(self, token_hash: str, now: datetime): return self.auth_repo.get_live_session(token_hash, now)
    def delete_auth_session(self, token_hash: str) -> bool: return self.auth_repo.delete_session(token_hash)


@contextmanager
def open_db_service(session_factory: sessionmaker) -> Iterator[DatabaseService]:
    """Opens a short-lived DatabaseService outside of a request (e.g. WebSocket events)."""
    db = session_factory()
    try:
        yield DatabaseService(db)
    finally:
        db.close()
