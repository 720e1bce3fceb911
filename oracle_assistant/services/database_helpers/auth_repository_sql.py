# /oracle_assistant/services/database_helpers/auth_repository_sql.py

import logging
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...core.errors import PersistenceError
from ...db.models.user_models import AuthUser, AuthSession

logger = logging.getLogger(__name__)


class AuthRepositorySQL:
    def __init__(self, db_session: Session):
        self.db = db_session

    def _commit(self, action: str):
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Auth store failed to %s: %s", action, e)
            raise PersistenceError(f"Could not {action}. Please try again.") from e

    def _first(self, query, action: str):
        try:
            return query.first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Auth store failed to %s: %s", action, e)
            raise PersistenceError(f"Could not {action}. Please try again.") from e

    # --- User Methods ---
    def add_user(self, record: Dict) -> AuthUser:
        user = AuthUser(**record)
        self.db.add(user)
        self._commit("create the account")
        self.db.refresh(user)
        return user

    def get_user_by_email(self, email: str) -> Optional[AuthUser]:
        query = self.db.query(AuthUser).filter(AuthUser.email == email)
        return self._first(query, "look up the account")

    def get_user_by_confirmation_hash(self, token_hash: str) -> Optional[AuthUser]:
        query = self.db.query(AuthUser).filter(AuthUser.confirmation_token_hash == token_hash)
        return self._first(query, "check the confirmation link")

    def mark_email_confirmed(self, user: AuthUser, confirmed_at: datetime) -> AuthUser:
        user.email_confirmed_at = confirmed_at
        user.confirmation_token_hash = None
        self._commit("confirm the e-mail address")
        return user

    # --- Session Token Methods ---
    def add_session(self, record: Dict) -> AuthSession:
        session = AuthSession(**record)
        self.db.add(session)
        self._commit("start the session")
        return session

    def get_live_session(self, token_hash: str, now: datetime) -> Optional[AuthSession]:
        query = (
            self.db.query(AuthSession)
            .join(AuthUser, AuthSession.user_id == AuthUser.id)
            .filter(AuthSession.token_hash == token_hash)
            .filter(AuthSession.expires_at > now)
        )
        return self._first(query, "check the session")

    def delete_session(self, token_hash: str) -> bool:
        try:
            deleted = self.db.query(AuthSession).filter(AuthSession.token_hash == token_hash).delete()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Auth store failed to end the session: %s", e)
            raise PersistenceError("Could not end the session. Please try again.") from e
        self._commit("end the session")
        return deleted > 0
