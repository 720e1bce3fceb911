# /oracle_assistant/core/context.py

"""
The application context: built once at startup and passed explicitly to the
routers and workspaces instead of living in module-level globals.
"""

import logging
from dataclasses import dataclass
from typing import ContextManager, Optional

from sqlalchemy.orm import sessionmaker

from ..db.database import build_engine, build_session_factory, init_db
from ..services.auth_service import IdentityGateway
from ..services.database_service import DatabaseService, open_db_service
from ..services.gemini_service import GeminiAssistantGateway
from .config import Settings

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    session_factory: sessionmaker
    identity: IdentityGateway
    assistant: GeminiAssistantGateway

    def open_db(self) -> ContextManager[DatabaseService]:
        return open_db_service(self.session_factory)


def build_context(settings: Settings, assistant: Optional[GeminiAssistantGateway] = None) -> AppContext:
    engine = build_engine(settings.database_url)
    init_db(engine)
    if assistant is None:
        assistant = GeminiAssistantGateway(
            api_key=settings.google_api_key,
            model_name=settings.gemini_model,
            timeout_seconds=settings.assistant_timeout_seconds,
        )
    logger.info(
        "Session store ready at %s; assistant model %s.",
        engine.url.render_as_string(hide_password=True),
        settings.gemini_model,
    )
    return AppContext(
        settings=settings,
        session_factory=build_session_factory(engine),
        identity=IdentityGateway(settings),
        assistant=assistant,
    )
