# /oracle_assistant/main.py

import logging
from contextlib import asynccontextmanager
from typing import Optional

# --- Core FastAPI Imports ---
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# --- Application-specific Imports ---
from .core.config import get_settings
from .core.context import AppContext, build_context
from .core.errors import AuthError, MessageRejected, NotFoundError, PersistenceError
from .core.logging import configure_logging
from .routers import auth_router, chatbot_router

logger = logging.getLogger(__name__)


# --- Application Lifecycle Management ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    # A context handed to create_app() (tests, embedding) is used as-is.
    # Otherwise configuration is loaded here, so a missing API key stops startup.
    if getattr(app.state, "context", None) is None:
        settings = get_settings()
        configure_logging(settings.log_level)
        app.state.context = build_context(settings)
    yield


# --- Error Translation ---
def _error_response(status_code: int, detail: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail, **extra})


async def _auth_error_handler(request: Request, exc: AuthError):
    return _error_response(status.HTTP_400_BAD_REQUEST, exc.message)


async def _persistence_error_handler(request: Request, exc: PersistenceError):
    return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, exc.message, retryable=exc.retryable)


async def _rejected_handler(request: Request, exc: MessageRejected):
    return _error_response(status.HTTP_400_BAD_REQUEST, exc.message)


async def _not_found_handler(request: Request, exc: NotFoundError):
    return _error_response(status.HTTP_404_NOT_FOUND, exc.message)


# --- FastAPI Application Factory ---
def create_app(context: Optional[AppContext] = None) -> FastAPI:
    app = FastAPI(
        title="Oracle Support Assistant API",
        description="Multi-session chat with an assistant specialised in Oracle Database documentation.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.context = context

    # --- Middleware Configuration ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AuthError, _auth_error_handler)
    app.add_exception_handler(PersistenceError, _persistence_error_handler)
    app.add_exception_handler(MessageRejected, _rejected_handler)
    app.add_exception_handler(NotFoundError, _not_found_handler)

    # --- API Router Inclusion ---
    app.include_router(auth_router.router, prefix="/api/auth", tags=["Auth"])
    app.include_router(chatbot_router.router, prefix="/api/chat", tags=["Chat"])

    # --- Root / Health Check Endpoint ---
    @app.get("/", tags=["Health Check"])
    async def read_root():
        """A simple health check endpoint to confirm the API is online."""
        return {"status": "Oracle Support Assistant is running!", "version": app.version}

    return app


app = create_app()
