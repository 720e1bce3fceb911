# /oracle_assistant/core/errors.py

"""
The error taxonomy shared by services and routers.

Services raise these; the routers (through the handlers registered in
`main.py`) and the WebSocket workspace turn them into user-facing messages.
"""


class AppError(Exception):
    """Base class for every error the application raises on purpose."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(AppError):
    """Startup configuration is missing or malformed."""


class AuthError(AppError):
    """The identity gateway refused a request. The message is shown verbatim."""


class PersistenceError(AppError):
    """A session store call failed. The user may retry the same action."""

    retryable = True


class AssistantGatewayError(AppError):
    """The generative model call failed or produced nothing usable."""


class MessageRejected(AppError):
    """A send was refused before anything was persisted."""


class NotFoundError(AppError):
    """The record does not exist or does not belong to the caller."""
