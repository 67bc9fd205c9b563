"""
Error taxonomy for the payroll chat client.

Gateway errors describe a failed remote primitive, run errors describe a run
that reached a terminal status other than completed, and turn errors wrap
either of those at the session orchestrator boundary.
"""

from typing import Optional


class ChatError(Exception):
    """Base class for all payroll chat errors."""
    pass


class GatewayError(ChatError):
    """A remote agent service call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ConnectivityError(GatewayError):
    """Network failure or the service is unavailable."""
    pass


class AuthError(GatewayError):
    """The credential was rejected by the service."""
    pass


class RequestValidationError(GatewayError):
    """The service rejected a malformed request."""
    pass


class NotFoundError(GatewayError):
    """Unknown agent, session or run identifier."""
    pass


class SizeLimitError(GatewayError):
    """Attachment exceeds the size accepted by the service."""
    pass


class RunFailedError(ChatError):
    """A run reached a terminal status other than completed."""

    def __init__(self, status: str, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


class TurnError(ChatError):
    """A turn could not be completed.

    The session stays usable; ``user_message_recorded`` tells whether the
    user's content already became part of the conversation.
    """

    def __init__(self, message: str, cause: Exception, user_message_recorded: bool = False):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.user_message_recorded = user_message_recorded


class OperationCancelledError(ChatError):
    """The user aborted an in-flight operation."""

    def __init__(self, message: str = "Operation cancelled by user"):
        super().__init__(message)
