"""Data models for the payroll chat client."""

from .agent_message import AgentMessage, ImageFileContent, ListOrder, MessageRole, TextContent
from .agent_run import AgentRun, RunCompleted, RunEnded, RunError, RunOutcome, RunStatus, TERMINAL_STATUSES
from .agent_session import AgentSession
from .attachment import Attachment, AttachmentRejected

__all__ = [
    "AgentMessage",
    "AgentRun",
    "AgentSession",
    "Attachment",
    "AttachmentRejected",
    "ImageFileContent",
    "ListOrder",
    "MessageRole",
    "RunCompleted",
    "RunEnded",
    "RunError",
    "RunOutcome",
    "RunStatus",
    "TERMINAL_STATUSES",
    "TextContent",
]
