"""Structured display events emitted by the orchestration core.

The renderer owns all formatting; the core only produces these events.
"""

from typing import Callable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict


class _DisplayEvent(BaseModel):
    model_config = ConfigDict(frozen=True)


class SessionStarted(_DisplayEvent):
    kind: Literal["session_started"] = "session_started"
    session_id: str


class TurnStarted(_DisplayEvent):
    kind: Literal["turn_started"] = "turn_started"


class ProgressTick(_DisplayEvent):
    """One poll of the running turn."""

    kind: Literal["progress_tick"] = "progress_tick"
    status: Optional[str] = None


class AgentReplyText(_DisplayEvent):
    kind: Literal["agent_reply_text"] = "agent_reply_text"
    text: str


class AgentReplyImageRef(_DisplayEvent):
    kind: Literal["agent_reply_image_ref"] = "agent_reply_image_ref"
    file_id: str


class TurnFailed(_DisplayEvent):
    kind: Literal["turn_failed"] = "turn_failed"
    message: str


class UploadStarted(_DisplayEvent):
    kind: Literal["upload_started"] = "upload_started"
    file_name: str
    byte_size: int


class UploadCompleted(_DisplayEvent):
    kind: Literal["upload_completed"] = "upload_completed"
    file_name: str
    remote_file_id: str


class UploadRejected(_DisplayEvent):
    kind: Literal["upload_rejected"] = "upload_rejected"
    reason: str


DisplayEvent = Union[
    SessionStarted,
    TurnStarted,
    ProgressTick,
    AgentReplyText,
    AgentReplyImageRef,
    TurnFailed,
    UploadStarted,
    UploadCompleted,
    UploadRejected,
]

EventSink = Callable[[DisplayEvent], None]
