"""AgentMessage model with typed content parts."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MessageRole(str, Enum):
    """Message role enumeration."""

    USER = "user"
    AGENT = "agent"

    @classmethod
    def from_wire(cls, value: str) -> "MessageRole":
        """Map a remote role name onto the client's roles."""
        if value == "user":
            return cls.USER
        if value in ("assistant", "agent"):
            return cls.AGENT
        raise ValueError(f"Unknown message role: {value}")

    def to_wire(self) -> str:
        return "user" if self is MessageRole.USER else "assistant"


class ListOrder(str, Enum):
    """Sort order for listing session messages."""

    ASCENDING = "asc"
    DESCENDING = "desc"


class TextContent(BaseModel):
    """Plain text content part."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str = Field(..., description="Text of the content part")


class ImageFileContent(BaseModel):
    """Reference to an image file generated by the agent."""

    model_config = ConfigDict(frozen=True)

    type: Literal["image_file"] = "image_file"
    file_id: str = Field(..., min_length=1, description="Remote file identifier")


MessageContent = Annotated[Union[TextContent, ImageFileContent], Field(discriminator="type")]


class AgentMessage(BaseModel):
    """
    A message recorded in a session.

    Messages are immutable once returned by the remote service; the client
    only ever appends new ones by running new turns.
    """

    model_config = ConfigDict(frozen=True)

    message_id: str = Field(..., min_length=1, description="Remote message identifier")
    session_id: str = Field(..., min_length=1, description="Session the message belongs to")
    role: MessageRole = Field(..., description="Author role")
    content: List[MessageContent] = Field(default_factory=list, description="Ordered content parts")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the service recorded the message"
    )

    @field_validator("content", mode="before")
    @classmethod
    def wrap_plain_text(cls, v):
        """Accept a bare string as a single text part."""
        if isinstance(v, str):
            return [{"type": "text", "text": v}]
        return v

    @property
    def text(self) -> str:
        """All text parts joined by newlines."""
        return "\n".join(part.text for part in self.content if isinstance(part, TextContent))

    @property
    def is_agent(self) -> bool:
        return self.role == MessageRole.AGENT

    @classmethod
    def from_wire(cls, payload: Dict[str, Any]) -> "AgentMessage":
        """Build a message from the service's JSON representation.

        Content parts of unknown types are skipped.
        """
        parts: List[Union[TextContent, ImageFileContent]] = []
        for item in payload.get("content") or []:
            item_type = item.get("type")
            if item_type == "text":
                text = item.get("text")
                value = text.get("value", "") if isinstance(text, dict) else str(text or "")
                parts.append(TextContent(text=value))
            elif item_type == "image_file":
                parts.append(ImageFileContent(file_id=item["image_file"]["file_id"]))

        return cls(
            message_id=payload["id"],
            session_id=payload.get("thread_id", ""),
            role=MessageRole.from_wire(payload.get("role", "")),
            content=parts,
            created_at=_timestamp(payload.get("created_at"))
        )


def _timestamp(value: Optional[Any]) -> datetime:
    """Convert a unix timestamp from the wire, defaulting to now."""
    if value is None:
        return datetime.now(timezone.utc)
    return datetime.fromtimestamp(int(value), tz=timezone.utc)
