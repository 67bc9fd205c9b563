"""AgentSession model."""

from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class AgentSession(BaseModel):
    """Server-tracked conversation issued by the remote service.

    Exactly one session is live per client process. It is created at startup,
    never mutated, and discarded when the process exits.
    """

    model_config = ConfigDict(frozen=True)

    session_id: str = Field(..., min_length=1, description="Opaque session identifier")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Session creation timestamp"
    )

    @classmethod
    def from_wire(cls, payload: Dict[str, Any]) -> "AgentSession":
        created = payload.get("created_at")
        if created is None:
            return cls(session_id=payload["id"])
        return cls(
            session_id=payload["id"],
            created_at=datetime.fromtimestamp(int(created), tz=timezone.utc)
        )
