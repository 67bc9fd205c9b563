"""AgentRun model, run status state machine and run outcomes."""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from payroll_chat.lib.errors import RunFailedError


class RunStatus(str, Enum):
    """Run status values reported by the remote service."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition can occur from this status."""
        return self in TERMINAL_STATUSES

    @property
    def rank(self) -> int:
        """Position in the queued -> in progress -> terminal ordering."""
        if self is RunStatus.QUEUED:
            return 0
        if self.is_terminal:
            return 2
        return 1


TERMINAL_STATUSES = frozenset({
    RunStatus.COMPLETED,
    RunStatus.FAILED,
    RunStatus.CANCELLED,
    RunStatus.EXPIRED,
})


class RunError(BaseModel):
    """Failure reason supplied by the service for an unsuccessful run."""

    model_config = ConfigDict(frozen=True)

    code: Optional[str] = None
    message: Optional[str] = None


class AgentRun(BaseModel):
    """A server-side unit of work processing one turn's user message."""

    model_config = ConfigDict(frozen=True)

    run_id: str = Field(..., min_length=1, description="Remote run identifier")
    session_id: str = Field(..., min_length=1, description="Session the run belongs to")
    agent_id: Optional[str] = Field(None, description="Agent executing the run")
    status: RunStatus = Field(..., description="Last status read from the service")
    last_error: Optional[RunError] = Field(None, description="Failure reason, if any")

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def failure_message(self) -> str:
        """Remote failure reason if present, else a synthesized one."""
        if self.last_error and self.last_error.message:
            return self.last_error.message
        return f"Run ended with status: {self.status.value}"

    @classmethod
    def from_wire(cls, payload: Dict[str, Any]) -> "AgentRun":
        error = payload.get("last_error")
        return cls(
            run_id=payload["id"],
            session_id=payload["thread_id"],
            agent_id=payload.get("assistant_id"),
            status=RunStatus(payload["status"]),
            last_error=RunError(**error) if error else None
        )


class RunCompleted(BaseModel):
    """Run reached the completed status."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["completed"] = "completed"
    run: AgentRun
    history: List[RunStatus] = Field(
        default_factory=list,
        description="Statuses in the order first observed; a status seen again is not repeated"
    )

    @property
    def succeeded(self) -> bool:
        return True

    def unwrap(self) -> AgentRun:
        return self.run


class RunEnded(BaseModel):
    """Run stopped without completing: failed, cancelled, expired or timed out locally."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["ended"] = "ended"
    run: AgentRun
    status: RunStatus
    message: str
    history: List[RunStatus] = Field(
        default_factory=list,
        description="Statuses in the order first observed; a status seen again is not repeated"
    )

    @property
    def succeeded(self) -> bool:
        return False

    def unwrap(self) -> AgentRun:
        """Raise the failure as a RunFailedError."""
        raise RunFailedError(status=self.status.value, message=self.message)


RunOutcome = Union[RunCompleted, RunEnded]
