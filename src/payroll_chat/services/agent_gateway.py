"""Remote agent gateway interface."""

from abc import ABC, abstractmethod
from typing import List

from payroll_chat.models.agent_message import AgentMessage, ListOrder, MessageRole
from payroll_chat.models.agent_run import AgentRun
from payroll_chat.models.agent_session import AgentSession


class AgentGateway(ABC):
    """Abstracts the remote agent service's primitive operations.

    Implementations are pure request/response: no local state, no caching and
    no retries. Retrying is the caller's decision. Cancellation is applied by
    the caller awaiting these coroutines through a CancellationToken.
    """

    @abstractmethod
    async def create_session(self) -> AgentSession:
        """Create a new conversation session.

        Raises:
            ConnectivityError: If the service cannot be reached
            AuthError: If the credential is rejected
        """
        pass

    @abstractmethod
    async def post_message(
        self,
        session: AgentSession,
        role: MessageRole,
        content: str
    ) -> AgentMessage:
        """Append a message to the session.

        Raises:
            ConnectivityError: If the service cannot be reached
            RequestValidationError: If the service rejects the message
        """
        pass

    @abstractmethod
    async def start_run(self, session: AgentSession, agent_id: str) -> AgentRun:
        """Start a run of ``agent_id`` over the session's messages.

        Raises:
            ConnectivityError: If the service cannot be reached
            NotFoundError: If the agent or session is unknown
        """
        pass

    @abstractmethod
    async def get_run(self, session: AgentSession, run_id: str) -> AgentRun:
        """Read the current state of a run.

        Raises:
            ConnectivityError: If the service cannot be reached
        """
        pass

    @abstractmethod
    async def list_messages(self, session: AgentSession, order: ListOrder) -> List[AgentMessage]:
        """List every message of the session in the requested order.

        Raises:
            ConnectivityError: If the service cannot be reached
        """
        pass

    @abstractmethod
    async def upload_attachment(self, data: bytes, file_name: str) -> str:
        """Upload a file and return its remote file identifier.

        Raises:
            ConnectivityError: If the service cannot be reached
            RequestValidationError: If the service rejects the file
            SizeLimitError: If the file is too large
        """
        pass

    async def close(self) -> None:
        """Release transport resources."""
        pass

    async def __aenter__(self) -> "AgentGateway":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
