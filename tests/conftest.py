"""Shared fixtures: an in-memory agent gateway with scripted run progress."""

from collections import deque
from typing import Deque, Dict, List, Optional, Tuple

import pytest

from payroll_chat.lib.cancellation import CancellationToken
from payroll_chat.lib.errors import GatewayError, NotFoundError
from payroll_chat.models.agent_message import AgentMessage, ListOrder, MessageRole, TextContent
from payroll_chat.models.agent_run import AgentRun, RunError, RunStatus
from payroll_chat.models.agent_session import AgentSession
from payroll_chat.services.agent_gateway import AgentGateway
from payroll_chat.services.run_poller import RunPoller


AGENT_ID = "asst_payroll"


class _RunScript:
    def __init__(self, statuses: Deque[RunStatus], reply, error: Optional[RunError]):
        self.statuses = statuses
        self.reply = reply
        self.error = error


class FakeAgentGateway(AgentGateway):
    """In-memory gateway.

    Each started run consumes the next queued script: the statuses returned by
    successive get_run calls (the last one repeats), the agent reply appended
    when the run completes, and an optional failure reason.
    """

    def __init__(self):
        self.calls: List[Tuple[str, ...]] = []
        self.messages: Dict[str, List[AgentMessage]] = {}
        self.runs: Dict[str, AgentRun] = {}
        self.uploads: Dict[str, bytes] = {}
        self.fail_on: Dict[str, GatewayError] = {}
        self.closed = False
        self._pending: Deque[_RunScript] = deque()
        self._scripts: Dict[str, _RunScript] = {}
        self._counter = 0

    def script_run(self, *statuses: RunStatus, reply=None, error: Optional[RunError] = None) -> None:
        """Queue the status sequence, reply and failure reason of the next run."""
        self._pending.append(_RunScript(deque(statuses or [RunStatus.COMPLETED]), reply, error))

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}_{self._counter}"

    def _check_failure(self, operation: str) -> None:
        error = self.fail_on.get(operation)
        if error is not None:
            raise error

    async def create_session(self) -> AgentSession:
        self.calls.append(("create_session",))
        self._check_failure("create_session")
        session = AgentSession(session_id=self._next_id("thread"))
        self.messages[session.session_id] = []
        return session

    async def post_message(self, session: AgentSession, role: MessageRole, content: str) -> AgentMessage:
        self.calls.append(("post_message", session.session_id, content))
        self._check_failure("post_message")
        message = AgentMessage(
            message_id=self._next_id("msg"),
            session_id=session.session_id,
            role=role,
            content=content
        )
        self.messages[session.session_id].append(message)
        return message

    async def start_run(self, session: AgentSession, agent_id: str) -> AgentRun:
        self.calls.append(("start_run", session.session_id, agent_id))
        self._check_failure("start_run")
        if agent_id != AGENT_ID:
            raise NotFoundError(f"Agent {agent_id} not found", 404)

        run = AgentRun(
            run_id=self._next_id("run"),
            session_id=session.session_id,
            agent_id=agent_id,
            status=RunStatus.QUEUED
        )
        self._scripts[run.run_id] = (
            self._pending.popleft() if self._pending
            else _RunScript(deque([RunStatus.COMPLETED]), None, None)
        )
        self.runs[run.run_id] = run
        return run

    async def get_run(self, session: AgentSession, run_id: str) -> AgentRun:
        self.calls.append(("get_run", session.session_id, run_id))
        self._check_failure("get_run")
        script = self._scripts[run_id]
        status = script.statuses.popleft() if len(script.statuses) > 1 else script.statuses[0]

        error = script.error if status.is_terminal else None
        run = self.runs[run_id].model_copy(update={"status": status, "last_error": error})
        self.runs[run_id] = run

        if status == RunStatus.COMPLETED and script.reply is not None:
            content = [TextContent(text=script.reply)] if isinstance(script.reply, str) else script.reply
            self.messages[session.session_id].append(AgentMessage(
                message_id=self._next_id("msg"),
                session_id=session.session_id,
                role=MessageRole.AGENT,
                content=content
            ))
            script.reply = None
        return run

    async def list_messages(self, session: AgentSession, order: ListOrder) -> List[AgentMessage]:
        self.calls.append(("list_messages", session.session_id, order.value))
        self._check_failure("list_messages")
        messages = list(self.messages[session.session_id])
        if order == ListOrder.DESCENDING:
            messages.reverse()
        return messages

    async def upload_attachment(self, data: bytes, file_name: str) -> str:
        self.calls.append(("upload_attachment", file_name))
        self._check_failure("upload_attachment")
        file_id = self._next_id("file")
        self.uploads[file_id] = data
        return file_id

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def gateway():
    """In-memory agent gateway."""
    return FakeAgentGateway()


@pytest.fixture
def session(gateway):
    """A session registered with the fake gateway."""
    session = AgentSession(session_id="thread_test")
    gateway.messages[session.session_id] = []
    return session


@pytest.fixture
def fast_poller(gateway):
    """Run poller with a short interval so tests stay quick."""
    return RunPoller(gateway, poll_interval=0.01)


@pytest.fixture
def token():
    return CancellationToken()


@pytest.fixture
def events():
    """List collecting emitted display events."""
    return []
