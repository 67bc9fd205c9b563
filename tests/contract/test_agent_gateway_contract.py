"""Contract tests for the agent gateway interface and the service's wire payloads."""

import inspect

import pytest
from pydantic import ValidationError

from payroll_chat.models.agent_message import AgentMessage, MessageRole
from payroll_chat.models.agent_run import AgentRun, RunStatus
from payroll_chat.models.agent_session import AgentSession
from payroll_chat.services.agent_gateway import AgentGateway
from payroll_chat.services.http_agent_gateway import HttpAgentGateway


GATEWAY_OPERATIONS = [
    "create_session",
    "post_message",
    "start_run",
    "get_run",
    "list_messages",
    "upload_attachment",
]


class TestAgentGatewayInterface:
    """Contract tests for the gateway abstraction."""

    def test_operations_are_abstract(self):
        assert AgentGateway.__abstractmethods__ == frozenset(GATEWAY_OPERATIONS)

        with pytest.raises(TypeError):
            AgentGateway()

    @pytest.mark.parametrize("operation", GATEWAY_OPERATIONS + ["close"])
    def test_operations_are_coroutines(self, operation):
        assert inspect.iscoroutinefunction(getattr(AgentGateway, operation))
        assert inspect.iscoroutinefunction(getattr(HttpAgentGateway, operation))

    def test_signatures_match(self):
        for operation in GATEWAY_OPERATIONS:
            declared = inspect.signature(getattr(AgentGateway, operation))
            implemented = inspect.signature(getattr(HttpAgentGateway, operation))
            assert list(declared.parameters) == list(implemented.parameters), operation

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, gateway):
        async with gateway as entered:
            assert entered is gateway

        assert gateway.closed


class TestThreadPayloadContract:

    def test_minimal_thread(self):
        session = AgentSession.from_wire({"id": "thread_abc"})

        assert session.session_id == "thread_abc"
        assert session.created_at is not None

    def test_thread_without_id_rejected(self):
        with pytest.raises(KeyError):
            AgentSession.from_wire({"object": "thread"})


class TestMessagePayloadContract:
    """Contract tests for thread.message payloads."""

    def test_user_message(self):
        message = AgentMessage.from_wire({
            "id": "msg_1",
            "thread_id": "thread_1",
            "role": "user",
            "content": [{"type": "text", "text": {"value": "What is my net pay?", "annotations": []}}],
        })

        assert message.role == MessageRole.USER
        assert message.text == "What is my net pay?"

    def test_message_without_content(self):
        message = AgentMessage.from_wire({
            "id": "msg_1",
            "thread_id": "thread_1",
            "role": "assistant",
            "content": [],
        })

        assert message.is_agent
        assert message.content == []
        assert message.text == ""

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError):
            AgentMessage.from_wire({"id": "msg_1", "thread_id": "thread_1", "role": "tool", "content": []})


class TestRunPayloadContract:
    """Contract tests for thread.run payloads."""

    @pytest.mark.parametrize("status", [s.value for s in RunStatus])
    def test_every_status_accepted(self, status):
        run = AgentRun.from_wire({"id": "run_1", "thread_id": "thread_1", "status": status})

        assert run.status.value == status

    def test_last_error_shape(self):
        run = AgentRun.from_wire({
            "id": "run_1",
            "thread_id": "thread_1",
            "status": "failed",
            "last_error": {"code": "server_error", "message": "Something went wrong"},
        })

        assert run.last_error.code == "server_error"
        assert run.failure_message() == "Something went wrong"

    def test_blank_run_id_rejected(self):
        with pytest.raises(ValidationError):
            AgentRun(run_id="", session_id="thread_1", status=RunStatus.QUEUED)
