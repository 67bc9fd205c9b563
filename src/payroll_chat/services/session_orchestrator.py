"""Session orchestrator sequencing turns against the remote agent service."""

import logging
from typing import Optional

from opentelemetry import trace

from payroll_chat.lib.cancellation import CancellationToken
from payroll_chat.lib.errors import AuthError, GatewayError, RunFailedError, TurnError
from payroll_chat.lib.logging_config import get_audit_logger
from payroll_chat.lib.metrics import ChatMetrics, TurnTimer, get_metrics
from payroll_chat.models.agent_message import AgentMessage, ImageFileContent, ListOrder, MessageRole, TextContent
from payroll_chat.models.agent_run import AgentRun
from payroll_chat.models.agent_session import AgentSession
from payroll_chat.models.attachment import Attachment, AttachmentRejected
from payroll_chat.models.display_events import (
    AgentReplyImageRef,
    AgentReplyText,
    EventSink,
    ProgressTick,
    SessionStarted,
    TurnFailed,
    TurnStarted,
    UploadCompleted,
    UploadRejected,
    UploadStarted,
)
from payroll_chat.services.agent_gateway import AgentGateway
from payroll_chat.services.run_poller import RunPoller


logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)
audit_logger = get_audit_logger()


def _discard(event) -> None:
    pass


class SessionOrchestrator:
    """Owns one session and runs its turns one at a time, end to end.

    At most one turn is in flight: every step is awaited in sequence, so a new
    run is never started while the previous one is non-terminal. A failed turn
    leaves the session usable for the next one.
    """

    def __init__(
        self,
        gateway: AgentGateway,
        session: AgentSession,
        agent_id: str,
        poller: Optional[RunPoller] = None,
        emit: Optional[EventSink] = None,
        max_upload_bytes: Optional[int] = None,
        metrics: Optional[ChatMetrics] = None
    ):
        """Initialize the orchestrator.

        Args:
            gateway: Remote agent gateway
            session: The live session all turns are submitted to
            agent_id: Agent that runs every turn
            poller: Run poller, defaults to one over ``gateway``
            emit: Display event sink
            max_upload_bytes: Local size ceiling for attachments
            metrics: Metrics collector
        """
        self.gateway = gateway
        self.session = session
        self.agent_id = agent_id
        self.poller = poller or RunPoller(gateway)
        self.emit = emit or _discard
        self.max_upload_bytes = max_upload_bytes
        self.metrics = metrics or get_metrics()
        self.turn_count = 0

    @classmethod
    async def start(
        cls,
        gateway: AgentGateway,
        agent_id: str,
        token: CancellationToken,
        poller: Optional[RunPoller] = None,
        emit: Optional[EventSink] = None,
        max_upload_bytes: Optional[int] = None
    ) -> "SessionOrchestrator":
        """Create a new remote session and an orchestrator bound to it.

        Raises:
            AuthError: If the credential is rejected
            ConnectivityError: If the service cannot be reached
            OperationCancelledError: If the token is cancelled
        """
        try:
            session = await token.run(gateway.create_session())
        except GatewayError as e:
            logger.error(f"Failed to create session: {e}")
            audit_logger.log_session_event("session_created", "-", "failed", {"error": str(e)})
            raise

        logger.info("Created new session: %s", session.session_id)
        audit_logger.log_session_event("session_created", session.session_id, "success",
                                       {"agent_id": agent_id})

        orchestrator = cls(
            gateway=gateway,
            session=session,
            agent_id=agent_id,
            poller=poller,
            emit=emit,
            max_upload_bytes=max_upload_bytes
        )
        orchestrator.emit(SessionStarted(session_id=session.session_id))
        return orchestrator

    async def submit_turn(self, content: str, token: CancellationToken) -> Optional[AgentMessage]:
        """Post ``content`` as a user message, run the agent and return its reply.

        Returns:
            The most recent agent message, or None if the service returned none

        Raises:
            TurnError: If posting, running or listing fails
            OperationCancelledError: If the token is cancelled
        """
        user_message_recorded = False
        run: Optional[AgentRun] = None

        with tracer.start_as_current_span("chat.turn") as span:
            span.set_attribute("chat.session_id", self.session.session_id)
            span.set_attribute("chat.agent_id", self.agent_id)

            try:
                message = await token.run(
                    self.gateway.post_message(self.session, MessageRole.USER, content)
                )
                user_message_recorded = True
                logger.info("Sent message: %s", message.message_id)

                run = await token.run(self.gateway.start_run(self.session, self.agent_id))
                span.set_attribute("chat.run_id", run.run_id)
                logger.info("Created run: %s", run.run_id)

                outcome = await self.poller.wait_for_terminal(
                    self.session, run, token, on_tick=self._on_tick
                )
                run = outcome.run
                span.set_attribute("chat.run_status", run.status.value)
                outcome.unwrap()

                messages = await token.run(
                    self.gateway.list_messages(self.session, ListOrder.DESCENDING)
                )
            except (GatewayError, RunFailedError) as e:
                span.record_exception(e)
                raise TurnError(str(e), cause=e, user_message_recorded=user_message_recorded) from e

            self.turn_count += 1
            reply = next((m for m in messages if m.is_agent), None)
            if reply is None:
                logger.warning(
                    "Run %s completed but session %s has no agent message",
                    run.run_id, self.session.session_id
                )
            audit_logger.log_turn_event(self.session.session_id, "completed",
                                        run_id=run.run_id, run_status=run.status.value)
            return reply

    async def run_turn(self, content: str, token: CancellationToken) -> Optional[AgentMessage]:
        """Run a turn and report its result as display events.

        Turn failures are logged and surfaced as TurnFailed; they never end the
        session. Cancellation propagates to the caller.
        """
        self.emit(TurnStarted())

        with TurnTimer(self.metrics) as timer:
            try:
                reply = await self.submit_turn(content, token)
            except TurnError as e:
                timer.fail(e.cause)
                logger.error(f"Error processing user message: {e}")
                audit_logger.log_turn_event(
                    self.session.session_id,
                    "failed",
                    run_status=getattr(e.cause, "status", None),
                    error=str(e)
                )
                self.emit(TurnFailed(message=_describe_failure(e)))
                return None

        if reply is not None:
            self._emit_reply(reply)
        return reply

    async def attach_file(self, path: str, token: CancellationToken) -> Optional[AgentMessage]:
        """Upload a local file and announce it to the agent in a normal turn.

        Invalid paths are rejected before any gateway call.
        """
        try:
            attachment = Attachment.from_path(path, max_bytes=self.max_upload_bytes)
        except AttachmentRejected as e:
            logger.info("Upload rejected: %s", e)
            self.emit(UploadRejected(reason=str(e)))
            return None

        self.emit(UploadStarted(file_name=attachment.file_name, byte_size=attachment.byte_size))
        logger.info("Starting file upload: %s (%d bytes)", attachment.file_name, attachment.byte_size)

        try:
            data = attachment.read_bytes()
        except OSError as e:
            logger.error(f"Error reading file {attachment.local_path}: {e}")
            self.emit(UploadRejected(reason=f"Could not read file: {e}"))
            return None

        try:
            attachment.remote_file_id = await token.run(
                self.gateway.upload_attachment(data, attachment.file_name)
            )
        except GatewayError as e:
            logger.error(f"Error uploading file {attachment.local_path}: {e}")
            self.metrics.record_upload(attachment.byte_size, success=False)
            audit_logger.log_upload_event(self.session.session_id, attachment.file_name,
                                          attachment.byte_size, "failed", error=str(e))
            self.emit(TurnFailed(message=f"Error uploading file: {e.message}"))
            return None

        self.metrics.record_upload(attachment.byte_size, success=True)
        audit_logger.log_upload_event(self.session.session_id, attachment.file_name,
                                      attachment.byte_size, "success",
                                      remote_file_id=attachment.remote_file_id)
        self.emit(UploadCompleted(file_name=attachment.file_name,
                                  remote_file_id=attachment.remote_file_id))

        return await self.run_turn(attachment.to_notice(), token)

    def _on_tick(self, run: AgentRun) -> None:
        self.metrics.record_poll(run.status.value)
        self.emit(ProgressTick(status=run.status.value))

    def _emit_reply(self, reply: AgentMessage) -> None:
        for part in reply.content:
            if isinstance(part, TextContent):
                self.emit(AgentReplyText(text=part.text))
            elif isinstance(part, ImageFileContent):
                self.emit(AgentReplyImageRef(file_id=part.file_id))


def _describe_failure(error: TurnError) -> str:
    cause = error.cause
    if isinstance(cause, RunFailedError):
        return f"Run failed or was canceled: {cause.message}"
    if isinstance(cause, AuthError):
        return f"Not authorized: {cause.message}"
    return f"Error processing message: {error.message}"
