"""Run poller driving a single run to a terminal status."""

import logging
import time
from typing import Callable, Optional

from payroll_chat.lib.cancellation import CancellationToken
from payroll_chat.models.agent_run import AgentRun, RunCompleted, RunEnded, RunOutcome, RunStatus
from payroll_chat.models.agent_session import AgentSession
from payroll_chat.services.agent_gateway import AgentGateway


logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 0.5

TickCallback = Callable[[AgentRun], None]


class RunPoller:
    """Polls a run at a fixed interval until it reaches a terminal status.

    There is no retry ceiling unless ``max_wait_seconds`` is configured; the
    loop otherwise ends only at a terminal status or on cancellation.
    """

    def __init__(
        self,
        gateway: AgentGateway,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_wait_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if max_wait_seconds is not None and max_wait_seconds <= 0:
            raise ValueError("max_wait_seconds must be positive")

        self.gateway = gateway
        self.poll_interval = poll_interval
        self.max_wait_seconds = max_wait_seconds
        self._clock = clock

    async def wait_for_terminal(
        self,
        session: AgentSession,
        run: AgentRun,
        token: CancellationToken,
        on_tick: Optional[TickCallback] = None
    ) -> RunOutcome:
        """Poll ``run`` until it is terminal.

        Args:
            session: Session the run belongs to
            run: Run as returned by start_run
            token: Cancellation token observed before every read and during every sleep
            on_tick: Called with the run after every poll read

        Returns:
            RunCompleted, or RunEnded carrying the status and failure message

        Raises:
            OperationCancelledError: If the token is cancelled
            GatewayError: If a poll read fails
        """
        history = [run.status]
        current = run
        started = self._clock()

        while not current.is_terminal:
            await token.sleep(self.poll_interval)

            latest = await token.run(self.gateway.get_run(session, current.run_id))
            if on_tick:
                on_tick(latest)

            if latest.status.rank < current.status.rank:
                logger.warning(
                    "Discarding stale status %s for run %s (already %s)",
                    latest.status.value, current.run_id, current.status.value
                )
            else:
                if latest.status != current.status:
                    logger.debug(
                        "Run %s: %s -> %s",
                        current.run_id, current.status.value, latest.status.value
                    )
                    if latest.status not in history:
                        history.append(latest.status)
                current = latest

            if (not current.is_terminal and self.max_wait_seconds is not None
                    and self._clock() - started >= self.max_wait_seconds):
                logger.warning(
                    "Run %s still %s after %.1fs, giving up",
                    current.run_id, current.status.value, self.max_wait_seconds
                )
                return RunEnded(
                    run=current,
                    status=current.status,
                    message=f"Run did not finish within {self.max_wait_seconds:g} seconds "
                            f"(last status: {current.status.value})",
                    history=history
                )

        if current.status == RunStatus.COMPLETED:
            logger.info("Run completed successfully: %s", current.run_id)
            return RunCompleted(run=current, history=history)

        message = current.failure_message()
        logger.warning(
            "Run did not complete successfully: %s, Error: %s",
            current.status.value, message
        )
        return RunEnded(run=current, status=current.status, message=message, history=history)
