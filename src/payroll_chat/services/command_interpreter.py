"""Command interpreter classifying console input and routing it to the orchestrator."""

import logging
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict

from payroll_chat.lib.cancellation import CancellationToken
from payroll_chat.services.session_orchestrator import SessionOrchestrator


logger = logging.getLogger(__name__)

QUIT_COMMAND = "quit"
UPLOAD_PREFIX = "upload "


class Quit(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["quit"] = "quit"


class Upload(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["upload"] = "upload"
    path: str


class Chat(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["chat"] = "chat"
    text: str


class Noop(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["noop"] = "noop"


Command = Union[Quit, Upload, Chat, Noop]


def parse_command(line: str) -> Command:
    """Classify a raw input line.

    Blank input is a no-op, ``quit`` (any case) ends the chat,
    ``upload <path>`` (any case prefix) uploads a file, anything else is sent
    to the agent verbatim.
    """
    if line is None or not line.strip():
        return Noop()

    if line.strip().lower() == QUIT_COMMAND:
        return Quit()

    if line.lower().startswith(UPLOAD_PREFIX):
        return Upload(path=line[len(UPLOAD_PREFIX):].strip())

    return Chat(text=line)


class CommandDispatcher:
    """Routes parsed commands to the session orchestrator."""

    def __init__(self, orchestrator: SessionOrchestrator):
        self.orchestrator = orchestrator

    async def dispatch(self, command: Command, token: CancellationToken) -> bool:
        """Execute ``command``.

        Returns:
            False when the chat should end, True otherwise
        """
        if isinstance(command, Quit):
            logger.info("User requested to quit the chat session")
            return False

        if isinstance(command, Upload):
            await self.orchestrator.attach_file(command.path, token)
        elif isinstance(command, Chat):
            await self.orchestrator.run_turn(command.text, token)

        return True

    async def handle_line(self, line: str, token: CancellationToken) -> bool:
        """Parse and dispatch one raw input line."""
        return await self.dispatch(parse_command(line), token)
