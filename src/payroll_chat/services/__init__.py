"""Gateway, run polling, session orchestration and command routing."""

from .agent_gateway import AgentGateway
from .command_interpreter import Chat, CommandDispatcher, Noop, Quit, Upload, parse_command
from .http_agent_gateway import HttpAgentGateway
from .run_poller import RunPoller
from .session_orchestrator import SessionOrchestrator

__all__ = [
    "AgentGateway",
    "Chat",
    "CommandDispatcher",
    "HttpAgentGateway",
    "Noop",
    "Quit",
    "RunPoller",
    "SessionOrchestrator",
    "Upload",
    "parse_command",
]
