"""
Main CLI application for the payroll agent chat client.

Provides the interactive chat loop and configuration helpers.
"""

import asyncio
import logging
import signal
import sys
import threading
from typing import Callable, Optional, TextIO

import click

from payroll_chat.cli.console import ConsoleReader
from payroll_chat.cli.renderer import ConsoleRenderer
from payroll_chat.lib.cancellation import CancellationToken
from payroll_chat.lib.config import ConfigurationError, ConfigurationManager, initialize_config
from payroll_chat.lib.errors import AuthError, OperationCancelledError
from payroll_chat.lib.logging_config import get_audit_logger, setup_logging
from payroll_chat.lib.observability import TelemetryManager, initialize_telemetry
from payroll_chat.services.agent_gateway import AgentGateway
from payroll_chat.services.command_interpreter import CommandDispatcher
from payroll_chat.services.http_agent_gateway import HttpAgentGateway
from payroll_chat.services.run_poller import RunPoller
from payroll_chat.services.session_orchestrator import SessionOrchestrator


logger = logging.getLogger("payroll_chat.cli")
audit_logger = get_audit_logger()

GatewayFactory = Callable[[ConfigurationManager], AgentGateway]


def create_gateway(config_manager: ConfigurationManager) -> AgentGateway:
    """Build the HTTP gateway from configuration."""
    service = config_manager.get_config().agent_service
    return HttpAgentGateway(
        project_endpoint=service.project_endpoint,
        access_token=config_manager.get_access_token(),
        api_version=service.api_version,
        timeout_seconds=service.request_timeout
    )


class ChatApplication:
    """Payroll chat application manager."""

    def __init__(
        self,
        config_path: Optional[str] = None,
        debug: bool = False,
        gateway_factory: Optional[GatewayFactory] = None,
        input_stream: Optional[TextIO] = None,
        renderer: Optional[ConsoleRenderer] = None
    ):
        self.config_path = config_path
        self.debug = debug
        self.gateway_factory = gateway_factory or create_gateway
        self.reader = ConsoleReader(input_stream)
        self.renderer = renderer or ConsoleRenderer()
        self.config_manager: Optional[ConfigurationManager] = None
        self.telemetry: Optional[TelemetryManager] = None

    def initialize(self) -> None:
        """Load configuration and set up logging and telemetry.

        Raises:
            ConfigurationError: If required settings are missing or invalid
        """
        self.config_manager = initialize_config(self.config_path)
        config = self.config_manager.get_config()

        logging_config = config.logging.model_dump()
        if self.debug or config.debug:
            logging_config["level"] = "DEBUG"
        setup_logging(logging_config)

        self.telemetry = initialize_telemetry(config.observability.model_dump())
        logger.info("Payroll chat initialized with endpoint: %s", config.agent_service.project_endpoint)

    async def run_chat(self, token: CancellationToken) -> None:
        """Run the interactive loop until quit, end of input or cancellation."""
        if self.config_manager is None:
            raise RuntimeError("Application not initialized")

        config = self.config_manager.get_config()
        gateway = self.gateway_factory(self.config_manager)
        poller = RunPoller(
            gateway,
            poll_interval=config.polling.interval_seconds,
            max_wait_seconds=config.polling.max_wait_seconds
        )

        self.renderer.banner()

        async with gateway:
            orchestrator = await SessionOrchestrator.start(
                gateway,
                config.agent_service.agent_id,
                token,
                poller=poller,
                emit=self.renderer,
                max_upload_bytes=config.uploads.max_file_bytes
            )
            dispatcher = CommandDispatcher(orchestrator)

            while True:
                self.renderer.prompt()
                line = await self.reader.read_line(token)
                if line is None:
                    click.echo()
                    break

                if not await dispatcher.handle_line(line, token):
                    break
                self.renderer.end_turn()

            audit_logger.log_session_event("session_ended", orchestrator.session.session_id, "success",
                                           {"turns": orchestrator.turn_count})

        self.renderer.goodbye()

    def shutdown(self) -> None:
        if self.telemetry:
            self.telemetry.shutdown()


async def _run_with_signal_handling(app: ChatApplication) -> None:
    """Run the chat with SIGINT wired to the cancellation token."""
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    previous_handler = None
    install = threading.current_thread() is threading.main_thread()

    def signal_handler(signum, frame):
        loop.call_soon_threadsafe(token.cancel)

    if install:
        previous_handler = signal.signal(signal.SIGINT, signal_handler)
    try:
        await app.run_chat(token)
    finally:
        if install:
            signal.signal(signal.SIGINT, previous_handler)


def run_application(app: ChatApplication) -> int:
    """Run the chat and map the result to a process exit code."""
    try:
        app.initialize()
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        return 1

    try:
        asyncio.run(_run_with_signal_handling(app))
        return 0
    except OperationCancelledError:
        logger.info("Chat session cancelled by user")
        app.renderer.cancelled()
        click.echo("❌ Application cancelled by user.")
        return 1
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        return 1
    except AuthError as e:
        logger.error(f"Authentication failed: {e}")
        click.echo(f"💥 Authentication failed: {e.message}", err=True)
        return 1
    except Exception as e:
        logger.exception("Error during chat session")
        click.echo(f"💥 Application error: {e}", err=True)
        return 1
    finally:
        app.shutdown()


# CLI Commands

@click.group()
@click.option('--config', '-c', help='Configuration file path')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, config, debug):
    """Payroll agent chat client."""
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config
    ctx.obj['debug'] = debug


@cli.command()
@click.pass_context
def chat(ctx):
    """Start an interactive chat with the payroll agent."""
    app = ChatApplication(config_path=ctx.obj.get('config_path'), debug=ctx.obj.get('debug', False))
    sys.exit(run_application(app))


@cli.command()
@click.pass_context
def validate(ctx):
    """Validate the chat configuration."""
    try:
        config_manager = initialize_config(ctx.obj.get('config_path'))
        config = config_manager.get_config()
        warnings = config_manager.validate_config()

        click.echo("Configuration validation completed successfully!")
        click.echo(f"Configuration file: {config.config_file_path or '(environment only)'}")
        click.echo(f"Project endpoint: {config.agent_service.project_endpoint}")
        click.echo(f"Agent: {config.agent_service.agent_id}")
        click.echo(f"Poll interval: {config.polling.interval_seconds}s")

        if warnings:
            click.echo("\nWarnings:")
            for warning in warnings:
                click.echo(f"  - {warning}")
        else:
            click.echo("\nNo warnings found.")

    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)


def main() -> None:
    cli(obj={})


if __name__ == '__main__':
    main()
