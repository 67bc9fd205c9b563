"""Console rendering of display events."""

import click

from payroll_chat.models.display_events import (
    AgentReplyImageRef,
    AgentReplyText,
    DisplayEvent,
    ProgressTick,
    SessionStarted,
    TurnFailed,
    TurnStarted,
    UploadCompleted,
    UploadRejected,
    UploadStarted,
)


class ConsoleRenderer:
    """Formats display events for the terminal."""

    def __init__(self, agent_name: str = "Payroll Agent"):
        self.agent_name = agent_name
        self._thinking = False
        self._reply_open = False

    def __call__(self, event: DisplayEvent) -> None:
        self.render(event)

    def banner(self) -> None:
        click.echo("💼 === Payroll Agent Chat ===")
        click.echo("💬 Type 'quit' to exit, 'upload <filepath>' to upload a file, or just chat normally.")
        click.echo("⚡ Press Ctrl+C to cancel at any time.")
        click.echo()

    def prompt(self) -> None:
        click.echo("👤 You: ", nl=False)

    def goodbye(self) -> None:
        self._finish_thinking()
        click.echo("👋 Chat ended. Goodbye!")

    def cancelled(self) -> None:
        self._finish_thinking()
        click.echo()
        click.echo("❌ Chat cancelled.")

    def render(self, event: DisplayEvent) -> None:
        if isinstance(event, SessionStarted):
            click.echo(f"🚀 Started new conversation (Thread: {event.session_id})")
            click.echo()
        elif isinstance(event, TurnStarted):
            click.echo(f"🤖 {self.agent_name} is thinking", nl=False)
            self._thinking = True
            self._reply_open = False
        elif isinstance(event, ProgressTick):
            click.echo(".", nl=False)
        elif isinstance(event, (AgentReplyText, AgentReplyImageRef)):
            self._finish_thinking()
            if not self._reply_open:
                click.echo("🤖 Assistant:")
                self._reply_open = True
            if isinstance(event, AgentReplyText):
                click.echo(event.text)
            else:
                click.echo(f"🖼️ [Image file: {event.file_id}]")
        elif isinstance(event, TurnFailed):
            self._finish_thinking()
            click.echo(f"❌ {event.message}")
            click.echo()
        elif isinstance(event, UploadStarted):
            click.echo(f"📤 Uploading file: {event.file_name} ({event.byte_size:,} bytes)")
        elif isinstance(event, UploadCompleted):
            click.echo(f"✅ File uploaded successfully: {event.file_name}")
        elif isinstance(event, UploadRejected):
            click.echo(f"⚠️ {event.reason}")

    def end_turn(self) -> None:
        """Close the current reply block."""
        self._finish_thinking()
        if self._reply_open:
            click.echo()
            self._reply_open = False

    def _finish_thinking(self) -> None:
        if self._thinking:
            click.echo()
            self._thinking = False
