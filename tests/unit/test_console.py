"""Unit tests for console rendering and cancellable input."""

import asyncio
import io
import os

import pytest

from payroll_chat.cli.console import ConsoleReader
from payroll_chat.cli.renderer import ConsoleRenderer
from payroll_chat.lib.errors import OperationCancelledError
from payroll_chat.models.display_events import (
    AgentReplyImageRef,
    AgentReplyText,
    ProgressTick,
    SessionStarted,
    TurnFailed,
    TurnStarted,
    UploadCompleted,
    UploadRejected,
    UploadStarted,
)


class TestConsoleRenderer:
    """Test event formatting."""

    def test_reply_after_thinking_dots(self, capsys):
        renderer = ConsoleRenderer()

        renderer(TurnStarted())
        renderer(ProgressTick(status="in_progress"))
        renderer(ProgressTick(status="completed"))
        renderer(AgentReplyText(text="Payday is the 25th."))
        renderer(AgentReplyImageRef(file_id="assistant-img1"))
        renderer.end_turn()

        assert capsys.readouterr().out == (
            "🤖 Payroll Agent is thinking..\n"
            "🤖 Assistant:\n"
            "Payday is the 25th.\n"
            "🖼️ [Image file: assistant-img1]\n"
            "\n"
        )

    def test_turn_failure(self, capsys):
        renderer = ConsoleRenderer()

        renderer(TurnStarted())
        renderer(TurnFailed(message="Run failed or was canceled: rate limited"))
        renderer.end_turn()

        assert capsys.readouterr().out == (
            "🤖 Payroll Agent is thinking\n"
            "❌ Run failed or was canceled: rate limited\n"
            "\n"
        )

    def test_session_and_upload_events(self, capsys):
        renderer = ConsoleRenderer()

        renderer(SessionStarted(session_id="thread_1"))
        renderer(UploadStarted(file_name="payslip.pdf", byte_size=12345))
        renderer(UploadCompleted(file_name="payslip.pdf", remote_file_id="file_1"))
        renderer(UploadRejected(reason="File not found: nope.pdf"))

        out = capsys.readouterr().out
        assert "🚀 Started new conversation (Thread: thread_1)" in out
        assert "📤 Uploading file: payslip.pdf (12,345 bytes)" in out
        assert "✅ File uploaded successfully: payslip.pdf" in out
        assert "⚠️ File not found: nope.pdf" in out

    def test_goodbye_closes_thinking_line(self, capsys):
        renderer = ConsoleRenderer()

        renderer(TurnStarted())
        renderer.goodbye()

        assert capsys.readouterr().out.endswith("thinking\n👋 Chat ended. Goodbye!\n")


class TestConsoleReader:
    """Test line reads and cancellation."""

    @pytest.mark.asyncio
    async def test_reads_lines_then_eof(self, token):
        reader = ConsoleReader(io.StringIO("Hi\r\nquit\n"))

        assert await reader.read_line(token) == "Hi"
        assert await reader.read_line(token) == "quit"
        assert await reader.read_line(token) is None

    @pytest.mark.asyncio
    async def test_blank_line_is_not_eof(self, token):
        reader = ConsoleReader(io.StringIO("\nnext\n"))

        assert await reader.read_line(token) == ""
        assert await reader.read_line(token) == "next"

    @pytest.mark.asyncio
    async def test_cancel_while_waiting_for_input(self, token):
        read_fd, write_fd = os.pipe()
        stream = os.fdopen(read_fd, "r")
        try:
            reader = ConsoleReader(stream)
            asyncio.get_running_loop().call_later(0.05, token.cancel)

            with pytest.raises(OperationCancelledError):
                await reader.read_line(token)
        finally:
            # Unblocks the daemon reader thread
            os.write(write_fd, b"\n")
            os.close(write_fd)
