"""Cancellable console input."""

import asyncio
import sys
import threading
from typing import Optional, TextIO

from payroll_chat.lib.cancellation import CancellationToken


class ConsoleReader:
    """Reads lines from a stream without blocking the event loop or process shutdown.

    Each read runs on a daemon thread, so a read abandoned by cancellation
    never keeps the process alive.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    async def read_line(self, token: CancellationToken) -> Optional[str]:
        """Read one line, without its newline.

        Returns:
            The line, or None at end of input

        Raises:
            OperationCancelledError: If the token is cancelled while waiting
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        stream = self.stream or sys.stdin

        def _resolve(result, error) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(result)

        def _read() -> None:
            result, error = None, None
            try:
                result = stream.readline()
            except Exception as e:
                error = e
            try:
                loop.call_soon_threadsafe(_resolve, result, error)
            except RuntimeError:
                # Loop already closed after cancellation
                pass

        threading.Thread(target=_read, name="console-reader", daemon=True).start()

        line = await token.run(future)
        if not line:
            return None
        return line.rstrip("\r\n")
