"""Stdio Transport - Run a LowLevelServer over stdin/stdout.

Newline-delimited JSON-RPC on the process' standard streams. There is a single
implicit session, so no session identity is exchanged. Messages are processed
one at a time in the order they are read.

Example:
    ```python
    async def main():
        await run_stdio(create_server(dispatcher))

    anyio.run(main)
    ```
"""

from __future__ import annotations

import logging
import sys
from io import TextIOWrapper
from typing import BinaryIO

import anyio

from argocd_mcp.runner import Lifespan, ServerRunner
from argocd_mcp.server import LowLevelServer
from argocd_mcp.session import SessionInfo
from argocd_mcp.transport.sink import SinkEvent, StreamSink, serialize_message

logger = logging.getLogger(__name__)


class _NonClosingTextIOWrapper(TextIOWrapper):
    """Text wrapper that never closes the underlying binary stream.

    run_stdio should not close the process' real stdin/stdout handles when its
    background tasks wind down.
    """

    def close(self) -> None:
        if self.closed:
            return

        if self.writable():
            self.flush()


def _wrap_process_stdio(binary_stream: BinaryIO) -> anyio.AsyncFile[str]:
    return anyio.wrap_file(_NonClosingTextIOWrapper(binary_stream, encoding="utf-8"))


async def run_stdio(
    server: LowLevelServer,
    *,
    lifespan: Lifespan | None = None,
    stdin: anyio.AsyncFile[str] | None = None,
    stdout: anyio.AsyncFile[str] | None = None,
) -> None:
    """Serve until stdin reaches EOF or the enclosing scope is cancelled.

    Every response queued before EOF is written and flushed before this
    returns.
    """
    # Encoding of stdin/stdout as text streams is platform-dependent, so the
    # underlying binary streams are re-wrapped as UTF-8.
    if stdin is None:
        stdin = _wrap_process_stdio(sys.stdin.buffer)
    if stdout is None:
        stdout = _wrap_process_stdio(sys.stdout.buffer)

    write_stream, write_stream_reader = anyio.create_memory_object_stream[SinkEvent](32)

    async def stdout_writer() -> None:
        async with write_stream_reader:
            async for event in write_stream_reader:
                await stdout.write(serialize_message(event.message) + "\n")
                await stdout.flush()

    runner = ServerRunner(server, lifespan=lifespan)
    async with runner.run() as running:
        async with anyio.create_task_group() as tg:
            tg.start_soon(stdout_writer)
            async with write_stream:
                session: SessionInfo | None = None
                async for raw_line in stdin:
                    line = raw_line.strip()
                    if not line:
                        continue
                    info = await running.handle_payload(StreamSink(write_stream), line, session=session)
                    if info is not None:
                        session = info
    logger.info("stdin closed, stdio transport stopped")
