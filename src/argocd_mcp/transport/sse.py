"""SSE Session Manager - multiplexes long-lived SSE clients onto one server.

A client opens ``GET /sse`` and is given a session. The first event on the
stream, ``endpoint``, names the URL the client must POST its JSON-RPC messages
to, tagged with the session id. Every POST is routed to the session it names
and queued for that session's engine task, which processes the messages in
arrival order and writes each response back down the session's stream as a
``message`` event.

Sessions move through ``CONNECTING -> OPEN -> CLOSING -> CLOSED``. The registry
only ever holds CONNECTING or OPEN sessions: a session leaves the registry in
the same synchronous step that marks it CLOSING, so a message racing a close
either reaches a fully open session or gets SessionNotFound.

Each session queues at most STREAM_BUFFER_SIZE inbound messages. Routing never
waits for room: a message arriving at a full queue is refused with SessionBusy.
"""

from __future__ import annotations

import enum
import logging
import secrets
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager

import anyio
from anyio.abc import TaskGroup, TaskStatus
from sse_starlette import EventSourceResponse
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import Receive, Scope, Send

from argocd_mcp.exceptions import MissingSessionIdentity, SessionBusy, SessionNotFound, TransportInitError
from argocd_mcp.runner import RunningServer
from argocd_mcp.session import SessionInfo
from argocd_mcp.transport.sink import SinkEvent, StreamSink, serialize_message

logger = logging.getLogger(__name__)

SESSION_ID_PARAM = "sessionId"
SESSION_ID_HEADER = "x-mcp-session-id"

# Maximum size for incoming messages
MAXIMUM_MESSAGE_SIZE = 4 * 1024 * 1024  # 4MB

# Capacity of each session's inbound and outbound queues.
STREAM_BUFFER_SIZE = 32

# How long close_session waits for a session's engine task to stop.
CLOSE_GRACE_SECONDS = 5.0

SSE_PING_SECONDS = 15


def generate_session_id() -> str:
    """Return an unguessable session identity."""
    return secrets.token_hex(16)


class SessionState(enum.Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class SseSession:
    """One client attachment: an identity, a lifecycle state and its two queues.

    The inbound queue carries raw POST bodies to the session's engine task; the
    outbound queue carries JSON-RPC messages to the client's SSE response. Both
    are private to the session.
    """

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self.state = SessionState.CONNECTING
        self.info: SessionInfo | None = None
        self._inbound_writer, self._inbound_reader = anyio.create_memory_object_stream[bytes](STREAM_BUFFER_SIZE)
        self._outbound_writer, self._outbound_reader = anyio.create_memory_object_stream[SinkEvent](
            STREAM_BUFFER_SIZE
        )
        self._cancel_scope: anyio.CancelScope | None = None
        self._finished = anyio.Event()

    def __repr__(self) -> str:
        return f"SseSession({self.session_id!r}, state={self.state.name})"

    def deliver(self, payload: bytes) -> None:
        """Queue an inbound payload for the engine task without waiting.

        Raises anyio.WouldBlock when the inbound queue is full.
        """
        self._inbound_writer.send_nowait(payload)

    async def events(self, endpoint: str) -> AsyncIterator[dict[str, str]]:
        """Yield the SSE events for this session, starting with the endpoint event."""
        yield {"event": "endpoint", "data": endpoint}
        async with self._outbound_reader:
            async for event in self._outbound_reader:
                yield {"event": "message", "data": serialize_message(event.message)}

    async def serve(self, running: RunningServer) -> None:
        """Process inbound payloads one at a time until the inbound queue closes."""
        async with self._inbound_reader:
            async for payload in self._inbound_reader:
                sink = StreamSink(self._outbound_writer)
                info = await running.handle_payload(sink, payload, session=self.info)
                if info is not None:
                    self.info = info

    def bind(self, cancel_scope: anyio.CancelScope) -> None:
        """Attach the cancel scope of the engine task serving this session."""
        self._cancel_scope = cancel_scope

    def mark_finished(self) -> None:
        self._finished.set()

    async def wait_finished(self) -> None:
        await self._finished.wait()

    def release(self) -> None:
        """Stop accepting input and cancel the engine task."""
        self._inbound_writer.close()
        if self._cancel_scope is not None:
            self._cancel_scope.cancel()

    def close_outbound(self) -> None:
        """Close the sink; the SSE response drains what is buffered and ends."""
        self._outbound_writer.close()


class SessionRegistry:
    """Identity -> session map owned by a single SseSessionManager.

    Every method is synchronous, so no other task can observe a half-applied
    change.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, SseSession] = {}

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._sessions))

    def add(self, session: SseSession) -> None:
        if session.session_id in self._sessions:
            raise KeyError(f"Session {session.session_id} already registered")
        self._sessions[session.session_id] = session

    def get(self, session_id: str) -> SseSession | None:
        return self._sessions.get(session_id)

    def pop(self, session_id: str) -> SseSession | None:
        return self._sessions.pop(session_id, None)

    def clear(self) -> None:
        self._sessions.clear()


class SseSessionManager:
    """Owns every SSE session and routes inbound messages to them.

    Usage (inside a Starlette lifespan):

        manager = SseSessionManager(running)
        async with manager.run():
            yield

    The manager cannot be reused once its run() context has exited.
    """

    def __init__(self, running: RunningServer, *, message_path: str = "/message") -> None:
        self._running = running
        self._message_path = message_path
        self._registry = SessionRegistry()
        self._task_group: TaskGroup | None = None
        self._has_started = False
        self._accepting = False

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @asynccontextmanager
    async def run(self) -> AsyncIterator[SseSessionManager]:
        """Host session engine tasks; on exit every open session is closed."""
        if self._has_started:
            raise RuntimeError(
                "SseSessionManager .run() can only be called once per instance. "
                "Create a new instance if you need to run again."
            )
        self._has_started = True

        async with anyio.create_task_group() as tg:
            self._task_group = tg
            self._accepting = True
            logger.info("SSE session manager started")
            try:
                yield self
            finally:
                logger.info("SSE session manager shutting down")
                with anyio.CancelScope(shield=True):
                    await self.shutdown()
                self._task_group = None
                tg.cancel_scope.cancel()

    async def open_session(self) -> SseSession:
        """Register a new session and start its engine task.

        Raises:
            TransportInitError: the manager is not accepting sessions or the
                engine task could not be started. No registry entry remains.
        """
        tg = self._task_group
        if tg is None or not self._accepting:
            raise TransportInitError("SSE session manager is not running")

        session_id = generate_session_id()
        while session_id in self._registry:  # pragma: no cover
            session_id = generate_session_id()
        session = SseSession(session_id)
        self._registry.add(session)

        try:
            await tg.start(self._session_task, session)
        except BaseException as exc:
            self._registry.pop(session_id)
            session.release()
            session.close_outbound()
            if isinstance(exc, Exception):
                raise TransportInitError(f"Could not start session {session_id}") from exc
            raise

        if session.state is not SessionState.CONNECTING:
            # closed (e.g. by shutdown) while the engine task was starting
            raise TransportInitError(f"Session {session_id} closed while connecting")
        session.state = SessionState.OPEN
        logger.info("Opened session %s (%d active)", session_id, len(self._registry))
        return session

    async def route_message(self, session_id: str | None, payload: bytes) -> None:
        """Hand a raw inbound payload to the session it is addressed to.

        Raises:
            MissingSessionIdentity: no session id was given.
            SessionNotFound: the id is unknown, not open, or closed while the
                payload was being queued.
            SessionBusy: the session already has a full inbound queue.
        """
        if not session_id:
            raise MissingSessionIdentity("No sessionId provided")

        session = self._registry.get(session_id)
        if session is None or session.state is not SessionState.OPEN:
            raise SessionNotFound(session_id)

        try:
            session.deliver(payload)
        except anyio.WouldBlock:
            raise SessionBusy(session_id) from None
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            raise SessionNotFound(session_id) from None
        logger.debug("Queued %d bytes for session %s", len(payload), session_id)

    async def close_session(self, session_id: str, reason: str = "closed") -> None:
        """Tear a session down. Unknown or already closed sessions are a no-op."""
        session = self._registry.pop(session_id)
        if session is None:
            return
        session.state = SessionState.CLOSING
        logger.info("Closing session %s: %s", session_id, reason)

        try:
            session.release()
            with anyio.move_on_after(CLOSE_GRACE_SECONDS, shield=True) as scope:
                await session.wait_finished()
            if scope.cancelled_caught:
                logger.warning("Session %s did not stop within %.1fs", session_id, CLOSE_GRACE_SECONDS)
        finally:
            session.close_outbound()
            session.state = SessionState.CLOSED

    async def shutdown(self) -> None:
        """Close every open session concurrently, then release the registry."""
        self._accepting = False
        session_ids = list(self._registry)
        if session_ids:
            logger.info("Closing %d open session(s)", len(session_ids))
        async with anyio.create_task_group() as tg:
            for session_id in session_ids:
                tg.start_soon(self._close_logging_errors, session_id, "server shutdown")
        self._registry.clear()

    async def handle_sse(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI endpoint for GET /sse: open a session and stream its events."""
        try:
            session = await self.open_session()
        except TransportInitError:
            logger.exception("Error in SSE endpoint")
            response = JSONResponse({"error": "Failed to open session"}, status_code=500)
            await response(scope, receive, send)
            return

        root_path = scope.get("root_path", "")
        endpoint = f"{root_path}{self._message_path}?{SESSION_ID_PARAM}={session.session_id}"
        reason = "client disconnected"
        try:
            response = EventSourceResponse(session.events(endpoint), ping=SSE_PING_SECONDS)
            await response(scope, receive, send)
        except Exception:
            reason = "stream error"
            logger.exception("Error on SSE stream for session %s", session.session_id)
        finally:
            with anyio.CancelScope(shield=True):
                await self.close_session(session.session_id, reason=reason)

    async def handle_post_message(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI endpoint for POST /message: route one JSON-RPC message to its session."""
        request = Request(scope, receive)
        session_id = request.query_params.get(SESSION_ID_PARAM) or request.headers.get(SESSION_ID_HEADER)
        logger.debug("Received message for session %s", session_id)

        body = await request.body()
        response: Response
        if len(body) > MAXIMUM_MESSAGE_SIZE:
            response = JSONResponse({"error": "Message exceeds maximum size"}, status_code=413)
        else:
            try:
                await self.route_message(session_id, body)
            except MissingSessionIdentity:
                response = JSONResponse({"error": "No sessionId provided"}, status_code=400)
            except SessionNotFound:
                logger.info("No transport found for session %s", session_id)
                response = JSONResponse({"error": "Transport not found"}, status_code=404)
            except SessionBusy:
                logger.warning("Inbound queue full for session %s", session_id)
                response = JSONResponse({"error": "Session is busy"}, status_code=503)
            else:
                response = Response("Accepted", status_code=202)
        await response(scope, receive, send)

    async def _session_task(
        self,
        session: SseSession,
        *,
        task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        """Engine task for one session. Never lets a failure reach the task group."""
        with anyio.CancelScope() as cancel_scope:
            session.bind(cancel_scope)
            task_status.started()
            try:
                await session.serve(self._running)
            except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                logger.info("Outbound stream for session %s is gone", session.session_id)
            except Exception:
                logger.exception("Session %s crashed", session.session_id)
        session.mark_finished()

        # The engine stopped on its own (client went away, crash): tear down.
        if self._registry.get(session.session_id) is session:
            with anyio.CancelScope(shield=True):
                await self.close_session(session.session_id, reason="engine stopped")

    async def _close_logging_errors(self, session_id: str, reason: str) -> None:
        try:
            await self.close_session(session_id, reason)
        except Exception:
            logger.exception("Failed to close session %s", session_id)
