"""Session lifecycle for the APRS-IS feed client.

One connection attempt at a time moves through an explicit state machine::

    IDLE → CONNECTING → AUTHENTICATING → STREAMING → DRAINING → BACKOFF → CONNECTING …
                │                                                  ▲
                └──────────────── connect failed ──────────────────┘

Transitions are a pure function of ``(state, event, stop_requested)``
(:func:`transition`).  When a stop has been requested, an open connection
still passes through ``DRAINING`` so it is always closed; every other path
goes straight to ``SHUT_DOWN``.

The stop event is observed at the line-read wait, during the backoff delay
and before each reconnect, so shutdown completes within one read timeout.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from aprsfeed.errors import FeedConnectionError, InvalidTransitionError
from aprsfeed.feed.decoder import FrameDecoder
from aprsfeed.feed.filters import ReportFilter
from aprsfeed.feed.reader import FrameReader, ReadOutcome
from aprsfeed.models.config import FeedSettings

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from aprsfeed.models.reports import Sighting

    OpenConnection = Callable[..., Awaitable[tuple[asyncio.StreamReader, asyncio.StreamWriter]]]

logger = logging.getLogger(__name__)

# States kept for inspection; older entries are discarded.
HISTORY_LIMIT = 50


class SessionState(StrEnum):
    IDLE = "idle"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    STREAMING = "streaming"
    DRAINING = "draining"
    BACKOFF = "backoff"
    SHUT_DOWN = "shut_down"


class SessionEvent(StrEnum):
    START = "start"
    CONNECTED = "connected"
    CONNECT_FAILED = "connect_failed"
    AUTHENTICATED = "authenticated"
    STREAM_ENDED = "stream_ended"
    DRAINED = "drained"
    BACKOFF_ELAPSED = "backoff_elapsed"


class DrainReason(StrEnum):
    CONNECT_ERROR = "connect_error"
    READ_TIMEOUT = "read_timeout"
    STREAM_CLOSED = "stream_closed"
    STREAM_ERROR = "stream_error"
    CANCELLED = "cancelled"


_TRANSITIONS: dict[tuple[SessionState, SessionEvent], SessionState] = {
    (SessionState.IDLE, SessionEvent.START): SessionState.CONNECTING,
    (SessionState.CONNECTING, SessionEvent.CONNECTED): SessionState.AUTHENTICATING,
    (SessionState.CONNECTING, SessionEvent.CONNECT_FAILED): SessionState.BACKOFF,
    (SessionState.AUTHENTICATING, SessionEvent.AUTHENTICATED): SessionState.STREAMING,
    (SessionState.AUTHENTICATING, SessionEvent.STREAM_ENDED): SessionState.DRAINING,
    (SessionState.STREAMING, SessionEvent.STREAM_ENDED): SessionState.DRAINING,
    (SessionState.DRAINING, SessionEvent.DRAINED): SessionState.BACKOFF,
    (SessionState.BACKOFF, SessionEvent.BACKOFF_ELAPSED): SessionState.CONNECTING,
}

# Targets that imply an open connection; on stop these drain instead.
_CONNECTED_STATES = frozenset({SessionState.AUTHENTICATING, SessionState.STREAMING})

_READ_OUTCOME_REASONS: dict[ReadOutcome, DrainReason] = {
    ReadOutcome.TIMEOUT: DrainReason.READ_TIMEOUT,
    ReadOutcome.CLOSED: DrainReason.STREAM_CLOSED,
    ReadOutcome.CANCELLED: DrainReason.CANCELLED,
}


def transition(
    state: SessionState,
    event: SessionEvent,
    *,
    stop_requested: bool = False,
) -> SessionState:
    """Return the state that follows *state* on *event*.

    Raises :class:`InvalidTransitionError` for undefined transitions,
    including any transition out of ``SHUT_DOWN``.
    """
    target = _TRANSITIONS.get((state, event))
    if target is None:
        raise InvalidTransitionError(f"No transition from {state} on {event}")
    if not stop_requested:
        return target
    if target in _CONNECTED_STATES:
        return SessionState.DRAINING
    if target is SessionState.DRAINING:
        return target
    return SessionState.SHUT_DOWN


def login_line(
    *,
    callsign: str,
    passcode: str,
    client_name: str,
    client_version: str,
    filter_expr: str,
) -> str:
    """Build the APRS-IS login command, newline included.

    ``user N0CALL pass -1 vers aprsfeed 0.1.0 filter t/ps``
    """
    return (
        f"user {callsign} pass {passcode} vers {client_name} {client_version}"
        f" filter t/{filter_expr}\n"
    )


@dataclass
class FeedSession:
    """One open connection. Owned exclusively by :class:`FeedClient`."""

    number: int
    reader: asyncio.StreamReader
    writer: asyncio.StreamWriter
    opened_at: float = field(default_factory=time.monotonic)

    async def close(self) -> None:
        self.writer.close()
        with contextlib.suppress(Exception):
            await self.writer.wait_closed()


class FeedClient:
    """Long-lived APRS-IS client: connect, log in, stream, back off, repeat.

    *on_sighting* receives every accepted sighting.  Call :meth:`stop` (from
    a signal handler, another task, ...) to shut down cooperatively;
    :meth:`run` returns once the client reaches ``SHUT_DOWN``.
    """

    def __init__(
        self,
        settings: FeedSettings | None = None,
        *,
        on_sighting: Callable[[Sighting], Awaitable[None]],
        decoder: FrameDecoder | None = None,
        report_filter: ReportFilter | None = None,
        stop_event: asyncio.Event | None = None,
        open_connection: OpenConnection | None = None,
    ) -> None:
        self._settings = settings or FeedSettings()
        self._stop_event = stop_event or asyncio.Event()
        self._open_connection: Any = open_connection or asyncio.open_connection
        self._frames = FrameReader(
            decoder or FrameDecoder(),
            report_filter or ReportFilter(self._settings.regional_prefixes),
            on_sighting,
            read_timeout=self._settings.read_timeout,
        )
        self._state = SessionState.IDLE
        self._session: FeedSession | None = None
        self._attempts = 0
        self._last_reason: DrainReason | None = None
        self._history: deque[SessionState] = deque([SessionState.IDLE], maxlen=HISTORY_LIMIT)
        self._handlers: dict[SessionState, Callable[[], Awaitable[SessionEvent]]] = {
            SessionState.CONNECTING: self._connect,
            SessionState.AUTHENTICATING: self._authenticate,
            SessionState.STREAMING: self._stream,
            SessionState.DRAINING: self._drain,
            SessionState.BACKOFF: self._backoff,
        }

    # -- Inspection -----------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def history(self) -> list[SessionState]:
        """The most recent states entered (up to :data:`HISTORY_LIMIT`), oldest first."""
        return list(self._history)

    @property
    def attempts(self) -> int:
        """Number of connection attempts made."""
        return self._attempts

    @property
    def last_reason(self) -> DrainReason | None:
        return self._last_reason

    @property
    def is_connected(self) -> bool:
        return self._session is not None

    @property
    def frames(self) -> FrameReader:
        return self._frames

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    # -- Control --------------------------------------------------------------

    def stop(self) -> None:
        """Request a cooperative shutdown. Safe to call more than once."""
        if not self._stop_event.is_set():
            logger.info("Stop requested")
        self._stop_event.set()

    async def run(self) -> None:
        """Drive the state machine until shutdown.

        Recoverable errors never escape.  If the surrounding task is
        cancelled, the open connection is closed and the cancellation
        propagates.
        """
        try:
            self._advance(SessionEvent.START)
            while self._state is not SessionState.SHUT_DOWN:
                handler = self._handlers[self._state]
                self._advance(await handler())
        finally:
            if self._session is not None:
                await self._close_session()
        logger.info("Feed client shut down after %d connection attempt(s)", self._attempts)

    def _advance(self, event: SessionEvent) -> None:
        new_state = transition(self._state, event, stop_requested=self._stop_event.is_set())
        logger.debug("%s --%s--> %s", self._state, event, new_state)
        self._state = new_state
        self._history.append(new_state)

    # -- State handlers -------------------------------------------------------

    async def _connect(self) -> SessionEvent:
        assert self._session is None, "previous connection still open"
        self._attempts += 1
        host, port = self._settings.host, self._settings.port
        logger.info("Connecting to %s:%d (attempt %d)...", host, port, self._attempts)

        try:
            reader, writer = await self._open(host, port)
        except FeedConnectionError as exc:
            logger.warning("%s", exc)
            self._last_reason = DrainReason.CONNECT_ERROR
            return SessionEvent.CONNECT_FAILED

        self._session = FeedSession(number=self._attempts, reader=reader, writer=writer)
        logger.info("Connected to %s:%d", host, port)
        return SessionEvent.CONNECTED

    async def _open(
        self, host: str, port: int
    ) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        try:
            return await asyncio.wait_for(
                self._open_connection(host, port),
                timeout=self._settings.connect_timeout,
            )
        except Exception as exc:
            # DNS failures can surface as UnicodeError (IDNA) as well as OSError
            raise FeedConnectionError(
                f"Failed to connect to {host}:{port}: {str(exc) or type(exc).__name__}"
            ) from exc

    async def _authenticate(self) -> SessionEvent:
        """Swallow the server banner and send the login line.

        The banner is not validated and no login response is awaited.
        """
        assert self._session is not None
        s = self._settings
        try:
            banner = await asyncio.wait_for(
                self._session.reader.readline(), timeout=s.read_timeout
            )
            logger.debug("Server banner: %s", banner.decode("utf-8", errors="replace").strip())

            line = login_line(
                callsign=s.callsign,
                passcode=s.passcode,
                client_name=s.client_name,
                client_version=s.client_version,
                filter_expr=s.filter_expr,
            )
            self._session.writer.write(line.encode("ascii", errors="replace"))
            await self._session.writer.drain()
        except TimeoutError:
            logger.info("No server banner within %.0fs", s.read_timeout)
            self._last_reason = DrainReason.READ_TIMEOUT
            return SessionEvent.STREAM_ENDED
        except Exception as exc:
            logger.warning("Login failed: %s", exc, exc_info=logger.isEnabledFor(logging.DEBUG))
            self._last_reason = DrainReason.STREAM_ERROR
            return SessionEvent.STREAM_ENDED

        logger.info("Logged in as %s with filter t/%s", s.callsign, s.filter_expr)
        return SessionEvent.AUTHENTICATED

    async def _stream(self) -> SessionEvent:
        assert self._session is not None
        try:
            outcome = await self._frames.run(self._session.reader, self._stop_event)
        except Exception as exc:
            logger.warning("Stream error: %s", exc, exc_info=logger.isEnabledFor(logging.DEBUG))
            self._last_reason = DrainReason.STREAM_ERROR
        else:
            self._last_reason = _READ_OUTCOME_REASONS[outcome]
        return SessionEvent.STREAM_ENDED

    async def _drain(self) -> SessionEvent:
        if self._session is not None:
            await self._close_session()
        return SessionEvent.DRAINED

    async def _backoff(self) -> SessionEvent:
        delay = self._settings.backoff
        logger.info("Reconnecting in %.0fs (%s)", delay, self._last_reason)
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        return SessionEvent.BACKOFF_ELAPSED

    async def _close_session(self) -> None:
        assert self._session is not None
        session, self._session = self._session, None
        stats = self._frames.stats
        logger.info(
            "Disconnected (%s) after %.0fs; %d lines, %d sightings so far",
            self._last_reason,
            time.monotonic() - session.opened_at,
            stats.lines,
            stats.accepted,
        )
        await session.close()
