# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Streaming API: frames, typed events and the event reader.

A streaming connection carries tagged frames. Over HTTP they arrive as
server-sent events:

    event: update
    data: {"id": "1", ...}

Over a websocket each message is a JSON object whose ``payload`` is itself a
JSON document encoded as a string:

    {"event": "update", "payload": "{\\"id\\": \\"1\\", ...}"}

Both framings produce ``Frame(tag, payload)``. ``EventDecoder`` turns a frame
into a typed event using the target generation's entity classes. Unknown tags,
and tags whose flag is inactive at the target, become ``UnrecognizedEvent``.
A frame that fails to decode raises ``MalformedEventError`` for that frame
only; the next call keeps reading.

Readers must be used by a single task and are best held in ``async with``:

    async with client.stream_user() as reader:
        async for event in reader:
            ...
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import AbstractAsyncContextManager, AsyncExitStack
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Literal, Protocol, Union

import anyio
from anyio.abc import ObjectReceiveStream, ObjectSendStream, TaskGroup

from .config import ReconnectPolicy
from .exceptions import (
    ApiError,
    MalformedEventError,
    NetworkError,
    ServerError,
    StreamCancelledError,
    StreamClosedError,
    StreamTimeoutError,
)
from .executor import error_for_response
from .model.decode import DecodeError, Decoder
from .model.fields import Entity
from .transport import StreamResponse
from .utils import get_logger
from .versioning import FeatureId, ServerCapabilities

_logger = get_logger("tusk.streaming")

Framing = Literal["sse", "json"]


# =============================================================================
# Frames
# =============================================================================


@dataclass(frozen=True, slots=True)
class Frame:
    """One tagged unit from the wire, before entity decoding."""

    tag: str
    payload: str | None = None


class FrameSource(Protocol):
    async def next_frame(self) -> Frame:
        """Return the next frame.

        Raises:
            StreamClosedError: When the underlying connection ends
            MalformedEventError: When one message cannot be framed
        """
        ...


class SseFrameSource:
    """``text/event-stream`` framing.

    ``event:`` sets the tag, ``data:`` lines accumulate (joined with newlines),
    lines starting with ``:`` are heartbeats, and a blank line dispatches.
    """

    def __init__(self, lines: AsyncIterator[str]) -> None:
        self._lines = lines
        self._tag: str | None = None
        self._data: list[str] = []

    async def next_frame(self) -> Frame:
        while True:
            try:
                line = await self._lines.__anext__()
            except StopAsyncIteration:
                raise StreamClosedError("event stream ended") from None
            line = line.rstrip("\r\n")

            if not line:
                if self._tag is None and not self._data:
                    continue
                frame = Frame(self._tag or "message", "\n".join(self._data) if self._data else None)
                self._tag, self._data = None, []
                return frame
            if line.startswith(":"):
                continue

            name, _, value = line.partition(":")
            if value.startswith(" "):
                value = value[1:]
            if name == "event":
                self._tag = value.strip()
            elif name == "data":
                self._data.append(value)


class JsonMessageFrameSource:
    """Websocket framing: one ``{"event": ..., "payload": ...}`` object per message."""

    def __init__(self, messages: AsyncIterator[str]) -> None:
        self._messages = messages

    async def next_frame(self) -> Frame:
        while True:
            try:
                message = await self._messages.__anext__()
            except StopAsyncIteration:
                raise StreamClosedError("event stream ended") from None
            if not message.strip():
                continue
            try:
                data = json.loads(message)
            except ValueError as exc:
                raise MalformedEventError("message is not JSON", tag="", payload=message) from exc
            if not isinstance(data, dict) or not isinstance(data.get("event"), str):
                raise MalformedEventError("message has no event tag", tag="", payload=message)
            payload = data.get("payload")
            if payload is not None and not isinstance(payload, str):
                payload = json.dumps(payload)
            return Frame(data["event"], payload)


def frame_source(lines: AsyncIterator[str], framing: Framing) -> FrameSource:
    if framing == "sse":
        return SseFrameSource(lines)
    return JsonMessageFrameSource(lines)


# =============================================================================
# Events
# =============================================================================


@dataclass(frozen=True, slots=True)
class UpdateEvent:
    """A status appeared in the timeline."""

    status: Entity


@dataclass(frozen=True, slots=True)
class NotificationEvent:
    notification: Entity


@dataclass(frozen=True, slots=True)
class DeleteEvent:
    status_id: str


@dataclass(frozen=True, slots=True)
class FiltersChangedEvent:
    """Keyword filters changed; cached filter state should be refreshed."""


@dataclass(frozen=True, slots=True)
class ConversationEvent:
    conversation: Entity


@dataclass(frozen=True, slots=True)
class AnnouncementEvent:
    announcement: Entity


@dataclass(frozen=True, slots=True)
class AnnouncementReactionEvent:
    announcement_id: str
    name: str
    count: int


@dataclass(frozen=True, slots=True)
class AnnouncementDeleteEvent:
    announcement_id: str


@dataclass(frozen=True, slots=True)
class UnrecognizedEvent:
    """A frame whose tag the target generation does not know. Kept raw."""

    tag: str
    payload: str | None


@dataclass(frozen=True, slots=True)
class StreamGapEvent:
    """Emitted after a reconnection: events may have been missed.

    Attributes:
        attempt: Reconnection attempts it took
        error: What ended the previous connection
    """

    attempt: int
    error: BaseException | None = None


StreamEvent = Union[
    UpdateEvent,
    NotificationEvent,
    DeleteEvent,
    FiltersChangedEvent,
    ConversationEvent,
    AnnouncementEvent,
    AnnouncementReactionEvent,
    AnnouncementDeleteEvent,
    UnrecognizedEvent,
    StreamGapEvent,
]


class EventDecoder:
    """Frame to typed event for one generation."""

    # tag -> (flag, needs payload)
    TAGS: Mapping[str, tuple[FeatureId | None, bool]] = {
        "update": (None, True),
        "notification": (None, True),
        "delete": (None, True),
        "filters_changed": (FeatureId.FILTERS, False),
        "conversation": (FeatureId.CONVERSATIONS, True),
        "announcement": (FeatureId.ANNOUNCEMENTS, True),
        "announcement.reaction": (FeatureId.ANNOUNCEMENTS, True),
        "announcement.delete": (FeatureId.ANNOUNCEMENTS, True),
    }

    def __init__(self, decoder: Decoder, caps: ServerCapabilities) -> None:
        self._decoder = decoder
        self._caps = caps

    def known_tags(self) -> frozenset[str]:
        return frozenset(tag for tag, (flag, _) in self.TAGS.items() if self._caps.supports(flag))

    def decode(self, frame: Frame) -> StreamEvent:
        """Classify one frame.

        Raises:
            MalformedEventError: If a known tag carries an unusable payload
        """
        spec = self.TAGS.get(frame.tag)
        if spec is None or not self._caps.supports(spec[0]):
            return UnrecognizedEvent(frame.tag, frame.payload)
        _, needs_payload = spec
        if needs_payload and frame.payload is None:
            raise MalformedEventError(f"{frame.tag} frame has no payload", tag=frame.tag, payload=None)
        try:
            return self._decode(frame)
        except DecodeError as exc:
            raise MalformedEventError(
                f"{frame.tag} payload does not decode: {exc}", tag=frame.tag, payload=frame.payload
            ) from exc

    def _decode(self, frame: Frame) -> StreamEvent:
        tag, payload = frame.tag, frame.payload
        if tag == "filters_changed":
            return FiltersChangedEvent()
        if tag == "delete":
            return DeleteEvent(payload.strip().strip('"'))  # type: ignore[union-attr]
        if tag == "announcement.delete":
            return AnnouncementDeleteEvent(payload.strip().strip('"'))  # type: ignore[union-attr]

        data = self._json(frame)
        if tag == "update":
            return UpdateEvent(self._decoder.decode_entity("Status", data))
        if tag == "notification":
            return NotificationEvent(self._decoder.decode_entity("Notification", data))
        if tag == "conversation":
            return ConversationEvent(self._decoder.decode_entity("Conversation", data))
        if tag == "announcement":
            return AnnouncementEvent(self._decoder.decode_entity("Announcement", data))
        # announcement.reaction
        if not isinstance(data, dict):
            raise DecodeError(tag, "expected an object")
        try:
            return AnnouncementReactionEvent(
                announcement_id=str(data["announcement_id"]),
                name=str(data["name"]),
                count=int(data["count"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise DecodeError(tag, f"invalid reaction payload: {exc}") from exc

    @staticmethod
    def _json(frame: Frame) -> Any:
        try:
            return json.loads(frame.payload or "")
        except ValueError as exc:
            raise DecodeError(frame.tag, "payload is not JSON") from exc


# =============================================================================
# Reader
# =============================================================================


class ReaderState(Enum):
    CONNECTING = auto()
    OPEN = auto()
    READING = auto()
    IDLE = auto()
    RECONNECTING = auto()
    CLOSED = auto()


Connector = Callable[[], AbstractAsyncContextManager[StreamResponse]]

# Items passed from the pump task to the consumer
_Item = Union[Frame, BaseException]


class EventReader:
    """Pull-based reader over one streaming connection.

    A background task owns the connection and forwards frames through a
    bounded in-memory channel, so a timed-out ``next_event`` leaves the
    connection intact. The task runs in a task group entered by ``async with``
    (or one passed to ``start``) and left only when that block exits, so reads
    may happen inside any cancel scope of the caller. ``aclose`` from any task
    cancels the background task, which releases the connection; an in-flight
    ``next_event`` then raises ``StreamCancelledError``.
    """

    def __init__(
        self,
        connect: Connector,
        events: EventDecoder,
        *,
        framing: Framing = "sse",
        idle_timeout: float | None = None,
        name: str = "stream",
        buffer_size: int = 64,
    ) -> None:
        self._connect = connect
        self._events = events
        self._framing = framing
        self._idle_timeout = idle_timeout
        self._name = name
        self._buffer_size = buffer_size

        self._state = ReaderState.CONNECTING
        self._stack: AsyncExitStack | None = None
        self._receive: ObjectReceiveStream[_Item] | None = None
        self._pump_scope: anyio.CancelScope | None = None
        self._started = False
        self._closing = False
        self._reading = False

    @property
    def state(self) -> ReaderState:
        return self._state

    @property
    def name(self) -> str:
        return self._name

    async def __aenter__(self) -> EventReader:
        stack = AsyncExitStack()
        task_group = await stack.enter_async_context(anyio.create_task_group())
        try:
            await self.start(task_group)
        except BaseException:
            await stack.aclose()
            raise
        self._stack = stack
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
        stack, self._stack = self._stack, None
        if stack is not None:
            await stack.aclose()

    def __aiter__(self) -> EventReader:
        return self

    async def __anext__(self) -> StreamEvent:
        try:
            return await self.next_event()
        except StreamClosedError:
            raise StopAsyncIteration from None

    async def start(self, task_group: TaskGroup) -> None:
        """Connect and start reading in ``task_group``.

        ``async with reader`` calls this with a task group of its own. A task
        group passed in must stay open for as long as the reader is used.

        Raises:
            ApiError: If the handshake is answered with an error status
            NetworkError: If the connection cannot be established
            RuntimeError: If the reader was already started
        """
        if self._closing:
            raise StreamClosedError(f"{self._name} is closed")
        if self._started:
            raise RuntimeError(f"{self._name} reader was already opened")
        self._started = True
        self._state = ReaderState.CONNECTING
        send, receive = anyio.create_memory_object_stream(max_buffer_size=self._buffer_size)
        try:
            await task_group.start(self._pump, send)
        except BaseException:
            self._state = ReaderState.CLOSED
            receive.close()
            raise
        self._receive = receive
        self._state = ReaderState.OPEN
        _logger.debug("stream opened", extra={"event": "stream.open", "stream": self._name})

    async def _pump(self, send: ObjectSendStream[_Item], *, task_status: Any = anyio.TASK_STATUS_IGNORED) -> None:
        with anyio.CancelScope() as scope:
            self._pump_scope = scope
            async with send:
                async with self._connect() as response:
                    if response.status >= 400:
                        body = await response.read()
                        raise error_for_response(response.status, response.headers, body, what=self._name)
                    task_status.started()
                    source = frame_source(response.lines, self._framing)
                    try:
                        while True:
                            try:
                                frame = await source.next_frame()
                            except MalformedEventError as exc:
                                await send.send(exc)
                                continue
                            except (StreamClosedError, NetworkError) as exc:
                                await send.send(exc)
                                return
                            await send.send(frame)
                    except anyio.BrokenResourceError:
                        # Nobody is reading anymore
                        return

    async def next_event(self, timeout: float | None = None) -> StreamEvent:
        """Wait for and return the next event.

        Args:
            timeout: Seconds to wait; defaults to the reader's idle timeout.
                ``None`` waits indefinitely.

        Raises:
            StreamTimeoutError: No frame within ``timeout``; the stream stays open
            MalformedEventError: This one frame could not be decoded
            StreamCancelledError: ``aclose`` was called while waiting
            StreamClosedError: The connection ended
            RuntimeError: The reader is not open, or another task is reading
        """
        if self._state is ReaderState.CLOSED:
            raise StreamClosedError(f"{self._name} is closed")
        if self._reading:
            raise RuntimeError(f"{self._name} reader is already being read by another task")
        receive = self._receive
        if receive is None:
            raise RuntimeError(f"{self._name} reader is not open; use 'async with'")

        limit = self._idle_timeout if timeout is None else timeout
        item: _Item | None
        self._reading = True
        self._state = ReaderState.READING
        try:
            with anyio.fail_after(limit):
                item = await receive.receive()
        except TimeoutError:
            raise StreamTimeoutError(f"no event on {self._name} within {limit}s") from None
        except anyio.EndOfStream:
            item = None
        finally:
            self._reading = False
            if self._state is ReaderState.READING:
                self._state = ReaderState.IDLE

        if isinstance(item, Frame):
            return self._events.decode(item)
        if isinstance(item, MalformedEventError):
            raise item
        self._release()
        if self._closing:
            raise StreamCancelledError(f"{self._name} was closed while reading") from item
        if item is None:
            raise StreamClosedError(f"{self._name} ended")
        if isinstance(item, StreamClosedError):
            raise item
        raise StreamClosedError(f"{self._name} connection lost: {item}") from item

    async def aclose(self) -> None:
        """Stop reading and release the connection. Safe to call more than once, from any task."""
        self._closing = True
        self._release()

    def _release(self) -> None:
        if self._pump_scope is not None:
            self._pump_scope.cancel()
        if self._state is not ReaderState.CLOSED and self._started:
            _logger.debug("stream closed", extra={"event": "stream.close", "stream": self._name})
        self._state = ReaderState.CLOSED
        # A pending read is woken when the pump closes its end
        if not self._reading and self._receive is not None:
            self._receive.close()
            self._receive = None


class ReconnectingEventReader:
    """Opt-in reconnection layered over ``EventReader``.

    When the connection ends, a new reader is started after the delay given by
    ``policy``. Every reader runs in one task group held for the lifetime of
    the ``async with`` block. The first event after a successful reconnection
    is a ``StreamGapEvent``: events sent while disconnected are lost.
    """

    def __init__(self, factory: Callable[[], EventReader], policy: ReconnectPolicy) -> None:
        self._factory = factory
        self._policy = policy
        self._reader: EventReader | None = None
        self._stack: AsyncExitStack | None = None
        self._task_group: TaskGroup | None = None
        self._state = ReaderState.CONNECTING
        self._closing = False
        self._gap: StreamGapEvent | None = None
        self._connected_once = False

    @property
    def state(self) -> ReaderState:
        return self._state

    async def __aenter__(self) -> ReconnectingEventReader:
        stack = AsyncExitStack()
        self._task_group = await stack.enter_async_context(anyio.create_task_group())
        try:
            await self._connect(None)
        except BaseException:
            self._state = ReaderState.CLOSED
            self._task_group = None
            await stack.aclose()
            raise
        self._stack = stack
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
        stack, self._stack = self._stack, None
        self._task_group = None
        if stack is not None:
            await stack.aclose()

    def __aiter__(self) -> ReconnectingEventReader:
        return self

    async def __anext__(self) -> StreamEvent:
        try:
            return await self.next_event()
        except StreamClosedError:
            raise StopAsyncIteration from None

    async def next_event(self, timeout: float | None = None) -> StreamEvent:
        while True:
            if self._closing or self._state is ReaderState.CLOSED:
                raise StreamClosedError("reader is closed")
            if self._reader is None:
                raise RuntimeError("reconnecting reader is not open; use 'async with'")
            if self._gap is not None:
                gap, self._gap = self._gap, None
                return gap
            self._state = ReaderState.READING
            try:
                event = await self._reader.next_event(timeout)
            except StreamCancelledError:
                self._state = ReaderState.CLOSED
                raise
            except StreamClosedError as exc:
                if self._closing:
                    raise
                await self._connect(exc.__cause__ or exc)
                continue
            finally:
                if self._state is ReaderState.READING:
                    self._state = ReaderState.IDLE
            return event

    async def _connect(self, cause: BaseException | None) -> None:
        assert self._task_group is not None
        # A closed reader stays in place until replaced, so a reconnection
        # interrupted by the caller is retried on the next read
        attempt = 0
        while True:
            if cause is not None:
                attempt += 1
                if self._policy.max_attempts is not None and attempt > self._policy.max_attempts:
                    self._state = ReaderState.CLOSED
                    raise StreamClosedError(f"gave up reconnecting after {attempt - 1} attempts") from cause
                self._state = ReaderState.RECONNECTING
                delay = self._policy.delay_for(attempt)
                _logger.info(
                    "reconnecting stream",
                    extra={"event": "stream.reconnect", "attempt": attempt, "delay": delay},
                )
                await anyio.sleep(delay)
            reader = self._factory()
            try:
                await reader.start(self._task_group)
            except (NetworkError, ServerError) as exc:
                cause = exc
                continue
            except ApiError:
                self._state = ReaderState.CLOSED
                raise
            self._reader = reader
            if self._connected_once:
                self._gap = StreamGapEvent(attempt=max(attempt, 1), error=cause)
            self._connected_once = True
            self._state = ReaderState.OPEN
            return

    async def aclose(self) -> None:
        self._closing = True
        reader, self._reader = self._reader, None
        if reader is not None:
            await reader.aclose()
        self._state = ReaderState.CLOSED


__all__ = [
    "AnnouncementDeleteEvent",
    "AnnouncementEvent",
    "AnnouncementReactionEvent",
    "ConversationEvent",
    "DeleteEvent",
    "EventDecoder",
    "EventReader",
    "FiltersChangedEvent",
    "Frame",
    "FrameSource",
    "JsonMessageFrameSource",
    "NotificationEvent",
    "ReaderState",
    "ReconnectingEventReader",
    "SseFrameSource",
    "StreamEvent",
    "StreamGapEvent",
    "UnrecognizedEvent",
    "UpdateEvent",
    "frame_source",
]
