# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Streaming tests: framing, event decoding and reader lifecycle."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

import anyio
import httpx
import pytest

from tusk.config import ReconnectPolicy, StreamConfig
from tusk.exceptions import (
    ForbiddenError,
    MalformedEventError,
    StreamCancelledError,
    StreamClosedError,
    StreamTimeoutError,
    UnauthorizedError,
)
from tusk.streaming import (
    AnnouncementReactionEvent,
    ConversationEvent,
    DeleteEvent,
    EventReader,
    FiltersChangedEvent,
    Frame,
    JsonMessageFrameSource,
    NotificationEvent,
    ReaderState,
    ReconnectingEventReader,
    SseFrameSource,
    StreamGapEvent,
    UnrecognizedEvent,
    UpdateEvent,
)
from tusk.surface import surface_for
from tusk.testing import account_payload, notification_payload, sse_lines, status_payload
from tusk.transport import StreamResponse


async def iterate(items: list[str]) -> AsyncIterator[str]:
    for item in items:
        yield item


def connector(lines: Callable[[], AsyncIterator[str]], *, status: int = 200, body: bytes = b""):
    """Connection factory for ``EventReader`` over an in-memory line source."""

    @asynccontextmanager
    async def connect() -> AsyncIterator[StreamResponse]:
        async def read() -> bytes:
            return body

        yield StreamResponse(status, httpx.Headers(), lines(), read)

    return connect


def reader_for(lines: list[str], version: str = "3.3.0", **kwargs) -> EventReader:
    return EventReader(connector(lambda: iterate(lines)), surface_for(version).events, **kwargs)


# =============================================================================
# Framing
# =============================================================================


class TestSseFraming:
    @pytest.mark.anyio
    async def test_event_and_data(self):
        source = SseFrameSource(iterate(["event: delete", "data: 42", ""]))
        assert await source.next_frame() == Frame("delete", "42")

    @pytest.mark.anyio
    async def test_multiline_data_and_comments(self):
        source = SseFrameSource(iterate([":thump", "event: update", "data: {", "data: }", "", ":thump", ""]))
        assert await source.next_frame() == Frame("update", "{\n}")
        with pytest.raises(StreamClosedError):
            await source.next_frame()

    @pytest.mark.anyio
    async def test_default_tag_and_line_endings(self):
        source = SseFrameSource(iterate(["data:hello\r\n", "\r\n"]))
        assert await source.next_frame() == Frame("message", "hello")

    @pytest.mark.anyio
    async def test_frame_without_data(self):
        source = SseFrameSource(iterate(["event: filters_changed", ""]))
        assert await source.next_frame() == Frame("filters_changed", None)


class TestJsonFraming:
    @pytest.mark.anyio
    async def test_payload_string_and_object(self):
        source = JsonMessageFrameSource(
            iterate(
                [
                    json.dumps({"event": "delete", "payload": "12"}),
                    "",
                    json.dumps({"event": "announcement.delete", "payload": {"id": "3"}}),
                ]
            )
        )
        assert await source.next_frame() == Frame("delete", "12")
        assert await source.next_frame() == Frame("announcement.delete", '{"id": "3"}')
        with pytest.raises(StreamClosedError):
            await source.next_frame()

    @pytest.mark.anyio
    @pytest.mark.parametrize("message", ["{not json", '{"payload": "1"}', "[1, 2]"])
    async def test_bad_messages(self, message):
        source = JsonMessageFrameSource(iterate([message]))
        with pytest.raises(MalformedEventError) as exc_info:
            await source.next_frame()
        assert exc_info.value.payload == message


# =============================================================================
# Event decoding
# =============================================================================


class TestEventDecoder:
    def test_update_and_notification(self):
        events = surface_for("3.3.0").events
        update = events.decode(Frame("update", json.dumps(status_payload())))
        notification = events.decode(Frame("notification", json.dumps(notification_payload())))
        assert isinstance(update, UpdateEvent)
        assert update.status.id == "100"
        assert isinstance(notification, NotificationEvent)
        assert notification.notification.account.username == "bob"

    def test_delete_payload_may_be_quoted(self):
        events = surface_for("1.5.0").events
        assert events.decode(Frame("delete", '"77"')) == DeleteEvent("77")
        assert events.decode(Frame("delete", "77\n")) == DeleteEvent("77")

    def test_unknown_tag(self):
        event = surface_for("3.3.0").events.decode(Frame("status.update", "{}"))
        assert event == UnrecognizedEvent("status.update", "{}")

    @pytest.mark.parametrize(
        ("tag", "payload", "since"),
        [
            ("filters_changed", None, "2.9.1"),
            ("conversation", "{}", "2.9.1"),
            ("announcement", "{}", "3.1.0"),
        ],
    )
    def test_tags_gated_by_generation(self, tag, payload, since):
        before = {"2.9.1": "2.4.0", "3.1.0": "3.0.0"}[since]
        assert isinstance(surface_for(before).events.decode(Frame(tag, payload)), UnrecognizedEvent)
        assert tag in surface_for(since).events.known_tags()
        assert tag not in surface_for(before).events.known_tags()

    def test_filters_changed(self):
        assert surface_for("2.9.1").events.decode(Frame("filters_changed")) == FiltersChangedEvent()

    def test_conversation(self):
        payload = {"id": "1", "accounts": [account_payload()], "last_status": None, "unread": True}
        event = surface_for("2.9.1").events.decode(Frame("conversation", json.dumps(payload)))
        assert isinstance(event, ConversationEvent)
        assert event.conversation.unread is True

    def test_announcement_reaction(self):
        payload = json.dumps({"announcement_id": "8", "name": "blobcat", "count": 3})
        event = surface_for("3.1.0").events.decode(Frame("announcement.reaction", payload))
        assert event == AnnouncementReactionEvent("8", "blobcat", 3)

    @pytest.mark.parametrize(
        ("tag", "payload"),
        [
            ("update", None),
            ("update", "{not json"),
            ("update", json.dumps({"id": "1"})),
            ("announcement.reaction", json.dumps({"name": "x"})),
            ("announcement.reaction", "[]"),
        ],
    )
    def test_malformed(self, tag, payload):
        with pytest.raises(MalformedEventError) as exc_info:
            surface_for("3.3.0").events.decode(Frame(tag, payload))
        assert exc_info.value.tag == tag
        assert exc_info.value.payload == payload


# =============================================================================
# EventReader
# =============================================================================


class TestEventReader:
    """Reader lifecycle over an in-memory connection."""

    @pytest.mark.anyio
    async def test_reads_until_the_stream_ends(self):
        reader = reader_for(sse_lines(("delete", "1"), ("delete", "2")))

        async with reader:
            assert reader.state is ReaderState.OPEN
            events = [event async for event in reader]

        assert events == [DeleteEvent("1"), DeleteEvent("2")]
        assert reader.state is ReaderState.CLOSED

    @pytest.mark.anyio
    async def test_end_of_stream_raises_closed(self):
        reader = reader_for(sse_lines(("delete", "1")))

        async with reader:
            await reader.next_event()
            with pytest.raises(StreamClosedError):
                await reader.next_event()
            with pytest.raises(StreamClosedError):
                await reader.next_event()

    @pytest.mark.anyio
    async def test_malformed_frame_does_not_end_the_stream(self):
        reader = reader_for(sse_lines(("update", "{not json"), ("delete", "5")))

        async with reader:
            with pytest.raises(MalformedEventError) as exc_info:
                await reader.next_event()
            assert exc_info.value.tag == "update"
            assert await reader.next_event() == DeleteEvent("5")

    @pytest.mark.anyio
    async def test_gated_tag_is_passed_through(self):
        reader = reader_for(sse_lines(("conversation", {"id": "1"}), ("delete", "5")), version="2.4.0")

        async with reader:
            first = await reader.next_event()
            assert isinstance(first, UnrecognizedEvent)
            assert first.tag == "conversation"
            assert await reader.next_event() == DeleteEvent("5")

    @pytest.mark.anyio
    async def test_timeout_keeps_the_stream_open(self):
        release = anyio.Event()

        async def lines() -> AsyncIterator[str]:
            for line in sse_lines(("delete", "1")):
                yield line
            await release.wait()
            for line in sse_lines(("delete", "2")):
                yield line

        reader = EventReader(connector(lines), surface_for("3.3.0").events)

        async with reader:
            assert await reader.next_event() == DeleteEvent("1")
            with pytest.raises(StreamTimeoutError):
                await reader.next_event(timeout=0.05)
            assert reader.state is ReaderState.IDLE

            release.set()
            assert await reader.next_event(timeout=5) == DeleteEvent("2")

    @pytest.mark.anyio
    async def test_idle_timeout_default(self):
        async def lines() -> AsyncIterator[str]:
            await anyio.sleep_forever()
            yield ""

        reader = EventReader(connector(lines), surface_for("3.3.0").events, idle_timeout=0.05)

        async with reader:
            with pytest.raises(StreamTimeoutError):
                await reader.next_event()

    @pytest.mark.anyio
    async def test_aclose_cancels_a_pending_read(self):
        async def lines() -> AsyncIterator[str]:
            await anyio.sleep_forever()
            yield ""

        reader = EventReader(connector(lines), surface_for("3.3.0").events)
        outcome: dict[str, BaseException] = {}

        async def consume():
            try:
                await reader.next_event()
            except StreamCancelledError as exc:
                outcome["error"] = exc

        async with reader, anyio.create_task_group() as tg:
            tg.start_soon(consume)
            await anyio.sleep(0.05)
            with pytest.raises(RuntimeError, match="already being read"):
                await reader.next_event()
            await reader.aclose()

        assert isinstance(outcome["error"], StreamCancelledError)
        assert reader.state is ReaderState.CLOSED
        with pytest.raises(StreamClosedError):
            await reader.next_event()

    @pytest.mark.anyio
    async def test_read_under_a_caller_deadline(self):
        reader = reader_for(sse_lines(("delete", "1"), ("delete", "2")))

        async with reader:
            with anyio.fail_after(5):
                assert await reader.next_event() == DeleteEvent("1")
            with anyio.fail_after(5):
                assert await reader.next_event() == DeleteEvent("2")
            with anyio.fail_after(5):
                with pytest.raises(StreamClosedError, match="ended"):
                    await reader.next_event()

        assert reader.state is ReaderState.CLOSED

    @pytest.mark.anyio
    async def test_caller_deadline_leaves_the_reader_usable(self):
        release = anyio.Event()

        async def lines() -> AsyncIterator[str]:
            await release.wait()
            for line in sse_lines(("delete", "7")):
                yield line

        reader = EventReader(connector(lines), surface_for("3.3.0").events)

        async with reader:
            with pytest.raises(TimeoutError):
                with anyio.fail_after(0.05):
                    await reader.next_event()
            assert reader.state is ReaderState.IDLE

            release.set()
            with anyio.fail_after(5):
                assert await reader.next_event() == DeleteEvent("7")

    @pytest.mark.anyio
    async def test_reading_requires_async_with(self):
        reader = reader_for(sse_lines(("delete", "1")))

        with pytest.raises(RuntimeError, match="not open"):
            await reader.next_event()

    @pytest.mark.anyio
    async def test_start_in_a_caller_task_group(self):
        reader = reader_for(sse_lines(("delete", "1")))

        async with anyio.create_task_group() as tg:
            await reader.start(tg)
            assert reader.state is ReaderState.OPEN
            assert await reader.next_event() == DeleteEvent("1")
            await reader.aclose()

        assert reader.state is ReaderState.CLOSED

    @pytest.mark.anyio
    async def test_handshake_error(self):
        reader = EventReader(
            connector(lambda: iterate([]), status=401, body=b'{"error": "The access token is invalid"}'),
            surface_for("3.3.0").events,
        )

        with pytest.raises(UnauthorizedError) as exc_info:
            async with reader:
                pass

        assert exc_info.value.error == "The access token is invalid"
        assert reader.state is ReaderState.CLOSED

    @pytest.mark.anyio
    async def test_open_twice(self):
        reader = reader_for(sse_lines(("delete", "1")))

        async with reader, anyio.create_task_group() as tg:
            with pytest.raises(RuntimeError, match="already opened"):
                await reader.start(tg)

    @pytest.mark.anyio
    async def test_json_framing(self):
        messages = [
            json.dumps({"event": "delete", "payload": "12"}),
            "{not json",
            json.dumps({"event": "update", "payload": json.dumps(status_payload())}),
        ]
        reader = reader_for(messages, framing="json")

        async with reader:
            assert await reader.next_event() == DeleteEvent("12")
            with pytest.raises(MalformedEventError):
                await reader.next_event()
            update = await reader.next_event()
            assert isinstance(update, UpdateEvent)


# =============================================================================
# Client stream methods
# =============================================================================


class TestClientStreams:
    @pytest.mark.anyio
    async def test_public_stream(self, make_client, transport):
        transport.add_stream(sse_lines(("update", status_payload()), ("delete", "100")))
        client = make_client(token=None)

        async with client.stream_public() as reader:
            events = [event async for event in reader]

        assert isinstance(events[0], UpdateEvent)
        assert events[1] == DeleteEvent("100")
        request = transport.requests[0]
        assert request.path == "/api/v1/streaming/public"
        assert request.headers["Accept"] == "text/event-stream"
        assert "Authorization" not in request.headers
        assert reader.name == "stream_public"

    @pytest.mark.anyio
    async def test_hashtag_stream_query(self, make_client, transport):
        transport.add_stream([])
        client = make_client()

        async with client.stream_hashtag(tag="tusk"):
            pass

        assert transport.requests[0].query == [("tag", "tusk")]
        assert transport.requests[0].headers["Authorization"] == "Bearer token"

    @pytest.mark.anyio
    async def test_user_stream_needs_a_token(self, make_client, transport):
        client = make_client(token=None)

        with pytest.raises(UnauthorizedError):
            client.stream_user()
        assert transport.requests == []

    @pytest.mark.anyio
    async def test_rejected_handshake(self, make_client, transport):
        transport.add_stream([], status=401)
        client = make_client()

        with pytest.raises(UnauthorizedError):
            async with client.stream_user():
                pass

    def test_stream_gated_by_generation(self, make_client):
        assert not hasattr(make_client("2.4.0"), "stream_direct")
        assert hasattr(make_client("2.9.1"), "stream_direct")


class TestReconnectingReader:
    @pytest.mark.anyio
    async def test_gap_after_reconnect_then_give_up(self, make_client, transport):
        transport.add_stream(sse_lines(("delete", "1")))
        transport.add_stream(sse_lines(("delete", "2")))
        transport.add_error()
        transport.add_error()
        policy = ReconnectPolicy(initial_delay=0.01, max_delay=0.01, max_attempts=2)
        client = make_client(stream=StreamConfig(reconnect=policy))

        async with client.stream_user() as reader:
            assert isinstance(reader, ReconnectingEventReader)
            assert await reader.next_event() == DeleteEvent("1")

            gap = await reader.next_event()
            assert isinstance(gap, StreamGapEvent)
            assert gap.attempt == 1
            assert isinstance(gap.error, StreamClosedError)

            assert await reader.next_event() == DeleteEvent("2")
            with pytest.raises(StreamClosedError, match="gave up"):
                await reader.next_event()

        assert reader.state is ReaderState.CLOSED
        assert len(transport.requests) == 4

    @pytest.mark.anyio
    async def test_non_retryable_handshake_error(self, make_client, transport):
        transport.add_stream([], status=403)
        client = make_client(stream=StreamConfig(reconnect=ReconnectPolicy(initial_delay=0.01)))

        reader = client.stream_user()
        with pytest.raises(ForbiddenError) as exc_info:
            await reader.__aenter__()

        assert exc_info.value.status_code == 403
        assert reader.state is ReaderState.CLOSED

    @pytest.mark.anyio
    async def test_close_stops_reconnection(self, make_client, transport):
        transport.add_stream(sse_lines(("delete", "1")))
        client = make_client(stream=StreamConfig(reconnect=ReconnectPolicy(initial_delay=0.01)))

        reader = client.stream_user()
        async with reader:
            assert await reader.next_event() == DeleteEvent("1")

        with pytest.raises(StreamClosedError):
            await reader.next_event()
        assert len(transport.requests) == 1

    @pytest.mark.anyio
    async def test_reconnect_under_a_caller_deadline(self, make_client, transport):
        transport.add_stream(sse_lines(("delete", "1")))
        transport.add_stream(sse_lines(("delete", "2")))
        policy = ReconnectPolicy(initial_delay=0.01, max_delay=0.01, max_attempts=1)
        client = make_client(stream=StreamConfig(reconnect=policy))

        async with client.stream_user() as reader:
            with anyio.fail_after(5):
                assert await reader.next_event() == DeleteEvent("1")
            with anyio.fail_after(5):
                assert isinstance(await reader.next_event(), StreamGapEvent)
            with anyio.fail_after(5):
                assert await reader.next_event() == DeleteEvent("2")

        assert len(transport.requests) == 2

    @pytest.mark.anyio
    async def test_reading_requires_async_with(self, make_client, transport):
        client = make_client(stream=StreamConfig(reconnect=ReconnectPolicy(initial_delay=0.01)))

        with pytest.raises(RuntimeError, match="not open"):
            await client.stream_user().next_event()
        assert transport.requests == []

    @pytest.mark.anyio
    async def test_reconnect_interrupted_by_the_caller_resumes(self, make_client, transport):
        transport.add_stream(sse_lines(("delete", "1")))
        transport.add_stream(sse_lines(("delete", "2")))
        policy = ReconnectPolicy(initial_delay=0.2, max_delay=0.2, max_attempts=3)
        client = make_client(stream=StreamConfig(reconnect=policy))

        async with client.stream_user() as reader:
            assert await reader.next_event() == DeleteEvent("1")
            with pytest.raises(TimeoutError):
                with anyio.fail_after(0.05):
                    await reader.next_event()
            assert len(transport.requests) == 1

            with anyio.fail_after(5):
                assert isinstance(await reader.next_event(), StreamGapEvent)
                assert await reader.next_event() == DeleteEvent("2")

        assert len(transport.requests) == 2
