"""Tests for the server-sent events decoder."""

import pytest
from shopbell.feed.sse import COMMENT, SSEDecoder, iter_sse


def feed(lines):
    decoder = SSEDecoder()
    events = []
    for line in lines:
        event = decoder.decode(line)
        if event is not None:
            events.append(event)
    return events


def test_named_event_dispatched_on_blank_line():
    events = feed(["event: order_paid", 'data: {"order_id": 501}', ""])

    assert len(events) == 1
    assert events[0].event == "order_paid"
    assert events[0].data == '{"order_id": 501}'


def test_multiline_data_joined_with_newlines():
    events = feed(["data: first", "data: second", ""])
    assert events[0].event == "message"
    assert events[0].data == "first\nsecond"


def test_comment_lines_surface_as_heartbeats():
    events = feed([": ping"])
    assert events[0].event == COMMENT
    assert events[0].is_comment
    assert events[0].data == "ping"


def test_id_persists_and_retry_parsed():
    events = feed(["id: 7", "retry: 3000", "data: a", "", "data: b", ""])
    assert events[0].id == "7"
    assert events[0].retry == 3000
    assert events[1].id == "7"
    assert events[1].retry is None


def test_blank_lines_without_fields_dispatch_nothing():
    assert feed(["", "", "unknown: x", ""]) == []


def test_no_space_after_colon():
    events = feed(["event:delivery_paid", "data:{}", ""])
    assert events[0].event == "delivery_paid"
    assert events[0].data == "{}"


@pytest.mark.asyncio
async def test_iter_sse_strips_carriage_returns():
    async def lines():
        for line in ["event: order_paid\r", "data: {}\r", "\r"]:
            yield line

    events = [e async for e in iter_sse(lines())]
    assert [(e.event, e.data) for e in events] == [("order_paid", "{}")]
