"""
Server-sent events line decoder.

Follows the text/event-stream framing: "field: value" lines accumulate
into an event that is dispatched on a blank line. Comment lines (":")
are surfaced as COMMENT events so callers can treat server heartbeats
as proof of life.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator

COMMENT = ":comment"


@dataclass(frozen=True, slots=True)
class ServerSentEvent:
    """One dispatched event from the stream."""

    event: str = "message"
    data: str = ""
    id: str = ""
    retry: int | None = None

    @property
    def is_comment(self) -> bool:
        return self.event == COMMENT


class SSEDecoder:
    """
    Incremental decoder, fed one line at a time (without the newline).

    Usage:
        decoder = SSEDecoder()
        for line in lines:
            event = decoder.decode(line)
            if event is not None:
                handle(event)
    """

    def __init__(self) -> None:
        self._event = ""
        self._data: list[str] = []
        self._last_id = ""
        self._retry: int | None = None

    def decode(self, line: str) -> ServerSentEvent | None:
        if not line:
            return self._dispatch()

        if line.startswith(":"):
            return ServerSentEvent(event=COMMENT, data=line[1:].lstrip())

        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if name == "event":
            self._event = value
        elif name == "data":
            self._data.append(value)
        elif name == "id":
            if "\0" not in value:
                self._last_id = value
        elif name == "retry":
            try:
                self._retry = int(value)
            except ValueError:
                pass
        # Unknown fields are ignored
        return None

    def _dispatch(self) -> ServerSentEvent | None:
        if not self._event and not self._data:
            return None
        event = ServerSentEvent(
            event=self._event or "message",
            data="\n".join(self._data),
            id=self._last_id,
            retry=self._retry,
        )
        self._event = ""
        self._data = []
        self._retry = None
        return event


async def iter_sse(lines: AsyncIterator[str]) -> AsyncIterator[ServerSentEvent]:
    """Decode an async stream of lines into events."""
    decoder = SSEDecoder()
    async for line in lines:
        event = decoder.decode(line.rstrip("\r"))
        if event is not None:
            yield event
