"""Tests for notice routing and the built-in channels."""

import io

import pytest
from rich.console import Console
from shopbell.core.bus import EventBus
from shopbell.core.events import EventType
from shopbell.notifications.base import Notice, NoticeChannel, NoticeLevel
from shopbell.notifications.channels.console import ConsoleChannel
from shopbell.notifications.channels.file import FileChannel
from shopbell.notifications.router import NoticeRouter


class FakeChannel(NoticeChannel):
    def __init__(self, name="fake", active=True, fail=False):
        self._name = name
        self._active = active
        self._fail = fail
        self.delivered = []

    @property
    def name(self):
        return self._name

    @property
    def is_active(self):
        return self._active

    async def deliver(self, notice):
        if self._fail:
            raise RuntimeError("display gone")
        self.delivered.append(notice)
        return True


@pytest.mark.asyncio
async def test_route_to_all_active_channels():
    router = NoticeRouter()
    a, b, off = FakeChannel("a"), FakeChannel("b"), FakeChannel("off", active=False)
    for channel in (a, b, off):
        router.register(channel)

    notice = Notice(NoticeLevel.ERROR, "Could not accept order 900.", order_id=900)
    assert await router.route(notice) == 2

    assert a.delivered == [notice]
    assert b.delivered == [notice]
    assert off.delivered == []
    assert router.history == [notice]


@pytest.mark.asyncio
async def test_failing_channel_does_not_block_others():
    """A broken display never stops the notice from reaching the rest."""
    router = NoticeRouter()
    broken, ok = FakeChannel("broken", fail=True), FakeChannel("ok")
    router.register(broken)
    router.register(ok)

    assert await router.route(Notice(NoticeLevel.WARNING, "Printer offline")) == 1
    assert len(ok.delivered) == 1


def test_unregister():
    router = NoticeRouter()
    router.register(FakeChannel("a"))
    router.register(FakeChannel("b"))

    router.unregister("a")
    assert router.channel_names == ["b"]


@pytest.mark.asyncio
async def test_file_channel_appends(tmp_path):
    path = tmp_path / "nested" / "notices.log"
    channel = FileChannel(path)

    assert await channel.deliver(Notice(NoticeLevel.ERROR, "Could not accept order 900.", order_id=900))
    assert await channel.deliver(Notice(NoticeLevel.INFO, "Feed connected"))

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert lines[0].endswith("[ERROR] [order 900] Could not accept order 900.")
    assert lines[1].endswith("[INFO] Feed connected")


@pytest.mark.asyncio
async def test_file_channel_unwritable(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    channel = FileChannel(blocker / "notices.log")

    assert await channel.deliver(Notice(NoticeLevel.INFO, "hello")) is False


@pytest.mark.asyncio
async def test_console_channel_prints_and_toggles():
    out = io.StringIO()
    channel = ConsoleChannel(Console(file=out, force_terminal=False, width=120))

    await channel.deliver(Notice(NoticeLevel.WARNING, "Receipt printing failed for order 501."))
    assert "Receipt printing failed for order 501." in out.getvalue()

    channel.set_active(False)
    assert not channel.is_active


@pytest.mark.asyncio
async def test_notices_published_on_bus():
    bus = EventBus()
    seen = []

    async def record(event):
        seen.append(event.data)

    bus.on(EventType.NOTICE, record)
    router = NoticeRouter(bus=bus)

    await router.route(Notice(NoticeLevel.ERROR, "Could not reject order 900.", order_id=900))

    assert seen == [{"level": "error", "message": "Could not reject order 900.", "order_id": 900}]
