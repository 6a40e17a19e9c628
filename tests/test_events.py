import asyncio
import logging
from unittest import mock

import pytest

import kura
from kura import events


def test_add_listener_twice_raises(bus):
    bus.add_listener("message", mock.Mock())

    with pytest.raises(kura.DuplicateListenerError) as exc_info:
        bus.add_listener(kura.EventName.MESSAGE, mock.Mock())

    assert exc_info.value.event_name == "message"


def test_add_listener_for_unknown_event_raises(bus):
    with pytest.raises(kura.UnknownEventError):
        bus.add_listener("notAnEvent", mock.Mock())


def test_emit_calls_handler(bus):
    handler = mock.Mock(return_value=None)
    bus.add_listener("guildUpdate", handler)

    bus.emit(kura.EventName.GUILD_UPDATE, None, {"id": "1"})

    handler.assert_called_once_with(None, {"id": "1"})


def test_emit_without_handler_is_noop(bus):
    bus.emit("ready")


def test_remove_listener(bus):
    handler = mock.Mock()
    bus.add_listener("ready", handler)

    bus.remove_listener("ready")
    bus.emit("ready")

    handler.assert_not_called()
    assert bus.get_listener("ready") is None
    with pytest.raises(LookupError):
        bus.remove_listener("ready")


def test_emit_schedules_coroutine_handlers(bus):
    received = []

    async def handler(value):
        received.append(value)

    bus.add_listener("debug", handler)

    async def run():
        bus.emit("debug", "hello")
        assert received == []
        await asyncio.sleep(0)

    asyncio.run(run())

    assert received == ["hello"]


def test_failed_coroutine_handler_is_logged(bus, caplog):
    async def handler():
        raise RuntimeError("oops")

    bus.add_listener("ready", handler)

    async def run():
        bus.emit("ready")
        await asyncio.sleep(0)
        await asyncio.sleep(0)

    with caplog.at_level(logging.ERROR, logger="hikari.kura"):
        asyncio.run(run())

    assert "An event handler raised an exception" in caplog.text


def test_event_name_str():
    assert str(events.EventName.MESSAGE_DELETE_BULK) == "messageDeleteBulk"


def test_failed_sync_handler_is_logged(bus, caplog):
    bus.add_listener("shardReady", mock.Mock(side_effect=RuntimeError("oops")))

    with caplog.at_level(logging.ERROR, logger="hikari.kura"):
        bus.emit("shardReady", 0)

    assert "An event handler for shardReady raised an exception" in caplog.text
    assert "oops" in caplog.text
