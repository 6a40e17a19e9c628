import asyncio
import logging
from unittest import mock

import hikari
import pytest

import kura
from kura import shards


def _make_supervisor(normalizer, bus, recorder, *, shard_delay=0.0):
    return shards.ShardSupervisor(normalizer, bus, recorder, shard_delay=shard_delay)


async def _start(supervisor, shard_count, **kwargs):
    supervisor.start(shard_count, url="wss://gateway.example?v=10&encoding=json", token="token", **kwargs)
    await supervisor.join_startup()


def _ready(user_id="99", guilds=()):
    return {"user": {"id": user_id, "username": "bot", "bot": True}, "guilds": list(guilds)}


def test_start_creates_shards(normalizer, bus, recorder):
    supervisor = _make_supervisor(normalizer, bus, recorder)
    presence = kura.Presence(afk=True)

    asyncio.run(_start(supervisor, 3, presence=presence))

    assert sorted(supervisor.shards) == [0, 1, 2]
    assert all(connection.connected for connection in recorder.connections.values())
    spec = recorder.connections[2].spec
    assert spec == kura.ShardSpec(2, 3, "wss://gateway.example?v=10&encoding=json", "token", presence)


def test_start_in_partitioned_mode(normalizer, bus, recorder):
    supervisor = _make_supervisor(normalizer, bus, recorder)

    asyncio.run(_start(supervisor, 4, start_index=2))

    assert list(supervisor.shards) == [2]
    assert recorder.connections[2].spec.shard_count == 4


@pytest.mark.parametrize(("shard_count", "start_index"), [(0, None), (2, 2), (2, -1)])
def test_start_rejects_invalid_arguments(normalizer, bus, recorder, shard_count, start_index):
    supervisor = _make_supervisor(normalizer, bus, recorder)

    async def run():
        supervisor.start(shard_count, url="wss://", token="token", start_index=start_index)

    with pytest.raises(ValueError):
        asyncio.run(run())


def test_start_staggers_shards(normalizer, bus):
    loop_times = {}

    class TimedRecorder:
        def __call__(self, spec):
            loop_times[spec.shard_id] = asyncio.get_running_loop().time()
            connection = mock.Mock(kura.Connection, shard_id=spec.shard_id)
            connection.connect = mock.AsyncMock()
            return connection

    supervisor = shards.ShardSupervisor(normalizer, bus, TimedRecorder(), shard_delay=0.05)

    async def run():
        started_at = asyncio.get_running_loop().time()
        await _start(supervisor, 3)
        return started_at

    started_at = asyncio.run(run())

    assert loop_times[0] - started_at < 0.05
    assert loop_times[1] - started_at >= 0.045
    assert loop_times[2] - started_at >= 0.095
    assert loop_times[0] < loop_times[1] < loop_times[2]


def test_cancel_pending_stops_delayed_shards(normalizer, bus, recorder):
    supervisor = _make_supervisor(normalizer, bus, recorder, shard_delay=10)

    async def run():
        supervisor.start(2, url="wss://", token="token")
        await asyncio.sleep(0)
        supervisor.cancel_pending()
        with pytest.raises(asyncio.CancelledError):
            await supervisor.join_startup()

    asyncio.run(run())

    assert list(recorder.connections) == [0]


def test_failed_connect_removes_shard(normalizer, bus):
    connection = mock.Mock(kura.Connection, shard_id=0)
    connection.connect = mock.AsyncMock(side_effect=RuntimeError("no"))
    supervisor = shards.ShardSupervisor(normalizer, bus, lambda spec: connection, shard_delay=0)

    with pytest.raises(RuntimeError):
        asyncio.run(_start(supervisor, 1))

    assert supervisor.shards == {}


def test_readiness_waits_for_every_shard_and_guild(normalizer, store, bus, recorder):
    ready = mock.Mock(return_value=None)
    shard_ready = mock.Mock(return_value=None)
    bus.add_listener("ready", ready)
    bus.add_listener("shardReady", shard_ready)
    supervisor = _make_supervisor(normalizer, bus, recorder)
    asyncio.run(_start(supervisor, 2))

    recorder.connections[0].fire("ready", _ready(guilds=[{"id": "1", "unavailable": True}]))

    assert store.guilds.get("1")["unavailable"] is True
    assert store.me is None

    recorder.connections[1].fire("ready", _ready())

    assert store.me is not None
    assert store.me.id == "99"
    assert store.users.get("99") is store.me.payload
    assert supervisor.is_ready is False
    ready.assert_not_called()
    assert [call.args for call in shard_ready.call_args_list] == [(0,), (1,)]

    recorder.connections[0].fire("guildCreate", {"id": "1", "name": "guild"})

    assert supervisor.is_ready is True
    ready.assert_called_once_with()

    recorder.connections[0].fire("guildCreate", {"id": "2", "name": "another"})
    recorder.connections[1].fire("ready", _ready())

    ready.assert_called_once_with()


def test_readiness_without_guilds(normalizer, bus, recorder):
    ready = mock.Mock(return_value=None)
    bus.add_listener("ready", ready)
    supervisor = _make_supervisor(normalizer, bus, recorder)
    asyncio.run(_start(supervisor, 1))

    recorder.connections[0].fire("ready", _ready())

    ready.assert_called_once_with()


def test_own_user_is_built_once(normalizer, store, bus, recorder):
    supervisor = _make_supervisor(normalizer, bus, recorder)
    presence = kura.Presence(status=hikari.Status.IDLE)
    asyncio.run(_start(supervisor, 1, presence=presence))

    recorder.connections[0].fire("ready", _ready())
    me = store.me
    recorder.connections[0].fire("ready", _ready())

    assert store.me is me
    assert me.presence is presence


def test_send_to_shard(normalizer, bus, recorder):
    supervisor = _make_supervisor(normalizer, bus, recorder)
    asyncio.run(_start(supervisor, 2))

    supervisor.send(b"data", 0)

    assert recorder.connections[0].sent == [b"data"]
    assert recorder.connections[1].sent == []


def test_send_to_unknown_shard_raises(normalizer, bus, recorder):
    supervisor = _make_supervisor(normalizer, bus, recorder)
    asyncio.run(_start(supervisor, 1))

    with pytest.raises(kura.UnknownShardError) as exc_info:
        supervisor.send(b"data", 5)

    assert exc_info.value.shard_id == 5


def test_broadcast_continues_past_failures(normalizer, bus, recorder, caplog):
    supervisor = _make_supervisor(normalizer, bus, recorder)
    asyncio.run(_start(supervisor, 3))
    recorder.connections[0].send = mock.Mock(side_effect=RuntimeError("broken"))

    with caplog.at_level(logging.ERROR, logger="hikari.kura"):
        supervisor.send(b"data")

    assert recorder.connections[1].sent == [b"data"]
    assert recorder.connections[2].sent == [b"data"]
    assert "Failed to send data to shard 0" in caplog.text


def test_broadcast_without_shards_raises(normalizer, bus, recorder):
    supervisor = _make_supervisor(normalizer, bus, recorder)

    with pytest.raises(kura.ClosedClient):
        supervisor.send(b"data")


def test_close_shard(normalizer, bus, recorder):
    disconnected = mock.Mock(return_value=None)
    bus.add_listener("shardDisconnected", disconnected)
    supervisor = _make_supervisor(normalizer, bus, recorder)

    async def run():
        await _start(supervisor, 2)
        await supervisor.close(1)

    asyncio.run(run())

    assert recorder.connections[1].closed is True
    assert recorder.connections[0].closed is False
    assert list(supervisor.shards) == [0]
    disconnected.assert_called_once_with(1)


def test_close_unknown_shard_raises(normalizer, bus, recorder):
    supervisor = _make_supervisor(normalizer, bus, recorder)

    async def run():
        await _start(supervisor, 1)
        await supervisor.close(3)

    with pytest.raises(kura.UnknownShardError):
        asyncio.run(run())


def test_close_all_survives_failures(normalizer, bus, recorder, caplog):
    disconnected = mock.Mock(return_value=None)
    bus.add_listener("disconnected", disconnected)
    supervisor = _make_supervisor(normalizer, bus, recorder)

    async def run():
        await _start(supervisor, 3)
        recorder.connections[1].close = mock.AsyncMock(side_effect=RuntimeError("broken"))
        await supervisor.close()

    with caplog.at_level(logging.ERROR, logger="hikari.kura"):
        asyncio.run(run())

    assert recorder.connections[0].closed is True
    assert recorder.connections[2].closed is True
    assert supervisor.shards == {}
    assert "Failed to close shard 1" in caplog.text
    disconnected.assert_called_once_with()


def test_readiness_after_last_unavailable_guild_is_deleted(normalizer, store, bus, recorder):
    ready = mock.Mock(return_value=None)
    bus.add_listener("ready", ready)
    supervisor = _make_supervisor(normalizer, bus, recorder)
    asyncio.run(_start(supervisor, 1))
    stubs = [{"id": "1", "unavailable": True}, {"id": "2", "unavailable": True}]

    recorder.connections[0].fire("ready", _ready(guilds=stubs))
    recorder.connections[0].fire("guildCreate", {"id": "1", "name": "guild"})

    ready.assert_not_called()

    recorder.connections[0].fire("guildDelete", {"id": "2", "unavailable": True})

    assert store.guilds.ids() == ["1"]
    assert supervisor.is_ready is True
    ready.assert_called_once_with()


def test_raising_shard_ready_handler_does_not_block_readiness(normalizer, store, bus, recorder, caplog):
    ready = mock.Mock(return_value=None)
    bus.add_listener("ready", ready)
    bus.add_listener("shardReady", mock.Mock(side_effect=RuntimeError("handler bug")))
    supervisor = _make_supervisor(normalizer, bus, recorder)
    asyncio.run(_start(supervisor, 1))

    with caplog.at_level(logging.ERROR, logger="hikari.kura"):
        recorder.connections[0].fire("ready", _ready())

    assert store.me is not None
    assert supervisor.is_ready is True
    ready.assert_called_once_with()
    assert "handler bug" in caplog.text


def test_failed_start_is_logged_without_joining(normalizer, bus, caplog):
    debug = mock.Mock(return_value=None)
    bus.add_listener("debug", debug)
    connection = mock.Mock(kura.Connection, shard_id=0)
    connection.connect = mock.AsyncMock(side_effect=ConnectionError("refused"))
    supervisor = shards.ShardSupervisor(normalizer, bus, lambda spec: connection, shard_delay=0)

    async def run():
        supervisor.start(1, url="wss://", token="token")
        await asyncio.sleep(0)
        await asyncio.sleep(0)

    with caplog.at_level(logging.ERROR, logger="hikari.kura"):
        asyncio.run(run())

    assert supervisor.shards == {}
    assert "Failed to start shard 0" in caplog.text
    assert "refused" in caplog.text
    assert debug.call_args_list[-1].args == ("Failed to start shard 0: ConnectionError('refused').",)


def test_start_rejects_connection_for_wrong_shard(normalizer, bus):
    connection = mock.Mock(kura.Connection, shard_id=1)
    connection.connect = mock.AsyncMock()
    supervisor = shards.ShardSupervisor(normalizer, bus, lambda spec: connection, shard_delay=0)

    with pytest.raises(ValueError, match="reports shard ID 1"):
        asyncio.run(_start(supervisor, 1))

    connection.subscribe.assert_not_called()
    connection.connect.assert_not_called()
    assert supervisor.shards == {}
