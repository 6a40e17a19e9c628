import typing

import pytest

import kura


class FakeConnection(kura.Connection):
    def __init__(self, spec: kura.ShardSpec) -> None:
        self.spec = spec
        self.callbacks: typing.List[kura.abc.RawCallbackT] = []
        self.sent: typing.List[bytes] = []
        self.connected = False
        self.closed = False

    @property
    def shard_id(self) -> int:
        return self.spec.shard_id

    def subscribe(self, callback: kura.abc.RawCallbackT, /) -> None:
        self.callbacks.append(callback)

    async def connect(self) -> None:
        self.connected = True

    def send(self, data: bytes, /) -> None:
        self.sent.append(data)

    async def close(self) -> None:
        self.closed = True

    def fire(self, name: str, payload: typing.Dict[str, typing.Any]) -> None:
        for callback in self.callbacks:
            callback(name, payload)


class ConnectionRecorder:
    def __init__(self) -> None:
        self.connections: typing.Dict[int, FakeConnection] = {}

    def __call__(self, spec: kura.ShardSpec) -> FakeConnection:
        connection = self.connections[spec.shard_id] = FakeConnection(spec)
        return connection


@pytest.fixture()
def recorder() -> ConnectionRecorder:
    return ConnectionRecorder()


@pytest.fixture()
def store() -> kura.CacheStore:
    return kura.CacheStore()


@pytest.fixture()
def bus() -> kura.EventBus:
    return kura.EventBus()


@pytest.fixture()
def normalizer(store: kura.CacheStore, bus: kura.EventBus) -> kura.EventNormalizer:
    return kura.EventNormalizer(store, bus)
