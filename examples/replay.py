# -*- coding: utf-8 -*-
# cython: language_level=3
# Kura Examples - A collection of examples for Kura.
# Written in 2022 by Lucina Lucina@lmbyrne.dev
#
# To the extent possible under law, the author(s) have dedicated all copyright
# and related and neighboring rights to this software to the public domain worldwide.
# This software is distributed without any warranty.
#
# You should have received a copy of the CC0 Public Domain Dedication along with this software.
# If not, see <https://creativecommons.org/publicdomain/zero/1.0/>.
"""Example of driving Kura with a connection which replays recorded gateway events.

Each line of the recording should be a JSON object of the form
`{"shard": 0, "name": "guildCreate", "payload": {...}}`.
"""
import asyncio
import datetime
import json
import logging
import os
import typing

import hikari
from hikari import sessions

import kura


class ReplayConnection(kura.Connection):
    __slots__ = ("_callbacks", "_path", "_shard_id", "_task")

    def __init__(self, spec: kura.ShardSpec, path: str) -> None:
        self._callbacks: typing.List[kura.abc.RawCallbackT] = []
        self._path = path
        self._shard_id = spec.shard_id
        self._task: typing.Optional[asyncio.Task[None]] = None

    @property
    def shard_id(self) -> int:
        return self._shard_id

    def subscribe(self, callback: kura.abc.RawCallbackT, /) -> None:
        self._callbacks.append(callback)

    async def connect(self) -> None:
        self._task = asyncio.create_task(self._replay())

    async def _replay(self) -> None:
        with open(self._path) as file:
            for line in file:
                record = json.loads(line)
                if record["shard"] != self._shard_id:
                    continue

                for callback in self._callbacks:
                    callback(record["name"], record["payload"])

                # Let other shards' events interleave with this one's.
                await asyncio.sleep(0)

    def send(self, data: bytes, /) -> None:
        logging.getLogger("replay").info("Shard %s would send %r", self._shard_id, data)

    async def close(self) -> None:
        if self._task:
            self._task.cancel()


async def fetch_recorded_gateway(_: str, /) -> sessions.GatewayBotInfo:
    return sessions.GatewayBotInfo(
        url="wss://gateway.discord.gg",
        shard_count=int(os.getenv("SHARD_COUNT", "1")),
        session_start_limit=sessions.SessionStartLimit(
            total=1000, remaining=1000, reset_after=datetime.timedelta(hours=24), max_concurrency=1
        ),
    )


recording = os.environ["RECORDING_PATH"]
client = kura.Client(
    lambda spec: ReplayConnection(spec, recording), gateway_fetcher=fetch_recorded_gateway
).with_shard_delay(0.1)


@client.on("ready")
async def on_ready() -> None:
    print(f"Replayed state for {len(client.guilds)} guilds and {len(client.channels)} channels")  # noqa: T201
    await client.ws_close()


@client.on(kura.EventName.MESSAGE)
def on_message(message: typing.Dict[str, typing.Any]) -> None:
    print(f"{message['author']['username']}: {message.get('content')}")  # noqa: T201


logging.basicConfig(level=logging.INFO)
client.run("MTIzNDU2Nzg5MDEyMzQ1Njc4.replay.token", presence=kura.Presence(status=hikari.Status.IDLE))
