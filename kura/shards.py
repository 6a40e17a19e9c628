# -*- coding: utf-8 -*-
# cython: language_level=3
# BSD 3-Clause License
#
# Copyright (c) 2020-2022, Faster Speeding
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
# * Redistributions of source code must retain the above copyright notice, this
#   list of conditions and the following disclaimer.
#
# * Redistributions in binary form must reproduce the above copyright notice,
#   this list of conditions and the following disclaimer in the documentation
#   and/or other materials provided with the distribution.
#
# * Neither the name of the copyright holder nor the names of its
#   contributors may be used to endorse or promote products derived from
#   this software without specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE
# DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE LIABLE
# FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR
# SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER
# CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY,
# OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE
# OF THIS SOFTWARE, EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
"""Supervision of a bot's shard connections and their aggregated readiness."""

from __future__ import annotations

__all__: typing.Sequence[str] = ["DEFAULT_SHARD_DELAY", "Shard", "ShardSupervisor"]

import asyncio
import functools
import logging
import typing

from . import errors
from . import events
from . import models

if typing.TYPE_CHECKING:
    from . import abc as kura_abc
    from . import cache
    from . import normalizer as normalizer_

_LOGGER: typing.Final[logging.Logger] = logging.getLogger("hikari.kura")

DEFAULT_SHARD_DELAY: typing.Final[float] = 5.0
"""The default delay (in seconds) between starting each shard.

Shard `n` starts `n` times this after `ShardSupervisor.start` is called.
"""


class Shard:
    """An active shard and its connection."""

    __slots__: typing.Sequence[str] = ("connection", "id", "is_ready", "shard_count")

    def __init__(self, shard_id: int, shard_count: int, connection: kura_abc.Connection, /) -> None:
        self.connection = connection
        self.id = shard_id
        self.is_ready = False
        self.shard_count = shard_count

    def __repr__(self) -> str:
        return f"Shard(id={self.id}, shard_count={self.shard_count}, is_ready={self.is_ready})"


class ShardSupervisor:
    """Starts a bot's shards and tracks when they've all finished loading.

    Parameters
    ----------
    normalizer : kura.normalizer.EventNormalizer
        The reducers raw shard events are applied through.
    bus : kura.events.EventBus
        The bus lifecycle events are emitted on.
    connection_factory : kura.abc.ConnectionFactory
        Callback used to create each shard's connection.

    Other Parameters
    ----------------
    shard_delay : float
        The base delay in seconds between starting each shard.
    """

    __slots__: typing.Sequence[str] = (
        "_bus",
        "_connection_factory",
        "_expected",
        "_is_ready",
        "_normalizer",
        "_pending",
        "_presence",
        "_shard_delay",
        "_shards",
    )

    def __init__(
        self,
        normalizer: normalizer_.EventNormalizer,
        bus: events.EventBus,
        connection_factory: kura_abc.ConnectionFactory,
        /,
        *,
        shard_delay: float = DEFAULT_SHARD_DELAY,
    ) -> None:
        self._bus = bus
        self._connection_factory = connection_factory
        self._expected: typing.FrozenSet[int] = frozenset()
        self._is_ready = False
        self._normalizer = normalizer
        self._pending: typing.Dict[int, asyncio.Task[None]] = {}
        self._presence = models.Presence()
        self._shard_delay = shard_delay
        self._shards: typing.Dict[int, Shard] = {}

    @property
    def is_ready(self) -> bool:
        """Whether every shard has reported ready and every guild has become available.

        Once this becomes `builtins.True` it stays that way.
        """
        return self._is_ready

    @property
    def shards(self) -> typing.Mapping[int, Shard]:
        """Mapping of shard IDs to the currently active shards."""
        return dict(self._shards)

    @property
    def store(self) -> cache.CacheStore:
        return self._normalizer.store

    def start(
        self,
        shard_count: int,
        *,
        url: str,
        token: str,
        presence: models.Presence = models.Presence(),
        start_index: typing.Optional[int] = None,
    ) -> None:
        """Schedule the shards' connections to be started.

        This must be called within a running event loop. Each shard's start is
        delayed by the base delay times its ID to avoid hitting the gateway's
        connection rate limit.

        Parameters
        ----------
        shard_count : int
            The total amount of shards the bot is running.
        url : str
            The gateway URL to connect to.
        token : str
            The bot's token.
        presence : kura.models.Presence
            The presence to identify with.
        start_index : typing.Optional[int]
            If provided then only this shard will be started.

        Raises
        ------
        RuntimeError
            If shards are already running or starting.
        ValueError
            If `shard_count` is less than 1 or `start_index` is out of range.
        """
        if self._shards or self._pending:
            raise RuntimeError("Shards are already running")

        if shard_count < 1:
            raise ValueError("shard_count must be greater than 0")

        if start_index is not None and not 0 <= start_index < shard_count:
            raise ValueError(f"start_index must be between 0 and {shard_count - 1}")

        shard_ids = range(shard_count) if start_index is None else (start_index,)
        loop = asyncio.get_running_loop()
        self._expected = frozenset(shard_ids)
        self._presence = presence
        for shard_id in shard_ids:
            spec = models.ShardSpec(shard_id=shard_id, shard_count=shard_count, url=url, token=token, presence=presence)
            task = loop.create_task(self.__spawn_shard(spec, self._shard_delay * shard_id))
            task.add_done_callback(functools.partial(self.__on_start_done, shard_id))
            self._pending[shard_id] = task

    async def __spawn_shard(self, spec: models.ShardSpec, delay: float, /) -> None:
        try:
            if delay:
                await asyncio.sleep(delay)

            connection = self._connection_factory(spec)
            if connection.shard_id != spec.shard_id:
                raise ValueError(f"Connection created for shard {spec.shard_id} reports shard ID {connection.shard_id}")

            shard = Shard(spec.shard_id, spec.shard_count, connection)
            connection.subscribe(functools.partial(self.__on_raw_event, shard))
            self._shards[spec.shard_id] = shard
            _LOGGER.info("Starting shard %s/%s", spec.shard_id, spec.shard_count)
            self._bus.emit(events.EventName.DEBUG, f"Starting shard {spec.shard_id}.")

            try:
                await connection.connect()

            except Exception:
                # Ensure a connection which never started isn't left in the active shards.
                if self._shards.get(spec.shard_id) is shard:
                    del self._shards[spec.shard_id]

                raise

        finally:
            self._pending.pop(spec.shard_id, None)

    def __on_start_done(self, shard_id: int, task: asyncio.Task[None], /) -> None:
        if task.cancelled() or (exc := task.exception()) is None:
            return

        _LOGGER.error("Failed to start shard %s", shard_id, exc_info=exc)
        self._bus.emit(events.EventName.DEBUG, f"Failed to start shard {shard_id}: {exc!r}.")

    def cancel_pending(self) -> None:
        """Cancel the startup of any shard which hasn't started connecting yet."""
        for task in self._pending.values():
            task.cancel()

    async def join_startup(self) -> None:
        """Wait for every scheduled shard to have started connecting.

        This will raise the first error any connection raised while starting.
        """
        if tasks := list(self._pending.values()):
            await asyncio.gather(*tasks)

    def __on_raw_event(self, shard: Shard, event_name: str, payload: kura_abc.ObjectT, /) -> None:
        if event_name == "ready":
            self.__on_shard_ready(shard, payload)
            return

        self._normalizer.dispatch(event_name, payload)
        # Guild creates and deletes can both settle the last unavailable guild.
        self.__check_ready()

    def __on_shard_ready(self, shard: Shard, payload: kura_abc.ObjectT, /) -> None:
        for guild in payload.get("guilds") or ():
            self._normalizer.merge_guild_stub(guild)

        shard.is_ready = True
        _LOGGER.info("Shard %s is ready", shard.id)
        self._bus.emit(events.EventName.SHARD_READY, shard.id)

        if self.store.me is None and self.__all_shards_ready() and (user := payload.get("user")):
            self._normalizer.set_me(user, self._presence)

        self.__check_ready()

    def __all_shards_ready(self) -> bool:
        return bool(self._expected) and all(
            (shard := self._shards.get(shard_id)) is not None and shard.is_ready for shard_id in self._expected
        )

    def __check_ready(self) -> None:
        if self._is_ready or not self.__all_shards_ready():
            return

        if not self.store.guilds.every(lambda guild: not guild.get("unavailable")):
            return

        self._is_ready = True
        _LOGGER.info("All shards are ready and all guilds are available")
        self._bus.emit(events.EventName.READY)

    def send(self, data: bytes, /, shard_id: typing.Optional[int] = None) -> None:
        """Send data to one shard or broadcast it to all of them.

        A failed send to one shard doesn't stop a broadcast to the others.

        Parameters
        ----------
        data : bytes
            The data to send.
        shard_id : typing.Optional[int]
            ID of the shard to send to. If left as `builtins.None` then this is
            sent to every active shard.

        Raises
        ------
        kura.errors.UnknownShardError
            If the shard ID isn't active.
        kura.errors.ClosedClient
            If this is a broadcast and there are no active shards.
        """
        if shard_id is not None:
            if (shard := self._shards.get(shard_id)) is None:
                raise errors.UnknownShardError(shard_id)

            shard.connection.send(data)
            return

        if not self._shards:
            raise errors.ClosedClient("Cannot send with no active shards")

        for shard in list(self._shards.values()):
            try:
                shard.connection.send(data)

            except Exception as exc:
                _LOGGER.error("Failed to send data to shard %s", shard.id, exc_info=exc)

    async def close(self, shard_id: typing.Optional[int] = None, /) -> None:
        """Close one or all of the active shards.

        Closing every shard also cancels any shard startups which are still
        pending and won't raise if one of the connections fails to close.

        Parameters
        ----------
        shard_id : typing.Optional[int]
            ID of the shard to close. If left as `builtins.None` then all
            shards are closed.

        Raises
        ------
        kura.errors.UnknownShardError
            If the shard ID isn't active.
        """
        if shard_id is not None:
            if (shard := self._shards.pop(shard_id, None)) is None:
                raise errors.UnknownShardError(shard_id)

            try:
                await shard.connection.close()

            finally:
                _LOGGER.info("Shard %s disconnected", shard_id)
                self._bus.emit(events.EventName.SHARD_DISCONNECTED, shard_id)

            return

        self.cancel_pending()
        shards = list(self._shards.values())
        self._shards.clear()
        results = await asyncio.gather(*(shard.connection.close() for shard in shards), return_exceptions=True)
        for shard, result in zip(shards, results):
            if isinstance(result, BaseException):
                _LOGGER.error("Failed to close shard %s", shard.id, exc_info=result)

        _LOGGER.info("All shards disconnected")
        self._bus.emit(events.EventName.DISCONNECTED)
