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
"""The client which ties Kura's cache, event bus and shard supervisor together."""

from __future__ import annotations

__all__: typing.Sequence[str] = ["Client"]

import asyncio
import base64
import binascii
import json
import logging
import types
import typing

from . import cache
from . import errors
from . import events
from . import gateway
from . import models
from . import normalizer as normalizer_
from . import shards as shards_
from . import utility

if typing.TYPE_CHECKING:
    from . import abc as kura_abc

_ClientT = typing.TypeVar("_ClientT", bound="Client")
_HandlerT = typing.TypeVar("_HandlerT", bound=events.HandlerT)
_LOGGER: typing.Final[logging.Logger] = logging.getLogger("hikari.kura")


class Client:
    """A bot client which keeps an in-memory mirror of the gateway's state.

    Parameters
    ----------
    connection_factory : kura.abc.ConnectionFactory
        Callback used to create the connection for each shard.

    Other Parameters
    ----------------
    config : typing.Optional[typing.MutableMapping[str, typing.Any]]
        Initial settings for this client, see `Client.config`.
    gateway_fetcher : typing.Optional[kura.abc.GatewayFetcher]
        Callback used to fetch the gateway information at login.
        Defaults to fetching it over REST with hikari.
    dumps : typing.Callable[[typing.Any], bytes]
        Callback used to serialize objects passed to `Client.ws_send`.
    """

    __slots__: typing.Sequence[str] = (
        "__bus",
        "__closed",
        "__config",
        "__connection_factory",
        "__dumps",
        "__gateway_fetcher",
        "__normalizer",
        "__store",
        "__supervisor",
        "__token",
    )

    def __init__(
        self,
        connection_factory: kura_abc.ConnectionFactory,
        /,
        *,
        config: typing.Optional[typing.MutableMapping[str, typing.Any]] = None,
        gateway_fetcher: typing.Optional[kura_abc.GatewayFetcher] = None,
        dumps: typing.Callable[[typing.Any], bytes] = lambda obj: json.dumps(obj).encode(),
    ) -> None:
        self.__config = config or {}
        self.__bus = events.EventBus()
        self.__closed: typing.Optional[asyncio.Event] = None
        self.__connection_factory = connection_factory
        self.__dumps = dumps
        self.__gateway_fetcher = gateway_fetcher or gateway.fetch_gateway_info
        self.__store = cache.CacheStore(max_messages=self.__config.get("max_messages"))
        self.__normalizer = normalizer_.EventNormalizer(self.__store, self.__bus)
        self.__supervisor: typing.Optional[shards_.ShardSupervisor] = None
        self.__token: typing.Optional[str] = None

    async def __aenter__(self: _ClientT) -> _ClientT:
        return self

    async def __aexit__(
        self,
        exc_type: typing.Optional[typing.Type[Exception]],
        exc_val: typing.Optional[Exception],
        exc_tb: typing.Optional[types.TracebackType],
    ) -> None:
        await self.ws_close()

    @property
    def bus(self) -> events.EventBus:
        """The event bus this client's domain events are emitted on."""
        return self.__bus

    @property
    def config(self) -> typing.MutableMapping[str, typing.Any]:
        """This client's settings.

        The following keys are used:

        * `"shard_delay"`: the base delay in seconds between starting each shard.
        * `"max_messages"`: the maximum amount of messages to keep cached.
        * `"api_version"`: the gateway API version to connect with.
        """
        return self.__config

    @property
    def store(self) -> cache.CacheStore:
        return self.__store

    @property
    def channels(self) -> cache.Store[kura_abc.ObjectT]:
        """The cached channels."""
        return self.__store.channels

    @property
    def guilds(self) -> cache.Store[kura_abc.ObjectT]:
        """The cached guilds."""
        return self.__store.guilds

    @property
    def messages(self) -> cache.Store[kura_abc.ObjectT]:
        """The cached messages."""
        return self.__store.messages

    @property
    def users(self) -> cache.Store[kura_abc.ObjectT]:
        """The cached users."""
        return self.__store.users

    @property
    def client_id(self) -> typing.Optional[str]:
        """The bot's ID as decoded from its token.

        This will be `builtins.None` before login or if the token is malformed.
        """
        if not self.__token:
            return None

        segment = self.__token.removeprefix("Bot ").split(".", 1)[0]
        try:
            return base64.b64decode(segment + "=" * (-len(segment) % 4)).decode()

        except (binascii.Error, UnicodeDecodeError):
            _LOGGER.debug("Failed to decode client ID from token")
            return None

    @property
    def is_ready(self) -> bool:
        """Whether every shard is ready and every guild has become available."""
        return self.__supervisor is not None and self.__supervisor.is_ready

    @property
    def shards(self) -> typing.Mapping[int, shards_.Shard]:
        """Mapping of shard IDs to the active shards."""
        return self.__supervisor.shards if self.__supervisor else {}

    @property
    def token(self) -> typing.Optional[str]:
        """The token this client logged in with."""
        return self.__token

    @property
    def user(self) -> typing.Optional[models.ClientUser]:
        """The bot's own user, available once all shards have reported ready."""
        return self.__store.me

    def with_shard_delay(self: _ClientT, delay: typing.Optional[utility.DelayT], /) -> _ClientT:
        """Set the base delay between starting each shard.

        Parameters
        ----------
        delay : typing.Optional[kura.utility.DelayT]
            The delay or `builtins.None` to set back to the default behaviour.
            This may either be the number of seconds as an int or float (where
            millisecond precision is supported) or a timedelta.

        Returns
        -------
        _ClientT
            The client this is being called on to enable chained calls.
        """
        if delay is not None:
            self.config["shard_delay"] = utility.convert_delay(delay)

        elif "shard_delay" in self.config:
            del self.config["shard_delay"]

        return self

    def with_max_messages(self: _ClientT, count: typing.Optional[int], /) -> _ClientT:
        """Set the maximum amount of messages to keep cached.

        The oldest messages are evicted first. This resets the message cache.

        Parameters
        ----------
        count : typing.Optional[int]
            The maximum amount of messages or `builtins.None` to leave the
            message cache unbounded.

        Returns
        -------
        _ClientT
            The client this is being called on to enable chained calls.
        """
        if count is not None:
            self.config["max_messages"] = count

        elif "max_messages" in self.config:
            del self.config["max_messages"]

        self.__store.messages = cache.Store(max_size=count)
        return self

    def add_listener(self, event: typing.Union[events.EventName, str], handler: events.HandlerT, /) -> None:
        """Set the handler for a domain event.

        Raises
        ------
        kura.errors.DuplicateListenerError
            If a handler is already set for the event.
        kura.errors.UnknownEventError
            If the event name isn't one Kura emits.
        """
        self.__bus.add_listener(event, handler)

    @typing.overload
    def on(self, event: typing.Union[events.EventName, str], /) -> typing.Callable[[_HandlerT], _HandlerT]:
        ...

    @typing.overload
    def on(self, event: typing.Union[events.EventName, str], handler: _HandlerT, /) -> _HandlerT:
        ...

    def on(
        self, event: typing.Union[events.EventName, str], handler: typing.Optional[_HandlerT] = None, /
    ) -> typing.Union[_HandlerT, typing.Callable[[_HandlerT], _HandlerT]]:
        """Set the handler for a domain event.

        This may be used as a decorator by leaving out `handler`.

        Examples
        --------
        ```py
        @client.on("message")
        async def on_message(message: dict[str, typing.Any]) -> None:
            ...
        ```
        """
        if handler is not None:
            self.add_listener(event, handler)
            return handler

        def decorator(handler_: _HandlerT, /) -> _HandlerT:
            self.add_listener(event, handler_)
            return handler_

        return decorator

    def remove_listener(self, event: typing.Union[events.EventName, str], /) -> None:
        self.__bus.remove_listener(event)

    def emit(self, event: typing.Union[events.EventName, str], /, *args: typing.Any) -> None:
        """Emit a domain event to its handler, if one is set."""
        self.__bus.emit(event, *args)

    def __debug(self, message: str, /) -> None:
        _LOGGER.debug(message)
        self.__bus.emit(events.EventName.DEBUG, message)

    async def login(
        self,
        token: str,
        /,
        *,
        presence: models.Presence = models.Presence(),
        sharding: typing.Optional[models.Sharding] = None,
        shard_count: typing.Optional[int] = None,
    ) -> None:
        """Fetch the gateway information and start this bot's shards.

        This returns once the shards have been scheduled to start; the
        `"ready"` event is emitted once they've all loaded.

        Parameters
        ----------
        token : str
            The bot's token.

        Other Parameters
        ----------------
        presence : kura.models.Presence
            The presence to identify with.
        sharding : typing.Optional[kura.models.Sharding]
            If provided then only this one shard of a bot which's split over
            multiple processes will be started.
        shard_count : typing.Optional[int]
            Override for the amount of shards to start. Defaults to the
            gateway's recommended shard count.

        Raises
        ------
        RuntimeError
            If this client is already logged in.
        kura.errors.BootstrapError
            If fetching the gateway information failed.
        kura.errors.SessionStartLimitReached
            If the session start limit has been reached.
        """
        if self.__supervisor is not None:
            raise RuntimeError("Client is already logged in")

        self.__token = token
        self.__debug("Getting gateway info.")
        info = await self.__gateway_fetcher(token)
        self.__debug(
            f"Session start limit: {info.session_start_limit.remaining}/{info.session_start_limit.total} remaining."
        )
        gateway.check_session_limit(info)

        api_version = self.config.get("api_version", gateway.DEFAULT_API_VERSION)
        url = gateway.build_gateway_url(info.url, api_version=api_version)
        if sharding:
            count, start_index = sharding.total_shards, sharding.shard_id

        else:
            count, start_index = shard_count or info.shard_count, None

        supervisor = shards_.ShardSupervisor(
            self.__normalizer,
            self.__bus,
            self.__connection_factory,
            shard_delay=utility.convert_delay(self.config.get("shard_delay", shards_.DEFAULT_SHARD_DELAY)),
        )
        self.__debug(f"Using gateway {url} with {count} shard(s).")
        supervisor.start(count, url=url, token=token, presence=presence, start_index=start_index)
        self.__closed = asyncio.Event()
        self.__supervisor = supervisor

    async def join(self) -> None:
        """Wait until this client's shards have all been closed.

        Raises
        ------
        kura.errors.ClosedClient
            If this client isn't logged in.
        """
        if self.__closed is None:
            raise errors.ClosedClient("Client is not logged in")

        await self.__closed.wait()

    def run(self, token: str, /, **kwargs: typing.Any) -> None:
        """Login and block until the shards are all closed.

        This starts its own event loop and takes the same keyword arguments
        as `Client.login`. A failed login is logged and exits the process.
        """
        try:
            asyncio.run(self.__run(token, **kwargs))

        except errors.BootstrapError as exc:
            _LOGGER.critical("Failed to start: %s", exc.message, exc_info=exc.base_exception)
            raise SystemExit(1) from exc

    async def __run(self, token: str, /, **kwargs: typing.Any) -> None:
        await self.login(token, **kwargs)
        try:
            await self.join()

        finally:
            if self.__supervisor is not None:
                await self.ws_close()

    def ws_send(self, data: typing.Any, /, shard_id: typing.Optional[int] = None) -> None:
        """Send data over the gateway.

        Parameters
        ----------
        data : typing.Any
            The data to send. Strings are UTF-8 encoded and anything other
            than `builtins.bytes` is serialized first.
        shard_id : typing.Optional[int]
            ID of the shard to send to. If left as `builtins.None` then this is
            sent to every active shard.

        Raises
        ------
        ValueError
            If no data is passed.
        kura.errors.UnknownShardError
            If the shard ID isn't active.
        kura.errors.ClosedClient
            If this is a broadcast and there are no active shards.
        """
        if data is None or (isinstance(data, (bytes, str)) and not data):
            raise ValueError("Data must be provided")

        if self.__supervisor is None:
            if shard_id is not None:
                raise errors.UnknownShardError(shard_id)

            raise errors.ClosedClient("Cannot send with no active shards")

        if isinstance(data, str):
            data = data.encode()

        elif not isinstance(data, bytes):
            data = self.__dumps(data)

        self.__supervisor.send(data, shard_id)

    async def ws_close(self, shard_id: typing.Optional[int] = None, /) -> None:
        """Close one or all of this client's shards.

        Closing all the shards logs this client out.

        Raises
        ------
        kura.errors.UnknownShardError
            If the shard ID isn't active.
        """
        supervisor = self.__supervisor
        if shard_id is not None:
            if supervisor is None:
                raise errors.UnknownShardError(shard_id)

            await supervisor.close(shard_id)
            return

        if supervisor is None:
            return

        self.__supervisor = None
        try:
            await supervisor.close()

        finally:
            if self.__closed:
                self.__closed.set()
                self.__closed = None
