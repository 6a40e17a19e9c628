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
"""The domain event vocabulary and the registry consuming code listens through."""

from __future__ import annotations

__all__: typing.Sequence[str] = ["EventBus", "EventName", "HandlerT", "ReactionEvent"]

import asyncio
import enum
import inspect
import logging
import typing

from . import errors

if typing.TYPE_CHECKING:
    from . import abc as kura_abc

_LOGGER: typing.Final[logging.Logger] = logging.getLogger("hikari.kura")

HandlerT = typing.Callable[..., typing.Any]
"""Type-Hint of an event handler.

Handlers may be plain functions or coroutine functions; awaitables returned by
a handler are scheduled as tasks on the running event loop.
"""


class EventName(str, enum.Enum):
    """The names of the domain events emitted by Kura."""

    READY = "ready"
    SHARD_READY = "shardReady"
    SHARD_DISCONNECTED = "shardDisconnected"
    DISCONNECTED = "disconnected"
    DEBUG = "debug"

    CHANNEL_CREATE = "channelCreate"
    CHANNEL_UPDATE = "channelUpdate"
    CHANNEL_DELETE = "channelDelete"
    CHANNEL_PINS_UPDATE = "channelPinsUpdate"

    GUILD_CREATE = "guildCreate"
    GUILD_UPDATE = "guildUpdate"
    GUILD_DELETE = "guildDelete"
    GUILD_BAN_ADD = "guildBanAdd"
    GUILD_BAN_REMOVE = "guildBanRemove"
    GUILD_EMOJIS_UPDATE = "guildEmojisUpdate"
    GUILD_INTEGRATIONS_UPDATE = "guildIntegrationsUpdate"
    GUILD_MEMBER_ADD = "guildMemberAdd"
    GUILD_MEMBER_REMOVE = "guildMemberRemove"
    GUILD_MEMBER_UPDATE = "guildMemberUpdate"
    GUILD_MEMBERS_CHUNK = "guildMembersChunk"
    GUILD_ROLE_CREATE = "guildRoleCreate"
    GUILD_ROLE_UPDATE = "guildRoleUpdate"
    GUILD_ROLE_DELETE = "guildRoleDelete"

    INVITE_CREATE = "inviteCreate"
    INVITE_DELETE = "inviteDelete"

    MESSAGE = "message"
    MESSAGE_UPDATE = "messageUpdate"
    MESSAGE_DELETE = "messageDelete"
    MESSAGE_DELETE_BULK = "messageDeleteBulk"
    MESSAGE_REACTION_ADD = "messageReactionAdd"
    MESSAGE_REACTION_REMOVE = "messageReactionRemove"
    MESSAGE_REACTION_REMOVE_ALL = "messageReactionRemoveAll"
    MESSAGE_REACTION_REMOVE_EMOJI = "messageReactionRemoveEmoji"

    PRESENCE_UPDATE = "presenceUpdate"
    USER_UPDATE = "userUpdate"

    def __str__(self) -> str:
        return self.value


def _to_event_name(event: typing.Union[EventName, str], /) -> EventName:
    try:
        return EventName(event)

    except ValueError:
        raise errors.UnknownEventError(f"Unknown event: {event}") from None


class ReactionEvent(typing.NamedTuple):
    """The resolved payload of the message reaction events.

    Any entity which wasn't cached is replaced with a stub only holding its ID.
    """

    channel: kura_abc.ObjectT
    """The channel the message is in."""

    message: kura_abc.ObjectT
    """The message the reaction(s) are on."""

    guild: typing.Optional[kura_abc.ObjectT]
    """The guild the message is in, if it's in one."""

    user: typing.Optional[kura_abc.ObjectT] = None
    """The user who added or removed the reaction, if applicable."""

    emoji: typing.Optional[kura_abc.ObjectT] = None
    """The emoji involved, if applicable."""

    member: typing.Optional[kura_abc.ObjectT] = None
    """The reacting member's payload (only included on guild reaction adds)."""


class EventBus:
    """A registry of one handler per domain event name."""

    __slots__: typing.Sequence[str] = ("_handlers", "_tasks")

    def __init__(self) -> None:
        self._handlers: typing.Dict[EventName, HandlerT] = {}
        self._tasks: typing.Set[asyncio.Future[typing.Any]] = set()

    def add_listener(self, event: typing.Union[EventName, str], handler: HandlerT, /) -> None:
        """Set the handler for an event.

        Parameters
        ----------
        event : typing.Union[EventName, str]
            The name of the event to handle.
        handler : HandlerT
            The callback to call with the event's arguments.

        Raises
        ------
        kura.errors.DuplicateListenerError
            If a handler is already set for the event.
        kura.errors.UnknownEventError
            If the event name isn't one Kura emits.
        """
        name = _to_event_name(event)
        if name in self._handlers:
            raise errors.DuplicateListenerError(name.value)

        self._handlers[name] = handler

    def get_listener(self, event: typing.Union[EventName, str], /) -> typing.Optional[HandlerT]:
        """Get the handler set for an event, if any."""
        return self._handlers.get(_to_event_name(event))

    def remove_listener(self, event: typing.Union[EventName, str], /) -> None:
        """Remove the handler set for an event.

        Raises
        ------
        LookupError
            If no handler is set for the event.
        """
        name = _to_event_name(event)
        try:
            del self._handlers[name]

        except KeyError:
            raise LookupError(f"No handler set for event: {name.value}") from None

    def emit(self, event: typing.Union[EventName, str], /, *args: typing.Any) -> None:
        """Call the handler for an event with the passed arguments.

        Emitting an event nobody listens for does nothing. Errors raised by the
        handler are logged rather than propagated.
        """
        handler = self._handlers.get(_to_event_name(event))
        if handler is None:
            return

        try:
            result = handler(*args)

        except Exception as exc:
            _LOGGER.error("An event handler for %s raised an exception", event, exc_info=exc)
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self.__on_task_done)

    def __on_task_done(self, task: asyncio.Future[typing.Any], /) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and (exc := task.exception()):
            _LOGGER.error("An event handler raised an exception", exc_info=exc)
