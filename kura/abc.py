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
"""Abstract interfaces for the collaborators Kura drives but doesn't implement.

.. note::
    The transport behind `Connection` (framing, heartbeating, compression,
    resuming and identifying) is entirely the implementation's concern; Kura
    only reacts to the named events it chooses to emit.
"""

from __future__ import annotations

__all__: typing.Sequence[str] = [
    "Connection",
    "ConnectionFactory",
    "GatewayFetcher",
    "ObjectT",
    "RawCallbackT",
]

import abc
import typing

if typing.TYPE_CHECKING:
    from hikari import sessions

    from . import models

ObjectT = typing.Dict[str, typing.Any]
"""Type-Hint of a raw JSON object as received from the gateway."""

RawCallbackT = typing.Callable[[str, ObjectT], None]
"""Type-Hint of the callback a `Connection` calls with each named raw event and its payload."""


class Connection(abc.ABC):
    """The interface of one shard's persistent gateway connection.

    Implementations should emit the following named events to subscribed callbacks
    (each with the event's JSON payload): `ready`, `guildCreate`, `guildUpdate`,
    `guildDelete`, `guildBanAdd`, `guildBanRemove`, `guildEmojisUpdate`,
    `guildIntegrationsUpdate`, `guildMemberAdd`, `guildMemberRemove`,
    `guildMemberUpdate`, `guildMembersChunk`, `guildRoleCreate`,
    `guildRoleUpdate`, `guildRoleDelete`, `channelCreate`, `channelUpdate`,
    `channelDelete`, `channelPinsUpdate`, `inviteCreate`, `inviteDelete`,
    `messageCreate`, `messageUpdate`, `messageDelete`, `messageDeleteBulk`,
    `messageReactionAdd`, `messageReactionRemove`, `messageReactionRemoveAll`,
    `messageReactionRemoveEmoji`, `presenceUpdate` and `userUpdate`.

    Callbacks are synchronous and must be called one event at a time.
    """

    __slots__: typing.Sequence[str] = ()

    @property
    @abc.abstractmethod
    def shard_id(self) -> int:
        """ID of the shard this connection is for.

        This must match the `kura.models.ShardSpec.shard_id` the connection was created for.
        """

    @abc.abstractmethod
    def subscribe(self, callback: RawCallbackT, /) -> None:
        """Subscribe a callback to every named raw event this connection emits.

        Parameters
        ----------
        callback : RawCallbackT
            The callback to call with the event's name and payload.
        """

    @abc.abstractmethod
    async def connect(self) -> None:
        """Start connecting to the gateway.

        This should return once the connection attempt has been started rather
        than waiting for the `ready` event.
        """

    @abc.abstractmethod
    def send(self, data: bytes, /) -> None:
        """Queue data to be sent over this connection.

        This shouldn't wait for the data to be delivered.
        """

    @abc.abstractmethod
    async def close(self) -> None:
        """Close this connection."""


ConnectionFactory = typing.Callable[["models.ShardSpec"], Connection]
"""Type-Hint of a callback used to create the connection for a shard."""


class GatewayFetcher(typing.Protocol):
    """Protocol of the callback used to fetch the gateway's bot information at login."""

    async def __call__(self, token: str, /) -> sessions.GatewayBotInfo:
        raise NotImplementedError
