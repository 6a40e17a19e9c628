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
"""The small value types passed around by the client and shard supervisor."""

from __future__ import annotations

__all__: typing.Sequence[str] = ["ClientUser", "Presence", "ShardSpec", "Sharding"]

import typing

import hikari

if typing.TYPE_CHECKING:
    from . import abc as kura_abc


class Presence(typing.NamedTuple):
    """The presence shards should identify with."""

    status: hikari.Status = hikari.Status.ONLINE
    afk: bool = False

    def to_payload(self) -> kura_abc.ObjectT:
        return {"status": self.status.value, "afk": self.afk, "since": None, "activities": []}


class Sharding(typing.NamedTuple):
    """Used to only run one shard of a horizontally partitioned bot in this process."""

    shard_id: int
    total_shards: int


class ShardSpec(typing.NamedTuple):
    """Everything a connection factory needs to create one shard's connection."""

    shard_id: int
    shard_count: int
    url: str
    token: str
    presence: Presence


class ClientUser:
    """The bot's own user, as reported by the shards' `ready` events."""

    __slots__: typing.Sequence[str] = ("_payload", "presence")

    def __init__(self, payload: kura_abc.ObjectT, presence: Presence, /) -> None:
        self._payload = payload
        self.presence = presence

    def __repr__(self) -> str:
        return f"ClientUser(id={self.id!r}, username={self.username!r})"

    @property
    def id(self) -> str:
        return self._payload["id"]

    @property
    def username(self) -> typing.Optional[str]:
        return self._payload.get("username")

    @property
    def discriminator(self) -> typing.Optional[str]:
        return self._payload.get("discriminator")

    @property
    def is_bot(self) -> bool:
        return bool(self._payload.get("bot", False))

    @property
    def payload(self) -> kura_abc.ObjectT:
        """The raw user object this was built from."""
        return self._payload

    def update(self, payload: typing.Mapping[str, typing.Any], /) -> None:
        self._payload.update(payload)
