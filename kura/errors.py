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
"""The standard errors raised by Kura.

.. note::
    These supplement python's builtin exceptions but do not replace them.
"""

from __future__ import annotations

__all__: typing.Sequence[str] = [
    "BootstrapError",
    "ClosedClient",
    "DuplicateListenerError",
    "KuraException",
    "SessionStartLimitReached",
    "UnknownEventError",
    "UnknownShardError",
]

import typing

if typing.TYPE_CHECKING:
    import datetime


class KuraException(Exception):
    """Base exception for the expected exceptions raised by Kura.

    Parameters
    ----------
    message : str
        The exception's message.
    exception : typing.Optional[Exception]
        The exception which caused this exception if applicable else `builtins.None`.
    """

    __slots__: typing.Sequence[str] = ("base_exception", "message")

    message: str
    """The exception's message, this may be an empty string if there is no message."""

    base_exception: typing.Optional[Exception]
    """The exception which caused this exception if applicable else `builtins.None`."""

    def __init__(self, message: str, *, exception: typing.Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message: str = message
        self.base_exception: typing.Optional[Exception] = exception

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class ClosedClient(KuraException):
    """Error that's raised when an attempt to send over an inactive client is made."""

    __slots__: typing.Sequence[str] = ()


class UnknownShardError(KuraException, LookupError):
    """Error that's raised when a shard ID which isn't active is referenced.

    This is raised by targeted sends and closes rather than silently doing nothing.
    """

    __slots__: typing.Sequence[str] = ("shard_id",)

    shard_id: int
    """The ID of the shard which couldn't be found."""

    def __init__(self, shard_id: int, /) -> None:
        super().__init__(f"Invalid shard ID: {shard_id}")
        self.shard_id = shard_id


class DuplicateListenerError(KuraException, ValueError):
    """Error that's raised when a second handler is registered for an event.

    Only one handler may be registered per event name.
    """

    __slots__: typing.Sequence[str] = ("event_name",)

    event_name: str
    """The name of the event which already had a handler."""

    def __init__(self, event_name: str, /) -> None:
        super().__init__(
            f"Event handler already set for event: {event_name}. Only one handler per event is allowed"
        )
        self.event_name = event_name


class UnknownEventError(KuraException, ValueError):
    """Error that's raised when a handler is registered for an event Kura never emits."""

    __slots__: typing.Sequence[str] = ()


class BootstrapError(KuraException):
    """Error that's raised when fetching the gateway information at login fails.

    This is fatal; no shards will have been started.
    """

    __slots__: typing.Sequence[str] = ()


class SessionStartLimitReached(BootstrapError):
    """Error that's raised when the session start quota has been used up."""

    __slots__: typing.Sequence[str] = ("reset_at",)

    reset_at: datetime.datetime
    """When the session start limit will reset."""

    def __init__(self, reset_at: datetime.datetime, /) -> None:
        super().__init__(f"You've hit your connection limit. The limit will reset on {reset_at}")
        self.reset_at = reset_at
