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
"""In-memory keyed stores which mirror the gateway's object graph.

.. note::
    These stores don't enforce any referential integrity between each other;
    keeping embedded guild collections in step with the global stores is
    the job of `kura.normalizer.EventNormalizer`.
"""

from __future__ import annotations

__all__: typing.Sequence[str] = ["CacheStore", "Store"]

import collections
import typing

import hikari
from hikari import iterators

from . import utility

if typing.TYPE_CHECKING:
    from . import abc as kura_abc
    from . import models

_ValueT = typing.TypeVar("_ValueT")
_KeyishT = typing.Union[hikari.Snowflakeish, str]


class Store(typing.Generic[_ValueT]):
    """A single snowflake-keyed store.

    Parameters
    ----------
    max_size : typing.Optional[int]
        The maximum amount of entries to keep. Once this is reached the oldest
        inserted entry is evicted. If this is `builtins.None` then the store
        is unbounded.
    """

    __slots__: typing.Sequence[str] = ("_entries", "_max_size")

    def __init__(self, *, max_size: typing.Optional[int] = None) -> None:
        if max_size is not None and max_size < 1:
            raise ValueError("max_size must be greater than 0")

        self._entries: typing.OrderedDict[str, _ValueT] = collections.OrderedDict()
        self._max_size = max_size

    def __contains__(self, entity_id: object, /) -> bool:
        try:
            return utility.get_id(entity_id) in self._entries  # type: ignore[arg-type]

        except (TypeError, ValueError):
            return False

    def __iter__(self) -> typing.Iterator[_ValueT]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Store(size={len(self._entries)}, max_size={self._max_size})"

    @property
    def max_size(self) -> typing.Optional[int]:
        """The maximum amount of entries this store will hold, if bounded."""
        return self._max_size

    def clear(self) -> None:
        """Remove every entry from this store."""
        self._entries.clear()

    def delete(self, entity_id: _KeyishT, /) -> typing.Optional[_ValueT]:
        """Remove an entry.

        Returns
        -------
        typing.Optional[_ValueT]
            The removed entry if it was cached, else `builtins.None`.
        """
        return self._entries.pop(utility.get_id(entity_id), None)

    def each(self, callback: typing.Callable[[_ValueT], typing.Any], /) -> None:
        """Call a callback with every entry in this store."""
        for value in list(self._entries.values()):
            callback(value)

    def every(self, predicate: typing.Callable[[_ValueT], bool], /) -> bool:
        """Whether every entry in this store satisfies a predicate.

        This is `builtins.True` for an empty store.
        """
        return all(map(predicate, self._entries.values()))

    def get(self, entity_id: _KeyishT, /) -> typing.Optional[_ValueT]:
        """Get an entry by its ID, returning `builtins.None` if it isn't cached."""
        return self._entries.get(utility.get_id(entity_id))

    def ids(self) -> typing.List[str]:
        """Get the IDs of the entries in this store, oldest first."""
        return list(self._entries)

    def iterator(self) -> iterators.LazyIterator[_ValueT]:
        """Get an async iterator over a snapshot of this store's entries."""
        return iterators.FlatLazyIterator(list(self._entries.values()))

    def set(self, entity_id: _KeyishT, value: _ValueT, /) -> None:
        """Insert or replace an entry.

        A replaced entry is moved to the newest position.
        """
        key = utility.get_id(entity_id)
        self._entries.pop(key, None)
        self._entries[key] = value

        if self._max_size is not None:
            while len(self._entries) > self._max_size:
                self._entries.popitem(last=False)


class CacheStore:
    """The four global stores Kura mirrors the gateway state into.

    Guilds hold their own `channels`, `members`, `presences` and `roles`
    collections as dicts keyed by ID (members and presences by user ID).

    Parameters
    ----------
    max_messages : typing.Optional[int]
        The maximum amount of messages to keep cached, if bounded.
    """

    __slots__: typing.Sequence[str] = ("channels", "guilds", "me", "messages", "users")

    def __init__(self, *, max_messages: typing.Optional[int] = None) -> None:
        self.channels: Store[kura_abc.ObjectT] = Store()
        self.guilds: Store[kura_abc.ObjectT] = Store()
        self.me: typing.Optional[models.ClientUser] = None
        self.messages: Store[kura_abc.ObjectT] = Store(max_size=max_messages)
        self.users: Store[kura_abc.ObjectT] = Store()

    def clear(self) -> None:
        """Empty every store."""
        self.channels.clear()
        self.guilds.clear()
        self.me = None
        self.messages.clear()
        self.users.clear()
