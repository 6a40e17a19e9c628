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
from __future__ import annotations

__all__: typing.Sequence[str] = [
    "DelayT",
    "RawListenerProto",
    "apply_fields",
    "as_raw_listener",
    "convert_delay",
    "find_raw_listeners",
    "get_id",
    "stub",
]

import datetime
import inspect
import math
import typing

import hikari

if typing.TYPE_CHECKING:
    from . import abc as kura_abc

DelayT = typing.Union["datetime.timedelta", int, float]
"""A type hint used to represent delays.

These may either be the number of seconds as an int or float (where millisecond
precision is supported) or a timedelta.
"""

_T = typing.TypeVar("_T")
_CallbackT = typing.Callable[["_T", "kura_abc.ObjectT"], None]
_MISSING: typing.Final[typing.Any] = object()


def convert_delay(delay: DelayT, /) -> float:
    """Convert a timedelta, int or float delay representation to seconds as a float."""
    if isinstance(delay, datetime.timedelta):
        return delay.total_seconds()

    if isinstance(delay, (int, float)) and not isinstance(delay, bool):
        if math.isnan(delay) or math.isinf(delay) or delay < 0:
            raise ValueError(f"Invalid delay passed; expected a finite, non-negative number but got {delay!r}")

        return float(delay)

    raise ValueError(f"Invalid delay passed; expected a float, int or timedelta but got a {type(delay)!r}")


def get_id(value: typing.Union[hikari.Snowflakeish, str], /) -> str:
    """Normalise a snowflake or snowflake string into the key used by the cache stores."""
    return str(int(value))


def stub(entity_id: typing.Union[hikari.Snowflakeish, str], /) -> kura_abc.ObjectT:
    """Build a placeholder record which only holds the entity's ID."""
    return {"id": entity_id}


def apply_fields(
    record: kura_abc.ObjectT, payload: typing.Mapping[str, typing.Any], fields: typing.Iterable[str], /
) -> kura_abc.ObjectT:
    """Copy the known fields present in a partial payload onto a record.

    Only fields which are both listed in `fields` and present in `payload` are
    considered; present fields always overwrite, even with falsy values.

    Parameters
    ----------
    record : dict[str, typing.Any]
        The cached record to update in-place.
    payload : typing.Mapping[str, typing.Any]
        The partial payload received from the gateway.
    fields : typing.Iterable[str]
        The names of the fields this entity is known to have.

    Returns
    -------
    dict[str, typing.Any]
        A dict of the changed field names to their previous values
        (fields which were previously missing map to `builtins.None`).
    """
    changed: kura_abc.ObjectT = {}
    for field in fields:
        value = payload.get(field, _MISSING)
        if value is _MISSING:
            continue

        old_value = record.get(field, _MISSING)
        if old_value is _MISSING or old_value != value:
            changed[field] = None if old_value is _MISSING else old_value
            record[field] = value

    return changed


@typing.runtime_checkable
class RawListenerProto(typing.Protocol):
    """Protocol of a raw event reducer method."""

    def __call__(self, payload: kura_abc.ObjectT, /) -> None:
        raise NotImplementedError

    @property
    def __kura_event_names__(self) -> typing.Sequence[str]:
        raise NotImplementedError


def as_raw_listener(
    event_name: str, /, *event_names: str
) -> typing.Callable[[_CallbackT[_T]], _CallbackT[_T]]:
    """Mark a method as the reducer for one or more raw connection events.

    Parameters
    ----------
    event_name : str
        Name of the raw event this is listening for.
    *event_names : str
        Names of other raw events this is listening for.
    """
    names = (event_name, *event_names)

    def decorator(listener: _CallbackT[_T], /) -> _CallbackT[_T]:
        listener.__kura_event_names__ = names  # type: ignore[attr-defined]
        assert isinstance(listener, RawListenerProto), "Incorrect attributes set for raw listener"
        return listener

    return decorator


def find_raw_listeners(obj: typing.Any, /) -> typing.Dict[str, typing.List[RawListenerProto]]:
    """Find all the raw-event reducer methods on an object.

    Returns
    -------
    dict[str, list[RawListenerProto]]
        A dictionary of raw event names to the found reducer methods.
    """
    raw_listeners: typing.Dict[str, typing.List[RawListenerProto]] = {}
    for _, member in inspect.getmembers(obj):
        if isinstance(member, RawListenerProto):
            for name in member.__kura_event_names__:
                try:
                    raw_listeners[name].append(member)

                except KeyError:
                    raw_listeners[name] = [member]

    return raw_listeners
