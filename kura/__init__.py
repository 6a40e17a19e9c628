from __future__ import annotations

__all__: typing.Final[typing.Sequence[str]] = [
    "BootstrapError",
    "CacheStore",
    "Client",
    "ClientUser",
    "ClosedClient",
    "Connection",
    "DuplicateListenerError",
    "EventBus",
    "EventName",
    "EventNormalizer",
    "KuraException",
    "Presence",
    "ReactionEvent",
    "SessionStartLimitReached",
    "ShardSpec",
    "ShardSupervisor",
    "Sharding",
    "Store",
    "UnknownEventError",
    "UnknownShardError",
    "errors",
]

import typing

from kura import errors
from kura.abc import Connection
from kura.cache import CacheStore
from kura.cache import Store
from kura.client import Client
from kura.errors import *
from kura.events import EventBus
from kura.events import EventName
from kura.events import ReactionEvent
from kura.models import ClientUser
from kura.models import Presence
from kura.models import Sharding
from kura.models import ShardSpec
from kura.normalizer import EventNormalizer
from kura.shards import ShardSupervisor
