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
"""Reducers which apply the gateway's raw events to a `kura.cache.CacheStore`.

Each reducer applies the smallest mutation needed to keep the stores
consistent then emits one domain event on the `kura.events.EventBus`.
Cache misses never raise; they degrade to a stub holding only the entity's ID.
"""

from __future__ import annotations

__all__: typing.Sequence[str] = [
    "CHANNEL_FIELDS",
    "EventNormalizer",
    "GUILD_FIELDS",
    "MEMBER_FIELDS",
    "MESSAGE_FIELDS",
    "USER_FIELDS",
]

import logging
import typing

from . import events
from . import models
from . import utility

if typing.TYPE_CHECKING:
    from . import abc as kura_abc
    from . import cache

_LOGGER: typing.Final[logging.Logger] = logging.getLogger("hikari.kura")

CHANNEL_FIELDS: typing.Final[typing.Sequence[str]] = (
    "bitrate",
    "default_auto_archive_duration",
    "flags",
    "guild_id",
    "icon",
    "last_message_id",
    "last_pin_timestamp",
    "name",
    "nsfw",
    "owner_id",
    "parent_id",
    "permission_overwrites",
    "position",
    "rate_limit_per_user",
    "recipients",
    "rtc_region",
    "topic",
    "type",
    "user_limit",
    "video_quality_mode",
)
"""The fields of a channel object which an update may change."""

GUILD_FIELDS: typing.Final[typing.Sequence[str]] = (
    "afk_channel_id",
    "afk_timeout",
    "application_id",
    "banner",
    "default_message_notifications",
    "description",
    "discovery_splash",
    "emojis",
    "explicit_content_filter",
    "features",
    "icon",
    "max_members",
    "max_presences",
    "mfa_level",
    "name",
    "nsfw_level",
    "owner_id",
    "preferred_locale",
    "premium_subscription_count",
    "premium_tier",
    "public_updates_channel_id",
    "region",
    "rules_channel_id",
    "splash",
    "stickers",
    "system_channel_flags",
    "system_channel_id",
    "vanity_url_code",
    "verification_level",
    "widget_channel_id",
    "widget_enabled",
)
"""The top-level fields of a guild object which an update may change.

Roles are handled separately as they're cached as a collection.
"""

MEMBER_FIELDS: typing.Final[typing.Sequence[str]] = (
    "avatar",
    "communication_disabled_until",
    "deaf",
    "joined_at",
    "mute",
    "nick",
    "pending",
    "premium_since",
    "roles",
)
"""The fields of a member object which an update may change (excluding the nested user)."""

MESSAGE_FIELDS: typing.Final[typing.Sequence[str]] = (
    "attachments",
    "components",
    "content",
    "edited_timestamp",
    "embeds",
    "flags",
    "mention_everyone",
    "mention_roles",
    "mentions",
    "pinned",
    "stickers",
    "tts",
)
"""The fields of a message object which an edit may change."""

USER_FIELDS: typing.Final[typing.Sequence[str]] = (
    "avatar",
    "banner",
    "bot",
    "discriminator",
    "global_name",
    "public_flags",
    "username",
)
"""The fields of a user object which may change."""

_GUILD_COLLECTIONS: typing.Final[typing.FrozenSet[str]] = frozenset(
    ("channels", "members", "presences", "roles", "threads", "voice_states")
)


def _get_user_id(payload: kura_abc.ObjectT, /) -> str:
    return utility.get_id(payload["user"]["id"])


def _new_guild(payload: kura_abc.ObjectT, /) -> kura_abc.ObjectT:
    guild = {key: value for key, value in payload.items() if key not in _GUILD_COLLECTIONS}
    guild["channels"] = {}
    guild["members"] = {}
    guild["presences"] = {}
    guild["roles"] = {utility.get_id(role["id"]): role for role in payload.get("roles") or ()}
    return guild


def _snapshot_guild(guild: kura_abc.ObjectT, /) -> kura_abc.ObjectT:
    return {**guild, **{key: dict(guild[key]) for key in _GUILD_COLLECTIONS if key in guild}}


def _emoji_key(emoji: kura_abc.ObjectT, /) -> typing.Optional[str]:
    # Unicode emojis have no ID so they're matched by name.
    return emoji.get("id") or emoji.get("name")


def _add_reaction(message: kura_abc.ObjectT, emoji: kura_abc.ObjectT, /, *, me: bool) -> None:
    reactions: typing.List[kura_abc.ObjectT] = message.setdefault("reactions", [])
    key = _emoji_key(emoji)
    for reaction in reactions:
        if _emoji_key(reaction["emoji"]) == key:
            reaction["count"] = reaction.get("count", 0) + 1
            reaction["me"] = reaction.get("me", False) or me
            return

    reactions.append({"count": 1, "me": me, "emoji": emoji})


def _remove_reaction(message: kura_abc.ObjectT, emoji: kura_abc.ObjectT, /, *, me: bool) -> None:
    reactions: typing.List[kura_abc.ObjectT] = message.get("reactions") or []
    key = _emoji_key(emoji)
    for index, reaction in enumerate(reactions):
        if _emoji_key(reaction["emoji"]) == key:
            reaction["count"] = reaction.get("count", 1) - 1
            if me:
                reaction["me"] = False

            if reaction["count"] <= 0:
                del reactions[index]

            return


class EventNormalizer:
    """The reducers which keep a cache store in step with the gateway.

    Parameters
    ----------
    store : kura.cache.CacheStore
        The store to mutate.
    bus : kura.events.EventBus
        The bus to emit the resulting domain events on.
    """

    __slots__: typing.Sequence[str] = ("_bus", "_raw_listeners", "_store")

    def __init__(self, store: cache.CacheStore, bus: events.EventBus, /) -> None:
        self._bus = bus
        self._store = store
        self._raw_listeners = utility.find_raw_listeners(self)

    @property
    def event_names(self) -> typing.Collection[str]:
        """The names of the raw events this has reducers for."""
        return self._raw_listeners.keys()

    @property
    def store(self) -> cache.CacheStore:
        return self._store

    def dispatch(self, event_name: str, payload: kura_abc.ObjectT, /) -> None:
        """Apply a raw event to the cache store.

        Events without a reducer are ignored.

        Parameters
        ----------
        event_name : str
            Name of the raw event (e.g. `"channelCreate"`).
        payload : dict[str, typing.Any]
            The raw event's payload.
        """
        if listeners := self._raw_listeners.get(event_name):
            for listener in listeners:
                listener(payload)

        else:
            _LOGGER.debug("Ignoring raw %s event with no reducer", event_name)

    def merge_guild_stub(self, payload: kura_abc.ObjectT, /) -> None:
        """Cache an unavailable guild stub from a shard's `ready` payload.

        Guilds which are already cached are left alone.
        """
        guild_id = utility.get_id(payload["id"])
        if self._store.guilds.get(guild_id) is None:
            guild = _new_guild(payload)
            guild["unavailable"] = payload.get("unavailable", True)
            self._store.guilds.set(guild_id, guild)

    def set_me(self, payload: kura_abc.ObjectT, presence: models.Presence, /) -> models.ClientUser:
        """Cache the bot's own user from a shard's `ready` payload.

        The user is also added to the global user store.

        Returns
        -------
        kura.models.ClientUser
            The own user which was cached.
        """
        me = models.ClientUser(self.__set_user(payload), presence)
        self._store.me = me
        return me

    def __get_or_stub(
        self, store: cache.Store[kura_abc.ObjectT], entity_id: typing.Any, /
    ) -> kura_abc.ObjectT:
        if (value := store.get(entity_id)) is not None:
            return value

        _LOGGER.debug("Entity %s not found in cache, substituting a stub", entity_id)
        return utility.stub(entity_id)

    def __set_user(self, payload: kura_abc.ObjectT, /) -> kura_abc.ObjectT:
        # Existing entries are updated in-place so that member entries sharing the object see the change.
        user_id = utility.get_id(payload["id"])
        cached = self._store.users.get(user_id)
        if cached is None or cached is payload:
            self._store.users.set(user_id, payload)
            return payload

        cached.update(payload)
        return cached

    def __add_member(self, guild: kura_abc.ObjectT, member: kura_abc.ObjectT, /) -> bool:
        member.pop("guild_id", None)
        user_id = _get_user_id(member)
        is_new = guild["members"].pop(user_id, None) is None
        guild["members"][user_id] = member
        member["user"] = self.__set_user(member["user"])
        member["user"]["presence"] = guild["presences"].get(user_id)
        return is_new

    def __set_channel(self, channel: kura_abc.ObjectT, /) -> None:
        channel_id = utility.get_id(channel["id"])
        self._store.channels.delete(channel_id)
        self._store.channels.set(channel_id, channel)

        if guild_id := channel.get("guild_id"):
            if (guild := self._store.guilds.get(guild_id)) is not None:
                guild["channels"].pop(channel_id, None)
                guild["channels"][channel_id] = channel

            else:
                _LOGGER.debug("Guild %s for channel %s not cached", guild_id, channel_id)

    def __remove_guild_channel(self, guild_id: typing.Any, channel_id: str, /) -> None:
        if guild_id and (guild := self._store.guilds.get(guild_id)) is not None:
            guild["channels"].pop(channel_id, None)

    @utility.as_raw_listener("guildCreate")
    def __on_guild_create(self, payload: kura_abc.ObjectT, /) -> None:
        store = self._store
        guild_id = utility.get_id(payload["id"])
        previous = store.guilds.get(guild_id)
        guild = _new_guild(payload)
        guild["unavailable"] = bool(payload.get("unavailable", False))

        for presence in payload.get("presences") or ():
            guild["presences"][_get_user_id(presence)] = presence

        for channel in payload.get("channels") or ():
            # Channels nested in a guild create don't include their guild ID.
            channel["guild_id"] = payload["id"]
            channel_id = utility.get_id(channel["id"])
            guild["channels"][channel_id] = channel
            store.channels.set(channel_id, channel)

        if previous is not None and "channels" in payload:
            for channel_id in previous["channels"]:
                if channel_id not in guild["channels"]:
                    store.channels.delete(channel_id)

        for member in payload.get("members") or ():
            self.__add_member(guild, member)

        store.guilds.set(guild_id, guild)
        self._bus.emit(events.EventName.GUILD_CREATE, guild)

    @utility.as_raw_listener("guildUpdate")
    def __on_guild_update(self, payload: kura_abc.ObjectT, /) -> None:
        guild_id = utility.get_id(payload["id"])
        old: typing.Optional[kura_abc.ObjectT] = None
        if (guild := self._store.guilds.get(guild_id)) is None:
            guild = _new_guild(payload)
            self._store.guilds.set(guild_id, guild)

        else:
            old = _snapshot_guild(guild)
            utility.apply_fields(guild, payload, GUILD_FIELDS)
            if (roles := payload.get("roles")) is not None:
                guild["roles"] = {utility.get_id(role["id"]): role for role in roles}

        self._bus.emit(events.EventName.GUILD_UPDATE, old, guild)

    @utility.as_raw_listener("guildDelete")
    def __on_guild_delete(self, payload: kura_abc.ObjectT, /) -> None:
        # Channels and users are left in the global stores as DMs and other guilds may reference them.
        guild = self._store.guilds.delete(payload["id"])
        self._bus.emit(events.EventName.GUILD_DELETE, guild if guild is not None else payload)

    @utility.as_raw_listener("guildBanAdd")
    def __on_guild_ban_add(self, payload: kura_abc.ObjectT, /) -> None:
        guild = self.__get_or_stub(self._store.guilds, payload["guild_id"])
        self._bus.emit(events.EventName.GUILD_BAN_ADD, guild, payload["user"])

    @utility.as_raw_listener("guildBanRemove")
    def __on_guild_ban_remove(self, payload: kura_abc.ObjectT, /) -> None:
        guild = self.__get_or_stub(self._store.guilds, payload["guild_id"])
        self._bus.emit(events.EventName.GUILD_BAN_REMOVE, guild, payload["user"])

    @utility.as_raw_listener("guildEmojisUpdate")
    def __on_guild_emojis_update(self, payload: kura_abc.ObjectT, /) -> None:
        emojis = payload.get("emojis") or []
        if (guild := self._store.guilds.get(payload["guild_id"])) is not None:
            guild["emojis"] = emojis

        else:
            guild = utility.stub(payload["guild_id"])

        self._bus.emit(events.EventName.GUILD_EMOJIS_UPDATE, guild, emojis)

    @utility.as_raw_listener("guildIntegrationsUpdate")
    def __on_guild_integrations_update(self, payload: kura_abc.ObjectT, /) -> None:
        guild = self.__get_or_stub(self._store.guilds, payload["guild_id"])
        self._bus.emit(events.EventName.GUILD_INTEGRATIONS_UPDATE, guild)

    @utility.as_raw_listener("guildMemberAdd")
    def __on_guild_member_add(self, payload: kura_abc.ObjectT, /) -> None:
        member = dict(payload)
        guild_id = member.pop("guild_id")
        if (guild := self._store.guilds.get(guild_id)) is not None:
            if self.__add_member(guild, member) and isinstance(guild.get("member_count"), int):
                guild["member_count"] += 1

        else:
            guild = utility.stub(guild_id)
            member["user"] = self.__set_user(member["user"])

        self._bus.emit(events.EventName.GUILD_MEMBER_ADD, guild, member)

    @utility.as_raw_listener("guildMemberRemove")
    def __on_guild_member_remove(self, payload: kura_abc.ObjectT, /) -> None:
        guild_id = payload["guild_id"]
        user = payload["user"]
        if (guild := self._store.guilds.get(guild_id)) is not None:
            user_id = utility.get_id(user["id"])
            removed = guild["members"].pop(user_id, None)
            guild["presences"].pop(user_id, None)
            if removed is not None and isinstance(guild.get("member_count"), int):
                guild["member_count"] -= 1

        else:
            guild = utility.stub(guild_id)

        self._bus.emit(events.EventName.GUILD_MEMBER_REMOVE, guild, user)

    @utility.as_raw_listener("guildMemberUpdate")
    def __on_guild_member_update(self, payload: kura_abc.ObjectT, /) -> None:
        guild_id = payload["guild_id"]
        user_id = _get_user_id(payload)
        guild = self._store.guilds.get(guild_id)
        member = guild["members"].get(user_id) if guild is not None else None
        old: typing.Optional[kura_abc.ObjectT] = None

        if member is None:
            member = {key: value for key, value in payload.items() if key != "guild_id"}

        else:
            old = {**member, "user": dict(member["user"])}
            # Present fields always overwrite, even when they're being cleared.
            utility.apply_fields(member, payload, MEMBER_FIELDS)
            member["user"] = {**member["user"], **payload["user"]}

        if guild is not None:
            self.__add_member(guild, member)

        else:
            guild = utility.stub(guild_id)
            member["user"] = self.__set_user(member["user"])

        self._bus.emit(events.EventName.GUILD_MEMBER_UPDATE, guild, old, member)

    @utility.as_raw_listener("guildMembersChunk")
    def __on_guild_members_chunk(self, payload: kura_abc.ObjectT, /) -> None:
        # Chunks are additive; members missing from a chunk are kept.
        guild_id = payload["guild_id"]
        members: typing.List[kura_abc.ObjectT] = payload.get("members") or []
        if (guild := self._store.guilds.get(guild_id)) is not None:
            for presence in payload.get("presences") or ():
                guild["presences"][_get_user_id(presence)] = presence

            for member in members:
                self.__add_member(guild, member)

        else:
            guild = utility.stub(guild_id)
            for member in members:
                member["user"] = self.__set_user(member["user"])

        self._bus.emit(events.EventName.GUILD_MEMBERS_CHUNK, guild, members)

    @utility.as_raw_listener("guildRoleCreate")
    def __on_guild_role_create(self, payload: kura_abc.ObjectT, /) -> None:
        role = payload["role"]
        if (guild := self._store.guilds.get(payload["guild_id"])) is not None:
            role_id = utility.get_id(role["id"])
            guild["roles"].pop(role_id, None)
            guild["roles"][role_id] = role

        else:
            guild = utility.stub(payload["guild_id"])

        self._bus.emit(events.EventName.GUILD_ROLE_CREATE, guild, role)

    @utility.as_raw_listener("guildRoleUpdate")
    def __on_guild_role_update(self, payload: kura_abc.ObjectT, /) -> None:
        role = payload["role"]
        old: typing.Optional[kura_abc.ObjectT] = None
        if (guild := self._store.guilds.get(payload["guild_id"])) is not None:
            role_id = utility.get_id(role["id"])
            old = guild["roles"].pop(role_id, None)
            guild["roles"][role_id] = role

        else:
            guild = utility.stub(payload["guild_id"])

        self._bus.emit(events.EventName.GUILD_ROLE_UPDATE, guild, old, role)

    @utility.as_raw_listener("guildRoleDelete")
    def __on_guild_role_delete(self, payload: kura_abc.ObjectT, /) -> None:
        raw_role_id = payload["role_id"] if "role_id" in payload else payload["role"]["id"]
        role_id = utility.get_id(raw_role_id)
        role: typing.Optional[kura_abc.ObjectT] = None
        if (guild := self._store.guilds.get(payload["guild_id"])) is not None:
            role = guild["roles"].pop(role_id, None)
            for member in guild["members"].values():
                if member.get("roles"):
                    member["roles"] = [value for value in member["roles"] if utility.get_id(value) != role_id]

        else:
            guild = utility.stub(payload["guild_id"])

        self._bus.emit(events.EventName.GUILD_ROLE_DELETE, guild, role if role is not None else payload)

    @utility.as_raw_listener("channelCreate")
    def __on_channel_create(self, payload: kura_abc.ObjectT, /) -> None:
        channel = dict(payload)
        self.__set_channel(channel)
        self._bus.emit(events.EventName.CHANNEL_CREATE, channel)

    @utility.as_raw_listener("channelUpdate")
    def __on_channel_update(self, payload: kura_abc.ObjectT, /) -> None:
        channel_id = utility.get_id(payload["id"])
        old: typing.Optional[kura_abc.ObjectT] = None
        if (channel := self._store.channels.get(channel_id)) is None:
            channel = dict(payload)

        else:
            old = dict(channel)
            utility.apply_fields(channel, payload, CHANNEL_FIELDS)
            if old.get("guild_id") != channel.get("guild_id"):
                self.__remove_guild_channel(old.get("guild_id"), channel_id)

        self.__set_channel(channel)
        self._bus.emit(events.EventName.CHANNEL_UPDATE, old, channel)

    @utility.as_raw_listener("channelDelete")
    def __on_channel_delete(self, payload: kura_abc.ObjectT, /) -> None:
        channel_id = utility.get_id(payload["id"])
        channel = self._store.channels.delete(channel_id)
        self.__remove_guild_channel((channel or payload).get("guild_id"), channel_id)
        self._bus.emit(events.EventName.CHANNEL_DELETE, channel if channel is not None else payload)

    @utility.as_raw_listener("channelPinsUpdate")
    def __on_channel_pins_update(self, payload: kura_abc.ObjectT, /) -> None:
        last_pin_timestamp = payload.get("last_pin_timestamp")
        if (channel := self._store.channels.get(payload["channel_id"])) is not None:
            channel["last_pin_timestamp"] = last_pin_timestamp
            self.__set_channel(channel)

        else:
            channel = utility.stub(payload["channel_id"])

        self._bus.emit(events.EventName.CHANNEL_PINS_UPDATE, channel, last_pin_timestamp)

    @utility.as_raw_listener("inviteCreate")
    def __on_invite_create(self, payload: kura_abc.ObjectT, /) -> None:
        if inviter := payload.get("inviter"):
            self.__set_user(inviter)

        self._bus.emit(events.EventName.INVITE_CREATE, self.__get_invite_guild(payload), payload)

    @utility.as_raw_listener("inviteDelete")
    def __on_invite_delete(self, payload: kura_abc.ObjectT, /) -> None:
        self._bus.emit(events.EventName.INVITE_DELETE, self.__get_invite_guild(payload), payload)

    def __get_invite_guild(self, payload: kura_abc.ObjectT, /) -> typing.Optional[kura_abc.ObjectT]:
        if (guild_id := payload.get("guild_id")) is None:
            return None

        return self.__get_or_stub(self._store.guilds, guild_id)

    @utility.as_raw_listener("messageCreate")
    def __on_message_create(self, payload: kura_abc.ObjectT, /) -> None:
        message = dict(payload)
        self._store.messages.set(message["id"], message)
        if (author := message.get("author")) and not message.get("webhook_id"):
            self.__set_user(dict(author))

        if (channel := self._store.channels.get(message["channel_id"])) is not None:
            channel["last_message_id"] = message["id"]
            self.__set_channel(channel)

        self._bus.emit(events.EventName.MESSAGE, message)

    @utility.as_raw_listener("messageUpdate")
    def __on_message_update(self, payload: kura_abc.ObjectT, /) -> None:
        # Edits to uncached messages aren't cached as the payload may be partial.
        old: typing.Optional[kura_abc.ObjectT] = None
        if (message := self._store.messages.get(payload["id"])) is None:
            message = dict(payload)

        else:
            old = dict(message)
            utility.apply_fields(message, payload, MESSAGE_FIELDS)

        self._bus.emit(events.EventName.MESSAGE_UPDATE, old, message)

    @utility.as_raw_listener("messageDelete")
    def __on_message_delete(self, payload: kura_abc.ObjectT, /) -> None:
        message = self._store.messages.delete(payload["id"])
        self._bus.emit(events.EventName.MESSAGE_DELETE, message if message is not None else payload)

    @utility.as_raw_listener("messageDeleteBulk")
    def __on_message_delete_bulk(self, payload: kura_abc.ObjectT, /) -> None:
        deleted = {message_id: self._store.messages.delete(message_id) for message_id in payload["ids"]}
        channel = self.__get_or_stub(self._store.channels, payload["channel_id"])
        self._bus.emit(events.EventName.MESSAGE_DELETE_BULK, deleted, channel)

    def __resolve_reaction(self, payload: kura_abc.ObjectT, /) -> events.ReactionEvent:
        guild: typing.Optional[kura_abc.ObjectT] = None
        if (guild_id := payload.get("guild_id")) is not None:
            guild = self.__get_or_stub(self._store.guilds, guild_id)

        user: typing.Optional[kura_abc.ObjectT] = None
        if (user_id := payload.get("user_id")) is not None:
            user = self.__get_or_stub(self._store.users, user_id)

        return events.ReactionEvent(
            channel=self.__get_or_stub(self._store.channels, payload["channel_id"]),
            message=self.__get_or_stub(self._store.messages, payload["message_id"]),
            guild=guild,
            user=user,
            emoji=payload.get("emoji"),
            member=payload.get("member"),
        )

    def __is_me(self, user_id: typing.Any, /) -> bool:
        me = self._store.me
        return me is not None and user_id is not None and utility.get_id(me.id) == utility.get_id(user_id)

    @utility.as_raw_listener("messageReactionAdd")
    def __on_message_reaction_add(self, payload: kura_abc.ObjectT, /) -> None:
        if (message := self._store.messages.get(payload["message_id"])) is not None:
            _add_reaction(message, payload["emoji"], me=self.__is_me(payload.get("user_id")))

        self._bus.emit(events.EventName.MESSAGE_REACTION_ADD, self.__resolve_reaction(payload))

    @utility.as_raw_listener("messageReactionRemove")
    def __on_message_reaction_remove(self, payload: kura_abc.ObjectT, /) -> None:
        if (message := self._store.messages.get(payload["message_id"])) is not None:
            _remove_reaction(message, payload["emoji"], me=self.__is_me(payload.get("user_id")))

        self._bus.emit(events.EventName.MESSAGE_REACTION_REMOVE, self.__resolve_reaction(payload))

    @utility.as_raw_listener("messageReactionRemoveAll")
    def __on_message_reaction_remove_all(self, payload: kura_abc.ObjectT, /) -> None:
        if (message := self._store.messages.get(payload["message_id"])) is not None:
            message["reactions"] = []

        self._bus.emit(events.EventName.MESSAGE_REACTION_REMOVE_ALL, self.__resolve_reaction(payload))

    @utility.as_raw_listener("messageReactionRemoveEmoji")
    def __on_message_reaction_remove_emoji(self, payload: kura_abc.ObjectT, /) -> None:
        if (message := self._store.messages.get(payload["message_id"])) is not None and message.get("reactions"):
            key = _emoji_key(payload["emoji"])
            message["reactions"] = [entry for entry in message["reactions"] if _emoji_key(entry["emoji"]) != key]

        self._bus.emit(events.EventName.MESSAGE_REACTION_REMOVE_EMOJI, self.__resolve_reaction(payload))

    @utility.as_raw_listener("presenceUpdate")
    def __on_presence_update(self, payload: kura_abc.ObjectT, /) -> None:
        user_id = _get_user_id(payload)
        guild: typing.Optional[kura_abc.ObjectT] = None
        if (guild_id := payload.get("guild_id")) is not None:
            if (guild := self._store.guilds.get(guild_id)) is not None:
                guild["presences"][user_id] = payload
                if (member := guild["members"].get(user_id)) is not None:
                    member["user"]["presence"] = payload

            else:
                guild = utility.stub(guild_id)

        # Presence updates only carry a partial user so uncached users aren't added.
        if (user := self._store.users.get(user_id)) is not None:
            utility.apply_fields(user, payload["user"], USER_FIELDS)
            user["presence"] = payload

        else:
            user = utility.stub(payload["user"]["id"])

        self._bus.emit(events.EventName.PRESENCE_UPDATE, guild, user, payload)

    @utility.as_raw_listener("userUpdate")
    def __on_user_update(self, payload: kura_abc.ObjectT, /) -> None:
        cached = self._store.users.get(payload["id"])
        old = dict(cached) if cached is not None else None
        user = self.__set_user(dict(payload))
        if (me := self._store.me) is not None and utility.get_id(me.id) == utility.get_id(payload["id"]):
            me.update(payload)

        self._bus.emit(events.EventName.USER_UPDATE, old, user)
