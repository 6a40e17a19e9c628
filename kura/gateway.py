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
"""Fetching and validating the gateway information a bot needs to start its shards."""

from __future__ import annotations

__all__: typing.Sequence[str] = [
    "DEFAULT_API_VERSION",
    "build_gateway_url",
    "check_session_limit",
    "fetch_gateway_info",
]

import datetime
import logging
import typing

import hikari

from . import errors

if typing.TYPE_CHECKING:
    from hikari import sessions

_LOGGER: typing.Final[logging.Logger] = logging.getLogger("hikari.kura")

DEFAULT_API_VERSION: typing.Final[int] = 10
"""The default gateway API version."""


async def fetch_gateway_info(token: str, /) -> sessions.GatewayBotInfo:
    """Fetch the bot's gateway information over REST.

    Parameters
    ----------
    token : str
        The bot's token, with or without the `"Bot "` prefix.

    Returns
    -------
    hikari.sessions.GatewayBotInfo
        The gateway URL, recommended shard count and session start limit.

    Raises
    ------
    kura.errors.BootstrapError
        If the request failed.
    """
    token = token.removeprefix("Bot ")
    rest = hikari.RESTApp()
    await rest.start()
    try:
        async with rest.acquire(token, hikari.TokenType.BOT) as client:
            return await client.fetch_gateway_bot_info()

    except hikari.HTTPResponseError as exc:
        raise errors.BootstrapError(f"Failed to get gateway info: {exc.status} {exc.message}", exception=exc) from exc

    finally:
        await rest.close()


def check_session_limit(info: sessions.GatewayBotInfo, /) -> None:
    """Ensure the bot still has session starts left.

    Raises
    ------
    kura.errors.SessionStartLimitReached
        If there's no session starts left before the quota resets.
    """
    limit = info.session_start_limit
    if limit.remaining < 1:
        reset_at = datetime.datetime.now(tz=datetime.timezone.utc) + limit.reset_after
        _LOGGER.critical("Session start limit reached, this will reset at %s", reset_at)
        raise errors.SessionStartLimitReached(reset_at)


def build_gateway_url(url: str, /, *, api_version: int = DEFAULT_API_VERSION) -> str:
    """Build the URL shards should connect to from the base gateway URL."""
    return f"{url}?v={api_version}&encoding=json"
