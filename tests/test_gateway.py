import asyncio
import datetime
from unittest import mock

import hikari
import pytest
from hikari import sessions

import kura
from kura import gateway


def _mock_rest(**client_kwargs):
    rest_client = mock.Mock(**client_kwargs)
    acquired = mock.MagicMock()
    acquired.__aenter__.return_value = rest_client
    rest = mock.Mock(start=mock.AsyncMock(), close=mock.AsyncMock())
    rest.acquire.return_value = acquired
    return rest, rest_client


def test_fetch_gateway_info():
    info = mock.Mock(sessions.GatewayBotInfo)
    rest, rest_client = _mock_rest(fetch_gateway_bot_info=mock.AsyncMock(return_value=info))

    with mock.patch.object(hikari, "RESTApp", return_value=rest):
        result = asyncio.run(gateway.fetch_gateway_info("Bot token"))

    assert result is info
    rest.acquire.assert_called_once_with("token", hikari.TokenType.BOT)
    rest.start.assert_awaited_once_with()
    rest.close.assert_awaited_once_with()


def test_fetch_gateway_info_wraps_http_errors():
    error = hikari.HTTPResponseError(
        url="https://discord.com/api/v10/gateway/bot", status=401, headers={}, raw_body=b"", message="401: Unauthorized"
    )
    rest, _ = _mock_rest(fetch_gateway_bot_info=mock.AsyncMock(side_effect=error))

    with mock.patch.object(hikari, "RESTApp", return_value=rest):
        with pytest.raises(kura.BootstrapError) as exc_info:
            asyncio.run(gateway.fetch_gateway_info("token"))

    assert exc_info.value.base_exception is error
    rest.close.assert_awaited_once_with()


def test_check_session_limit_passes_with_remaining_starts():
    limit = sessions.SessionStartLimit(
        total=1000, remaining=1, reset_after=datetime.timedelta(hours=1), max_concurrency=1
    )

    gateway.check_session_limit(sessions.GatewayBotInfo(url="wss://g", shard_count=1, session_start_limit=limit))


def test_check_session_limit_raises_when_exhausted():
    limit = sessions.SessionStartLimit(
        total=1000, remaining=0, reset_after=datetime.timedelta(minutes=30), max_concurrency=1
    )
    before = datetime.datetime.now(tz=datetime.timezone.utc)

    with pytest.raises(kura.SessionStartLimitReached) as exc_info:
        gateway.check_session_limit(sessions.GatewayBotInfo(url="wss://g", shard_count=1, session_start_limit=limit))

    assert exc_info.value.reset_at >= before + datetime.timedelta(minutes=30)
    assert isinstance(exc_info.value, kura.BootstrapError)
