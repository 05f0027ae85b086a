"""Tests for `slackrat.tools.slack.client`."""

import asyncio

import httpx
import pytest

from slackrat.tools.slack.client import SlackClient, ensure_ok
from slackrat.tools.slack.errors import SlackAPIError, describe_slack_error


def test_get_drops_none_params(client, slack):
    asyncio.run(client.conversations_history(channel="C0GENERAL1"))

    params = slack.calls_to("conversations.history")[0]
    assert params == {"channel": "C0GENERAL1", "limit": "100"}


def test_requests_carry_bearer_token(client, slack):
    asyncio.run(client.auth_test())

    assert slack.headers[0]["authorization"] == "Bearer xoxb-test"


def test_post_message_includes_thread_only_when_given(client, slack):
    async def run():
        await client.post_message("C0GENERAL1", "hello")
        await client.post_message("C0GENERAL1", "in thread", thread_ts="1700000300.000100")

    asyncio.run(run())

    first, second = slack.posted
    assert first == {"channel": "C0GENERAL1", "text": "hello"}
    assert second["thread_ts"] == "1700000300.000100"


def test_conversations_list_sends_archived_flag_as_string(client, slack):
    asyncio.run(client.conversations_list(types="public_channel", exclude_archived=False))

    params = slack.calls_to("conversations.list")[0]
    assert params["exclude_archived"] == "false"
    assert params["types"] == "public_channel"


def test_ensure_ok_passes_through_successful_response():
    response = {"ok": True, "messages": []}
    assert ensure_ok(response, "conversations.history") is response


def test_ensure_ok_raises_with_needed_scope():
    with pytest.raises(SlackAPIError) as exc_info:
        ensure_ok({"ok": False, "error": "missing_scope", "needed": "channels:history"}, "conversations.history")

    error = exc_info.value
    assert error.method == "conversations.history"
    assert error.error == "missing_scope"
    assert error.needed == "channels:history"
    assert "Bot token is missing a required scope" in str(error)
    assert "(needed: channels:history)" in str(error)


def test_describe_slack_error_falls_back_to_code():
    assert describe_slack_error("not_in_channel") == "The bot must be added to the channel first"
    assert describe_slack_error("weird_error") == "weird_error"
    assert describe_slack_error(None) == "Unknown error"


def test_http_errors_are_raised():
    transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
    client = SlackClient("xoxb-test", transport=transport)

    async def run():
        async with client:
            await client.auth_test()

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(run())
