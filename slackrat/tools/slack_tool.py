"""
Slack Tool
Token-aware entry points used by the MCP server and the CLI.
Each call opens its own client and reports failures as {"success": False, "error": ...}.
"""

import logging
from typing import Optional, Dict, List, Any, Awaitable, Callable

from slackrat.config.settings import settings
from .slack.channels import (
    get_active_users, get_available_channels, get_channel_stats, resolve_channel,
)
from .slack.client import SlackClient
from .slack.errors import MissingTokenError
from .slack.models import SearchOptions
from .slack.search import search_channel, search_multiple_channels

logger = logging.getLogger(__name__)


async def _with_client(api_key: Optional[str],
                       action: Callable[[SlackClient], Awaitable[Dict[str, Any]]],
                       failure: str) -> Dict[str, Any]:
    slack_token = api_key or settings.slack_bot_token
    if not slack_token:
        return {"success": False, "error": str(MissingTokenError())}

    client = SlackClient(slack_token)
    try:
        return await action(client)
    except Exception as e:
        logger.error("%s: %s", failure, e)
        return {
            "success": False,
            "error": f"{failure}: {str(e)}"
        }
    finally:
        await client.close()


async def search_slack_channel(
    channel: str,
    keyword: Optional[str] = None,
    pattern: Optional[str] = None,
    options: Optional[SearchOptions] = None,
    api_key: Optional[str] = None
) -> Dict[str, Any]:
    """
    Search a channel (name or ID) for a keyword or regex pattern

    Returns:
        SearchResult as a dict
    """
    async def action(client: SlackClient) -> Dict[str, Any]:
        found = await resolve_channel(client, channel)
        result = await search_channel(
            client, found["id"], keyword=keyword, pattern=pattern,
            options=options, channel_name=found.get("name")
        )
        return result.model_dump(mode="json")

    return await _with_client(api_key, action, "Failed to search channel")


async def search_slack_channels(
    channels: List[str],
    keyword: str,
    options: Optional[SearchOptions] = None,
    api_key: Optional[str] = None
) -> Dict[str, Any]:
    """Search several channels for the same keyword"""
    async def action(client: SlackClient) -> Dict[str, Any]:
        channel_ids = []
        for channel in channels:
            try:
                channel_ids.append((await resolve_channel(client, channel))["id"])
            except ValueError:
                # Unknown names are reported as failed channels by the search
                channel_ids.append(channel)
        result = await search_multiple_channels(client, channel_ids, keyword, options=options)
        return result.model_dump(mode="json")

    return await _with_client(api_key, action, "Failed to search channels")


async def list_slack_channels(api_key: Optional[str] = None) -> Dict[str, Any]:
    """List public and private channels visible to the bot"""
    async def action(client: SlackClient) -> Dict[str, Any]:
        channels = await get_available_channels(client)
        return {"success": True, "channels": channels, "count": len(channels)}

    return await _with_client(api_key, action, "Failed to list channels")


async def get_slack_channel_stats(channel: str, days: int = 30,
                                  api_key: Optional[str] = None) -> Dict[str, Any]:
    """Message activity of a channel over the last `days` days"""
    async def action(client: SlackClient) -> Dict[str, Any]:
        found = await resolve_channel(client, channel)
        return {"success": True, "stats": await get_channel_stats(client, found["id"], days)}

    return await _with_client(api_key, action, "Failed to get channel stats")


async def get_slack_active_users(channel: str, days: int = 30,
                                 api_key: Optional[str] = None) -> Dict[str, Any]:
    """Most active posters of a channel over the last `days` days"""
    async def action(client: SlackClient) -> Dict[str, Any]:
        found = await resolve_channel(client, channel)
        users = await get_active_users(client, found["id"], days)
        return {"success": True, "channel": found["id"], "users": users}

    return await _with_client(api_key, action, "Failed to get active users")
