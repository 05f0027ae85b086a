"""
Slack Channels Tools
Channel lookup by name or ID, channel listings and channel statistics
"""

import logging
import re
from typing import Optional, Dict, List, Any

from .client import SlackClient, ensure_ok
from .errors import ChannelNotFoundError, SlackAPIError
from ..utils.time import days_window, to_slack_ts

logger = logging.getLogger(__name__)

CHANNEL_ID_RE = re.compile(r"^[CDG][A-Z0-9]{6,}$")
CHANNEL_LINK_RE = re.compile(r"^<#([A-Z0-9]+)(?:\|([^>]*))?>$")

# Slack returns a single listing per call for these types
CHANNEL_TYPES = ("public_channel", "private_channel")


def looks_like_channel_id(value: str) -> bool:
    """True for Slack conversation IDs (C..., D..., G...)"""
    return bool(CHANNEL_ID_RE.match(value or ""))


def parse_channel_reference(text: str) -> Dict[str, Optional[str]]:
    """
    Normalise what a user typed as a channel

    Args:
        text: "<#C123|name>", "<#C123>", "#name", "name" or a raw channel ID

    Returns:
        Dict with "id" and "name" (either may be None)
    """
    text = (text or "").strip()

    match = CHANNEL_LINK_RE.match(text)
    if match:
        channel_id, name = match.groups()
        # Prefer the name: IDs in links are not always visible to the bot
        if name:
            return {"id": None, "name": name}
        return {"id": channel_id, "name": None}

    if looks_like_channel_id(text):
        return {"id": text, "name": None}

    return {"id": None, "name": text.lstrip("#")}


async def list_channels(client: SlackClient, types: str) -> List[Dict]:
    """
    List every non-archived channel of the given type(s)

    A failed listing is logged and returns what was collected so far.
    """
    channels: List[Dict] = []
    cursor = None
    while True:
        try:
            response = ensure_ok(
                await client.conversations_list(cursor=cursor, types=types),
                "conversations.list"
            )
        except SlackAPIError as e:
            logger.warning("Could not list %s channels: %s", types, e)
            break

        channels.extend(response.get("channels", []))

        cursor = response.get("response_metadata", {}).get("next_cursor")
        if not cursor:
            break

    logger.debug("Found %d %s channels", len(channels), types)
    return channels


async def find_channel_by_name(client: SlackClient, channel_name: str) -> Optional[Dict]:
    """
    Find a channel by name among public and private channels

    Public and private channels are listed separately; some tokens only see
    private channels when they are requested on their own.
    """
    clean_name = channel_name.lstrip("#")

    all_channels: List[Dict] = []
    for channel_type in CHANNEL_TYPES:
        all_channels.extend(await list_channels(client, channel_type))

    logger.debug("Scanning %d channels for #%s", len(all_channels), clean_name)
    for channel in all_channels:
        if channel.get("name") == clean_name:
            return channel
    return None


async def resolve_channel(client: SlackClient, reference: str) -> Dict[str, Any]:
    """
    Resolve a user supplied channel reference to a channel dict

    Raises:
        ChannelNotFoundError: when no channel matches
    """
    parsed = parse_channel_reference(reference)

    if parsed["id"]:
        channel_id = parsed["id"]
        info = await client.conversations_info(channel_id)
        if info.get("ok"):
            return info.get("channel", {"id": channel_id, "name": channel_id})
        if info.get("error") == "channel_not_found":
            raise ChannelNotFoundError(channel_id)
        # The bot may lack channels:read but still be able to read history
        logger.warning("conversations.info failed for %s: %s", channel_id, info.get("error"))
        return {"id": channel_id, "name": channel_id}

    channel = await find_channel_by_name(client, parsed["name"])
    if not channel:
        raise ChannelNotFoundError(parsed["name"])
    return channel


async def resolve_channel_id(client: SlackClient, channel: str) -> str:
    """Convert channel name to ID if needed"""
    return (await resolve_channel(client, channel))["id"]


async def ensure_membership(client: SlackClient, channel_id: str) -> bool:
    """Try to join the channel so its history can be read"""
    try:
        response = await client.conversations_join(channel_id)
    except Exception as e:
        logger.warning("Could not join channel %s: %s", channel_id, e)
        return False

    if response.get("ok"):
        return True
    if response.get("error") != "already_in_channel":
        # Private channels cannot be joined, the bot has to be invited
        logger.info("Bot could not join channel %s: %s", channel_id, response.get("error"))
    return False


async def get_available_channels(client: SlackClient) -> List[Dict[str, Any]]:
    """List channels visible to the bot"""
    channels = await list_channels(client, ",".join(CHANNEL_TYPES))
    return [
        {
            "id": channel.get("id"),
            "name": channel.get("name"),
            "is_private": channel.get("is_private", False),
            "member_count": channel.get("num_members", 0),
            "is_member": channel.get("is_member", False)
        }
        for channel in channels
    ]


async def fetch_history_window(client: SlackClient, channel_id: str, days: int) -> List[Dict]:
    """Messages from the last `days` days (single page, up to 1000)"""
    start, end = days_window(days)
    response = ensure_ok(
        await client.conversations_history(
            channel=channel_id,
            limit=1000,
            oldest=to_slack_ts(start),
            latest=to_slack_ts(end)
        ),
        "conversations.history"
    )
    return response.get("messages", [])


async def get_channel_stats(client: SlackClient, channel_id: str, days: int = 30) -> Dict[str, Any]:
    """
    Get activity statistics for a channel

    Args:
        client: SlackClient instance
        channel_id: Channel ID
        days: Size of the window, counted back from now

    Returns:
        Dict with total messages, unique users and average per day
    """
    days = max(1, days)
    start, end = days_window(days)
    messages = await fetch_history_window(client, channel_id, days)

    return {
        "channel_id": channel_id,
        "period": {
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "days": days
        },
        "total_messages": len(messages),
        "unique_users": len({m["user"] for m in messages if m.get("user")}),
        "average_messages_per_day": round(len(messages) / days, 1)
    }


async def get_channel_details(client: SlackClient, reference: str) -> Dict[str, Any]:
    """Get members, creation time and topic for a channel"""
    channel = await resolve_channel(client, reference)
    info = ensure_ok(await client.conversations_info(channel["id"]), "conversations.info")
    details = info.get("channel", {})

    return {
        "id": details.get("id"),
        "name": details.get("name"),
        "is_private": details.get("is_private", False),
        "is_archived": details.get("is_archived", False),
        "created": details.get("created"),
        "num_members": details.get("num_members", 0),
        "topic": details.get("topic", {}).get("value", ""),
        "purpose": details.get("purpose", {}).get("value", "")
    }


async def get_active_users(client: SlackClient, channel_id: str, days: int = 30) -> List[Dict[str, Any]]:
    """
    Rank the users who posted in a channel during the last `days` days

    Users whose profile cannot be fetched are skipped.
    """
    messages = await fetch_history_window(client, channel_id, max(1, days))

    user_counts: Dict[str, int] = {}
    for message in messages:
        if message.get("user"):
            user_counts[message["user"]] = user_counts.get(message["user"], 0) + 1

    active_users = []
    for user_id, count in user_counts.items():
        try:
            response = await client.users_info(user_id)
        except Exception as e:
            logger.warning("Failed to fetch user %s: %s", user_id, e)
            continue
        if not response.get("ok"):
            logger.warning("Failed to fetch user %s: %s", user_id, response.get("error"))
            continue

        user = response.get("user", {})
        active_users.append({
            "id": user_id,
            "name": user.get("real_name") or user.get("name") or user_id,
            "message_count": count,
            "is_bot": user.get("is_bot", False)
        })

    return sorted(active_users, key=lambda u: u["message_count"], reverse=True)
