"""
Slack Messages Tool
Tool for sending search summaries to Slack
"""

import logging
import re
from typing import Optional, Dict, Any

from slackrat.config.settings import settings
from .client import SlackClient
from .channels import resolve_channel_id
from .errors import describe_slack_error

logger = logging.getLogger(__name__)

# chat.postMessage opens a DM when given a user ID
USER_ID_RE = re.compile(r"^[UW][A-Z0-9]{6,}$")


async def post_text(client: SlackClient, channel: str, text: str,
                    thread_ts: Optional[str] = None) -> Dict[str, Any]:
    """
    Post text to a channel, DM or user using an open client

    Returns:
        Dict with success status, message ts, and channel
    """
    channel_id = channel
    if not USER_ID_RE.match(channel):
        try:
            channel_id = await resolve_channel_id(client, channel)
        except ValueError:
            # If channel resolution fails, try using the channel as-is
            channel_id = channel

    result = await client.post_message(channel=channel_id, text=text, thread_ts=thread_ts)

    if result.get("ok"):
        return {
            "success": True,
            "message_ts": result.get("ts"),
            "channel": result.get("channel"),
            "thread_ts": thread_ts,
            "message": "Message sent successfully"
        }

    error = result.get("error", "Unknown error")
    logger.warning("chat.postMessage to %s failed: %s", channel, error)
    return {
        "success": False,
        "error": f"Failed to send message to '{channel}': {describe_slack_error(error)}",
        "slack_error": error
    }


async def send_slack_message(
    channel: str,
    text: str,
    thread_ts: Optional[str] = None,
    api_key: Optional[str] = None
) -> Dict[str, Any]:
    """
    Send a message to a Slack channel

    Args:
        channel: Channel name (with or without #), channel ID or user ID
        text: Message text (Slack mrkdwn)
        thread_ts: Thread timestamp to reply to
        api_key: Slack bot token

    Returns:
        Dict with success status, message ts, and channel
    """
    slack_token = api_key or settings.slack_bot_token
    if not slack_token:
        return {"success": False, "error": "No API key provided. Please provide api_key or set SLACK_BOT_TOKEN environment variable"}

    client = SlackClient(slack_token)
    try:
        return await post_text(client, channel, text, thread_ts)
    except Exception as e:
        return {
            "success": False,
            "error": f"Failed to send message: {str(e)}"
        }
    finally:
        await client.close()
