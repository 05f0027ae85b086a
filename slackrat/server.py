# server.py
"""
SlackRat MCP Server
Exposes channel search, statistics and messaging as MCP tools
"""

import logging
from typing import Optional, Dict, Any, List

from mcp.server.fastmcp import FastMCP

from slackrat.config.settings import settings
from slackrat.config.log import configure_logging
from slackrat.tools.slack.analysis import analyze_sentiment, analyze_word_frequency
from slackrat.tools.slack.messages import send_slack_message as slack_send_message
from slackrat.tools.slack.models import SearchOptions
from slackrat.tools.slack_tool import (
    get_slack_active_users as slack_active_users,
    get_slack_channel_stats as slack_channel_stats,
    list_slack_channels as slack_list_channels,
    search_slack_channel as slack_search_channel,
    search_slack_channels as slack_search_channels,
)

logger = logging.getLogger(__name__)

# Create an MCP server
mcp = FastMCP(
    name=settings.server_name,
    host=settings.server_host,
    port=settings.server_port
)


# ============= SEARCH TOOLS =============

@mcp.tool()
async def search_slack_channel(
    channel: str,
    keyword: str,
    limit: int = 1000,
    include_context: bool = True,
    search_in_threads: bool = True,
    oldest: Optional[str] = None,
    latest: Optional[str] = None,
    api_key: Optional[str] = None
) -> Dict[str, Any]:
    """
    Search a Slack channel's recent history for a keyword (case-insensitive)

    Args:
        channel: Channel name (with or without #) or channel ID
        keyword: Text to look for
        limit: Number of recent messages to scan (max 1000)
        include_context: Include the messages around each match
        search_in_threads: Also look inside thread replies
        oldest: Only messages after this Slack timestamp
        latest: Only messages before this Slack timestamp
        api_key: Slack bot token (optional if set in environment)

    Returns:
        Matches with author, permalink and summary statistics
    """
    options = SearchOptions(
        limit=max(1, min(limit, 1000)),
        include_context=include_context,
        search_in_threads=search_in_threads,
        oldest=oldest,
        latest=latest
    )
    return await slack_search_channel(channel, keyword=keyword, options=options, api_key=api_key)


@mcp.tool()
async def search_slack_pattern(
    channel: str,
    pattern: str,
    case_sensitive: bool = False,
    limit: int = 1000,
    api_key: Optional[str] = None
) -> Dict[str, Any]:
    """
    Search a Slack channel with a regular expression

    Args:
        channel: Channel name (with or without #) or channel ID
        pattern: Regular expression tested against each message text
        case_sensitive: Match case exactly (default: False)
        limit: Number of recent messages to scan (max 1000)
        api_key: Slack bot token (optional if set in environment)
    """
    options = SearchOptions(limit=max(1, min(limit, 1000)), case_sensitive=case_sensitive)
    return await slack_search_channel(channel, pattern=pattern, options=options, api_key=api_key)


@mcp.tool()
async def search_slack_channels(
    channels: List[str],
    keyword: str,
    api_key: Optional[str] = None
) -> Dict[str, Any]:
    """
    Search several Slack channels for the same keyword

    Args:
        channels: Channel names or IDs
        keyword: Text to look for
        api_key: Slack bot token (optional if set in environment)

    Returns:
        Combined matches (newest first) plus per-channel results
    """
    return await slack_search_channels(channels, keyword, api_key=api_key)


# ============= CHANNEL TOOLS =============

@mcp.tool()
async def list_slack_channels(api_key: Optional[str] = None) -> Dict[str, Any]:
    """List public and private channels visible to the bot"""
    return await slack_list_channels(api_key)


@mcp.tool()
async def get_slack_channel_stats(
    channel: str,
    days: int = 30,
    api_key: Optional[str] = None
) -> Dict[str, Any]:
    """
    Message statistics for a channel

    Args:
        channel: Channel name or ID
        days: Number of days to look back (default: 30)
        api_key: Slack bot token (optional if set in environment)
    """
    return await slack_channel_stats(channel, days, api_key)


@mcp.tool()
async def get_slack_active_users(
    channel: str,
    days: int = 30,
    api_key: Optional[str] = None
) -> Dict[str, Any]:
    """Users ranked by number of messages posted in a channel"""
    return await slack_active_users(channel, days, api_key)


# ============= ANALYSIS TOOLS =============

@mcp.tool()
async def analyze_slack_text(text: str) -> Dict[str, Any]:
    """
    Keyword sentiment and word frequency for a piece of text

    Args:
        text: Any message text
    """
    return {
        "success": True,
        "sentiment": analyze_sentiment(text),
        "top_words": analyze_word_frequency(text)
    }


# ============= MESSAGING TOOLS =============

@mcp.tool()
async def send_slack_message(
    channel: str,
    text: str,
    thread_ts: Optional[str] = None,
    api_key: Optional[str] = None
) -> Dict[str, Any]:
    """
    Send a message to a Slack channel or user

    Args:
        channel: Channel name (with or without #), channel ID or user ID
        text: Message text (Slack mrkdwn)
        thread_ts: Thread timestamp to reply to
        api_key: Slack bot token (optional if set in environment)

    Returns:
        Dict with success status, message timestamp, and channel
    """
    return await slack_send_message(channel, text, thread_ts, api_key)


def run(transport: Optional[str] = None) -> None:
    """Run the MCP server on stdio or SSE"""
    transport = transport or settings.transport
    logger.info("Starting %s (transport: %s)", settings.server_name, transport)

    if transport == "stdio":
        mcp.run(transport="stdio")
    elif transport == "sse":
        logger.info("Serving SSE at http://%s:%s", settings.server_host, settings.server_port)
        mcp.run(transport="sse")
    else:
        raise ValueError(f"Invalid transport: {transport}")


# Run the server
if __name__ == "__main__":
    configure_logging(settings.log_level)
    run()
