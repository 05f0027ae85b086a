"""
Bot reply texts (Slack mrkdwn)
"""

from typing import Any, Dict, List, Optional

from slackrat.config.settings import settings
from slackrat.tools.slack.models import SearchResult
from slackrat.tools.utils.time import format_timestamp, localize, ts_to_datetime
from .history import SearchHistoryEntry


WELCOME_TEXT = (
    "👋 *Hi! I'm SlackRat, your search bot!*\n\n"
    "🔍 *How to use:*\n"
    "• `search #channel word` - Search a channel\n"
    "• `help` - See every command\n"
    "• `history` - Your recent searches\n\n"
    "📝 *Quick example:*\n"
    "`search #general test`\n\n"
    "Type `search` to get started!"
)

HELP_TEXT = (
    "🤖 *Available commands:*\n\n"
    "🔍 *Search:*\n"
    "• `search #channel word` - Search for a word in a channel\n"
    "• `search #channel \"exact phrase\"` - Search for an exact phrase\n"
    "• `search #channel /regex/` - Search with a regular expression\n\n"
    "📊 *Information:*\n"
    "• `history` - Show your search history\n"
    "• `stats #channel` - Channel statistics\n"
    "• `help` - This help message\n\n"
    "💡 *Tips:*\n"
    "• Use the channel name with or without #\n"
    "• Public and private channels the bot belongs to are searched\n"
    f"• Up to {settings.max_results_displayed} messages are shown per search\n\n"
    "*Examples:*\n"
    "• `search #general test`\n"
    "• `search #random \"hello world\"`\n"
    "• `stats #general`"
)

SEARCH_USAGE_TEXT = (
    "🔍 *Search command*\n\n"
    "To search a channel, use:\n"
    "`search #channel word`\n\n"
    "*Examples:*\n"
    "• `search #general test`\n"
    "• `search #random \"hello world\"`\n\n"
    "Type `help` to see every available command."
)

FORMAT_ERROR_TEXT = (
    "❓ *Wrong format*\n\n"
    "The command should be:\n"
    "`search #channel word`\n\n"
    "*Examples:*\n"
    "• `search #general test`\n"
    "• `search #random \"hello world\"`\n\n"
    "Type `help` to see every command."
)

STATS_USAGE_TEXT = "📊 Usage: `stats #channel`"

UNKNOWN_COMMAND_TEXT = "❓ Unknown command. Type `help` to see the available commands."

DATE_FORMAT = "%d/%m/%Y"


def truncate(text: str, length: int) -> str:
    return text[:length] + "..." if len(text) > length else text


def searching_text(query: str, channel_name: str) -> str:
    return f"🔍 Searching for \"{query}\" in #{channel_name}..."


def error_text(error: Any) -> str:
    return f"❌ Search error: {error}"


def rate_limited_text(retry_after: Optional[float]) -> str:
    wait = f" Try again in {int(retry_after) + 1}s." if retry_after else ""
    return f"⏳ Too many searches, slow down a little.{wait}"


def format_search_summary(result: SearchResult, channel_name: Optional[str] = None,
                          max_results: Optional[int] = None,
                          preview_length: Optional[int] = None) -> str:
    """
    Summary posted back to the user after a search

    Lists the top 3 authors and the first matches with their permalinks.
    """
    max_results = max_results or settings.max_results_displayed
    preview_length = preview_length or settings.preview_length
    channel_name = channel_name or result.channel_name or result.channel
    header = f"🔍 *Search for \"{result.query}\" in #{channel_name}*\n"

    if not result.results:
        return header + "\n❌ No messages found."

    summary = header
    summary += f"📊 *{len(result.results)} messages found*\n\n"

    user_counts: Dict[str, int] = {}
    for match in result.results:
        user_counts[match.author] = user_counts.get(match.author, 0) + 1
    top_users = sorted(user_counts.items(), key=lambda item: item[1], reverse=True)[:3]

    summary += "👥 *Top users:*\n"
    for user, count in top_users:
        summary += f"• {user}: {count} messages\n"

    summary += "\n📝 *Latest messages:*\n"
    for index, match in enumerate(result.results[:max_results], start=1):
        timestamp = format_timestamp(match.timestamp, settings.timezone)
        summary += f"{index}. *{match.author}* ({timestamp}): {truncate(match.text, preview_length)}\n"
        if match.permalink:
            summary += f"   🔗 <{match.permalink}|View message>\n"
        if match.thread_matches:
            summary += f"   🧵 {len(match.thread_matches)} matching replies in thread\n"
        summary += "\n"

    remaining = len(result.results) - max_results
    if remaining > 0:
        summary += f"... and {remaining} more messages.\n"

    return summary


def format_history(entries: List[SearchHistoryEntry]) -> str:
    if not entries:
        return "📝 You haven't searched anything yet."

    text = "📝 Your latest searches:\n"
    for index, entry in enumerate(entries, start=1):
        time = format_timestamp(entry.timestamp, settings.timezone)
        text += f"{index}. `{entry.keyword}` in #{entry.channel} ({time}) - {entry.result_count} results\n"
    return text


def format_channel_stats(details: Dict[str, Any], activity: Optional[Dict[str, Any]] = None) -> str:
    created = "unknown"
    if details.get("created"):
        created_at = localize(ts_to_datetime(details["created"]), settings.timezone)
        created = created_at.strftime(DATE_FORMAT)

    text = f"📊 *Statistics for #{details.get('name')}:*\n"
    text += f"• Members: {details.get('num_members', 0)}\n"
    text += f"• Created: {created}\n"
    text += f"• Topic: {details.get('topic') or 'No topic set'}\n"
    if activity:
        days = activity["period"]["days"]
        text += f"• Messages in the last {days} days: {activity['total_messages']}\n"
        text += f"• Active users: {activity['unique_users']}\n"
        text += f"• Average per day: {activity['average_messages_per_day']}\n"
    return text
