"""
Bot command parsing and dispatch

Shared by the Socket Mode bot and the Events API webhook.
"""

import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from slackrat.config.settings import settings
from slackrat.tools.slack.channels import (
    ensure_membership, get_channel_details, get_channel_stats, parse_channel_reference,
    resolve_channel,
)
from slackrat.tools.slack.client import SlackClient
from slackrat.tools.slack.errors import MissingTokenError
from slackrat.tools.slack.models import SearchOptions
from slackrat.tools.slack.search import search_channel
from slackrat.utils.rate_limiter import RateLimiter
from . import replies
from .history import SearchHistory

logger = logging.getLogger(__name__)

GREETINGS = {"oi", "hello", "hi", "olá", "ola"}
MENTION_RE = re.compile(r"<@\w+>")
SEARCH_RE = re.compile(r"^search\s+(\S+)\s+(.+)$", re.IGNORECASE | re.DOTALL)
STATS_RE = re.compile(r"^stats(?:\s+(\S+))?$", re.IGNORECASE)
QUOTES = ('"', "“", "”", "'")

Reply = Callable[[str], Awaitable[None]]


@dataclass
class Command:
    name: str
    channel: Optional[str] = None
    keyword: Optional[str] = None
    pattern: Optional[str] = None

    @property
    def query(self) -> str:
        return self.pattern if self.pattern is not None else (self.keyword or "")


def strip_mentions(text: str) -> str:
    return MENTION_RE.sub("", text or "").strip()


def _clean_query(raw: str) -> Command:
    query = raw.strip()
    if len(query) > 2 and query.startswith("/") and query.endswith("/"):
        return Command("search", pattern=query[1:-1])
    if len(query) > 1 and query[0] in QUOTES and query[-1] in QUOTES:
        query = query[1:-1].strip()
    return Command("search", keyword=query)


def parse_command(text: str) -> Command:
    """Turn a DM or mention into a Command"""
    text = strip_mentions(text)
    lowered = text.lower()

    if lowered in GREETINGS:
        return Command("welcome")
    if lowered == "help":
        return Command("help")
    if lowered == "history":
        return Command("history")

    stats = STATS_RE.match(text)
    if stats:
        return Command("stats", channel=stats.group(1))

    if lowered == "search":
        return Command("search_usage")

    search = SEARCH_RE.match(text)
    if search:
        command = _clean_query(search.group(2))
        if command.query:
            command.channel = search.group(1)
            return command
        return Command("format_error")

    if lowered.startswith("search"):
        return Command("format_error")

    return Command("unknown")


STATIC_REPLIES = {
    "welcome": replies.WELCOME_TEXT,
    "help": replies.HELP_TEXT,
    "search_usage": replies.SEARCH_USAGE_TEXT,
    "format_error": replies.FORMAT_ERROR_TEXT,
    "unknown": replies.UNKNOWN_COMMAND_TEXT,
}


class SearchBot:
    """Answers bot commands; one instance per process keeps the search history"""

    def __init__(self, client_factory: Optional[Callable[[], SlackClient]] = None,
                 history: Optional[SearchHistory] = None,
                 rate_limiter: Optional[RateLimiter] = None):
        self.client_factory = client_factory or self._default_client
        self.history = history or SearchHistory()
        self.rate_limiter = rate_limiter or RateLimiter(
            requests_per_minute=settings.rate_limit_per_minute,
            burst=settings.rate_limit_burst
        )

    @staticmethod
    def _default_client() -> SlackClient:
        if not settings.slack_bot_token:
            raise MissingTokenError()
        return SlackClient(settings.slack_bot_token)

    async def handle_text(self, text: str, user_id: str, reply: Reply) -> Command:
        """Parse text from user_id and send every answer through reply"""
        command = parse_command(text)
        logger.info("Command %s from %s", command.name, user_id)

        if command.name in STATIC_REPLIES:
            await reply(STATIC_REPLIES[command.name])
        elif command.name == "history":
            await reply(replies.format_history(self.history.get(user_id)))
        elif command.name == "stats":
            await self.handle_stats(command, reply)
        elif command.name == "search":
            await self.handle_search(command, user_id, reply)
        return command

    async def handle_stats(self, command: Command, reply: Reply) -> None:
        if not command.channel:
            await reply(replies.STATS_USAGE_TEXT)
            return

        try:
            client = self.client_factory()
        except RuntimeError as e:
            await reply(f"❌ {e}")
            return

        try:
            details = await get_channel_details(client, command.channel)
            try:
                activity = await get_channel_stats(client, details["id"])
            except Exception as e:
                logger.warning("Could not read activity for %s: %s", details["id"], e)
                activity = None
            await reply(replies.format_channel_stats(details, activity))
        except Exception as e:
            logger.error("Stats failed for %s: %s", command.channel, e)
            await reply(f"❌ Could not get statistics: {e}")
        finally:
            await client.close()

    async def handle_search(self, command: Command, user_id: str, reply: Reply) -> None:
        if not self.rate_limiter.check_rate_limit(user_id):
            await reply(replies.rate_limited_text(self.rate_limiter.retry_after(user_id)))
            return

        reference = parse_channel_reference(command.channel)
        channel_label = reference["name"] or reference["id"]
        await reply(replies.searching_text(command.query, channel_label))

        try:
            client = self.client_factory()
        except RuntimeError as e:
            await reply(replies.error_text(e))
            return

        try:
            channel = await resolve_channel(client, command.channel)
            channel_name = channel.get("name") or channel_label
            logger.info("Channel found: %s (%s)", channel_name, channel["id"])

            await ensure_membership(client, channel["id"])
            result = await search_channel(
                client,
                channel["id"],
                keyword=command.keyword,
                pattern=command.pattern,
                options=SearchOptions(limit=settings.history_limit, search_in_threads=False, use_cache=False),
                channel_name=channel_name
            )

            self.history.save(user_id, channel_name, command.query, result.matches_found)
            await reply(replies.format_search_summary(result, channel_name))
        except Exception as e:
            logger.error("Search failed: %s", e)
            await reply(replies.error_text(e))
        finally:
            await client.close()
