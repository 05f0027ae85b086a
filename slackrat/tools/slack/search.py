"""
Slack Search Tools
Keyword and pattern search over a channel's message history
"""

import asyncio
import hashlib
import logging
import re
from datetime import datetime
from typing import Optional, Dict, List, Any, Callable, Iterable

from slackrat.config.settings import settings
from slackrat.utils.cache import search_cache
from .client import SlackClient, ensure_ok
from .errors import InvalidPatternError
from .models import (
    MAX_HISTORY_PAGE, CombinedSearchResult, ContextMessage, MessageMatch,
    SearchOptions, SearchResult, ThreadReply,
)
from .analysis import generate_summary
from ..utils.time import to_slack_ts, ts_to_datetime

logger = logging.getLogger(__name__)

UNKNOWN_USER = "Unknown user"


def build_matcher(keyword: Optional[str] = None, pattern: Optional[str] = None,
                  case_sensitive: bool = False) -> Callable[[str], bool]:
    """
    Build the predicate used to test message text

    Keywords match as substrings, patterns as a regular expression search.

    Raises:
        InvalidPatternError: if the pattern does not compile
        ValueError: if neither keyword nor pattern is given
    """
    if pattern:
        try:
            regex = re.compile(pattern, 0 if case_sensitive else re.IGNORECASE)
        except re.error as e:
            raise InvalidPatternError(f"Invalid pattern '{pattern}': {e}") from e
        return lambda text: bool(regex.search(text or ""))

    if not keyword:
        raise ValueError("A keyword or a pattern is required")

    if case_sensitive:
        return lambda text: keyword in (text or "")

    keyword_lower = keyword.lower()
    return lambda text: keyword_lower in (text or "").lower()


def token_fingerprint(client: SlackClient) -> str:
    """Short digest of the client's token, safe to use in cache keys"""
    return hashlib.sha256((client.token or "").encode()).hexdigest()[:16]


class UserDirectory:
    """Memoised users.info lookups for the duration of one search"""

    def __init__(self, client: SlackClient):
        self.client = client
        self.users: Dict[str, Optional[Dict]] = {}

    async def get(self, user_id: Optional[str]) -> Optional[Dict]:
        if not user_id:
            return None
        if user_id not in self.users:
            user = None
            try:
                response = await self.client.users_info(user_id)
                if response.get("ok"):
                    user = response.get("user")
                else:
                    logger.warning("Failed to fetch user %s: %s", user_id, response.get("error"))
            except Exception as e:
                logger.warning("Failed to fetch user %s: %s", user_id, e)
            self.users[user_id] = user
        return self.users[user_id]

    async def name(self, user_id: Optional[str], fallback: Optional[str] = None) -> Optional[str]:
        user = await self.get(user_id)
        if user:
            return user.get("real_name") or user.get("name") or user_id
        return fallback


async def get_permalink(client: SlackClient, channel_id: str, ts: str) -> Optional[str]:
    """Permalink for a message, None when Slack refuses"""
    try:
        response = await client.chat_get_permalink(channel_id, ts)
    except Exception as e:
        logger.warning("Failed to fetch permalink for %s: %s", ts, e)
        return None
    if not response.get("ok"):
        logger.warning("Failed to fetch permalink for %s: %s", ts, response.get("error"))
        return None
    return response.get("permalink")


async def _thread_matches(client: SlackClient, channel_id: str, thread_ts: str,
                          matches: Callable[[str], bool], users: UserDirectory) -> Dict[str, Any]:
    """Search the replies of a thread; the parent message is skipped"""
    try:
        response = await client.conversations_replies(channel=channel_id, ts=thread_ts)
    except Exception as e:
        logger.warning("Failed to fetch thread %s: %s", thread_ts, e)
        return {"searched": 0, "replies": []}
    if not response.get("ok"):
        logger.warning("Failed to fetch thread %s: %s", thread_ts, response.get("error"))
        return {"searched": 0, "replies": []}

    replies = response.get("messages", [])[1:]
    found = []
    for reply in replies:
        if matches(reply.get("text", "")):
            found.append(ThreadReply(
                ts=reply.get("ts", ""),
                text=reply.get("text", ""),
                user_id=reply.get("user"),
                author=await users.name(reply.get("user"), reply.get("username")),
                timestamp=ts_to_datetime(reply.get("ts"))
            ))
    return {"searched": len(replies), "replies": found}


async def _context_for(messages: List[Dict], index: int, size: int,
                       users: UserDirectory) -> List[ContextMessage]:
    """Neighbouring messages around messages[index]"""
    start = max(0, index - size)
    end = min(len(messages), index + size + 1)
    context = []
    for j in range(start, end):
        if j == index:
            continue
        message = messages[j]
        context.append(ContextMessage(
            ts=message.get("ts", ""),
            text=message.get("text", ""),
            user_id=message.get("user"),
            author=await users.name(message.get("user"), message.get("username")),
            timestamp=ts_to_datetime(message.get("ts")),
            is_before=j < index
        ))
    return context


async def search_channel(
    client: SlackClient,
    channel_id: str,
    keyword: Optional[str] = None,
    pattern: Optional[str] = None,
    options: Optional[SearchOptions] = None,
    channel_name: Optional[str] = None
) -> SearchResult:
    """
    Search one page of a channel's history

    Args:
        client: SlackClient instance
        channel_id: Channel ID (names must be resolved first)
        keyword: Case-insensitive substring to look for
        pattern: Regular expression, used instead of keyword when given
        options: SearchOptions
        channel_name: Display name stored on the result

    Returns:
        SearchResult with enriched matches and summary statistics

    Raises:
        SlackAPIError: when the history cannot be read
        InvalidPatternError: when the pattern is not a valid regex
    """
    options = options or SearchOptions()
    keyword = keyword or None
    pattern = pattern or None
    matches = build_matcher(keyword, pattern, options.case_sensitive)

    # Results are only shared between callers using the same token
    cache_key = search_cache.make_key(
        "search", token_fingerprint(client), channel_id, keyword, pattern,
        options.model_dump(exclude={"use_cache"})
    )
    if options.use_cache:
        cached_result = search_cache.get(cache_key)
        if cached_result is not None:
            logger.debug("Search cache hit for %s", channel_id)
            return cached_result

    logger.info("Searching %s for %r", channel_id, keyword if pattern is None else pattern)

    response = ensure_ok(
        await client.conversations_history(
            channel=channel_id,
            limit=min(options.limit, MAX_HISTORY_PAGE),
            oldest=options.oldest,
            latest=options.latest
        ),
        "conversations.history"
    )
    messages = response.get("messages", [])
    total_searched = len(messages)
    users = UserDirectory(client)

    results: List[MessageMatch] = []
    for index, message in enumerate(messages):
        text = message.get("text", "")
        if not matches(text):
            continue

        user = await users.get(message.get("user"))
        if user:
            author = user.get("real_name") or user.get("name") or message.get("user")
        else:
            author = message.get("username") or UNKNOWN_USER

        match = MessageMatch(
            ts=message.get("ts", ""),
            text=text,
            user_id=message.get("user"),
            author=author,
            is_bot=bool(message.get("bot_id")) or bool(user and user.get("is_bot")),
            timestamp=ts_to_datetime(message.get("ts")),
            permalink=await get_permalink(client, channel_id, message.get("ts", "")),
            thread_ts=message.get("thread_ts")
        )

        if options.include_context and options.context_size > 0:
            match.context = await _context_for(messages, index, options.context_size, users)

        if options.search_in_threads and message.get("reply_count", 0) > 0 and message.get("thread_ts"):
            thread = await _thread_matches(client, channel_id, message["thread_ts"], matches, users)
            total_searched += thread["searched"]
            match.thread_matches = thread["replies"]

        results.append(match)

    result = SearchResult(
        channel=channel_id,
        channel_name=channel_name,
        keyword=keyword if pattern is None else None,
        pattern=pattern,
        total_messages_searched=total_searched,
        matches_found=len(results),
        results=results,
        summary=generate_summary(results, keyword if pattern is None else None, settings.timezone)
    )

    search_cache.set(cache_key, result)
    logger.info("Search finished: %d matches in %d messages", len(results), total_searched)
    return result


async def search_by_pattern(client: SlackClient, channel_id: str, pattern: str,
                            options: Optional[SearchOptions] = None) -> SearchResult:
    """Search messages matching a regular expression"""
    return await search_channel(client, channel_id, pattern=pattern, options=options)


async def search_in_time_range(client: SlackClient, channel_id: str, keyword: str,
                               start: datetime, end: datetime,
                               options: Optional[SearchOptions] = None) -> SearchResult:
    """Search messages posted between start and end"""
    options = (options or SearchOptions()).model_copy(update={
        "oldest": to_slack_ts(start),
        "latest": to_slack_ts(end)
    })
    return await search_channel(client, channel_id, keyword, options=options)


def failed_result(channel: str, error: Exception, keyword: Optional[str] = None,
                  pattern: Optional[str] = None) -> SearchResult:
    """SearchResult describing a failed search"""
    return SearchResult(success=False, channel=channel, keyword=keyword, pattern=pattern, error=str(error))


def combine_results(results: List[SearchResult], keyword: str) -> CombinedSearchResult:
    """Merge per-channel results, newest matches first"""
    successful = [r for r in results if r.success]

    all_matches: List[MessageMatch] = []
    for result in successful:
        for match in result.results:
            all_matches.append(match.model_copy(update={"source_channel": result.channel}))

    all_matches.sort(key=lambda m: float(m.ts or 0), reverse=True)

    return CombinedSearchResult(
        keyword=keyword,
        total_channels=len(results),
        successful_channels=len(successful),
        failed_channels=len(results) - len(successful),
        total_matches=sum(r.matches_found for r in successful),
        total_messages_searched=sum(r.total_messages_searched for r in successful),
        results=all_matches,
        channel_results=results
    )


async def search_multiple_channels(client: SlackClient, channel_ids: Iterable[str], keyword: str,
                                   options: Optional[SearchOptions] = None,
                                   delay_seconds: Optional[float] = None) -> CombinedSearchResult:
    """
    Search several channels one after another

    A failing channel is recorded in channel_results and does not stop the others.
    """
    channel_ids = list(channel_ids)
    delay = settings.multi_search_delay_seconds if delay_seconds is None else delay_seconds
    results: List[SearchResult] = []

    logger.info("Searching %d channels for %r", len(channel_ids), keyword)
    for position, channel_id in enumerate(channel_ids):
        try:
            results.append(await search_channel(client, channel_id, keyword, options=options))
        except Exception as e:
            logger.error("Search failed in %s: %s", channel_id, e)
            results.append(failed_result(channel_id, e, keyword=keyword))

        # Spread calls out to stay under Slack's tier limits
        if delay > 0 and position < len(channel_ids) - 1:
            await asyncio.sleep(delay)

    return combine_results(results, keyword)


async def search_multiple_keywords(client: SlackClient, channel_id: str, keywords: Iterable[str],
                                   options: Optional[SearchOptions] = None,
                                   delay_seconds: Optional[float] = None) -> Dict[str, SearchResult]:
    """Search one channel for several keywords, one result per keyword"""
    keywords = list(keywords)
    delay = settings.multi_search_delay_seconds if delay_seconds is None else delay_seconds
    results: Dict[str, SearchResult] = {}

    for position, keyword in enumerate(keywords):
        try:
            results[keyword] = await search_channel(client, channel_id, keyword, options=options)
        except Exception as e:
            logger.error("Search for %r failed: %s", keyword, e)
            results[keyword] = failed_result(channel_id, e, keyword=keyword)

        if delay > 0 and position < len(keywords) - 1:
            await asyncio.sleep(delay)

    return results
