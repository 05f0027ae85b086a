"""
Per-user search history, kept in memory only
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, Dict, List

from slackrat.config.settings import settings


@dataclass
class SearchHistoryEntry:
    channel: str
    keyword: str
    result_count: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SearchHistory:
    """Last N searches per Slack user; older entries are dropped"""

    def __init__(self, max_entries: int = None):
        if max_entries is None:
            max_entries = settings.search_history_size
        self.max_entries = max_entries
        self._entries: Dict[str, Deque[SearchHistoryEntry]] = {}

    def save(self, user_id: str, channel: str, keyword: str, result_count: int) -> SearchHistoryEntry:
        entry = SearchHistoryEntry(channel=channel, keyword=keyword, result_count=result_count)
        if user_id not in self._entries:
            self._entries[user_id] = deque(maxlen=self.max_entries)
        self._entries[user_id].append(entry)
        return entry

    def get(self, user_id: str) -> List[SearchHistoryEntry]:
        return list(self._entries.get(user_id, ()))

    def clear(self, user_id: str = None) -> None:
        if user_id is None:
            self._entries.clear()
        else:
            self._entries.pop(user_id, None)
