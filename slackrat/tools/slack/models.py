"""
Slack Search Models
Pydantic models describing search options and results
"""

from datetime import datetime, timezone
from typing import Optional, Dict, List

from pydantic import BaseModel, Field


MAX_HISTORY_PAGE = 1000


class SearchOptions(BaseModel):
    """Options accepted by search_channel"""
    limit: int = Field(MAX_HISTORY_PAGE, ge=1, le=MAX_HISTORY_PAGE)
    include_context: bool = True
    context_size: int = Field(2, ge=0, le=10)
    search_in_threads: bool = True
    case_sensitive: bool = False
    oldest: Optional[str] = None
    latest: Optional[str] = None
    use_cache: bool = True


class ContextMessage(BaseModel):
    ts: str
    text: str = ""
    user_id: Optional[str] = None
    author: Optional[str] = None
    timestamp: datetime
    is_before: bool


class ThreadReply(BaseModel):
    ts: str
    text: str = ""
    user_id: Optional[str] = None
    author: Optional[str] = None
    timestamp: datetime


class MessageMatch(BaseModel):
    ts: str
    text: str = ""
    user_id: Optional[str] = None
    author: str
    is_bot: bool = False
    timestamp: datetime
    permalink: Optional[str] = None
    thread_ts: Optional[str] = None
    context: List[ContextMessage] = []
    thread_matches: List[ThreadReply] = []
    source_channel: Optional[str] = None


class AuthorCount(BaseModel):
    author: str
    count: int


class WordCount(BaseModel):
    word: str
    count: int


class SearchSummary(BaseModel):
    top_contributors: List[AuthorCount] = []
    top_words: List[WordCount] = []
    time_distribution: Dict[int, int] = {}
    total_authors: int = 0


class SearchResult(BaseModel):
    success: bool = True
    channel: str
    channel_name: Optional[str] = None
    keyword: Optional[str] = None
    pattern: Optional[str] = None
    total_messages_searched: int = 0
    matches_found: int = 0
    results: List[MessageMatch] = []
    summary: SearchSummary = SearchSummary()
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def query(self) -> str:
        return self.keyword if self.keyword is not None else (self.pattern or "")


class CombinedSearchResult(BaseModel):
    success: bool = True
    keyword: str
    total_channels: int
    successful_channels: int
    failed_channels: int
    total_matches: int
    total_messages_searched: int
    results: List[MessageMatch] = []
    channel_results: List[SearchResult] = []
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
