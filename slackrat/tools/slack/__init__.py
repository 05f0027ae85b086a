"""
Slack tools: Web API client, channel lookup, search, analysis and export
"""

from .client import SlackClient
from .errors import ChannelNotFoundError, InvalidPatternError, MissingTokenError, SlackAPIError
from .models import SearchOptions, SearchResult, CombinedSearchResult, MessageMatch

__all__ = [
    "SlackClient",
    "SlackAPIError",
    "ChannelNotFoundError",
    "InvalidPatternError",
    "MissingTokenError",
    "SearchOptions",
    "SearchResult",
    "CombinedSearchResult",
    "MessageMatch",
]
