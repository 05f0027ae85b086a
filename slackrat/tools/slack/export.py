"""
Slack Export Tools
Serialise search results to CSV or JSON
"""

import csv
import io
from typing import Union

from .models import CombinedSearchResult, SearchResult


CSV_HEADER = ["Timestamp", "Author", "Message", "Channel", "Link"]


def export_to_csv(result: Union[SearchResult, CombinedSearchResult]) -> str:
    """
    Render matches as CSV

    Raises:
        ValueError: for failed results
    """
    if result is None or not result.success:
        raise ValueError("Invalid results for export")

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)

    default_channel = getattr(result, "channel", "")
    for match in result.results:
        writer.writerow([
            match.timestamp.isoformat(),
            match.author,
            " ".join(match.text.splitlines()),
            match.source_channel or default_channel,
            match.permalink or ""
        ])

    return buffer.getvalue()


def export_to_json(result: Union[SearchResult, CombinedSearchResult]) -> str:
    """Render the full result as indented JSON"""
    return result.model_dump_json(indent=2)
