"""
Slack Analysis Tools
Word frequency, keyword sentiment and search result statistics
"""

import re
from typing import Optional, Dict, List, Any, Iterable

from .models import AuthorCount, MessageMatch, SearchSummary, WordCount
from ..utils.time import localize


POSITIVE_WORDS = [
    "ótimo", "bom", "excelente", "perfeito", "sucesso", "parabéns", "legal", "incrível", "fantástico",
    "great", "good", "excellent", "perfect", "success", "congrats", "awesome", "amazing", "fantastic",
]
NEGATIVE_WORDS = [
    "problema", "erro", "falha", "bug", "quebrou", "ruim", "terrível", "horrível", "péssimo",
    "problem", "error", "failure", "broken", "bad", "terrible", "horrible", "awful",
]
NEUTRAL_WORDS = [
    "ok", "certo", "entendi", "claro", "sim", "não",
    "sure", "understood", "yes", "no",
]

STOP_WORDS = {
    "de", "da", "do", "em", "na", "no", "para", "com", "por", "que", "uma", "um", "é", "são",
    "the", "and", "for", "with", "that", "this", "are", "was", "you", "not", "but", "have",
}

TOP_WORDS_LIMIT = 20


def _count_word(text: str, word: str) -> int:
    return len(re.findall(rf"\b{re.escape(word)}\b", text))


def analyze_sentiment(text: str) -> Dict[str, Any]:
    """
    Score a text with fixed positive/negative word lists

    Returns:
        Dict with score, sentiment label, confidence and counted words
    """
    text_lower = (text or "").lower()
    score = 0
    word_count = 0

    for word in POSITIVE_WORDS:
        matches = _count_word(text_lower, word)
        score += matches
        word_count += matches

    for word in NEGATIVE_WORDS:
        matches = _count_word(text_lower, word)
        score -= matches
        word_count += matches

    for word in NEUTRAL_WORDS:
        word_count += _count_word(text_lower, word)

    sentiment = "neutral"
    if score > 0:
        sentiment = "positive"
    elif score < 0:
        sentiment = "negative"

    return {
        "score": score,
        "sentiment": sentiment,
        "confidence": abs(score) / word_count if word_count > 0 else 0,
        "word_count": word_count
    }


def analyze_word_frequency(text: str, exclude_words: Iterable[str] = ()) -> List[Dict[str, Any]]:
    """Top 20 words of a text, ignoring punctuation, short words and stop words"""
    excluded = {w.lower() for w in exclude_words}
    words = [
        word for word in re.sub(r"[^\w\s]", "", (text or "").lower()).split()
        if len(word) > 2 and word not in excluded and word not in STOP_WORDS
    ]

    frequency: Dict[str, int] = {}
    for word in words:
        frequency[word] = frequency.get(word, 0) + 1

    ranked = sorted(frequency.items(), key=lambda item: item[1], reverse=True)
    return [{"word": word, "count": count} for word, count in ranked[:TOP_WORDS_LIMIT]]


def generate_summary(matches: List[MessageMatch], keyword: Optional[str] = None,
                     tz_name: Optional[str] = None) -> SearchSummary:
    """Statistics over the matched messages"""
    author_counts: Dict[str, int] = {}
    time_distribution: Dict[int, int] = {}
    word_frequency: Dict[str, int] = {}
    keyword_lower = keyword.lower() if keyword else None

    for match in matches:
        if match.user_id:
            author_counts[match.author] = author_counts.get(match.author, 0) + 1

        hour = localize(match.timestamp, tz_name).hour
        time_distribution[hour] = time_distribution.get(hour, 0) + 1

        for word in match.text.lower().split():
            if len(word) > 3 and word != keyword_lower:
                word_frequency[word] = word_frequency.get(word, 0) + 1

    top_contributors = sorted(author_counts.items(), key=lambda item: item[1], reverse=True)[:5]
    top_words = sorted(word_frequency.items(), key=lambda item: item[1], reverse=True)[:10]

    return SearchSummary(
        top_contributors=[AuthorCount(author=a, count=c) for a, c in top_contributors],
        top_words=[WordCount(word=w, count=c) for w, c in top_words],
        time_distribution=time_distribution,
        total_authors=len(author_counts)
    )
