"""Tests for `slackrat.bot.history`."""

from slackrat.bot.history import SearchHistory


def test_history_is_per_user():
    history = SearchHistory()
    history.save("U01ALICE", "general", "deploy", 3)
    history.save("U01BOB", "random", "lunch", 1)

    entries = history.get("U01ALICE")
    assert len(entries) == 1
    assert entries[0].channel == "general"
    assert entries[0].keyword == "deploy"
    assert entries[0].result_count == 3
    assert entries[0].timestamp.tzinfo is not None


def test_history_keeps_latest_entries():
    history = SearchHistory(max_entries=0)
    history.save("U01ALICE", "general", "deploy", 3)
    assert history.get("U01ALICE") == []

    history = SearchHistory(max_entries=3)
    for i in range(5):
        history.save("U01ALICE", "general", f"word{i}", i)

    assert [e.keyword for e in history.get("U01ALICE")] == ["word2", "word3", "word4"]


def test_history_default_size():
    history = SearchHistory()
    for i in range(15):
        history.save("U01ALICE", "general", f"word{i}", i)

    assert len(history.get("U01ALICE")) == 10


def test_history_unknown_user_and_clear():
    history = SearchHistory()
    assert history.get("U0NOBODY") == []

    history.save("U01ALICE", "general", "deploy", 3)
    history.save("U01BOB", "general", "deploy", 3)
    history.clear("U01ALICE")
    assert history.get("U01ALICE") == []
    assert len(history.get("U01BOB")) == 1

    history.clear()
    assert history.get("U01BOB") == []
