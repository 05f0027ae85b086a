import json
import sys
from pathlib import Path

import httpx
import pytest

# Ensure the repository root (parent directory of this file) is on the import path
# so `import main` and `import slackrat` work from any working directory.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from slackrat.config.settings import settings  # noqa: E402
from slackrat.tools.slack.client import SlackClient  # noqa: E402
from slackrat.utils.cache import search_cache  # noqa: E402


# ---------------------------------------------------------------------------
# A small fake Slack workspace served through httpx.MockTransport
# ---------------------------------------------------------------------------

USERS = {
    "U01ALICE": {"id": "U01ALICE", "name": "alice", "real_name": "Alice Doe", "is_bot": False},
    "U01BOB": {"id": "U01BOB", "name": "bob", "real_name": "", "is_bot": False},
}

PUBLIC_CHANNELS = [
    {"id": "C0GENERAL1", "name": "general", "is_private": False, "is_member": True, "num_members": 10},
    {"id": "C0RANDOM1", "name": "random", "is_private": False, "is_member": False, "num_members": 4},
]

PRIVATE_CHANNELS = [
    {"id": "G0SECRET1", "name": "secret", "is_private": True, "is_member": True, "num_members": 2},
]

THREAD_TS = "1700000300.000100"

# Newest first, like conversations.history
GENERAL_HISTORY = [
    {"ts": "1700000500.000100", "user": "U01ALICE", "text": "Deploy finished successfully"},
    {"ts": "1700000400.000100", "user": "U01BOB", "text": "lunch anyone?"},
    {"ts": THREAD_TS, "user": "U01ALICE", "text": "deploy is broken again",
     "thread_ts": THREAD_TS, "reply_count": 2},
    {"ts": "1700000200.000100", "bot_id": "B01DEPLOY", "username": "deploybot", "text": "Starting DEPLOY #42"},
    {"ts": "1700000100.000100", "user": "U01ALICE", "text": "good morning"},
]

RANDOM_HISTORY = [
    {"ts": "1700000600.000100", "user": "U01BOB", "text": "deploy on friday?"},
    {"ts": "1700000050.000100", "user": "U01BOB", "text": "anyone seen the deploy logs"},
    {"ts": "1700000040.000100", "user": "U0GHOST1", "text": "deploy done"},
]

THREAD_REPLIES = {
    THREAD_TS: [
        GENERAL_HISTORY[2],
        {"ts": "1700000310.000100", "user": "U01BOB", "text": "rolling back the deploy", "thread_ts": THREAD_TS},
        {"ts": "1700000320.000100", "user": "U01ALICE", "text": "thanks", "thread_ts": THREAD_TS},
    ]
}


class FakeSlack:
    """Answers Slack Web API calls from in-memory data and records every call"""

    def __init__(self):
        self.users = {k: dict(v) for k, v in USERS.items()}
        self.public = [dict(c) for c in PUBLIC_CHANNELS]
        self.private = [dict(c) for c in PRIVATE_CHANNELS]
        self.history = {
            "C0GENERAL1": [dict(m) for m in GENERAL_HISTORY],
            "C0RANDOM1": [dict(m) for m in RANDOM_HISTORY],
        }
        self.replies = {k: [dict(m) for m in v] for k, v in THREAD_REPLIES.items()}
        self.errors = {}
        self.page_size = 1000
        self.calls = []
        self.posted = []
        self.headers = []

    # -- helpers --------------------------------------------------------------

    def calls_to(self, method):
        return [params for name, params in self.calls if name == method]

    def all_channels(self):
        return self.public + self.private

    def channel(self, channel_id):
        for channel in self.all_channels():
            if channel["id"] == channel_id:
                return channel
        return None

    # -- transport ------------------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        method = request.url.path.rsplit("/", 1)[-1]
        if request.method == "POST":
            params = json.loads(request.content or b"{}")
        else:
            params = dict(request.url.params)
        self.calls.append((method, params))
        self.headers.append(dict(request.headers))

        if method in self.errors:
            return httpx.Response(200, json={"ok": False, "error": self.errors[method]})

        handle = getattr(self, "api_" + method.replace(".", "_"), None)
        if handle is None:
            return httpx.Response(200, json={"ok": False, "error": "unknown_method"})
        return httpx.Response(200, json=handle(params))

    def api_auth_test(self, params):
        return {"ok": True, "user": "slackrat", "user_id": "U0SLACKRAT", "team": "Acme"}

    def api_users_info(self, params):
        user = self.users.get(params.get("user"))
        if not user:
            return {"ok": False, "error": "user_not_found"}
        return {"ok": True, "user": user}

    def api_users_list(self, params):
        return {"ok": True, "members": list(self.users.values())}

    def api_conversations_list(self, params):
        types = params.get("types", "").split(",")
        channels = []
        if "public_channel" in types:
            channels.extend(self.public)
        if "private_channel" in types:
            channels.extend(self.private)

        start = int(params.get("cursor") or 0)
        end = start + min(int(params.get("limit", 1000)), self.page_size)
        next_cursor = str(end) if end < len(channels) else ""
        return {"ok": True, "channels": channels[start:end], "response_metadata": {"next_cursor": next_cursor}}

    def api_conversations_info(self, params):
        channel = self.channel(params.get("channel"))
        if not channel:
            return {"ok": False, "error": "channel_not_found"}
        return {"ok": True, "channel": dict(
            channel,
            created=1700000000,
            is_archived=False,
            topic={"value": f"All about {channel['name']}"},
            purpose={"value": ""},
        )}

    def api_conversations_join(self, params):
        channel = self.channel(params.get("channel"))
        if not channel:
            return {"ok": False, "error": "channel_not_found"}
        if channel["is_private"]:
            return {"ok": False, "error": "method_not_supported_for_channel_type"}
        return {"ok": True, "channel": channel}

    def api_conversations_history(self, params):
        messages = self.history.get(params.get("channel"))
        if messages is None:
            return {"ok": False, "error": "channel_not_found"}
        return {"ok": True, "messages": messages[:int(params.get("limit", 100))]}

    def api_conversations_replies(self, params):
        messages = self.replies.get(params.get("ts"))
        if messages is None:
            return {"ok": False, "error": "thread_not_found"}
        return {"ok": True, "messages": messages}

    def api_chat_getPermalink(self, params):
        ts = params.get("message_ts", "")
        return {
            "ok": True,
            "permalink": f"https://acme.slack.com/archives/{params.get('channel')}/p{ts.replace('.', '')}",
        }

    def api_chat_postMessage(self, params):
        channel = params.get("channel")
        # Users and DM conversations are always reachable
        if not self.channel(channel) and channel not in self.users and not channel.startswith("D"):
            return {"ok": False, "error": "channel_not_found"}
        self.posted.append(params)
        return {"ok": True, "channel": channel, "ts": "1700000999.000100"}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    """Predictable settings and an empty search cache for every test"""
    monkeypatch.setattr(settings, "slack_bot_token", "xoxb-test")
    monkeypatch.setattr(settings, "slack_signing_secret", "test-secret")
    monkeypatch.setattr(settings, "default_channel", None)
    monkeypatch.setattr(settings, "timezone", "UTC")
    monkeypatch.setattr(settings, "multi_search_delay_seconds", 0)
    search_cache.clear()
    yield
    search_cache.clear()


@pytest.fixture
def slack():
    return FakeSlack()


@pytest.fixture
def make_client(slack):
    """Factory for SlackClients wired to the fake workspace"""
    def factory(token="xoxb-test"):
        return SlackClient(token, transport=httpx.MockTransport(slack.handler))
    return factory


@pytest.fixture
def client(make_client):
    return make_client()
