import json
import logging
from typing import Optional, Dict, Any, List, Literal

from dotenv import load_dotenv
from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from pydantic import AliasChoices, BaseModel, Field, model_validator

from slackrat import __version__
from slackrat.auth.middleware import require_slack_signature
from slackrat.bot.commands import SearchBot
from slackrat.bot.replies import format_search_summary
from slackrat.config.log import configure_logging
from slackrat.config.settings import settings
from slackrat.diagnostics import check_configuration
from slackrat.tools.slack.analysis import analyze_sentiment, analyze_word_frequency
from slackrat.tools.slack.channels import (
    get_active_users, get_available_channels, get_channel_stats, resolve_channel,
)
from slackrat.tools.slack.client import SlackClient
from slackrat.tools.slack.errors import (
    ChannelNotFoundError, InvalidPatternError, MissingTokenError, SlackAPIError,
)
from slackrat.tools.slack.export import export_to_csv, export_to_json
from slackrat.tools.slack.messages import post_text
from slackrat.tools.slack.models import SearchOptions, SearchResult
from slackrat.tools.slack.search import search_channel, search_multiple_channels

# Load environment variables
load_dotenv(".env")
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)

SEARCH_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>SlackRat Search</title>
    <style>
        body { font-family: Arial, sans-serif; max-width: 800px; margin: 0 auto; padding: 20px; }
        label { display: block; margin: 12px 0 4px; font-weight: bold; }
        input, select { width: 100%; padding: 8px; }
        button { margin-top: 16px; padding: 10px 20px; }
        pre { background: #f5f5f5; padding: 12px; white-space: pre-wrap; }
    </style>
</head>
<body>
    <h1>🔍 SlackRat Search</h1>
    <form id="searchForm">
        <label for="channel">Channel (name or ID)</label>
        <input type="text" id="channel" name="channel" placeholder="general" required>
        <label for="keyword">Keyword</label>
        <input type="text" id="keyword" name="keyword" placeholder="deploy, bug, meeting..." required>
        <label for="limit">Messages to search</label>
        <select id="limit" name="limit">
            <option value="100">100</option>
            <option value="500" selected>500</option>
            <option value="1000">1000</option>
        </select>
        <label><input type="checkbox" id="includeContext" checked style="width: auto"> Include context</label>
        <button type="submit">Search</button>
    </form>
    <pre id="results" hidden></pre>
    <script>
        document.getElementById("searchForm").addEventListener("submit", async (e) => {
            e.preventDefault();
            const results = document.getElementById("results");
            results.hidden = false;
            results.textContent = "Searching...";
            const response = await fetch("/api/search", {
                method: "POST",
                headers: {"Content-Type": "application/json"},
                body: JSON.stringify({
                    channel: document.getElementById("channel").value,
                    keyword: document.getElementById("keyword").value,
                    options: {
                        limit: parseInt(document.getElementById("limit").value, 10),
                        include_context: document.getElementById("includeContext").checked
                    }
                })
            });
            const data = await response.json();
            if (!response.ok) {
                results.textContent = "Error: " + JSON.stringify(data.detail);
                return;
            }
            results.textContent = data.matches_found + " matches in " + data.total_messages_searched + " messages\\n\\n" +
                data.results.map(m => m.author + ": " + m.text + (m.permalink ? "\\n" + m.permalink : "")).join("\\n\\n");
        });
    </script>
</body>
</html>
"""

# Create FastAPI app
app = FastAPI(
    title="SlackRat Search API",
    description="Search Slack channel history by keyword or pattern",
    version=__version__
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Modify this in production to specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def build_slack_client() -> SlackClient:
    if not settings.slack_bot_token:
        raise MissingTokenError()
    return SlackClient(settings.slack_bot_token)


async def get_slack_client():
    try:
        client = build_slack_client()
    except MissingTokenError as e:
        raise HTTPException(status_code=503, detail=str(e))
    try:
        yield client
    finally:
        await client.close()


# The bot keeps per-user search history for the life of the process
search_bot = SearchBot(client_factory=lambda: build_slack_client())


class SearchRequest(BaseModel):
    channel: str = Field(validation_alias=AliasChoices("channel", "channel_id", "channelId"))
    keyword: Optional[str] = None
    pattern: Optional[str] = None
    options: SearchOptions = SearchOptions()
    notify_channel: Optional[str] = None

    @model_validator(mode="after")
    def check_query(self):
        # Empty strings mean "not given"
        self.keyword = self.keyword or None
        self.pattern = self.pattern or None
        if not self.keyword and not self.pattern:
            raise ValueError("keyword or pattern is required")
        return self


class ExportRequest(SearchRequest):
    format: Literal["csv", "json"] = "json"


class MultiSearchRequest(BaseModel):
    channels: List[str] = Field(
        min_length=1, validation_alias=AliasChoices("channels", "channel_ids", "channelIds")
    )
    keyword: str = Field(min_length=1)
    options: SearchOptions = SearchOptions()


class TextRequest(BaseModel):
    text: str
    exclude_words: List[str] = []


def _http_error(e: Exception) -> HTTPException:
    """Map search failures to HTTP status codes"""
    if isinstance(e, ChannelNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, InvalidPatternError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, SlackAPIError):
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=500, detail=f"Error processing search: {str(e)}")


async def _run_search(client: SlackClient, request: SearchRequest) -> SearchResult:
    try:
        channel = await resolve_channel(client, request.channel)
        return await search_channel(
            client,
            channel["id"],
            keyword=request.keyword if not request.pattern else None,
            pattern=request.pattern,
            options=request.options,
            channel_name=channel.get("name")
        )
    except Exception as e:
        logger.error("Search request failed: %s", e)
        raise _http_error(e)


@app.post("/api/search")
async def search(request: SearchRequest, client: SlackClient = Depends(get_slack_client)):
    """Search one channel and optionally post the summary to Slack."""
    result = await _run_search(client, request)
    response: Dict[str, Any] = result.model_dump(mode="json")

    if request.notify_channel:
        response["notification"] = await post_text(
            client, request.notify_channel, format_search_summary(result)
        )

    return response


@app.post("/api/search/multiple")
async def search_multiple(request: MultiSearchRequest, client: SlackClient = Depends(get_slack_client)):
    """Search several channels for the same keyword."""
    channel_ids = []
    for channel in request.channels:
        try:
            channel_ids.append((await resolve_channel(client, channel))["id"])
        except ChannelNotFoundError:
            # Reported as a failed channel in the combined result
            channel_ids.append(channel)

    result = await search_multiple_channels(client, channel_ids, request.keyword, options=request.options)
    return result.model_dump(mode="json")


@app.post("/api/search/export")
async def search_export(request: ExportRequest, client: SlackClient = Depends(get_slack_client)):
    """Search one channel and download the matches as CSV or JSON."""
    result = await _run_search(client, request)
    if request.format == "csv":
        content, media_type = export_to_csv(result), "text/csv"
    else:
        content, media_type = export_to_json(result), "application/json"

    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename=search-{result.channel}.{request.format}"}
    )


@app.get("/api/channels")
async def channels(client: SlackClient = Depends(get_slack_client)):
    """Channels visible to the bot."""
    available = await get_available_channels(client)
    return {"success": True, "channels": available, "count": len(available)}


@app.get("/api/channel/{channel_id}/stats")
async def channel_stats(channel_id: str, days: int = Query(30, ge=1, le=365),
                        client: SlackClient = Depends(get_slack_client)):
    """Message statistics for the last `days` days."""
    try:
        stats = await get_channel_stats(client, channel_id, days)
    except Exception as e:
        raise _http_error(e)
    return {"success": True, "stats": stats}


@app.get("/api/channel/{channel_id}/active-users")
async def channel_active_users(channel_id: str, days: int = Query(30, ge=1, le=365),
                               client: SlackClient = Depends(get_slack_client)):
    """Users ranked by messages posted in the last `days` days."""
    try:
        users = await get_active_users(client, channel_id, days)
    except Exception as e:
        raise _http_error(e)
    return {"success": True, "channel": channel_id, "users": users}


@app.post("/api/analyze/sentiment")
async def sentiment(request: TextRequest):
    return analyze_sentiment(request.text)


@app.post("/api/analyze/words")
async def word_frequency(request: TextRequest):
    return {"words": analyze_word_frequency(request.text, request.exclude_words)}


def should_handle_event(event: Dict[str, Any]) -> bool:
    """DMs from people and mentions of the bot; bot echoes and edits are ignored"""
    if event.get("bot_id") or event.get("subtype"):
        return False
    if not event.get("text") or event.get("user") in (None, "USLACKBOT"):
        return False
    if event.get("type") == "message":
        return event.get("channel_type") == "im"
    return event.get("type") == "app_mention"


async def handle_slack_event(event: Dict[str, Any]) -> None:
    """Run a bot command and post the replies back where it came from"""
    client = build_slack_client()
    # Mentions are answered in a thread, DMs inline
    thread_ts = event.get("ts") if event.get("type") == "app_mention" else None

    async def reply(text: str) -> None:
        await client.post_message(channel=event["channel"], text=text, thread_ts=thread_ts)

    try:
        logger.info("Event %s from %s: %r", event.get("type"), event.get("user"), event.get("text"))
        await search_bot.handle_text(event.get("text", ""), event["user"], reply)
    except Exception:
        logger.exception("Failed to handle Slack event")
    finally:
        await client.close()


@app.post("/slack/events")
async def slack_events(request: Request, background_tasks: BackgroundTasks,
                       body: bytes = Depends(require_slack_signature)):
    """Slack Events API webhook."""
    try:
        payload = json.loads(body or b"{}")
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")

    if payload.get("type") == "url_verification":
        return {"challenge": payload.get("challenge")}

    # Slack retries when we are slow; the first delivery is already being handled
    if request.headers.get("x-slack-retry-num"):
        return {"ok": True}

    if payload.get("type") == "event_callback":
        event = payload.get("event") or {}
        if should_handle_event(event):
            background_tasks.add_task(handle_slack_event, event)

    return {"ok": True}


# Search form
@app.get("/", response_class=HTMLResponse)
async def root():
    return SEARCH_PAGE


@app.get("/api")
async def api_index():
    return {
        "name": "SlackRat Search API",
        "version": __version__,
        "status": "operational",
        "endpoints": {
            "/": "Search form",
            "/api/search": "Search a channel",
            "/api/search/multiple": "Search several channels",
            "/api/search/export": "Search and export as CSV or JSON",
            "/api/channels": "Channels visible to the bot",
            "/slack/events": "Slack Events API webhook",
            "/health": "Health check",
            "/test": "Slack connectivity test",
            "/debug": "Configuration status"
        }
    }


# Health check endpoint
@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/test")
async def test_connection(client: SlackClient = Depends(get_slack_client)):
    """Check the bot token against auth.test."""
    auth = await client.auth_test()
    if not auth.get("ok"):
        raise HTTPException(status_code=500, detail=f"Slack auth failed: {auth.get('error')}")
    return {
        "status": "ok",
        "bot": {
            "name": auth.get("user"),
            "id": auth.get("user_id"),
            "team": auth.get("team")
        }
    }


@app.get("/debug")
async def debug():
    return {"status": "debug", "configuration": check_configuration(settings)}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host=settings.server_host, port=settings.server_port)
