import asyncio
import logging

from dotenv import load_dotenv
from slack_bolt import App
from slack_bolt.adapter.socket_mode.builtin import SocketModeHandler

from slackrat.bot.commands import SearchBot
from slackrat.config.log import configure_logging
from slackrat.config.settings import settings

load_dotenv(".env")

logger = logging.getLogger(__name__)

search_bot = SearchBot()


def run_command(text, user_id, say, thread_ts=None):
    """Run a bot command - sync wrapper around the async SearchBot"""
    async def reply(message):
        say(text=message, thread_ts=thread_ts)

    return asyncio.run(search_bot.handle_text(text, user_id, reply))


def register_handlers(app):
    @app.event("app_mention")
    def handle_mention(event, say):
        if event.get("bot_id"):
            return
        # Reply in the thread of the mention
        run_command(event.get("text", ""), event.get("user"), say, thread_ts=event.get("ts"))

    @app.event("message")
    def handle_dm(event, say):
        # Only respond to DMs
        if event.get("channel_type") != "im":
            return

        # Skip bot messages, edits and deletions
        if event.get("bot_id") or event.get("subtype"):
            return

        text = event.get("text", "").strip()
        if not text:
            return

        run_command(text, event.get("user"), say)

    return app


def create_app():
    """Bolt app; constructing it checks the bot token with auth.test"""
    app = App(token=settings.slack_bot_token, signing_secret=settings.slack_signing_secret)
    return register_handlers(app)


def main():
    configure_logging(settings.log_level)
    if not settings.slack_bot_token or not settings.slack_app_token:
        raise SystemExit("SLACK_BOT_TOKEN and SLACK_APP_TOKEN are required for Socket Mode")
    logger.info("SlackRat starting in Socket Mode")
    SocketModeHandler(create_app(), settings.slack_app_token).start()


if __name__ == "__main__":
    main()
