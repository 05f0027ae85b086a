"""
Slack Errors
Exceptions raised by the Slack tools
"""

from typing import Optional


FRIENDLY_ERRORS = {
    "channel_not_found": "Channel not found or the bot doesn't have access",
    "not_in_channel": "The bot must be added to the channel first",
    "invalid_auth": "Invalid authentication token",
    "not_authed": "No authentication token provided",
    "missing_scope": "Bot token is missing a required scope",
    "ratelimited": "Slack rate limit reached, try again in a moment",
}


def describe_slack_error(error: Optional[str]) -> str:
    """Turn a Slack error code into a readable sentence"""
    if not error:
        return "Unknown error"
    return FRIENDLY_ERRORS.get(error, error)


class SlackAPIError(Exception):
    """A Slack Web API call returned ok=false"""

    def __init__(self, method: str, error: Optional[str], needed: Optional[str] = None):
        self.method = method
        self.error = error or "unknown_error"
        self.needed = needed
        message = f"{method} failed: {describe_slack_error(self.error)}"
        if needed:
            message += f" (needed: {needed})"
        super().__init__(message)


class ChannelNotFoundError(ValueError):
    """No channel matched the requested name"""

    def __init__(self, channel: str):
        self.channel = channel
        super().__init__(f"Channel #{channel} not found")


class InvalidPatternError(ValueError):
    """A search pattern is not a valid regular expression"""


class MissingTokenError(RuntimeError):
    """No Slack bot token was configured"""

    def __init__(self):
        super().__init__(
            "No API key provided. Please provide api_key or set SLACK_BOT_TOKEN environment variable"
        )
