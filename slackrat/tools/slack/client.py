"""
Slack Client Module
Core client for interacting with Slack API
"""

from typing import Optional, Dict, List, Any
import httpx

from .errors import SlackAPIError


SLACK_API_URL = "https://slack.com/api"


def ensure_ok(response: Dict, method: str) -> Dict:
    """Raise SlackAPIError unless the Slack response has ok=true"""
    if not response.get("ok"):
        raise SlackAPIError(method, response.get("error"), response.get("needed"))
    return response


class SlackClient:
    """Wrapper for Slack API operations"""

    def __init__(self, token: str, base_url: str = SLACK_API_URL,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 timeout: float = 30.0):
        self.token = token
        self.base_url = base_url
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json; charset=utf-8"
        }
        self.client = httpx.AsyncClient(headers=self.headers, transport=transport, timeout=timeout)

    async def _get(self, method: str, params: Dict[str, Any]) -> Dict:
        # Slack rejects None values, drop them before sending
        params = {k: v for k, v in params.items() if v is not None}
        response = await self.client.get(f"{self.base_url}/{method}", params=params)
        response.raise_for_status()
        return response.json()

    async def _post(self, method: str, payload: Dict[str, Any]) -> Dict:
        response = await self.client.post(f"{self.base_url}/{method}", json=payload)
        response.raise_for_status()
        return response.json()

    async def auth_test(self) -> Dict:
        """Check the token and return the bot identity"""
        return await self._post("auth.test", {})

    async def post_message(self, channel: str, text: str,
                           blocks: Optional[List[Dict]] = None,
                           thread_ts: Optional[str] = None) -> Dict:
        """Send a message using chat.postMessage"""
        payload = {
            "channel": channel,
            "text": text
        }

        if blocks:
            payload["blocks"] = blocks

        if thread_ts:
            payload["thread_ts"] = thread_ts

        return await self._post("chat.postMessage", payload)

    async def chat_get_permalink(self, channel: str, message_ts: str) -> Dict:
        """Get a permalink for a single message"""
        return await self._get("chat.getPermalink", {
            "channel": channel,
            "message_ts": message_ts
        })

    async def conversations_list(self, cursor: Optional[str] = None,
                                 limit: int = 1000,
                                 types: str = "public_channel,private_channel",
                                 exclude_archived: bool = True) -> Dict:
        """List conversations in workspace"""
        return await self._get("conversations.list", {
            "limit": limit,
            "types": types,
            "exclude_archived": "true" if exclude_archived else "false",
            "cursor": cursor
        })

    async def conversations_history(self, channel: str,
                                    cursor: Optional[str] = None,
                                    limit: int = 100,
                                    oldest: Optional[str] = None,
                                    latest: Optional[str] = None) -> Dict:
        """Get conversation history"""
        return await self._get("conversations.history", {
            "channel": channel,
            "limit": limit,
            "cursor": cursor,
            "oldest": oldest,
            "latest": latest
        })

    async def conversations_info(self, channel: str) -> Dict:
        """Get channel information"""
        return await self._get("conversations.info", {"channel": channel})

    async def conversations_join(self, channel: str) -> Dict:
        """Join a public channel"""
        return await self._post("conversations.join", {"channel": channel})

    async def conversations_members(self, channel: str,
                                    cursor: Optional[str] = None,
                                    limit: int = 100) -> Dict:
        """Get channel members"""
        return await self._get("conversations.members", {
            "channel": channel,
            "limit": limit,
            "cursor": cursor
        })

    async def conversations_replies(self, channel: str, ts: str,
                                    cursor: Optional[str] = None,
                                    limit: int = 100) -> Dict:
        """Get thread replies"""
        return await self._get("conversations.replies", {
            "channel": channel,
            "ts": ts,
            "limit": limit,
            "cursor": cursor
        })

    async def users_info(self, user: str) -> Dict:
        """Get user information"""
        return await self._get("users.info", {"user": user})

    async def users_list(self, cursor: Optional[str] = None, limit: int = 200) -> Dict:
        """List workspace members"""
        return await self._get("users.list", {"limit": limit, "cursor": cursor})

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()

    async def __aenter__(self) -> "SlackClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
