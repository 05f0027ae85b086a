"""
Request verification for the Slack Events API webhook
"""

import logging
from typing import Mapping, Optional

from fastapi import HTTPException, Request
from slack_sdk.signature import SignatureVerifier

from slackrat.config.settings import settings

logger = logging.getLogger(__name__)


class SlackRequestVerifier:
    """Check the X-Slack-Signature HMAC of incoming requests"""

    def __init__(self, signing_secret: Optional[str] = None):
        self.signing_secret = signing_secret
        self.verifier = SignatureVerifier(signing_secret) if signing_secret else None

    def is_valid(self, body: bytes, headers: Mapping[str, str]) -> bool:
        """
        Validate the v0 signature of a raw request body

        Missing secret, missing headers, stale timestamps and mismatching
        signatures are all rejected.
        """
        if self.verifier is None:
            logger.warning("SLACK_SIGNING_SECRET is not configured, rejecting request")
            return False
        return self.verifier.is_valid_request(body, dict(headers))

    def sign(self, body: bytes, timestamp: str) -> Optional[str]:
        """Signature Slack would send for body at timestamp"""
        if self.verifier is None:
            return None
        return self.verifier.generate_signature(timestamp=timestamp, body=body)


async def require_slack_signature(request: Request) -> bytes:
    """FastAPI dependency returning the verified raw body"""
    body = await request.body()
    verifier = SlackRequestVerifier(settings.slack_signing_secret)
    if not verifier.is_valid(body, request.headers):
        raise HTTPException(status_code=401, detail="Invalid Slack signature")
    return body
