"""Tests for `slackrat.auth.middleware`."""

import time

from slackrat.auth.middleware import SlackRequestVerifier


BODY = b'{"type": "url_verification", "challenge": "abc"}'


def _headers(verifier, body=BODY, timestamp=None):
    timestamp = timestamp or str(int(time.time()))
    return {
        "X-Slack-Request-Timestamp": timestamp,
        "X-Slack-Signature": verifier.sign(body, timestamp),
    }


def test_valid_signature():
    verifier = SlackRequestVerifier("test-secret")

    assert verifier.is_valid(BODY, _headers(verifier))


def test_signature_uses_v0_scheme():
    verifier = SlackRequestVerifier("test-secret")

    assert verifier.sign(BODY, "1700000000").startswith("v0=")


def test_tampered_body_is_rejected():
    verifier = SlackRequestVerifier("test-secret")
    headers = _headers(verifier)

    assert not verifier.is_valid(BODY + b" ", headers)


def test_other_secret_is_rejected():
    headers = _headers(SlackRequestVerifier("other-secret"))

    assert not SlackRequestVerifier("test-secret").is_valid(BODY, headers)


def test_stale_timestamp_is_rejected():
    verifier = SlackRequestVerifier("test-secret")
    stale = str(int(time.time()) - 10 * 60)

    assert not verifier.is_valid(BODY, _headers(verifier, timestamp=stale))


def test_missing_headers_are_rejected():
    assert not SlackRequestVerifier("test-secret").is_valid(BODY, {})


def test_missing_secret_rejects_everything():
    verifier = SlackRequestVerifier(None)
    signed = _headers(SlackRequestVerifier("test-secret"))

    assert verifier.sign(BODY, "1700000000") is None
    assert not verifier.is_valid(BODY, signed)
