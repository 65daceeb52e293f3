"""Validation of relay endpoints and pasted token JSON"""

import json
import time
from typing import Optional
from urllib.parse import urlparse

from settings import DEFAULT_EXPIRES_IN
from .models import CredentialSnapshot
from .token_refresh import relay_url


def validate_relay_endpoint(url: str) -> bool:
    """Check that a relay endpoint is an absolute http(s) URL

    Args:
        url: The endpoint string to validate

    Returns:
        True if the endpoint is usable, False otherwise
    """
    if not url:
        return False
    parsed = urlparse(url.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def relay_login_url(relay_endpoint: str) -> str:
    """URL a user opens to start the OAuth login on the relay"""
    return relay_url(relay_endpoint, "login")


def parse_token_json(text: str, relay_endpoint: str, now: Optional[float] = None) -> CredentialSnapshot:
    """Build credentials from the JSON the relay shows after login

    The relay answers with ``{"access_token", "refresh_token", "expires_in"}``;
    a missing or zero ``expires_in`` means the default two hour lifetime.

    Args:
        text: Pasted JSON text
        relay_endpoint: Relay the tokens were issued by
        now: Current epoch time (defaults to time.time())

    Returns:
        A CredentialSnapshot ready to be stored

    Raises:
        ValueError: If the text is not JSON or lacks either token
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Token text is not valid JSON: {e}") from e

    if not isinstance(data, dict) or not data.get("access_token") or not data.get("refresh_token"):
        raise ValueError("Token JSON must contain access_token and refresh_token")

    try:
        expires_in = int(data.get("expires_in") or DEFAULT_EXPIRES_IN)
    except (TypeError, ValueError):
        expires_in = DEFAULT_EXPIRES_IN

    issued_at = time.time() if now is None else now
    return CredentialSnapshot(
        access_token=data["access_token"],
        refresh_token=data["refresh_token"],
        expires_at=int(issued_at) + expires_in,
        relay_endpoint=relay_endpoint.strip(),
    )
