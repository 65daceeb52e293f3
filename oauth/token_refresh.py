"""Refresh-token exchange through the OAuth relay"""

import logging
import time
from typing import Callable, Optional

import httpx

from errors import RelayRefreshError
from headers import USER_AGENT
from settings import CONNECT_TIMEOUT, DEFAULT_EXPIRES_IN, REQUEST_TIMEOUT
from .models import CredentialSnapshot

logger = logging.getLogger(__name__)


def relay_url(relay_endpoint: str, path: str) -> str:
    """Join a relay endpoint and a path, dropping one trailing slash"""
    endpoint = relay_endpoint.strip()
    if endpoint.endswith("/"):
        endpoint = endpoint[:-1]
    return f"{endpoint}/{path}"


async def refresh_via_relay(
    snapshot: CredentialSnapshot,
    http_client: Optional[httpx.AsyncClient] = None,
    clock: Callable[[], float] = time.time,
) -> CredentialSnapshot:
    """Exchange the snapshot's refresh token for a new token pair

    Args:
        snapshot: Current credentials (refresh token and relay endpoint)
        http_client: Optional client to send the request with
        clock: Source of the current epoch time

    Returns:
        A new snapshot with the refreshed tokens and expiry

    Raises:
        RelayRefreshError: On any failure, including a relay error payload
    """
    if not snapshot.refresh_token or not snapshot.relay_endpoint:
        raise RelayRefreshError("Missing refresh token or relay endpoint")

    url = relay_url(snapshot.relay_endpoint, "refresh")
    logger.info(f"Refreshing Feishu tokens via relay: {url}")

    try:
        if http_client is not None:
            response = await http_client.post(
                url,
                json={"refresh_token": snapshot.refresh_token},
                headers={"User-Agent": USER_AGENT},
            )
        else:
            async with httpx.AsyncClient(timeout=httpx.Timeout(REQUEST_TIMEOUT, connect=CONNECT_TIMEOUT)) as client:
                response = await client.post(
                    url,
                    json={"refresh_token": snapshot.refresh_token},
                    headers={"User-Agent": USER_AGENT},
                )
        payload = response.json()
    except httpx.HTTPError as e:
        raise RelayRefreshError(f"Relay request failed: {e}") from e
    except ValueError as e:
        raise RelayRefreshError(f"Relay returned a non-JSON body: {e}") from e

    if not isinstance(payload, dict):
        raise RelayRefreshError("Relay returned an unexpected payload")
    if payload.get("error"):
        raise RelayRefreshError(str(payload["error"]))

    access_token = payload.get("access_token")
    if not access_token:
        raise RelayRefreshError("Relay response missing access_token")

    try:
        expires_in = int(payload.get("expires_in") or DEFAULT_EXPIRES_IN)
    except (TypeError, ValueError):
        expires_in = DEFAULT_EXPIRES_IN

    logger.info("Successfully refreshed Feishu tokens")
    return snapshot.with_tokens(
        access_token=access_token,
        refresh_token=payload.get("refresh_token") or snapshot.refresh_token,
        expires_at=int(clock()) + expires_in,
    )
