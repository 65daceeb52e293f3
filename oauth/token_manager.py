"""Access token lifecycle for one set of relay-issued credentials"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from errors import RelayRefreshError, SessionExpiredError
from settings import REFRESH_BUFFER_SECONDS
from .models import CredentialCell, CredentialSnapshot
from .token_refresh import refresh_via_relay

logger = logging.getLogger(__name__)

RefreshFunc = Callable[[CredentialSnapshot], Awaitable[CredentialSnapshot]]


class TokenLifecycleManager:
    """Hands out valid access tokens, refreshing through the relay when needed

    The manager is the only writer of its CredentialCell. A refreshed
    snapshot is kept in memory only; callers that want it to survive the
    process read it back from ``snapshot`` and store it themselves.
    """

    def __init__(
        self,
        credentials: CredentialSnapshot,
        refresher: Optional[RefreshFunc] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize token manager

        Args:
            credentials: Initial credential snapshot
            refresher: Coroutine exchanging a snapshot for a refreshed one
                (defaults to the relay refresh call)
            clock: Source of the current epoch time
        """
        self._cell = CredentialCell(credentials)
        self._refresher = refresher or refresh_via_relay
        self._clock = clock
        self._lock = asyncio.Lock()
        # Snapshot whose refresh failed
        self._failed_snapshot: Optional[CredentialSnapshot] = None

    @property
    def snapshot(self) -> CredentialSnapshot:
        """Current credential snapshot"""
        return self._cell.get()

    def needs_refresh(self) -> bool:
        """Check if the access token is expired or inside the safety buffer

        Returns:
            True if an expiry is recorded and now is past it minus the buffer
        """
        expires_at = self._cell.get().expires_at
        if not expires_at:
            return False
        return self._clock() > expires_at - REFRESH_BUFFER_SECONDS

    async def get_valid_access_token(self) -> str:
        """Get a valid access token, refreshing once if it is about to expire

        Returns:
            The access token of the current (possibly refreshed) snapshot

        Raises:
            SessionExpiredError: Refresh failed or no access token is present
        """
        if self.needs_refresh():
            async with self._lock:
                if self._failed_snapshot is self._cell.get():
                    # Refresh already failed for these credentials; never retried
                    raise SessionExpiredError("Session expired, please login again via the relay.")
                # Another caller may have refreshed while we waited
                if self.needs_refresh():
                    await self._refresh()

        token = self._cell.get().access_token
        if not token:
            raise SessionExpiredError("Access token is missing. Please re-login.")
        return token

    async def _refresh(self) -> None:
        current = self._cell.get()
        logger.info(f"Feishu access token expires at {current.expires_at}, refreshing...")
        try:
            refreshed = await self._refresher(current)
        except RelayRefreshError as e:
            logger.error(f"Refresh token failed: {e}")
            self._failed_snapshot = current
            raise SessionExpiredError("Session expired, please login again via the relay.") from e
        except Exception as e:
            # A custom refresher may raise anything; all of it ends the session
            logger.error(f"Refresh token failed with exception: {e}")
            self._failed_snapshot = current
            raise SessionExpiredError("Session expired, please login again via the relay.") from e
        self._cell.replace(refreshed)
