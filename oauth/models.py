"""Data models for relay-issued Feishu credentials"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class CredentialSnapshot:
    """Immutable view of the current Feishu user credentials

    Attributes:
        access_token: Bearer token for the document service
        refresh_token: Token the relay exchanges for a new pair
        expires_at: Epoch seconds after which access_token is no longer
            guaranteed valid, or None when unknown
        relay_endpoint: Base URL of the OAuth relay
    """
    access_token: str
    refresh_token: str = ""
    expires_at: Optional[int] = None
    relay_endpoint: str = ""

    def with_tokens(self, access_token: str, refresh_token: str, expires_at: int) -> "CredentialSnapshot":
        """Return a new snapshot carrying a refreshed token pair"""
        return replace(
            self,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
            "relay_endpoint": self.relay_endpoint,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CredentialSnapshot":
        """Load from dictionary"""
        expires_at = data.get("expires_at")
        return cls(
            access_token=data.get("access_token") or "",
            refresh_token=data.get("refresh_token") or "",
            expires_at=int(expires_at) if expires_at else None,
            relay_endpoint=data.get("relay_endpoint") or "",
        )


class CredentialCell:
    """Single-writer holder of the current CredentialSnapshot

    Readers always go through get(); the snapshot is swapped wholesale,
    never edited in place.
    """

    def __init__(self, snapshot: CredentialSnapshot):
        self._snapshot = snapshot

    def get(self) -> CredentialSnapshot:
        return self._snapshot

    def replace(self, snapshot: CredentialSnapshot) -> None:
        self._snapshot = snapshot
