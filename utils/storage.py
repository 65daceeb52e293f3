import json
import logging
import os
import platform
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any

from oauth.models import CredentialSnapshot
from settings import CREDENTIALS_FILE

logger = logging.getLogger(__name__)


class CredentialStorage:
    """On-disk storage of relay-issued Feishu credentials"""

    def __init__(self, credentials_file: Optional[str] = None):
        self.credentials_path = Path(credentials_file if credentials_file else CREDENTIALS_FILE).expanduser()

    def _ensure_secure_directory(self):
        """Create parent directory with secure permissions"""
        parent_dir = self.credentials_path.parent
        if not parent_dir.exists():
            parent_dir.mkdir(parents=True, exist_ok=True)
            # Set directory permissions to 700 on Unix-like systems
            if platform.system() != "Windows":
                os.chmod(parent_dir, 0o700)

    def save(self, snapshot: CredentialSnapshot):
        """Write the snapshot as JSON, readable by the owner only"""
        self._ensure_secure_directory()
        self.credentials_path.write_text(json.dumps(snapshot.to_dict(), indent=2))

        if platform.system() != "Windows":
            os.chmod(self.credentials_path, 0o600)
        logger.debug(f"Saved Feishu credentials to {self.credentials_path}")

    def load(self) -> Optional[CredentialSnapshot]:
        """Load credentials, or None if the file is missing or unreadable"""
        if not self.credentials_path.exists():
            return None

        try:
            data = json.loads(self.credentials_path.read_text())
        except (json.JSONDecodeError, IOError) as e:
            logger.error(f"Failed to load credentials from {self.credentials_path}: {e}")
            return None
        if not isinstance(data, dict):
            logger.error(f"Unexpected credentials format in {self.credentials_path}")
            return None
        return CredentialSnapshot.from_dict(data)

    def clear(self):
        """Remove stored credentials"""
        if self.credentials_path.exists():
            self.credentials_path.unlink()

    def get_status(self, now: Optional[float] = None) -> Dict[str, Any]:
        """Get credential status without exposing secrets"""
        snapshot = self.load()
        if snapshot is None:
            return {
                "has_tokens": False,
                "is_expired": True,
                "expires_at": None,
                "time_until_expiry": "No tokens",
                "relay_endpoint": None,
                "can_refresh": False,
            }

        status = {
            "has_tokens": bool(snapshot.access_token),
            "relay_endpoint": snapshot.relay_endpoint or None,
            "can_refresh": bool(snapshot.refresh_token and snapshot.relay_endpoint),
        }

        if not snapshot.expires_at:
            status.update({
                "is_expired": False,
                "expires_at": None,
                "time_until_expiry": "Unknown",
            })
            return status

        current_time = int(time.time() if now is None else now)
        expires_at = snapshot.expires_at
        status["expires_at"] = datetime.fromtimestamp(expires_at).isoformat()

        if current_time >= expires_at:
            time_since = current_time - expires_at
            hours_since = time_since // 3600
            mins_since = (time_since % 3600) // 60
            if hours_since > 0:
                time_str = f"{hours_since}h {mins_since}m ago"
            else:
                time_str = f"{mins_since}m ago"
            status.update({"is_expired": True, "time_until_expiry": time_str})
            return status

        time_remaining = expires_at - current_time
        hours = time_remaining // 3600
        minutes = (time_remaining % 3600) // 60
        if hours > 0:
            time_str = f"{hours}h {minutes}m"
        else:
            time_str = f"{minutes}m"

        status.update({
            "is_expired": False,
            "time_until_expiry": time_str,
            "expires_in_seconds": time_remaining,
        })
        return status

    @property
    def credentials_file(self) -> Path:
        """Get the credentials file path"""
        return self.credentials_path
