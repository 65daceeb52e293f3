"""OAuth credential package for Feishu access through the relay"""

from .models import CredentialSnapshot, CredentialCell
from .validators import parse_token_json, relay_login_url, validate_relay_endpoint
from .token_refresh import refresh_via_relay, relay_url
from .token_manager import TokenLifecycleManager

__all__ = [
    "CredentialSnapshot",
    "CredentialCell",
    "TokenLifecycleManager",
    "refresh_via_relay",
    "relay_url",
    "parse_token_json",
    "relay_login_url",
    "validate_relay_endpoint",
]
