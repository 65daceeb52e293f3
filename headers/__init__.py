"""HTTP headers and constants package for the Feishu clipper publisher"""

from .constants import (
    USER_AGENT,
    JSON_HEADERS,
)

__all__ = [
    "USER_AGENT",
    "JSON_HEADERS",
]
