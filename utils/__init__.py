"""Shared utilities package for the Feishu clipper publisher"""

from .storage import CredentialStorage
from .logging_setup import setup_logging

__all__ = [
    "CredentialStorage",
    "setup_logging",
]
