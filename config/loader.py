"""Settings source for the Feishu clipper publisher

A setting is read from the process environment first, then from the .env
file, and falls back to the default passed in by settings.py. Each accessor
returns a value of one type, so settings.py never handles raw strings.
"""

import logging
import os
from pathlib import Path
from typing import Callable, Optional, TypeVar
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

T = TypeVar("T", int, float)


class ConfigLoader:
    """Typed access to environment-backed settings"""

    def __init__(self, env_path: Optional[str] = None):
        """
        Args:
            env_path: Optional path to .env file.
                     Defaults to '.env' in the current directory.
        """
        self.env_path = Path(env_path) if env_path else Path(".env")
        self._load_env_file()

    def _load_env_file(self):
        if self.env_path.exists():
            # Real environment variables win over .env entries
            load_dotenv(dotenv_path=self.env_path, override=False)
            logger.debug(f"Loaded settings from {self.env_path}")
        else:
            logger.debug(f"No .env at {self.env_path}, using environment and defaults")

    def _raw(self, name: str) -> Optional[str]:
        value = os.getenv(name)
        if value is None or not value.strip():
            return None
        return value.strip()

    def get_str(self, name: str, default: str) -> str:
        value = self._raw(name)
        return default if value is None else value

    def get_url(self, name: str, default: str) -> str:
        """Absolute base URL without a trailing slash"""
        return self.get_str(name, default).rstrip("/")

    def get_path(self, name: str, default: str) -> str:
        """File path with ~ expanded, whether it came from env or default"""
        return str(Path(self.get_str(name, default)).expanduser())

    def _get_number(self, name: str, default: T, parse: Callable[[str], T], minimum: Optional[T]) -> T:
        value = self._raw(name)
        if value is None:
            return default
        try:
            number = parse(value)
        except ValueError:
            logger.warning(f"Failed to parse {name}={value}, using default: {default}")
            return default
        if minimum is not None and number < minimum:
            logger.warning(f"{name}={number} is below {minimum}, using default: {default}")
            return default
        return number

    def get_int(self, name: str, default: int, minimum: Optional[int] = None) -> int:
        return self._get_number(name, default, int, minimum)

    def get_float(self, name: str, default: float, minimum: Optional[float] = None) -> float:
        return self._get_number(name, default, float, minimum)


_config_loader = None

def get_config_loader() -> ConfigLoader:
    """Get or create the global ConfigLoader instance"""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader
