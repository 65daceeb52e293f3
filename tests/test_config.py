"""Tests for the environment-backed config loader."""

import os
from unittest.mock import patch

import pytest

from config import ConfigLoader


@pytest.fixture
def loader(tmp_path):
    return ConfigLoader(env_path=str(tmp_path / "missing.env"))


def test_defaults_when_env_is_unset(loader):
    with patch.dict(os.environ, {}, clear=True):
        assert loader.get_float("REQUEST_TIMEOUT", 60.0) == 60.0
        assert loader.get_int("MEDIA_UPLOAD_CONCURRENCY", 50) == 50
        assert loader.get_str("RELAY_ENDPOINT", "") == ""


def test_numbers_are_parsed(loader):
    env = {"MEDIA_UPLOAD_CONCURRENCY": "8", "REQUEST_TIMEOUT": "2.5"}
    with patch.dict(os.environ, env, clear=True):
        assert loader.get_int("MEDIA_UPLOAD_CONCURRENCY", 50) == 8
        assert loader.get_float("REQUEST_TIMEOUT", 60.0) == 2.5


@pytest.mark.parametrize("raw", ["many", "0", "-3"])
def test_unusable_concurrency_falls_back_to_default(loader, raw):
    with patch.dict(os.environ, {"MEDIA_UPLOAD_CONCURRENCY": raw}, clear=True):
        assert loader.get_int("MEDIA_UPLOAD_CONCURRENCY", 50, minimum=1) == 50


def test_blank_value_counts_as_unset(loader):
    with patch.dict(os.environ, {"LOG_LEVEL": "  "}, clear=True):
        assert loader.get_str("LOG_LEVEL", "info") == "info"


def test_urls_lose_trailing_slash(loader):
    with patch.dict(os.environ, {"FEISHU_OPEN_API": "https://open.larksuite.com/"}, clear=True):
        assert loader.get_url("FEISHU_OPEN_API", "https://open.feishu.cn") == "https://open.larksuite.com"


def test_paths_are_expanded_from_env_and_default(loader):
    with patch.dict(os.environ, {}, clear=True):
        default = loader.get_path("CREDENTIALS_FILE", "~/creds.json")
    with patch.dict(os.environ, {"CREDENTIALS_FILE": "~/other.json"}, clear=True):
        from_env = loader.get_path("CREDENTIALS_FILE", "~/creds.json")

    assert not default.startswith("~") and default.endswith("creds.json")
    assert not from_env.startswith("~") and from_env.endswith("other.json")


def test_dotenv_file_is_loaded_without_overriding_env(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("RELAY_ENDPOINT=https://from-dotenv.test\nLOG_LEVEL=debug\n")
    with patch.dict(os.environ, {"LOG_LEVEL": "warning"}, clear=True):
        loader = ConfigLoader(env_path=str(env_file))
        assert loader.get_str("RELAY_ENDPOINT", "") == "https://from-dotenv.test"
        assert loader.get_str("LOG_LEVEL", "info") == "warning"
