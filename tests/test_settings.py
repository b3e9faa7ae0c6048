"""Tests for environment configuration and logging setup."""

from __future__ import annotations

from pathlib import Path

import pytest

from ocr_server.logging_config import build_logging_config
from ocr_server.settings import DEFAULT_CATALOG_URL, Settings, load_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "OCR_CHUNK_HEIGHT",
        "OCR_MAX_ATTEMPTS",
        "OCR_RETRY_UNIT_SECONDS",
        "OCR_LANGUAGE_HINT",
        "OCR_FETCH_TIMEOUT",
        "OCR_IMAGE_HOST_OVERRIDE",
        "OCR_CATALOG_URL",
        "OCR_BASIC_AUTH_USER",
        "OCR_BASIC_AUTH_PASS",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = load_settings()
    assert settings.chunk_height == 3000
    assert settings.max_attempts == 3
    assert settings.retry_unit_seconds == 1.0
    assert settings.language_hint == "ja"
    assert settings.image_host_override is None
    assert settings.catalog_url == DEFAULT_CATALOG_URL
    assert settings.basic_auth is None


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OCR_CHUNK_HEIGHT", "1500")
    monkeypatch.setenv("OCR_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("OCR_RETRY_UNIT_SECONDS", "0.25")
    monkeypatch.setenv("OCR_LANGUAGE_HINT", "zh")
    monkeypatch.setenv("OCR_IMAGE_HOST_OVERRIDE", "127.0.0.1:4567")
    monkeypatch.setenv("OCR_BASIC_AUTH_USER", "reader")
    monkeypatch.setenv("OCR_BASIC_AUTH_PASS", "secret")

    settings = load_settings()

    assert settings.chunk_height == 1500
    assert settings.max_attempts == 5
    assert settings.retry_unit_seconds == 0.25
    assert settings.language_hint == "zh"
    assert settings.image_host_override == "127.0.0.1:4567"
    assert settings.basic_auth == ("reader", "secret")


@pytest.mark.parametrize("value", ["tall", "0", "-3", "2.5"])
def test_invalid_numbers_fall_back(monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    monkeypatch.setenv("OCR_CHUNK_HEIGHT", value)
    assert load_settings().chunk_height == 3000


def test_blank_language_hint_disables_hint(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OCR_LANGUAGE_HINT", " ")
    assert load_settings().language_hint is None


def test_logging_config_targets_log_dir(tmp_path: Path) -> None:
    config = build_logging_config(tmp_path, "DEBUG")

    assert Path(config["handlers"]["app_file"]["filename"]).parent == tmp_path
    assert Path(config["handlers"]["access_file"]["filename"]).parent == tmp_path
    assert config["loggers"]["ocr_server"]["level"] == "DEBUG"
    assert config["root"]["handlers"] == ["console", "app_file"]


def test_blank_catalog_url_uses_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OCR_CATALOG_URL", "  ")
    assert load_settings().catalog_url == DEFAULT_CATALOG_URL


def test_explicit_values_are_validated_like_environment() -> None:
    assert Settings(max_attempts=0).max_attempts == 3
    assert Settings(retry_unit_seconds=0.0).retry_unit_seconds == 0.0
