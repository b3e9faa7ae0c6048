"""Environment-driven configuration for the OCR server."""

from __future__ import annotations

import logging
from typing import Any, Optional, Tuple

from pydantic import Field, ValidationError, ValidationInfo, ValidatorFunctionWrapHandler, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_URL = "http://127.0.0.1:4568/api/graphql"
ENV_PREFIX = "OCR_"


class Settings(BaseSettings):
    """Server settings, read from ``OCR_*`` environment variables.

    Invalid or out-of-range numbers fall back to their default with a warning.
    """

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, extra="ignore")

    chunk_height: int = Field(default=3000, ge=1)
    max_attempts: int = Field(default=3, ge=1)
    retry_unit_seconds: float = Field(default=1.0, ge=0.0)
    language_hint: Optional[str] = "ja"
    fetch_timeout: float = Field(default=20.0, gt=0.0)
    image_host_override: Optional[str] = None
    catalog_url: str = DEFAULT_CATALOG_URL
    basic_auth_user: Optional[str] = None
    basic_auth_pass: Optional[str] = None

    @field_validator("chunk_height", "max_attempts", "retry_unit_seconds", "fetch_timeout", mode="wrap")
    @classmethod
    def _fall_back_on_bad_number(
        cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
    ) -> Any:
        try:
            return handler(value)
        except ValidationError:
            name = info.field_name or ""
            default = cls.model_fields[name].default
            logger.warning("Ignoring invalid %s%s=%r; using %s", ENV_PREFIX, name.upper(), value, default)
            return default

    @field_validator("language_hint", "image_host_override", "basic_auth_user", "basic_auth_pass", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("catalog_url", mode="before")
    @classmethod
    def _blank_catalog_url(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or DEFAULT_CATALOG_URL
        return value

    @property
    def basic_auth(self) -> Optional[Tuple[str, str]]:
        if not self.basic_auth_user:
            return None
        return (self.basic_auth_user, self.basic_auth_pass or "")


def load_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "load_settings"]
