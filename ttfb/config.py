from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import structlog
import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, ValidationError, field_validator

from .exceptions import ConfigError

logger = structlog.get_logger(__name__)

ENV_PATH = Path.home() / ".ttfbEnv"
ENV_TEMPLATE = ".ttfbEnv"
ENV_KEYS = ("url", "search", "no_cache", "timeout")


def validate_url(url: str) -> str:
    """Return ``url`` stripped if it is an absolute http(s) URL."""

    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"url must start with http:// or https://, got {url!r}")
    return url


def validate_timeout(timeout: float) -> float:
    """Return ``timeout`` if it is a positive number of seconds."""

    if timeout <= 0:
        raise ConfigError(f"timeout must be positive, got {timeout!r}")
    return timeout


class Settings(BaseModel):
    """Configuration options loaded from YAML, an env file or the environment."""

    url: str = ""
    search: str = ""
    no_cache: bool = False
    timeout: float = 30.0
    metrics_port: Optional[int] = None

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        """Accept an empty URL or an absolute http(s) URL."""
        value = value.strip()
        return validate_url(value) if value else value

    @field_validator("timeout")
    @classmethod
    def _check_timeout(cls, value: float) -> float:
        """Ensure the request deadline is positive."""
        return validate_timeout(value)

    @field_validator("metrics_port")
    @classmethod
    def _check_port(cls, value: Optional[int]) -> Optional[int]:
        """Ensure the metrics port is within the valid TCP range."""
        if value is not None and not (1 <= value <= 65535):
            raise ValueError("metrics_port must be between 1 and 65535")
        return value


def _read_env_file(path: str | os.PathLike[str]) -> dict[str, object]:
    """Return the known, non-empty keys of the dotenv file at ``path``."""

    values = dotenv_values(path)
    data: dict[str, object] = {}
    for key, value in values.items():
        key = key.lower()
        if key in ENV_KEYS and value:
            data[key] = value
    return data


def load_settings(
    path: str | None = None, env_file: str | os.PathLike[str] | None = None
) -> Settings:
    """Return :class:`Settings` from ``path``, ``env_file`` and the environment.

    Values from the YAML file at ``path`` take precedence over the dotenv
    file, which takes precedence over ``TTFB_*`` environment variables.
    """

    data: dict[str, object] = {}
    if path:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    if env_file and os.path.isfile(env_file):
        for key, value in _read_env_file(env_file).items():
            data.setdefault(key, value)
    env = os.getenv
    if "url" not in data and env("TTFB_URL"):
        data["url"] = env("TTFB_URL")
    if "search" not in data and env("TTFB_SEARCH"):
        data["search"] = env("TTFB_SEARCH")
    if "no_cache" not in data and env("TTFB_NO_CACHE"):
        data["no_cache"] = env("TTFB_NO_CACHE").lower() == "true"
    if "timeout" not in data and env("TTFB_TIMEOUT"):
        try:
            data["timeout"] = float(env("TTFB_TIMEOUT"))
        except ValueError:
            pass
    if "metrics_port" not in data and env("TTFB_METRICS_PORT"):
        try:
            data["metrics_port"] = int(env("TTFB_METRICS_PORT"))
        except ValueError:
            pass

    try:
        settings_obj = Settings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    globals()["settings"] = settings_obj
    return settings_obj


def ensure_env_file(
    target: str | os.PathLike[str] = ENV_PATH,
    template: str | os.PathLike[str] = ENV_TEMPLATE,
) -> bool:
    """Create ``target`` on first run and return whether it was created.

    The file is hard-linked to ``template`` when possible and copied
    otherwise. Without a template an empty skeleton is written.
    """

    target = Path(target)
    template = Path(template)
    if target.is_file():
        return False
    target.parent.mkdir(parents=True, exist_ok=True)
    if template.is_file():
        try:
            os.link(template, target)
            method = "link"
        except OSError:
            shutil.copyfile(template, target)
            method = "copy"
    else:
        target.write_text("url=\nsearch=\n", encoding="utf-8")
        method = "skeleton"
    logger.info("env_file_created", path=str(target), method=method)
    return True


# Global settings instance used by the package. Invalid values are
# reported when the CLI loads its settings.
try:
    settings = load_settings()
except ConfigError:
    settings = Settings()
