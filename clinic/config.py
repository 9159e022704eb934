"""
Runtime configuration of the patients service.

:class:`ServiceConfig` is an immutable snapshot of the Django settings the
service needs.  It is built once at startup and handed explicitly to every
component, so nothing below the ``serve`` command reads settings directly.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import timedelta
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from django.db import DEFAULT_DB_ALIAS

from .exceptions import ConfigError

_MASK = "******"


@dataclass(frozen=True)
class ServiceConfig:
    port: int = 80
    request_timeout: float = 3.0
    shutdown_timeout: float = 3.0
    max_post_size: int = 1048576
    signing_key: str = "deadbeef"
    claim_name: str = "ferrum"
    token_lifetime: float = 3600.0
    database_alias: str = DEFAULT_DB_ALIAS
    database_url: str = ""
    version: str = ""
    build_date: str = ""
    log_level: str = "INFO"

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if not 0 <= self.port <= 65535:
            raise ConfigError(f"HTTP_API_PORT must be between 0 and 65535, got {self.port}")
        if self.request_timeout <= 0:
            raise ConfigError("HTTP_REQUEST_TIMEOUT must be positive")
        if self.shutdown_timeout < 0:
            raise ConfigError("HTTP_SHUTDOWN_TIMEOUT cannot be negative")
        if self.max_post_size <= 0:
            raise ConfigError("HTTP_MAX_POST_SIZE must be positive")
        if not self.signing_key:
            raise ConfigError("HTTP_JWT_SIGNING_KEY cannot be empty")
        if self.token_lifetime <= 0:
            raise ConfigError("HTTP_JWT_EXPIRATION must be positive")

    @classmethod
    def from_settings(cls, settings=None) -> "ServiceConfig":
        """Snapshot the ``HTTP_*`` and related Django settings."""
        if settings is None:
            from django.conf import settings
        try:
            return cls(
                port=int(settings.HTTP_API_PORT),
                request_timeout=float(settings.HTTP_REQUEST_TIMEOUT),
                shutdown_timeout=float(settings.HTTP_SHUTDOWN_TIMEOUT),
                max_post_size=int(settings.HTTP_MAX_POST_SIZE),
                signing_key=settings.HTTP_JWT_SIGNING_KEY,
                claim_name=settings.HTTP_JWT_CLAIM_NAME,
                token_lifetime=float(settings.HTTP_JWT_EXPIRATION),
                database_url=getattr(settings, "DATABASE_URL", ""),
                version=getattr(settings, "VERSION", ""),
                build_date=getattr(settings, "BUILD_DATE", ""),
                log_level=getattr(settings, "LOG_LEVEL", "INFO"),
            )
        except AttributeError as exc:
            raise ConfigError(f"missing setting: {exc}") from None
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"invalid setting: {exc}") from None

    @property
    def token_lifetime_delta(self) -> timedelta:
        return timedelta(seconds=self.token_lifetime)

    def describe(self) -> Dict[str, Any]:
        """Return the configuration with secrets masked, for logging."""
        values = asdict(self)
        values["signing_key"] = _MASK
        values["database_url"] = mask_url_password(self.database_url)
        return values


def mask_url_password(url: Optional[str]) -> str:
    if not url:
        return ""
    parts = urlsplit(url)
    if parts.password is None:
        return url
    netloc = parts.netloc.rsplit("@", 1)[1]
    userinfo = f"{parts.username}:{_MASK}" if parts.username else f":{_MASK}"
    return urlunsplit(parts._replace(netloc=f"{userinfo}@{netloc}"))
