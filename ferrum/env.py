"""
Helpers for reading typed values from environment variables.

The settings module is evaluated before any app is loaded, so these helpers
only depend on the standard library and ``django.core.exceptions``.  Every
parse failure is reported as ``ImproperlyConfigured`` naming the variable.
"""
from __future__ import annotations

import os
import re

from django.core.exceptions import ImproperlyConfigured

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

# logrus level names mapped onto the standard library levels
_LOG_LEVELS = {
    "trace": "DEBUG",
    "debug": "DEBUG",
    "info": "INFO",
    "warn": "WARNING",
    "warning": "WARNING",
    "error": "ERROR",
    "fatal": "CRITICAL",
    "panic": "CRITICAL",
}


def parse_duration(raw: str) -> float:
    """Parse a Go-style duration such as ``3s``, ``1h30m`` or ``250ms``.

    A bare number is taken as seconds.  Returns the duration in seconds.
    """
    value = (raw or "").strip()
    if not value:
        raise ValueError("empty duration")
    try:
        return float(value)
    except ValueError:
        pass
    parts = _DURATION_PART.findall(value)
    if not parts or "".join(number + unit for number, unit in parts) != value:
        raise ValueError(f"invalid duration {raw!r}")
    return sum(float(number) * _DURATION_UNITS[unit] for number, unit in parts)


def parse_log_level(raw: str) -> str:
    try:
        return _LOG_LEVELS[(raw or "").strip().lower()]
    except KeyError:
        raise ValueError(f"not a valid log level: {raw!r}") from None


def env_str(name: str, default: str = "") -> str:
    return os.getenv(name, default)


def env_bool(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


def env_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ImproperlyConfigured(f"{name}: invalid integer {raw!r}") from None


def env_duration(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return parse_duration(raw)
    except ValueError as exc:
        raise ImproperlyConfigured(f"{name}: {exc}") from None


def env_log_level(name: str, default: str = "info") -> str:
    raw = os.getenv(name, default)
    try:
        return parse_log_level(raw)
    except ValueError as exc:
        raise ImproperlyConfigured(f"{name}: {exc}") from None
