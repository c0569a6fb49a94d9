from __future__ import annotations

"""Environment adapter for dockgen settings.

Consistent helpers to parse ``DOCKGEN_*`` environment variables with sane
defaults and shared truthy semantics.
"""
import os
from collections.abc import Callable

_TRUTHY = {"1", "true", "yes", "on", "y"}
_FALSY = {"0", "false", "no", "off", "n"}


def get_str(name: str, default: str = "") -> str:
    v = os.getenv(name)
    if v is None:
        return default
    return v


def get_optional_bool(name: str) -> bool | None:
    """True/False for a recognized value, None when unset or unrecognized."""
    v = os.getenv(name)
    if v is None:
        return None
    token = v.strip().lower()
    if token in _TRUTHY:
        return True
    if token in _FALSY:
        return False
    return None


def get_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in _TRUTHY


def get_csv(name: str, default: list[str] | None = None, *, sep: str = ",", transform: Callable[[str], str] | None = None) -> list[str]:
    v = os.getenv(name)
    if v is None:
        return list(default or [])
    parts = [p.strip() for p in v.split(sep) if p.strip()]
    if transform:
        parts = [transform(p) for p in parts]
    return parts


__all__ = [
    "get_str",
    "get_bool",
    "get_optional_bool",
    "get_csv",
]
