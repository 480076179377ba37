"""
nosskey.options
---------------
Option objects for the cache, key creation, signing, record storage and the
passkey ceremony, plus environment-driven loaders.

Explicit arguments always win over ``NOSSKEY_*`` environment variables.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict, field, replace
from typing import Any, Dict, List, Optional
import os

from .constants import (
    DEFAULT_CACHE_TIMEOUT_MS, DEFAULT_RP_NAME, DEFAULT_STORAGE_KEY,
    DEFAULT_USER_DISPLAY_NAME, DEFAULT_USER_NAME,
)

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class CacheOptions:
    enabled: bool = False
    timeout_ms: int = DEFAULT_CACHE_TIMEOUT_MS

    def __post_init__(self):
        if self.timeout_ms is None:
            self.timeout_ms = DEFAULT_CACHE_TIMEOUT_MS
        if self.timeout_ms < 0:
            raise ValueError("timeout_ms must be >= 0")

    def merged(self, **changes) -> "CacheOptions":
        """Return a copy with the non-None ``changes`` applied (partial update)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "timeoutMs": self.timeout_ms}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheOptions":
        return cls(
            enabled=bool(data.get("enabled", False)),
            timeout_ms=data.get("timeoutMs", data.get("timeout_ms")),
        )


@dataclass
class KeyOptions:
    clear_memory: bool = True   # zero the caller's plaintext key after use
    username: Optional[str] = None


@dataclass
class SignOptions:
    clear_memory: bool = True
    tags: List[List[str]] = field(default_factory=list)
    # None follows the cache's global setting; False bypasses the cache for this call
    use_cache: Optional[bool] = None


@dataclass
class SecretRequestOptions:
    """Pass-through options for the assertion ceremony."""
    rp_id: Optional[str] = None
    timeout_ms: Optional[int] = None
    user_verification: str = "required"


@dataclass
class PasskeyCreationOptions:
    rp_name: str = DEFAULT_RP_NAME
    rp_id: Optional[str] = None
    user_name: str = DEFAULT_USER_NAME
    user_display_name: str = DEFAULT_USER_DISPLAY_NAME
    resident_key: str = "required"
    user_verification: str = "required"
    timeout_ms: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StorageOptions:
    enabled: bool = True
    storage: Any = None          # RecordStorage; None means in-memory only
    storage_key: str = DEFAULT_STORAGE_KEY

    def merged(self, **changes) -> "StorageOptions":
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def load_cache_options(config: dict | None = None) -> CacheOptions:
    """
    Resolve cache options from ``config`` then the environment.

        NOSSKEY_CACHE_ENABLED     "1"/"true"/"yes"/"on" enables caching
        NOSSKEY_CACHE_TIMEOUT_MS  TTL for new entries (default 300000)
    """
    config = config or {}
    enabled = config.get("enabled")
    if enabled is None:
        enabled = os.getenv("NOSSKEY_CACHE_ENABLED", "0").strip().lower() in _TRUTHY
    timeout = config.get("timeout_ms")
    if timeout is None:
        timeout = int(os.getenv("NOSSKEY_CACHE_TIMEOUT_MS", str(DEFAULT_CACHE_TIMEOUT_MS)))
    return CacheOptions(enabled=bool(enabled), timeout_ms=timeout)


def default_secret_request_options() -> SecretRequestOptions:
    return SecretRequestOptions(rp_id=os.getenv("NOSSKEY_RP_ID") or None)
