"""
nosskey.cache
-------------
Ephemeral, TTL-scoped store of signing keys keyed by credential id.

Every entry owns a private copy of its key bytes and one expiry timer. All
removal routes (eviction, clear, lazy expiry on read, the timer firing,
disabling the cache, ``close()``) go through ``_destroy`` which unmaps the
entry, cancels its timer and zero-fills the bytes.

Changing ``timeout_ms`` only affects entries stored afterwards; live entries
keep the expiry they were created with.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union
import threading

from .logger import get_logger
from .options import CacheOptions
from .utils import BytesLike, clear_bytes, credential_key, now_ms, short_id

log = get_logger("nosskey.cache")

TimerFactory = Callable[..., Any]


@dataclass(eq=False)
class CacheEntry:
    credential_id: str
    key: bytearray
    expire_at: int
    timer: Any = None


class KeyCache:
    def __init__(
        self,
        options: Optional[CacheOptions] = None,
        clock: Callable[[], int] = now_ms,
        timer_factory: TimerFactory = threading.Timer,
    ):
        self._options = CacheOptions(**vars(options)) if options else CacheOptions()
        self._clock = clock
        self._timer_factory = timer_factory
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------
    def set_options(self, options: Optional[CacheOptions] = None, *,
                    enabled: Optional[bool] = None, timeout_ms: Optional[int] = None) -> None:
        """
        Replace or partially update the options.

        Disabling the cache synchronously destroys every entry. Live entries
        are otherwise left untouched.
        """
        with self._lock:
            base = CacheOptions(**vars(options)) if options else self._options
            self._options = base.merged(enabled=enabled, timeout_ms=timeout_ms)
            if not self._options.enabled:
                self.clear_all()
        log.info(f"[CACHE OPTS] enabled={self._options.enabled} timeout_ms={self._options.timeout_ms}")

    def get_options(self) -> CacheOptions:
        return CacheOptions(**vars(self._options))

    @property
    def enabled(self) -> bool:
        return self._options.enabled

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------
    def set(self, credential_id: Union[BytesLike, str], key: BytesLike) -> None:
        """
        Store a copy of ``key`` for ``credential_id``. No-op while disabled.

        Any previous entry for the id is destroyed first. If the expiry
        timer cannot be scheduled the new entry is destroyed and the error
        re-raised.
        """
        with self._lock:
            if not self._options.enabled:
                return
            cid = credential_key(credential_id)
            previous = self._entries.get(cid)
            if previous is not None:
                self._destroy(previous)

            entry = CacheEntry(
                credential_id=cid,
                key=bytearray(key),
                expire_at=self._clock() + self._options.timeout_ms,
            )
            self._entries[cid] = entry
            try:
                self._schedule_expiry(entry)
            except Exception:
                log.error(f"[CACHE SET] could not schedule expiry for {short_id(cid)}; entry dropped")
                self._destroy(entry)
                raise
            if cid in self._entries:
                log.debug(f"[CACHE SET] {short_id(cid)} expire_at={entry.expire_at}")

    def get(self, credential_id: Union[BytesLike, str]) -> Optional[bytearray]:
        """
        Return the live key for ``credential_id`` or None.

        The returned buffer belongs to the cache and is zeroed when the
        entry is destroyed. Reading never extends the TTL.
        """
        with self._lock:
            if not self._options.enabled:
                return None
            cid = credential_key(credential_id)
            entry = self._entries.get(cid)
            if entry is None:
                return None
            if self._clock() < entry.expire_at:
                return entry.key
            log.debug(f"[CACHE GET] {short_id(cid)} expired")
            self._destroy(entry)
            return None

    def get_copy(self, credential_id: Union[BytesLike, str]) -> Optional[bytearray]:
        """Like ``get`` but the copy is taken under the lock; the caller zeroes it."""
        with self._lock:
            key = self.get(credential_id)
            return bytearray(key) if key is not None else None

    def clear(self, credential_id: Union[BytesLike, str]) -> None:
        with self._lock:
            entry = self._entries.get(credential_key(credential_id))
            if entry is not None:
                self._destroy(entry)

    def clear_all(self) -> None:
        with self._lock:
            for entry in list(self._entries.values()):
                self._destroy(entry)

    def close(self) -> None:
        """Destroy all entries and cancel every pending timer."""
        self.clear_all()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _schedule_expiry(self, entry: CacheEntry) -> None:
        remaining = entry.expire_at - self._clock()
        if remaining <= 0:
            self._destroy(entry)
            return
        # fire 1 ms past the deadline so the lazy check agrees
        timer = self._timer_factory((remaining + 1) / 1000.0, self._on_expire, args=(entry,))
        timer.daemon = True
        timer.start()
        entry.timer = timer

    def _on_expire(self, entry: CacheEntry) -> None:
        with self._lock:
            # a replaced or already-cleared entry must not touch the map
            if self._entries.get(entry.credential_id) is entry:
                log.debug(f"[CACHE EXPIRE] {short_id(entry.credential_id)}")
                self._destroy(entry)

    def _destroy(self, entry: CacheEntry) -> None:
        if self._entries.get(entry.credential_id) is entry:
            del self._entries[entry.credential_id]
        if entry.timer is not None:
            entry.timer.cancel()
            entry.timer = None
        clear_bytes(entry.key)
