"""
nosskey.event
-------------
Defines NostrEvent, the unsigned/signed event container handed to the signer.

- NIP-01 serialization for the event id
- to_dict / from_dict for JSON transport (unset optional fields omitted)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import hashlib, json, time

from .utils import canonical_json


@dataclass
class NostrEvent:
    kind: int
    content: str = ""
    tags: List[List[str]] = field(default_factory=list)
    created_at: Optional[int] = None
    pubkey: Optional[str] = None   # hex, x-only
    id: Optional[str] = None       # sha256 of the serialized event
    sig: Optional[str] = None      # hex, BIP-340 schnorr

    def serialize(self) -> bytes:
        """NIP-01 serialization ``[0, pubkey, created_at, kind, tags, content]``."""
        if self.pubkey is None or self.created_at is None:
            raise ValueError("pubkey and created_at are required to serialize an event")
        return canonical_json([0, self.pubkey, self.created_at, self.kind, self.tags, self.content])

    def compute_id(self) -> str:
        return hashlib.sha256(self.serialize()).hexdigest()

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {}
        for name in ("id", "pubkey", "created_at"):
            value = getattr(self, name)
            if value is not None:
                d[name] = value
        d["kind"] = self.kind
        d["tags"] = [list(t) for t in self.tags]
        d["content"] = self.content
        if self.sig is not None:
            d["sig"] = self.sig
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: dict) -> "NostrEvent":
        return cls(
            kind=int(data["kind"]),
            content=data.get("content", ""),
            tags=[list(t) for t in data.get("tags") or []],
            created_at=data.get("created_at"),
            pubkey=data.get("pubkey"),
            id=data.get("id"),
            sig=data.get("sig"),
        )


def now_seconds() -> int:
    return int(time.time())
