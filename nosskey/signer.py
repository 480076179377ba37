"""
nosskey.signer
--------------
Signer collaborator: turns a 32-byte secret key (hex) into an x-only public
key and BIP-340 signed Nostr events.

``Signer`` is the contract the key manager consumes; ``Secp256k1Signer`` is
the default implementation on top of the ``secp256k1`` bindings (installed
with the ``signer`` extra). The bindings are imported on first use so the
rest of the package works with any other Signer.
"""

from __future__ import annotations
from dataclasses import replace
from typing import List, Optional

from .event import NostrEvent, now_seconds


class Signer:
    def get_public_key(self, sk_hex: str) -> str:  # pragma: no cover - interface
        """Return the x-only public key (hex) for ``sk_hex``."""
        raise NotImplementedError

    def sign_event(self, event: NostrEvent, sk_hex: str,
                   tags: Optional[List[List[str]]] = None) -> NostrEvent:  # pragma: no cover
        """Return a signed copy of ``event`` with pubkey, id and sig set."""
        raise NotImplementedError


def prepare_event(event: NostrEvent, pubkey: str, tags: Optional[List[List[str]]] = None) -> NostrEvent:
    """Copy ``event`` with extra ``tags`` appended, pubkey and created_at filled and id computed."""
    prepared = replace(
        event,
        tags=[list(t) for t in event.tags] + [list(t) for t in (tags or [])],
        pubkey=pubkey,
        created_at=event.created_at if event.created_at is not None else now_seconds(),
        sig=None,
    )
    prepared.id = prepared.compute_id()
    return prepared


def _private_key(sk_hex: str):
    import secp256k1
    return secp256k1.PrivateKey(bytes.fromhex(sk_hex), raw=True)


class Secp256k1Signer(Signer):
    def get_public_key(self, sk_hex: str) -> str:
        # drop the 0x02/0x03 prefix for the x-only key
        return _private_key(sk_hex).pubkey.serialize()[1:].hex()

    def sign_event(self, event: NostrEvent, sk_hex: str,
                   tags: Optional[List[List[str]]] = None) -> NostrEvent:
        sk = _private_key(sk_hex)
        signed = prepare_event(event, sk.pubkey.serialize()[1:].hex(), tags)
        signed.sig = sk.schnorr_sign(bytes.fromhex(signed.id), None, raw=True).hex()
        return signed

    @staticmethod
    def verify_event(event: NostrEvent) -> bool:
        import secp256k1

        if not (event.id and event.sig and event.pubkey):
            return False
        if event.compute_id() != event.id:
            return False
        pk = secp256k1.PublicKey(b"\x02" + bytes.fromhex(event.pubkey), raw=True)
        return pk.schnorr_verify(bytes.fromhex(event.id), bytes.fromhex(event.sig), None, raw=True)
