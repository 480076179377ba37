# nosskey/storage/provider.py
from __future__ import annotations
from typing import Optional

from nosskey.records import WrappedKeyRecord


class RecordStorage:
    """
    Persistence collaborator for wrapped-key records.

    Records are stored under a caller-chosen storage key (one current record
    per key). Implementations store the JSON form verbatim and validate it
    with ``parse_record`` on the way out.
    """
    def upsert_record(self, storage_key: str, record: WrappedKeyRecord) -> None: ...
    def get_record(self, storage_key: str) -> Optional[WrappedKeyRecord]: ...
    def delete_record(self, storage_key: str) -> None: ...
    def close(self) -> None: ...
