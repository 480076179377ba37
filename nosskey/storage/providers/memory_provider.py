from typing import Dict, Optional
from nosskey.records import WrappedKeyRecord, parse_record
from nosskey.storage.provider import RecordStorage


class InMemoryStorage(RecordStorage):
    def __init__(self):
        self.records: Dict[str, str] = {}

    def upsert_record(self, storage_key: str, record: WrappedKeyRecord):
        self.records[storage_key] = record.to_json()

    def get_record(self, storage_key: str) -> Optional[WrappedKeyRecord]:
        raw = self.records.get(storage_key)
        return parse_record(raw) if raw is not None else None

    def delete_record(self, storage_key: str):
        self.records.pop(storage_key, None)

    def close(self):
        pass
