from __future__ import annotations
from typing import Optional
import sqlite3, os
from nosskey.records import WrappedKeyRecord, parse_record
from nosskey.storage.provider import RecordStorage
from nosskey.utils import now_ts


class SQLiteStorage(RecordStorage):
    def __init__(self, path="db/nosskey.db"):
        # If no directory, default to current working directory
        dir_path = os.path.dirname(path) or "."
        os.makedirs(dir_path, exist_ok=True)
        self.db = sqlite3.connect(path, check_same_thread=False)

        self._init()

    def _init(self) -> None:
        self.db.execute("""CREATE TABLE IF NOT EXISTS records(
            storage_key TEXT PRIMARY KEY,
            record TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )""")
        self.db.commit()

    def upsert_record(self, storage_key: str, record: WrappedKeyRecord) -> None:
        self.db.execute(
            "INSERT INTO records(storage_key,record,updated_at) VALUES(?,?,?) "
            "ON CONFLICT(storage_key) DO UPDATE SET record=excluded.record, updated_at=excluded.updated_at",
            (storage_key, record.to_json(), now_ts())
        )
        self.db.commit()

    def get_record(self, storage_key: str) -> Optional[WrappedKeyRecord]:
        cur = self.db.execute("SELECT record FROM records WHERE storage_key=?", (storage_key,))
        row = cur.fetchone()
        if not row: return None
        return parse_record(row[0])

    def delete_record(self, storage_key: str) -> None:
        self.db.execute("DELETE FROM records WHERE storage_key=?", (storage_key,))
        self.db.commit()

    def close(self):
        self.db.close()
