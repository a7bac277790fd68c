"""In-memory metadata store for tests and single-process use."""

from __future__ import annotations

import threading
from contextlib import AbstractContextManager

from rigforge.errors import AssetNotFoundError
from rigforge.models import AssetMetadata
from rigforge.store.base import AssetLocks, AssetPredicate, revalidate


class InMemoryMetadataStore:
    """Keeps records in a dict, in insertion order."""

    def __init__(self) -> None:
        self._records: dict[str, AssetMetadata] = {}
        self._lock = threading.Lock()
        self._asset_locks = AssetLocks()

    def get(self, asset_id: str) -> AssetMetadata:
        with self._lock:
            record = self._records.get(asset_id)
        if record is None:
            raise AssetNotFoundError(asset_id)
        return record.model_copy(deep=True)

    def put(self, asset_id: str, metadata: AssetMetadata) -> None:
        record = revalidate(asset_id, metadata)
        with self._lock:
            self._records[asset_id] = record

    def contains(self, asset_id: str) -> bool:
        with self._lock:
            return asset_id in self._records

    def list_all(self) -> list[AssetMetadata]:
        with self._lock:
            snapshot = list(self._records.values())
        return [record.model_copy(deep=True) for record in snapshot]

    def count(self, predicate: AssetPredicate) -> int:
        with self._lock:
            snapshot = list(self._records.values())
        return sum(1 for record in snapshot if predicate(record))

    def locked(self, asset_id: str) -> AbstractContextManager[None]:
        return self._asset_locks.hold(asset_id)
