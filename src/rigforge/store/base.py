"""Store protocol and shared helpers for asset metadata persistence."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Protocol, TypeAlias, runtime_checkable

from pydantic import ValidationError as PydanticValidationError

from rigforge.errors import MetadataValidationError
from rigforge.models import AssetMetadata

AssetPredicate: TypeAlias = Callable[[AssetMetadata], bool]


@runtime_checkable
class MetadataStore(Protocol):
    """Protocol for keyed asset metadata storage."""

    def get(self, asset_id: str) -> AssetMetadata:
        """Return a copy of the stored record or raise AssetNotFoundError."""
        ...

    def put(self, asset_id: str, metadata: AssetMetadata) -> None:
        """Validate and store a record, replacing any previous one."""
        ...

    def contains(self, asset_id: str) -> bool:
        """Check whether a record exists for the asset."""
        ...

    def list_all(self) -> list[AssetMetadata]:
        """Return a snapshot of every stored record."""
        ...

    def count(self, predicate: AssetPredicate) -> int:
        """Count stored records matching the predicate."""
        ...

    def locked(self, asset_id: str) -> AbstractContextManager[None]:
        """Enter the mutual-exclusion scope for one asset."""
        ...


class AssetLocks:
    """Lazily created per-asset locks."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    @contextmanager
    def hold(self, asset_id: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(asset_id, threading.RLock())
        with lock:
            yield


def revalidate(asset_id: str, metadata: AssetMetadata) -> AssetMetadata:
    """Return a fresh, fully validated copy of ``metadata``.

    Pydantic models can be mutated after construction, so a record is
    validated again before every write.
    """
    if not isinstance(metadata, AssetMetadata):
        msg = f"expected AssetMetadata for {asset_id}, got {type(metadata).__name__}"
        raise MetadataValidationError(msg)
    try:
        record = AssetMetadata.model_validate(metadata.model_dump(by_alias=True))
    except PydanticValidationError as exc:
        msg = f"invalid metadata for asset {asset_id}: {exc}"
        raise MetadataValidationError(msg) from exc
    if record.id != asset_id:
        msg = f"record id {record.id!r} does not match asset id {asset_id!r}"
        raise MetadataValidationError(msg)
    return record
