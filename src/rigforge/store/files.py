"""File-backed metadata store: one ``{assets_dir}/{id}/metadata.json`` per asset."""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from uuid import uuid4

import jsonschema
from filelock import FileLock, Timeout
from pydantic import ValidationError as PydanticValidationError

from rigforge.errors import AssetLockTimeoutError, AssetNotFoundError, MetadataValidationError
from rigforge.models import AssetMetadata
from rigforge.store.base import AssetLocks, AssetPredicate, revalidate
from rigforge.validation import validate_metadata_document

logger = logging.getLogger(__name__)

LOCK_DIRNAME = ".locks"


class FileMetadataStore:
    """Stores each asset's metadata as a flat JSON document in its own directory.

    Writes go to a temporary file that is then renamed over the target, so a
    reader never sees a half-written document. Records are listed in asset id
    order.

    Per-asset locks are files under ``{root}/.locks``, so separate store
    instances and separate processes on the same directory exclude each other.
    """

    def __init__(
        self,
        root: Path,
        metadata_filename: str = "metadata.json",
        lock_timeout: float = 30.0,
    ) -> None:
        self.root = root
        self.metadata_filename = metadata_filename
        self.lock_timeout = lock_timeout
        self._asset_locks = AssetLocks()
        self._file_locks: dict[str, FileLock] = {}
        self._file_locks_guard = threading.Lock()

    def _path(self, asset_id: str) -> Path:
        if (
            not asset_id
            or asset_id.startswith(".")
            or "/" in asset_id
            or "\\" in asset_id
        ):
            msg = f"asset id is not a valid directory name: {asset_id!r}"
            raise MetadataValidationError(msg)
        return self.root / asset_id / self.metadata_filename

    def _parse(self, asset_id: str, path: Path, text: str) -> AssetMetadata:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            msg = f"{path} contains invalid JSON: {exc}"
            raise MetadataValidationError(msg) from exc
        if not isinstance(data, dict):
            msg = f"{path} must contain a JSON object"
            raise MetadataValidationError(msg)
        try:
            validate_metadata_document(data)
        except jsonschema.ValidationError as exc:
            msg = f"{path} does not match the metadata schema: {exc.message}"
            raise MetadataValidationError(msg) from exc
        try:
            record = AssetMetadata.from_document(data, asset_id=asset_id)
        except PydanticValidationError as exc:
            msg = f"{path} has invalid metadata: {exc}"
            raise MetadataValidationError(msg) from exc
        if record.id != asset_id:
            msg = f"{path} declares id {record.id!r}, expected {asset_id!r}"
            raise MetadataValidationError(msg)
        return record

    def get(self, asset_id: str) -> AssetMetadata:
        path = self._path(asset_id)
        try:
            text = path.read_text()
        except FileNotFoundError:
            raise AssetNotFoundError(asset_id) from None
        return self._parse(asset_id, path, text)

    def put(self, asset_id: str, metadata: AssetMetadata) -> None:
        path = self._path(asset_id)
        document = revalidate(asset_id, metadata).to_document()
        try:
            validate_metadata_document(document)
        except jsonschema.ValidationError as exc:
            msg = f"metadata for {asset_id} does not match the schema: {exc.message}"
            raise MetadataValidationError(msg) from exc

        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f".{path.name}.{uuid4().hex}.tmp")
        try:
            tmp_path.write_text(json.dumps(document, indent=2))
            os.replace(tmp_path, path)
        finally:
            tmp_path.unlink(missing_ok=True)
        logger.info("Wrote %s", path)

    def contains(self, asset_id: str) -> bool:
        return self._path(asset_id).is_file()

    def list_all(self) -> list[AssetMetadata]:
        if not self.root.is_dir():
            return []
        records: list[AssetMetadata] = []
        for asset_dir in sorted(self.root.iterdir()):
            if not asset_dir.is_dir() or asset_dir.name.startswith("."):
                continue
            path = asset_dir / self.metadata_filename
            try:
                text = path.read_text()
            except FileNotFoundError:
                logger.debug("Skipping %s: no %s", asset_dir, self.metadata_filename)
                continue
            records.append(self._parse(asset_dir.name, path, text))
        return records

    def count(self, predicate: AssetPredicate) -> int:
        return sum(1 for record in self.list_all() if predicate(record))

    def _file_lock(self, asset_id: str) -> FileLock:
        self._path(asset_id)
        with self._file_locks_guard:
            lock = self._file_locks.get(asset_id)
            if lock is None:
                lock_dir = self.root / LOCK_DIRNAME
                lock_dir.mkdir(parents=True, exist_ok=True)
                # Shared by threads, but only ever held by the owner of the
                # in-process lock, which may re-enter it.
                lock = FileLock(lock_dir / f"{asset_id}.lock", thread_local=False)
                self._file_locks[asset_id] = lock
        return lock

    @contextmanager
    def locked(self, asset_id: str) -> Iterator[None]:
        file_lock = self._file_lock(asset_id)
        with self._asset_locks.hold(asset_id):
            try:
                file_lock.acquire(timeout=self.lock_timeout)
            except Timeout as exc:
                raise AssetLockTimeoutError(asset_id, self.lock_timeout) from exc
            try:
                yield
            finally:
                file_lock.release()
