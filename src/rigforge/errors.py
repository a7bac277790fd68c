"""Error taxonomy for metadata storage and rigging transitions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rigforge.models.enums import RiggingState


class RigforgeError(Exception):
    """Base class for all errors surfaced to callers."""


class AssetNotFoundError(RigforgeError, LookupError):
    """Raised when an asset id is not present in the store."""

    def __init__(self, asset_id: str) -> None:
        super().__init__(f"asset not found: {asset_id}")
        self.asset_id = asset_id


class MetadataValidationError(RigforgeError, ValueError):
    """Raised when a write would leave a record in an inconsistent state."""


class InvalidTransitionError(RigforgeError):
    """Raised when an operation is not legal from the asset's current state."""

    def __init__(self, asset_id: str, state: RiggingState, operation: str) -> None:
        super().__init__(f"cannot {operation} asset {asset_id} in state {state}")
        self.asset_id = asset_id
        self.state = state
        self.operation = operation


class StaleTaskError(RigforgeError):
    """Raised when a job reports under a task id that is no longer current.

    Expected under at-least-once job delivery; the job should stop retrying.
    """

    def __init__(self, asset_id: str, expected: str | None, received: str) -> None:
        super().__init__(
            f"stale rigging task {received} for asset {asset_id} (current: {expected})"
        )
        self.asset_id = asset_id
        self.expected = expected
        self.received = received


class AssetLockTimeoutError(RigforgeError, TimeoutError):
    """Raised when another writer holds an asset's lock for too long."""

    def __init__(self, asset_id: str, timeout: float) -> None:
        super().__init__(
            f"timed out after {timeout:g}s waiting for the lock on asset {asset_id}"
        )
        self.asset_id = asset_id
        self.timeout = timeout
