"""Rigging lifecycle state machine over an asset metadata store.

Every change to an asset's rigging metadata goes through one of four
transitions::

    UNRIGGED | FAILED --enqueue--> PENDING --start--> PROCESSING
    PROCESSING --succeed--> COMPLETED
    PENDING | PROCESSING --fail--> FAILED

``start``, ``succeed`` and ``fail`` carry the task id handed out by
``enqueue``. A call whose task id no longer matches the stored one comes from
a superseded job and is rejected with :class:`StaleTaskError` without touching
the record.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, TypeAlias
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from rigforge.errors import InvalidTransitionError, MetadataValidationError, StaleTaskError
from rigforge.models import (
    AnimationSets,
    AssetMetadata,
    AssetStats,
    RiggingMetadata,
    RiggingState,
    RiggingStatus,
    RigType,
)

if TYPE_CHECKING:
    from rigforge.config import AppConfig
    from rigforge.store import MetadataStore

logger = logging.getLogger(__name__)

TIMEOUT_ERROR = "Rigging timed out"


def utcnow() -> datetime:
    return datetime.now(UTC)


def _new_task_id() -> str:
    return uuid4().hex


@dataclass(frozen=True)
class ModelPaths:
    """File references to the rigged model and its T-pose variant."""

    rigged: str
    tpose: str

    @classmethod
    def coerce(cls, value: ModelPaths | Mapping[str, str]) -> ModelPaths:
        if isinstance(value, cls):
            return value
        try:
            return cls(rigged=value["rigged"], tpose=value["tpose"])
        except (KeyError, TypeError) as exc:
            msg = f"model paths need 'rigged' and 'tpose' entries, got {value!r}"
            raise MetadataValidationError(msg) from exc


@dataclass(frozen=True)
class RiggingSnapshot:
    """Current state of one asset plus a copy of its rigging metadata."""

    asset_id: str
    state: RiggingState
    rigging: RiggingMetadata | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "assetId": self.asset_id,
            "state": self.state.value,
            "rigging": (
                self.rigging.model_dump(mode="json", by_alias=True, exclude_none=True)
                if self.rigging is not None
                else None
            ),
        }


@dataclass(frozen=True)
class TransitionEvent:
    """Emitted to listeners after a transition has been committed."""

    asset_id: str
    operation: str
    previous: RiggingState
    current: RiggingState
    task_id: str


TransitionListener: TypeAlias = Callable[[TransitionEvent], None]


class RiggingLifecycleManager:
    """Applies rigging transitions and answers aggregate queries.

    Transitions on the same asset are serialized through the store's
    per-asset lock; transitions on different assets run in parallel.
    Aggregates are recomputed from a store snapshot on every call.
    """

    def __init__(
        self,
        store: MetadataStore,
        *,
        clock: Callable[[], datetime] = utcnow,
        task_id_factory: Callable[[], str] = _new_task_id,
        processing_timeout: float | None = None,
        default_compatibility: Iterable[str] = (),
    ) -> None:
        self._store = store
        self._clock = clock
        self._task_id_factory = task_id_factory
        self.processing_timeout = processing_timeout or None
        self.default_compatibility = list(default_compatibility)
        self._listeners: list[TransitionListener] = []
        self._listeners_lock = threading.Lock()

    @classmethod
    def from_config(cls, store: MetadataStore, config: AppConfig) -> RiggingLifecycleManager:
        return cls(
            store,
            processing_timeout=config.rigging.processing_timeout,
            default_compatibility=config.rigging.default_compatibility,
        )

    @property
    def store(self) -> MetadataStore:
        return self._store

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: TransitionListener) -> None:
        with self._listeners_lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: TransitionListener) -> None:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self, event: TransitionEvent) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Transition listener failed for asset %s", event.asset_id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def enqueue(self, asset_id: str, task_id: str | None = None) -> RiggingSnapshot:
        """Queue a rigging job: UNRIGGED | FAILED -> PENDING.

        ``task_id`` lets the job runner supply its own identifier (for
        example the upstream rigging service's task id); otherwise a fresh
        one is generated.
        """

        def apply(rigging: RiggingMetadata, state: RiggingState) -> RiggingMetadata:
            self._require_state(
                asset_id, state, (RiggingState.UNRIGGED, RiggingState.FAILED), "enqueue",
            )
            new_task_id = task_id or self._task_id_factory()
            if new_task_id == rigging.rigging_task_id:
                msg = f"task id {new_task_id} was already used for asset {asset_id}"
                raise MetadataValidationError(msg)
            return self._build(
                asset_id,
                rigging,
                is_rigged=False,
                rigging_task_id=new_task_id,
                rigging_status=RiggingStatus.PENDING,
                rigging_error=None,
                rigging_attempted=True,
                supports_animation=False,
                animations=None,
                rigged_model_path=None,
                tpose_model_path=None,
                rigging_deadline=None,
            )

        return self._commit(asset_id, "enqueue", apply)

    def start(
        self,
        asset_id: str,
        task_id: str,
        deadline: datetime | None = None,
    ) -> RiggingSnapshot:
        """Mark a queued job as running: PENDING -> PROCESSING.

        ``deadline`` bounds how long the job may stay in PROCESSING before
        :meth:`sweep_expired` fails it. Without one, the configured
        processing timeout (if any) is applied.
        """
        if deadline is not None and deadline.tzinfo is None:
            msg = "deadline must be timezone-aware"
            raise MetadataValidationError(msg)

        def apply(rigging: RiggingMetadata, state: RiggingState) -> RiggingMetadata:
            self._check_task(asset_id, rigging, task_id)
            self._require_state(asset_id, state, (RiggingState.PENDING,), "start")
            effective = deadline
            if effective is None and self.processing_timeout:
                effective = self._clock() + timedelta(seconds=self.processing_timeout)
            return self._build(
                asset_id,
                rigging,
                rigging_status=RiggingStatus.PROCESSING,
                rigging_deadline=effective,
            )

        return self._commit(asset_id, "start", apply)

    def succeed(
        self,
        asset_id: str,
        task_id: str,
        rig_type: RigType | str,
        character_height: float | None = None,
        *,
        animations: AnimationSets | Mapping[str, Mapping[str, str]],
        model_paths: ModelPaths | Mapping[str, str],
        animation_compatibility: Iterable[str] | None = None,
    ) -> RiggingSnapshot:
        """Record a finished rig: PROCESSING -> COMPLETED."""
        paths = ModelPaths.coerce(model_paths)

        def apply(rigging: RiggingMetadata, state: RiggingState) -> RiggingMetadata:
            self._check_task(asset_id, rigging, task_id)
            self._require_state(asset_id, state, (RiggingState.PROCESSING,), "succeed")
            if animation_compatibility is not None:
                compatibility = list(animation_compatibility)
            else:
                compatibility = rigging.animation_compatibility or self.default_compatibility
            height = character_height
            if height is None:
                height = rigging.character_height
            return self._build(
                asset_id,
                rigging,
                is_rigged=True,
                rigging_status=RiggingStatus.COMPLETED,
                rig_type=rig_type,
                character_height=height,
                supports_animation=True,
                animation_compatibility=compatibility,
                animations=animations,
                rigged_model_path=paths.rigged,
                tpose_model_path=paths.tpose,
                rigging_deadline=None,
            )

        return self._commit(asset_id, "succeed", apply)

    def fail(self, asset_id: str, task_id: str, error: str) -> RiggingSnapshot:
        """Record a failed job: PENDING | PROCESSING -> FAILED.

        Unlike ``succeed``, this is also accepted from PENDING: the rigging
        service can reject a submission before the job ever reports
        ``start``. Partial outputs are dropped.
        """

        def apply(rigging: RiggingMetadata, state: RiggingState) -> RiggingMetadata:
            self._check_task(asset_id, rigging, task_id)
            self._require_state(
                asset_id, state, (RiggingState.PENDING, RiggingState.PROCESSING), "fail",
            )
            return self._build(
                asset_id,
                rigging,
                is_rigged=False,
                rigging_status=RiggingStatus.FAILED,
                rigging_error=error,
                supports_animation=False,
                animations=None,
                rigged_model_path=None,
                tpose_model_path=None,
                rigging_deadline=None,
            )

        return self._commit(asset_id, "fail", apply)

    def query(self, asset_id: str) -> RiggingSnapshot:
        record = self._store.get(asset_id)
        return RiggingSnapshot(asset_id, record.rigging_state, record.rigging)

    def sweep_expired(self, now: datetime | None = None) -> list[str]:
        """Fail every PROCESSING job whose deadline has passed.

        Returns the ids of the assets that were moved to FAILED. Jobs that
        finish or get re-queued while the sweep runs are left alone.
        """
        now = now or self._clock()
        expired: list[str] = []
        for record in self._store.list_all():
            rigging = record.rigging
            if (
                rigging is None
                or rigging.state != RiggingState.PROCESSING
                or rigging.rigging_deadline is None
                or rigging.rigging_deadline > now
                or rigging.rigging_task_id is None
            ):
                continue
            try:
                self.fail(record.id, rigging.rigging_task_id, TIMEOUT_ERROR)
            except (StaleTaskError, InvalidTransitionError):
                logger.debug("Asset %s moved on before the sweep reached it", record.id)
                continue
            logger.warning(
                "Rigging task %s for asset %s timed out (deadline %s)",
                rigging.rigging_task_id,
                record.id,
                rigging.rigging_deadline.isoformat(),
            )
            expired.append(record.id)
        return expired

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def total_count(self) -> int:
        return self._store.count(lambda record: True)

    def generated_count(self) -> int:
        return self._store.count(lambda record: record.is_generated)

    def rigged_count(self) -> int:
        return self._store.count(
            lambda record: record.rigging_state == RiggingState.COMPLETED
        )

    def stats(self) -> AssetStats:
        """All counters from one snapshot, so they agree with each other."""
        records = self._store.list_all()
        return AssetStats(
            total=len(records),
            generated=sum(1 for r in records if r.is_generated),
            rigged=sum(1 for r in records if r.rigging_state == RiggingState.COMPLETED),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _commit(
        self,
        asset_id: str,
        operation: str,
        apply: Callable[[RiggingMetadata, RiggingState], RiggingMetadata],
    ) -> RiggingSnapshot:
        with self._store.locked(asset_id):
            record: AssetMetadata = self._store.get(asset_id)
            previous = record.rigging_state
            rigging = apply(record.rigging or RiggingMetadata(), previous)
            record.rigging = rigging
            self._store.put(asset_id, record)

        event = TransitionEvent(
            asset_id=asset_id,
            operation=operation,
            previous=previous,
            current=rigging.state,
            task_id=rigging.rigging_task_id or "",
        )
        logger.info(
            "Asset %s: %s -> %s (%s, task %s)",
            asset_id, previous, rigging.state, operation, event.task_id,
        )
        self._notify(event)
        return RiggingSnapshot(asset_id, rigging.state, rigging.model_copy(deep=True))

    @staticmethod
    def _build(asset_id: str, base: RiggingMetadata, **changes: Any) -> RiggingMetadata:
        try:
            return RiggingMetadata.model_validate({**base.model_dump(), **changes})
        except PydanticValidationError as exc:
            msg = f"invalid rigging metadata for asset {asset_id}: {exc}"
            raise MetadataValidationError(msg) from exc

    @staticmethod
    def _check_task(asset_id: str, rigging: RiggingMetadata, task_id: str) -> None:
        current = rigging.rigging_task_id
        if current is not None and current != task_id:
            logger.info(
                "Rejecting stale task %s for asset %s (current %s)", task_id, asset_id, current,
            )
            raise StaleTaskError(asset_id, current, task_id)

    @staticmethod
    def _require_state(
        asset_id: str,
        state: RiggingState,
        allowed: tuple[RiggingState, ...],
        operation: str,
    ) -> None:
        if state not in allowed:
            raise InvalidTransitionError(asset_id, state, operation)
