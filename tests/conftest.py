"""Shared fixtures for rigforge tests."""

import itertools
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from rigforge.lifecycle import RiggingLifecycleManager
from rigforge.models import AnimationSets, AssetMetadata, AssetType, RiggingMetadata
from rigforge.store import FileMetadataStore, InMemoryMetadataStore


class FrozenClock:
    """Manually advanced clock for deadline tests."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2025, 3, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def store() -> InMemoryMetadataStore:
    return InMemoryMetadataStore()


@pytest.fixture
def file_store(tmp_path: Path) -> FileMetadataStore:
    return FileMetadataStore(tmp_path / "gdd-assets")


@pytest.fixture
def manager(store: InMemoryMetadataStore, clock: FrozenClock) -> RiggingLifecycleManager:
    counter = itertools.count(1)
    return RiggingLifecycleManager(
        store,
        clock=clock,
        task_id_factory=lambda: f"T{next(counter)}",
        default_compatibility=["mixamo", "unity", "unreal"],
    )


@pytest.fixture
def make_asset(store: InMemoryMetadataStore) -> Callable[..., AssetMetadata]:
    def _make(asset_id: str, *, generated: bool = True) -> AssetMetadata:
        record = AssetMetadata(
            id=asset_id,
            name=asset_id.title(),
            type=AssetType.CHARACTER,
            subtype="humanoid",
            is_placeholder=not generated,
            has_model=generated,
            model_path=f"{asset_id}.glb" if generated else None,
        )
        store.put(asset_id, record)
        return record

    return _make


@pytest.fixture
def completed_rigging() -> RiggingMetadata:
    return RiggingMetadata(
        is_rigged=True,
        rigging_task_id="task-1",
        rigging_status="completed",
        rigging_attempted=True,
        rig_type="humanoid-standard",
        character_height=1.7,
        supports_animation=True,
        animation_compatibility=["mixamo", "unity", "unreal"],
        animations=AnimationSets(
            basic={
                "walking": "animations/walking.glb",
                "running": "animations/running.glb",
                "tpose": "t-pose.glb",
            },
        ),
        rigged_model_path="goblin_rigged.glb",
        tpose_model_path="t-pose.glb",
    )


@pytest.fixture
def rigged_asset(completed_rigging: RiggingMetadata) -> AssetMetadata:
    return AssetMetadata(
        id="goblin",
        name="Goblin",
        game_id="goblin",
        description="A small green goblin",
        type=AssetType.CHARACTER,
        subtype="humanoid",
        is_placeholder=False,
        has_model=True,
        model_path="goblin.glb",
        created_at=datetime(2025, 1, 2, 3, 4, 5, tzinfo=UTC),
        rigging=completed_rigging,
        extensions={
            "conceptArtUrl": "./concept-art.png",
            "variants": ["goblin-bronze"],
            "dimensions": {"width": 0.6, "height": 1.7, "depth": 0.4},
        },
    )
