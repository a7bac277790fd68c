"""rigforge data models - pure Pydantic, no I/O."""

from rigforge.models.asset import AssetMetadata
from rigforge.models.enums import AssetType, RiggingState, RiggingStatus, RigType
from rigforge.models.rigging import AnimationClipSet, AnimationSets, RiggingMetadata
from rigforge.models.stats import AssetStats

__all__ = [
    "AnimationClipSet",
    "AnimationSets",
    "AssetMetadata",
    "AssetStats",
    "AssetType",
    "RigType",
    "RiggingMetadata",
    "RiggingState",
    "RiggingStatus",
]
