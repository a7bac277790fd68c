"""Enumerations used throughout rigforge."""

from __future__ import annotations

from enum import StrEnum


class RiggingStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class RiggingState(StrEnum):
    """Explicit lifecycle state; UNRIGGED means no rigging status recorded."""

    UNRIGGED = "unrigged"
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def from_status(cls, status: RiggingStatus | None) -> RiggingState:
        if status is None:
            return cls.UNRIGGED
        return cls(status.value)


class RigType(StrEnum):
    HUMANOID_STANDARD = "humanoid-standard"
    CREATURE = "creature"
    CUSTOM = "custom"


class AssetType(StrEnum):
    WEAPON = "weapon"
    ARMOR = "armor"
    TOOL = "tool"
    RESOURCE = "resource"
    AMMUNITION = "ammunition"
    CHARACTER = "character"
    MISC = "misc"
