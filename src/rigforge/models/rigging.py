"""Rigging and animation metadata models."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime
from typing import Annotated, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator, model_validator
from pydantic.alias_generators import to_camel

from rigforge.models.enums import RiggingState, RiggingStatus, RigType

NonEmptyStr = Annotated[str, StringConstraints(min_length=1)]

# Animation name (walking, running, tpose, ...) -> file path.
AnimationClipSet: TypeAlias = dict[NonEmptyStr, NonEmptyStr]

# States in which a rigging job has been handed a task id.
_TASK_STATES = frozenset(
    {RiggingStatus.PROCESSING, RiggingStatus.COMPLETED, RiggingStatus.FAILED}
)


class AnimationSets(BaseModel):
    """Basic and advanced animation clip sets produced by a rigging job."""

    model_config = ConfigDict(extra="forbid")

    basic: AnimationClipSet | None = None
    advanced: AnimationClipSet | None = None

    def has_clips(self) -> bool:
        return bool(self.basic) or bool(self.advanced)


class RiggingMetadata(BaseModel):
    """Rigging state of a single asset.

    Field names serialize in camelCase to match the asset ``metadata.json``
    documents. Every instance satisfies the lifecycle invariants: a record
    that, for example, claims ``completed`` without model paths cannot be
    constructed.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    is_rigged: bool = False
    rigging_task_id: NonEmptyStr | None = None
    rigging_status: RiggingStatus | None = None
    rigging_error: str | None = None
    rigging_attempted: bool = False
    rig_type: RigType | None = None
    character_height: float | None = Field(default=None, gt=0)
    supports_animation: bool = False
    animation_compatibility: list[NonEmptyStr] = Field(default_factory=list)
    animations: AnimationSets | None = None
    rigged_model_path: NonEmptyStr | None = None
    tpose_model_path: NonEmptyStr | None = None
    # Only set while processing; used by the timeout sweep.
    rigging_deadline: datetime | None = None

    @property
    def state(self) -> RiggingState:
        return RiggingState.from_status(self.rigging_status)

    @field_validator("animation_compatibility")
    @classmethod
    def _dedupe_compatibility(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))

    @model_validator(mode="after")
    def _check_invariants(self) -> RiggingMetadata:
        problems = list(self.invariant_violations())
        if problems:
            raise ValueError("; ".join(problems))
        return self

    def invariant_violations(self) -> Iterator[str]:
        status = self.rigging_status
        completed = status == RiggingStatus.COMPLETED
        has_outputs = (
            self.animations is not None
            or self.rigged_model_path is not None
            or self.tpose_model_path is not None
        )

        if status in _TASK_STATES:
            if not self.rigging_attempted:
                yield f"riggingAttempted must be true when riggingStatus is {status}"
            if self.rigging_task_id is None:
                yield f"riggingTaskId is required when riggingStatus is {status}"

        if status is None and self.rigging_task_id is not None:
            yield "riggingTaskId requires a riggingStatus"

        if status == RiggingStatus.FAILED:
            if not self.rigging_error:
                yield "riggingError is required when riggingStatus is failed"
        elif self.rigging_error is not None:
            yield "riggingError is only allowed when riggingStatus is failed"

        if completed:
            if not self.is_rigged:
                yield "isRigged must be true when riggingStatus is completed"
            if not self.supports_animation:
                yield "supportsAnimation must be true when riggingStatus is completed"
            if self.animations is None or not self.animations.has_clips():
                yield "animations with at least one clip set are required when completed"
            if self.rigged_model_path is None:
                yield "riggedModelPath is required when riggingStatus is completed"
            if self.tpose_model_path is None:
                yield "tposeModelPath is required when riggingStatus is completed"
        else:
            if self.is_rigged:
                yield "isRigged is only allowed when riggingStatus is completed"
            if self.supports_animation:
                yield "supportsAnimation is only allowed when riggingStatus is completed"
            if has_outputs:
                yield "animations and model paths are only allowed when completed"

        if self.rig_type == RigType.HUMANOID_STANDARD and self.character_height is None:
            yield "characterHeight is required for humanoid-standard rigs"

        if self.rigging_deadline is not None and status != RiggingStatus.PROCESSING:
            yield "riggingDeadline is only allowed when riggingStatus is processing"


# Wire names of every rigging field, used to split flat metadata documents.
RIGGING_KEYS: frozenset[str] = frozenset(
    field.alias or name for name, field in RiggingMetadata.model_fields.items()
)
