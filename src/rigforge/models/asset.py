"""Asset metadata record and its flat document form."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, JsonValue, model_validator
from pydantic.alias_generators import to_camel

from rigforge.models.enums import AssetType, RiggingState
from rigforge.models.rigging import RIGGING_KEYS, NonEmptyStr, RiggingMetadata

_NESTED_FIELDS = frozenset({"rigging", "extensions"})


class AssetMetadata(BaseModel):
    """Metadata for one generated asset.

    Known fields are typed; anything else the generation pipeline writes
    (concept art paths, variant bookkeeping, ...) is kept in ``extensions``.
    On disk and over the wire the record is a single flat object, see
    :meth:`to_document` and :meth:`from_document`.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        protected_namespaces=(),
    )

    id: NonEmptyStr
    name: str | None = None
    game_id: str | None = None
    description: str | None = None
    type: AssetType | None = None
    subtype: str | None = None
    is_placeholder: bool = True
    has_model: bool = False
    model_path: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    generated_at: datetime | None = None
    rigging: RiggingMetadata | None = None
    extensions: dict[str, JsonValue] = Field(default_factory=dict)

    @property
    def is_generated(self) -> bool:
        return not self.is_placeholder

    @property
    def rigging_state(self) -> RiggingState:
        if self.rigging is None:
            return RiggingState.UNRIGGED
        return self.rigging.state

    @model_validator(mode="after")
    def _check_extension_keys(self) -> AssetMetadata:
        clashes = sorted(set(self.extensions) & RESERVED_KEYS)
        if clashes:
            msg = f"extension keys shadow known fields: {', '.join(clashes)}"
            raise ValueError(msg)
        return self

    def to_document(self) -> dict[str, Any]:
        """Flatten into the ``metadata.json`` shape."""
        doc = self.model_dump(
            mode="json", by_alias=True, exclude_none=True, exclude=set(_NESTED_FIELDS),
        )
        if self.rigging is not None:
            doc.update(self.rigging.model_dump(mode="json", by_alias=True, exclude_none=True))
        doc.update(self.extensions)
        return doc

    @classmethod
    def from_document(
        cls, data: Mapping[str, Any], asset_id: str | None = None,
    ) -> AssetMetadata:
        """Build a record from a flat document.

        Rigging keys are lifted into :class:`RiggingMetadata`, unknown keys
        into ``extensions``. ``asset_id`` fills in a missing ``id`` (older
        documents are keyed only by their directory name).
        """
        fields: dict[str, Any] = {}
        rigging: dict[str, Any] = {}
        extensions: dict[str, Any] = {}
        for key, value in data.items():
            if key in ASSET_KEYS:
                fields[key] = value
            elif key in RIGGING_KEYS:
                rigging[key] = value
            else:
                extensions[key] = value
        if asset_id is not None:
            fields.setdefault("id", asset_id)
        fields["extensions"] = extensions
        if rigging:
            fields["rigging"] = rigging
        return cls.model_validate(fields)


ASSET_KEYS: frozenset[str] = frozenset(
    field.alias or name
    for name, field in AssetMetadata.model_fields.items()
    if name not in _NESTED_FIELDS
)

RESERVED_KEYS: frozenset[str] = ASSET_KEYS | RIGGING_KEYS | _NESTED_FIELDS
