"""Asset records outside the rigging lifecycle: placeholders and promotion."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from rigforge.errors import MetadataValidationError
from rigforge.lifecycle import utcnow
from rigforge.models import AssetMetadata, AssetType

if TYPE_CHECKING:
    from rigforge.store import MetadataStore

logger = logging.getLogger(__name__)


def create_placeholder(
    store: MetadataStore,
    asset_id: str,
    *,
    name: str | None = None,
    asset_type: AssetType | str | None = None,
    subtype: str | None = None,
    description: str | None = None,
    extensions: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> AssetMetadata:
    """Register a not-yet-generated asset. It has no rigging metadata."""
    now = now or utcnow()
    with store.locked(asset_id):
        if store.contains(asset_id):
            msg = f"asset already exists: {asset_id}"
            raise MetadataValidationError(msg)
        try:
            record = AssetMetadata(
                id=asset_id,
                name=name or asset_id,
                game_id=asset_id,
                description=description,
                type=asset_type,
                subtype=subtype,
                is_placeholder=True,
                created_at=now,
                updated_at=now,
                extensions=extensions or {},
            )
        except PydanticValidationError as exc:
            msg = f"invalid placeholder for asset {asset_id}: {exc}"
            raise MetadataValidationError(msg) from exc
        store.put(asset_id, record)
    logger.info("Created placeholder %s", asset_id)
    return record


def mark_generated(
    store: MetadataStore,
    asset_id: str,
    *,
    model_path: str,
    now: datetime | None = None,
) -> AssetMetadata:
    """Promote an asset out of placeholder status once its model exists.

    Rigging fields are left untouched.
    """
    if not model_path:
        msg = f"model path is required to mark {asset_id} as generated"
        raise MetadataValidationError(msg)
    now = now or utcnow()
    with store.locked(asset_id):
        record = store.get(asset_id)
        record.is_placeholder = False
        record.has_model = True
        record.model_path = model_path
        record.generated_at = now
        record.updated_at = now
        store.put(asset_id, record)
    logger.info("Asset %s generated: %s", asset_id, model_path)
    return record
