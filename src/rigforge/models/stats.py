"""Aggregate counters over the asset collection."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AssetStats(BaseModel):
    """Counts shown in the navigation header and dashboard."""

    total: int = Field(default=0, ge=0)
    generated: int = Field(default=0, ge=0)
    rigged: int = Field(default=0, ge=0)
