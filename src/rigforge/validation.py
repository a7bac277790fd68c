"""Validation utilities for asset metadata documents."""

from __future__ import annotations

import functools
import json
from pathlib import Path
from typing import Any

import jsonschema

_SCHEMA_PATH = Path(__file__).parent / "schemas" / "asset_metadata.schema.json"


@functools.lru_cache(maxsize=1)
def _load_schema() -> dict[str, Any]:
    return json.loads(_SCHEMA_PATH.read_text())


def validate_metadata_document(data: dict[str, Any]) -> None:
    """Validate a flat metadata document against asset_metadata.schema.json.

    Parameters
    ----------
    data:
        The ``metadata.json`` contents to validate.

    Raises
    ------
    jsonschema.ValidationError
        If the data does not conform to the schema.
    """
    jsonschema.validate(data, _load_schema())
