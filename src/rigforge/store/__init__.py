"""Asset metadata stores."""

from rigforge.store.base import AssetPredicate, MetadataStore
from rigforge.store.files import FileMetadataStore
from rigforge.store.memory import InMemoryMetadataStore

__all__ = [
    "AssetPredicate",
    "FileMetadataStore",
    "InMemoryMetadataStore",
    "MetadataStore",
]
