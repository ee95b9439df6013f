"""Enum definitions for catalog records and import policies."""

from enum import StrEnum


class CollectionStatus(StrEnum):
    """Lifecycle of a collection."""

    IDEATION = "IDEATION"
    IN_PROGRESS = "IN_PROGRESS"
    ARCHIVED = "ARCHIVED"


class CollectionKind(StrEnum):
    """Kind tag of a collection."""

    STICKER = "Sticker"
    EMOJI = "Emoji"


class ImportPolicy(StrEnum):
    """How an imported catalog is applied to the local store."""

    # Clear the store first, then write the imported records
    RESTORE = "restore"
    # Write without clearing, overwriting by identifier
    MERGE = "merge"
