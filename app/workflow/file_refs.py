"""
FileRef reconciliation.

A file-bearing field is always in one of three display states:

    empty      — nothing attached
    pending    — a local upload (bytes + name) not yet sent
    persisted  — an opaque reference already stored server-side

What the field *transmits* on a save depends on both the in-memory value and
the last-known-persisted value:

    in-memory            persisted      transmitted
    -------------------  -------------  ------------------------------
    PendingUpload        any            upload filename (bytes go to the
                                        document side channel)
    PersistedReference   any            that reference
    UNTOUCHED            reference      the persisted reference
    UNTOUCHED            none           None
    CLEARED              any            None  (explicit remove only)

List slots follow the same rule element-wise and are capped at a maximum
item count; excess items are dropped with a warning, never an exception.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from app.workflow.fields import DEFAULT_MAX_FILES_PER_SLOT

logger = logging.getLogger(__name__)


class FileState(str, Enum):
    EMPTY = "empty"
    PENDING = "pending"
    PERSISTED = "persisted"


@dataclass(frozen=True)
class PendingUpload:
    """A file selected locally but not yet uploaded."""
    filename: str
    content: bytes = b""
    content_type: str = "application/octet-stream"

    @property
    def reference(self) -> str:
        return self.filename

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class PersistedReference:
    """A reference the server already holds (stored filename)."""
    name: str

    @property
    def reference(self) -> str:
        return self.name


class _Marker:
    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name

    def __bool__(self) -> bool:
        return False


# Field has not been touched since the last load/save
UNTOUCHED = _Marker("UNTOUCHED")
# Field was explicitly removed by the user
CLEARED = _Marker("CLEARED")


def as_persisted(value) -> PersistedReference | None:
    """Wire value (filename string or null) → PersistedReference."""
    if isinstance(value, PersistedReference):
        return value
    if isinstance(value, str) and value.strip():
        return PersistedReference(value.strip())
    return None


def as_persisted_list(values) -> list[PersistedReference]:
    if not values:
        return []
    refs = []
    for value in values:
        ref = as_persisted(value)
        if ref is not None:
            refs.append(ref)
    return refs


def coerce_item(value):
    """Normalize a user-supplied value for a file slot.

    Returns a PendingUpload / PersistedReference, or None when the value
    carries nothing (None, empty string). Anything else raises TypeError.
    """
    if isinstance(value, (PendingUpload, PersistedReference)):
        return value
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return PersistedReference(value)
    raise TypeError(f"Unsupported file value: {type(value).__name__}")


def cap_items(items: list, max_items: int = DEFAULT_MAX_FILES_PER_SLOT, slot: str = "") -> tuple[list, list]:
    """Split ``items`` into (kept, discarded) at ``max_items``."""
    if len(items) <= max_items:
        return list(items), []
    kept, discarded = list(items[:max_items]), list(items[max_items:])
    logger.warning(
        "File slot %s capped at %d items, discarded %d",
        slot or "?", max_items, len(discarded),
    )
    return kept, discarded


# ── Reconciliation ───────────────────────────────────────────────────────────


def reconcile(current, persisted: PersistedReference | None) -> str | None:
    """Value a single file slot transmits on save."""
    if isinstance(current, (PendingUpload, PersistedReference)):
        return current.reference
    if current is CLEARED:
        return None
    return persisted.reference if persisted is not None else None


def reconcile_list(current, persisted: list[PersistedReference]) -> list[str]:
    """Value a list file slot transmits on save."""
    if current is CLEARED:
        return []
    if current is UNTOUCHED:
        return [ref.reference for ref in persisted]
    return [item.reference for item in current]


def resolve(current, persisted: PersistedReference | None) -> tuple[FileState, str | None]:
    """Display state of a single slot: (state, name)."""
    if isinstance(current, PendingUpload):
        return FileState.PENDING, current.filename
    if isinstance(current, PersistedReference):
        return FileState.PERSISTED, current.name
    if current is UNTOUCHED and persisted is not None:
        return FileState.PERSISTED, persisted.name
    return FileState.EMPTY, None


def resolve_list(current, persisted: list[PersistedReference]) -> list[tuple[FileState, str]]:
    if current is CLEARED:
        return []
    items = persisted if current is UNTOUCHED else current
    return [resolve(item, None) for item in items]


def pending_in(current) -> list[PendingUpload]:
    """PendingUploads held by a slot value (single or list)."""
    if isinstance(current, PendingUpload):
        return [current]
    if isinstance(current, list):
        return [item for item in current if isinstance(item, PendingUpload)]
    return []
