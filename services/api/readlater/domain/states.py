from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum


class LibraryItemState(str, Enum):
    PROCESSING = "PROCESSING"
    SUCCEEDED = "SUCCEEDED"
    ARCHIVED = "ARCHIVED"
    DELETED = "DELETED"


def derive_timestamps(
    old_state: LibraryItemState | str | None,
    new_state: LibraryItemState | str | None,
    now: datetime | None = None,
) -> dict[str, datetime | None]:
    """Return the archived_at/deleted_at patch implied by moving to ``new_state``.

    Only the keys that change are returned:
    - ARCHIVED stamps archived_at.
    - DELETED stamps deleted_at.
    - PROCESSING or SUCCEEDED clear both.
    - No target state (or an unknown one) yields an empty patch.

    ``old_state`` does not change the outcome; re-archiving an archived item
    re-stamps archived_at.
    """
    if new_state is None:
        return {}
    try:
        target = LibraryItemState(new_state)
    except ValueError:
        return {}

    now = now or datetime.now(timezone.utc)
    if target is LibraryItemState.ARCHIVED:
        return {"archived_at": now}
    if target is LibraryItemState.DELETED:
        return {"deleted_at": now}
    return {"archived_at": None, "deleted_at": None}
