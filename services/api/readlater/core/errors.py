from __future__ import annotations


class LibraryItemNotFound(LookupError):
    """Raised when an update path cannot re-read the row it just wrote."""

    def __init__(self, item_id: str):
        super().__init__(f"library item {item_id} not found")
        self.item_id = item_id


class InvalidBulkAction(ValueError):
    """Unknown bulk action, or an action missing its required argument."""


class InvalidSearchFilter(ValueError):
    """A filter references a field the library item table does not expose."""
