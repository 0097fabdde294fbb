"""Store wrapper that adds optional operations on top of a dialect store."""

from __future__ import annotations

from typing import Any


class UnsupportedError(NotImplementedError):
    """Raised when the wrapped store does not provide an optional operation."""

    def __init__(self, message: str = "unsupported operation") -> None:
        super().__init__(message)


class StoreController:
    """Wraps a store and exposes its methods plus optional extensions.

    Every attribute of the wrapped store is reachable through the controller.
    Optional methods that the store lacks raise ``UnsupportedError``.
    """

    def __init__(self, store: Any) -> None:
        self.store = store

    def __getattr__(self, name: str) -> Any:
        store = self.__dict__.get("store")
        if store is None:
            raise AttributeError(name)
        return getattr(store, name)

    def table_exists(self, db: Any) -> bool:
        """Tell whether the version table exists, if the store can check it."""
        method = getattr(self.store, "table_exists", None)
        if not callable(method):
            raise UnsupportedError()
        return method(db)