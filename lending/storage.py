"""
storage.py - In-Memory Key-Value Storage

The storage substrate shared by the access gate, the asset registry and the
loan ledger. Keys are tuples whose first element is a namespace string
(see core.NS_*), values are plain Python data.

Key responsibilities:
    - get/set/delete with default-on-miss reads
    - Values are deep-copied on the way in and out, so callers can never
      mutate stored state behind the engine's back
    - begin()/commit()/rollback() give the engine all-or-nothing transactions

=== UNDO JOURNAL ===

While a transaction is open, the first write to each key records the value
it replaced (or that the key was absent). rollback() puts back exactly those
keys, so the cost of a transaction is proportional to what it touched, not
to the size of the store. Stored values are never mutated in place, so the
journal can hold them by reference.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
import copy

from .core import StorageKey


# Journal marker for "key did not exist before this transaction"
_MISSING = object()


class InMemoryStorage:
    """
    Dictionary-backed implementation of the Storage protocol.

    Thread Safety:
        Not thread-safe. Each thread should maintain its own storage instance.

    Example:
        storage = InMemoryStorage()
        storage.set(("next_loan_id",), 2)
        storage.get(("next_loan_id",), 1)   # -> 2
        storage.get(("missing",), 0)        # -> 0

        storage.begin()
        storage.set(("next_loan_id",), 3)
        storage.rollback()
        storage.get(("next_loan_id",))      # -> 2
    """

    def __init__(self, initial: Optional[Dict[StorageKey, Any]] = None):
        self._data: Dict[StorageKey, Any] = {}
        self._journal: Optional[Dict[StorageKey, Any]] = None
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: StorageKey, default: Any = None) -> Any:
        """
        Return a deep copy of the value stored under key.

        Args:
            key: Storage key tuple
            default: Value returned when the key is missing

        Returns:
            Stored value (copied) or default
        """
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: StorageKey, value: Any) -> None:
        """Store a deep copy of value under key."""
        if not isinstance(key, tuple) or not key:
            raise ValueError(f"Storage keys must be non-empty tuples, got {key!r}")
        self._journal_prior(key)
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: StorageKey) -> None:
        """Remove key if present."""
        if key in self._data:
            self._journal_prior(key)
            del self._data[key]

    def has(self, key: StorageKey) -> bool:
        return key in self._data

    def keys(self, namespace: Optional[str] = None) -> List[StorageKey]:
        """
        List stored keys, optionally restricted to one namespace.

        Keys are sorted by their string form for deterministic iteration.
        """
        return sorted(
            (k for k in self._data if namespace is None or k[0] == namespace),
            key=repr,
        )

    def __len__(self) -> int:
        return len(self._data)

    # ========================================================================
    # TRANSACTIONS
    # ========================================================================

    @property
    def in_transaction(self) -> bool:
        return self._journal is not None

    def begin(self) -> None:
        """
        Open a transaction. Transactions do not nest.

        Raises:
            RuntimeError: If a transaction is already open
        """
        if self._journal is not None:
            raise RuntimeError("A storage transaction is already open")
        self._journal = {}

    def commit(self) -> None:
        """Keep every write made since begin() and close the transaction."""
        if self._journal is None:
            raise RuntimeError("No storage transaction is open")
        self._journal = None

    def rollback(self) -> None:
        """Undo every write made since begin() and close the transaction."""
        if self._journal is None:
            raise RuntimeError("No storage transaction is open")
        for key, prior in self._journal.items():
            if prior is _MISSING:
                self._data.pop(key, None)
            else:
                self._data[key] = prior
        self._journal = None

    def touched_keys(self) -> List[StorageKey]:
        """Keys written or deleted in the open transaction (empty if none is open)."""
        if self._journal is None:
            return []
        return sorted(self._journal, key=repr)

    def _journal_prior(self, key: StorageKey) -> None:
        if self._journal is not None and key not in self._journal:
            self._journal[key] = self._data.get(key, _MISSING)

    # ========================================================================
    # WHOLE-STORE COPIES
    # ========================================================================

    def snapshot(self) -> Dict[StorageKey, Any]:
        """Capture the complete store, for comparison or a later restore()."""
        return copy.deepcopy(self._data)

    def restore(self, snapshot: Dict[StorageKey, Any]) -> None:
        """
        Replace the store contents with a snapshot taken earlier.

        Raises:
            RuntimeError: If a transaction is open
        """
        if self._journal is not None:
            raise RuntimeError("Cannot restore a snapshot inside a transaction")
        self._data = copy.deepcopy(snapshot)

    def clone(self) -> InMemoryStorage:
        """
        Create an independent deep copy of this storage.

        An open transaction is not carried over.
        """
        cloned = InMemoryStorage.__new__(InMemoryStorage)
        cloned._data = copy.deepcopy(self._data)
        cloned._journal = None
        return cloned
