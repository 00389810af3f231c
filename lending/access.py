"""
access.py - Administrator and Pause Gate

The administrator account is explicit configuration handed to the gate at
construction; the pause flag lives in storage so that it is covered by the
same transaction rollback as every other piece of state. There is no
process-wide singleton.
"""

from __future__ import annotations

from .core import (
    AccountId, Storage,
    NotAuthorized, ContractPaused,
    NS_ADMIN, NS_PAUSED,
)


class AccessGate:
    """
    Owner authorization check and a pause flag that can suspend mutating operations.

    Example:
        gate = AccessGate(storage, administrator="admin")
        gate.pause("admin")
        gate.is_paused()            # -> True
        gate.require_not_paused()   # raises ContractPaused
    """

    def __init__(self, storage: Storage, administrator: AccountId):
        if not administrator:
            raise ValueError("administrator cannot be empty")
        self.storage = storage
        existing = storage.get((NS_ADMIN,))
        if existing is not None and existing != administrator:
            raise ValueError(
                f"Storage already configured for administrator {existing!r}"
            )
        storage.set((NS_ADMIN,), administrator)

    @property
    def administrator(self) -> AccountId:
        admin = self.storage.get((NS_ADMIN,))
        if admin is None:
            raise NotAuthorized("No administrator configured")
        return admin

    def is_paused(self) -> bool:
        return self.storage.get((NS_PAUSED,), False)

    def require_admin(self, caller: AccountId) -> None:
        """Raise NotAuthorized unless caller is the administrator."""
        if caller != self.administrator:
            raise NotAuthorized(f"{caller} is not the administrator")

    def require_not_paused(self) -> None:
        if self.is_paused():
            raise ContractPaused("Operation blocked: contract is paused")

    def pause(self, caller: AccountId) -> None:
        """
        Suspend gated operations.

        Raises:
            NotAuthorized: If caller is not the administrator
        """
        self.require_admin(caller)
        self.storage.set((NS_PAUSED,), True)

    def unpause(self, caller: AccountId) -> None:
        """
        Resume gated operations.

        Raises:
            NotAuthorized: If caller is not the administrator
        """
        self.require_admin(caller)
        self.storage.set((NS_PAUSED,), False)
