"""
registry.py - Enumerable Collectible Asset Registry

Tracks which account owns which uniquely-identified asset. Assets are plain
integer identifiers; there is no metadata.

=== OWNERSHIP MODEL ===

    owner[asset_id]            -> account
    owner_assets[account]      -> [asset_id, ...]   (acquisition order)
    all_assets                 -> [asset_id, ...]   (mint order)

Mint is administrator-only. Mint, transfer and burn are blocked while the
access gate is paused.

=== TRANSFER RULES ===

Like unit transfer rules in a ledger, a registry may carry an optional
transfer rule that is consulted before every movement (and before burns,
with to_account=None). The lending engine installs one that freezes assets
locked as collateral.
"""

from __future__ import annotations
from typing import List, Optional

from .core import (
    AccountId, AssetId, Storage, TransferRule,
    AssetNotFound, AssetAlreadyExists, NotAssetOwner,
    NS_ASSET_OWNER, NS_OWNER_ASSETS, NS_ALL_ASSETS,
)
from .access import AccessGate


class AssetRegistry:
    """
    Storage-backed implementation of the AssetRegistryView protocol.

    Example:
        registry = AssetRegistry(storage, gate)
        registry.mint("alice", 1, authorized_by="admin")
        registry.owner_of(1)               # -> "alice"
        registry.transfer("alice", "bob", 1)
        registry.assets_of("bob")          # -> [1]
    """

    def __init__(
        self,
        storage: Storage,
        gate: AccessGate,
        transfer_rule: Optional[TransferRule] = None,
    ):
        self.storage = storage
        self.gate = gate
        self.transfer_rule = transfer_rule

    # ========================================================================
    # QUERIES
    # ========================================================================

    def owner_of(self, asset_id: AssetId) -> Optional[AccountId]:
        """Return the current owner, or None if the asset does not exist."""
        return self.storage.get((NS_ASSET_OWNER, asset_id))

    def exists(self, asset_id: AssetId) -> bool:
        return self.storage.has((NS_ASSET_OWNER, asset_id))

    def balance_of(self, account: AccountId) -> int:
        """Number of assets held by account."""
        return len(self.assets_of(account))

    def assets_of(self, account: AccountId) -> List[AssetId]:
        """Assets held by account, in the order they were acquired."""
        return self.storage.get((NS_OWNER_ASSETS, account), [])

    def total_supply(self) -> int:
        return len(self.storage.get((NS_ALL_ASSETS,), []))

    def asset_by_index(self, index: int) -> AssetId:
        """
        Return the asset at a global enumeration index.

        Raises:
            IndexError: If index is out of range
        """
        assets = self.storage.get((NS_ALL_ASSETS,), [])
        if index < 0 or index >= len(assets):
            raise IndexError(f"Asset index {index} out of range (supply {len(assets)})")
        return assets[index]

    def owner_asset_by_index(self, account: AccountId, index: int) -> AssetId:
        """
        Return the asset at an index within account's holdings.

        Raises:
            IndexError: If index is out of range
        """
        assets = self.assets_of(account)
        if index < 0 or index >= len(assets):
            raise IndexError(f"{account} holds {len(assets)} assets, no index {index}")
        return assets[index]

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    def mint(self, to: AccountId, asset_id: AssetId, authorized_by: AccountId) -> None:
        """
        Create a new asset owned by to.

        Raises:
            NotAuthorized: If authorized_by is not the administrator
            ContractPaused: If the gate is paused
            AssetAlreadyExists: If asset_id is already owned
        """
        self.gate.require_admin(authorized_by)
        self.gate.require_not_paused()
        if not to:
            raise ValueError("Mint recipient cannot be empty")
        if self.exists(asset_id):
            raise AssetAlreadyExists(f"Asset {asset_id} already minted")

        self.storage.set((NS_ASSET_OWNER, asset_id), to)
        self._add_to_owner(to, asset_id)
        all_assets = self.storage.get((NS_ALL_ASSETS,), [])
        all_assets.append(asset_id)
        self.storage.set((NS_ALL_ASSETS,), all_assets)

    def transfer(self, from_account: AccountId, to_account: AccountId, asset_id: AssetId) -> None:
        """
        Move an asset between accounts.

        Raises:
            ContractPaused: If the gate is paused
            AssetNotFound: If the asset does not exist
            NotAssetOwner: If from_account is not the current owner
            TransferRuleViolation: If the installed transfer rule refuses the move
        """
        self.gate.require_not_paused()
        if not to_account:
            raise ValueError("Transfer destination cannot be empty")
        owner = self._require_owner(from_account, asset_id)
        if owner == to_account:
            raise ValueError("Source and destination must be different")
        if self.transfer_rule:
            self.transfer_rule(self, from_account, to_account, asset_id)

        self._remove_from_owner(from_account, asset_id)
        self.storage.set((NS_ASSET_OWNER, asset_id), to_account)
        self._add_to_owner(to_account, asset_id)

    def burn(self, asset_id: AssetId, owner: Optional[AccountId] = None) -> None:
        """
        Destroy an asset.

        Args:
            asset_id: Asset to destroy
            owner: If given, must match the current owner

        Raises:
            ContractPaused: If the gate is paused
            AssetNotFound: If the asset does not exist
            NotAssetOwner: If owner is given and does not match
            TransferRuleViolation: If the installed transfer rule refuses the burn
        """
        self.gate.require_not_paused()
        current = self.owner_of(asset_id)
        if current is None:
            raise AssetNotFound(f"Asset {asset_id} does not exist")
        if owner is not None and owner != current:
            raise NotAssetOwner(f"{owner} does not own asset {asset_id}")
        if self.transfer_rule:
            self.transfer_rule(self, current, None, asset_id)

        self._remove_from_owner(current, asset_id)
        self.storage.delete((NS_ASSET_OWNER, asset_id))
        all_assets = self.storage.get((NS_ALL_ASSETS,), [])
        all_assets.remove(asset_id)
        self.storage.set((NS_ALL_ASSETS,), all_assets)

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _require_owner(self, account: AccountId, asset_id: AssetId) -> AccountId:
        owner = self.owner_of(asset_id)
        if owner is None:
            raise AssetNotFound(f"Asset {asset_id} does not exist")
        if owner != account:
            raise NotAssetOwner(f"{account} does not own asset {asset_id}")
        return owner

    def _add_to_owner(self, account: AccountId, asset_id: AssetId) -> None:
        assets = self.assets_of(account)
        assets.append(asset_id)
        self.storage.set((NS_OWNER_ASSETS, account), assets)

    def _remove_from_owner(self, account: AccountId, asset_id: AssetId) -> None:
        assets = self.assets_of(account)
        assets.remove(asset_id)
        if assets:
            self.storage.set((NS_OWNER_ASSETS, account), assets)
        else:
            self.storage.delete((NS_OWNER_ASSETS, account))
