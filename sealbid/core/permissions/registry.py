"""
Capability Registry - who may read whose secrets, and until when.

The registry tracks relationship-level permission between two principals
(owner -> grantee), optionally pinned to the handle the grant was issued for.
It is pure bookkeeping: it never calls into the value provider. The auction
engine issues handle-level provider grants separately.

Rules:
- At most one grant per (owner, grantee). A new grant replaces the old one.
- A grant with expiry None is permanent.
- A grant with expiry E is valid for every block height now <= E.
- revoke is immediate and idempotent.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from sealbid.core.types import BlockHeight, Expiry, OpaqueHandle, Principal
from sealbid.utils.logger import get_logger

logger = get_logger("permissions")


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class CapabilityGrant:
    """
    A single owner -> grantee permission.

    Attributes:
        owner: Principal whose values are shared
        grantee: Principal receiving access
        handle: Handle the grant was issued for (None = relationship only)
        expiry: Last block height at which the grant is valid (None = permanent)
        granted_at: Block height at which the grant was recorded
    """
    owner: Principal
    grantee: Principal
    handle: Optional[OpaqueHandle] = None
    expiry: Expiry = None
    granted_at: BlockHeight = 0

    @property
    def is_permanent(self) -> bool:
        return self.expiry is None

    def is_valid_at(self, now: BlockHeight) -> bool:
        """Inclusive expiry check."""
        return self.expiry is None or now <= self.expiry


# =============================================================================
# Capability Registry
# =============================================================================


class CapabilityRegistry:
    """
    Map of (owner, grantee) -> CapabilityGrant with last-write-wins semantics.
    """

    def __init__(self):
        self._grants: Dict[Tuple[str, str], CapabilityGrant] = {}

    @staticmethod
    def _key(owner: Principal, grantee: Principal) -> Tuple[str, str]:
        return owner.lower(), grantee.lower()

    def grant(
        self,
        owner: Principal,
        grantee: Principal,
        handle: Optional[OpaqueHandle] = None,
        expiry: Expiry = None,
        now: BlockHeight = 0,
    ) -> CapabilityGrant:
        """
        Record a grant, replacing any prior grant for the same pair.

        Returns:
            The stored grant
        """
        key = self._key(owner, grantee)
        replaced = key in self._grants

        record = CapabilityGrant(
            owner=Principal(key[0]),
            grantee=Principal(key[1]),
            handle=handle,
            expiry=expiry,
            granted_at=now,
        )
        self._grants[key] = record

        logger.debug(
            f"Grant {key[0][:10]} -> {key[1][:10]} "
            f"expiry={'permanent' if expiry is None else expiry}"
            f"{' (replaced)' if replaced else ''}"
        )
        return record

    def revoke(self, owner: Principal, grantee: Principal) -> bool:
        """
        Remove the grant for (owner, grantee).

        Returns:
            True if a grant was removed, False if none existed
        """
        removed = self._grants.pop(self._key(owner, grantee), None)
        if removed is not None:
            logger.debug(f"Revoked {owner[:10]} -> {grantee[:10]}")
        return removed is not None

    def is_authorized(self, owner: Principal, grantee: Principal, now: BlockHeight) -> bool:
        """True iff a grant exists and is permanent or now <= expiry."""
        record = self._grants.get(self._key(owner, grantee))
        return record is not None and record.is_valid_at(now)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_grant(self, owner: Principal, grantee: Principal) -> Optional[CapabilityGrant]:
        return self._grants.get(self._key(owner, grantee))

    def grants_from(self, owner: Principal) -> List[CapabilityGrant]:
        """All grants issued by owner, expired ones included."""
        owner = owner.lower()
        return [g for (o, _), g in self._grants.items() if o == owner]

    def grants_to(self, grantee: Principal) -> List[CapabilityGrant]:
        """All grants held by grantee, expired ones included."""
        grantee = grantee.lower()
        return [g for (_, t), g in self._grants.items() if t == grantee]

    def prune_expired(self, now: BlockHeight) -> int:
        """Drop grants that can no longer become valid. Returns count removed."""
        stale = [k for k, g in self._grants.items() if not g.is_valid_at(now)]
        for key in stale:
            del self._grants[key]
        if stale:
            logger.debug(f"Pruned {len(stale)} expired grants")
        return len(stale)

    def __len__(self) -> int:
        return len(self._grants)


__all__ = ["CapabilityRegistry", "CapabilityGrant"]
