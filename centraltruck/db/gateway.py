"""
Credential Store Gateway
========================

Boundary between the authentication core and the remote document store
that owns identity records.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from centraltruck.core.auth.errors import StoreUnavailable
from centraltruck.core.auth.identity import Collection, Identity


class CredentialStoreGateway(ABC):
    """
    Lookup and update of identity records.

    Implementations raise ``StoreUnavailable`` for any network or database
    failure; no finer error taxonomy is expected.
    """

    @abstractmethod
    async def find_by_normalized_name(
        self,
        collection: Collection,
        name: str,
    ) -> Optional[Identity]:
        """Exact match on the stored (upper-cased) name, first result only."""

    @abstractmethod
    async def get_by_id(
        self,
        collection: Collection,
        identity_id: str,
    ) -> Optional[Identity]:
        """Fetch by primary id; ``None`` when the document does not exist."""

    @abstractmethod
    async def update(
        self,
        collection: Collection,
        identity_id: str,
        fields: Mapping[str, Any],
    ) -> None:
        """Partial update of the given document fields."""

    async def close(self) -> None:
        """Release client resources."""


__all__ = ["CredentialStoreGateway", "StoreUnavailable"]
