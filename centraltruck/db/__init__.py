"""
Database module - Credential store gateway and local client storage.

The Firestore gateway lives in ``centraltruck.db.firestore_store`` and is
imported on demand.
"""

from centraltruck.db.gateway import CredentialStoreGateway
from centraltruck.db.local_store import LocalKeyValueStore

__all__ = ["CredentialStoreGateway", "LocalKeyValueStore"]
