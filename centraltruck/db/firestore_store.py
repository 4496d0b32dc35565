"""Firestore implementation of the credential store gateway."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Mapping, Optional

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from centraltruck.core.auth.errors import StoreUnavailable
from centraltruck.core.auth.identity import Collection, Identity, identity_from_document
from centraltruck.core.config import StoreConfig
from centraltruck.db.gateway import CredentialStoreGateway


_STORE_ERRORS = (GoogleAPIError, GoogleAuthError, ConnectionError, TimeoutError)


class FirestoreCredentialStore(CredentialStoreGateway):
    """
    Identity documents in the ``admins`` and ``drivers`` collections.

    Documents carry ``name`` (upper-cased login name), ``salt`` and
    ``passwordHash``; the document id is the identity id.
    """

    def __init__(
        self,
        client: firestore.AsyncClient,
        collection_names: Optional[Mapping[Collection, str]] = None,
    ) -> None:
        self.client = client
        self._names = {c: c.value for c in Collection}
        if collection_names:
            self._names.update(collection_names)
        self.logger = logging.getLogger("centraltruck.store")

    @classmethod
    def from_config(cls, config: StoreConfig) -> "FirestoreCredentialStore":
        """Validate the store configuration and open an async client."""
        config.validate()
        kwargs: dict[str, Any] = {"project": config.project_id}
        if config.database:
            kwargs["database"] = config.database
        client = firestore.AsyncClient(**kwargs)
        return cls(
            client,
            {
                Collection.ADMINS: config.admins_collection,
                Collection.DRIVERS: config.drivers_collection,
            },
        )

    def _collection(self, collection: Collection):
        return self.client.collection(self._names[collection])

    def _handle_store_error(self, operation: str, error: Exception) -> StoreUnavailable:
        self.logger.error(f"Store error during {operation}: {error!r}")
        return StoreUnavailable(f"Error during {operation}", original_error=error)

    async def find_by_normalized_name(
        self,
        collection: Collection,
        name: str,
    ) -> Optional[Identity]:
        query = self._collection(collection).where(
            filter=FieldFilter("name", "==", name)
        ).limit(1)
        try:
            docs = await query.get()
        except _STORE_ERRORS as e:
            raise self._handle_store_error(f"{collection.value} name lookup", e) from e

        for doc in docs:
            return identity_from_document(collection, doc.id, doc.to_dict() or {})
        return None

    async def get_by_id(
        self,
        collection: Collection,
        identity_id: str,
    ) -> Optional[Identity]:
        try:
            doc = await self._collection(collection).document(identity_id).get()
        except _STORE_ERRORS as e:
            raise self._handle_store_error(f"{collection.value} get by id", e) from e

        if not doc.exists:
            return None
        return identity_from_document(collection, doc.id, doc.to_dict() or {})

    async def update(
        self,
        collection: Collection,
        identity_id: str,
        fields: Mapping[str, Any],
    ) -> None:
        try:
            await self._collection(collection).document(identity_id).update(dict(fields))
        except _STORE_ERRORS as e:
            raise self._handle_store_error(f"{collection.value} update", e) from e

        self.logger.info(f"Updated {collection.value}/{identity_id} fields: {sorted(fields)}")

    async def close(self) -> None:
        result = self.client.close()
        if inspect.isawaitable(result):
            await result
