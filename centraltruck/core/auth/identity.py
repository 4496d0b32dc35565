"""
Identity Records
================

Typed views of the credential documents held by the remote store.

An identity is either an ``AdminIdentity`` or a ``DriverIdentity``; which
one is decided by the collection the document came from, never by probing
the document for optional fields.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Union


class Role(Enum):
    """Principal roles."""
    ADMIN = "admin"
    DRIVER = "driver"

    @classmethod
    def from_string(cls, value: str) -> "Role":
        return cls(value.strip().lower())


class Collection(Enum):
    """Remote collections holding identity documents."""
    ADMINS = "admins"
    DRIVERS = "drivers"

    @classmethod
    def for_role(cls, role: Role) -> "Collection":
        return cls.ADMINS if role is Role.ADMIN else cls.DRIVERS


@dataclass(frozen=True)
class _IdentityBase:
    id: str
    name: str
    salt: Optional[str] = None
    password_hash: Optional[str] = None

    def __repr__(self) -> str:
        """Safe representation without credential material."""
        return (
            f"{type(self).__name__}(id={self.id!r}, name={self.name!r}, "
            f"has_credentials={self.has_credentials})"
        )

    @property
    def has_credentials(self) -> bool:
        """True when both salt and hash are set (migrated account)."""
        return bool(self.salt) and bool(self.password_hash)


@dataclass(frozen=True, repr=False)
class AdminIdentity(_IdentityBase):
    """Administrator; also the principal allowed to reset passwords."""

    role = Role.ADMIN

    @property
    def display_name(self) -> str:
        return f"{self.name} (Admin)"


@dataclass(frozen=True, repr=False)
class DriverIdentity(_IdentityBase):
    """Truck driver; sessions are scoped to the driver's own data."""

    role = Role.DRIVER

    @property
    def display_name(self) -> str:
        return self.name


Identity = Union[AdminIdentity, DriverIdentity]


def normalize_login_name(name: Optional[str]) -> str:
    """Trim and upper-case a login name for lookup and attempt tracking."""
    return (name or "").strip().upper()


def identity_from_document(
    collection: Collection,
    doc_id: str,
    data: Mapping[str, Any],
) -> Identity:
    """
    Build the identity variant matching the collection a document came from.

    Documents use the field names ``name``, ``salt`` and ``passwordHash``.
    A document with only one of salt/hash set is treated as having neither.
    """
    salt = data.get("salt") or None
    password_hash = data.get("passwordHash") or None
    if not (salt and password_hash):
        salt = password_hash = None

    cls = AdminIdentity if collection is Collection.ADMINS else DriverIdentity
    return cls(
        id=doc_id,
        name=str(data.get("name", "")),
        salt=salt,
        password_hash=password_hash,
    )
