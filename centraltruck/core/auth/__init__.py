"""
Central Truck Authentication Module
===================================

Provides:
- PBKDF2-HMAC-SHA256 password hashing
- Admin / driver identities
- Login throttling with timed lockout
- Self-expiring sessions
- Password change and administrative reset

Security Properties:
- Constant-time digest comparison
- Uniform login failure signaling
- Lockout refusals never reach the credential store
"""

from centraltruck.core.auth.attempts import (
    AttemptRecord,
    AttemptTracker,
)
from centraltruck.core.auth.context import AuthContext
from centraltruck.core.auth.errors import (
    AccountLocked,
    AuthError,
    CryptoUnavailable,
    InvalidCredentials,
    LegacyAccount,
    NotAuthorized,
    NotFound,
    StoreUnavailable,
)
from centraltruck.core.auth.hasher import CredentialHasher
from centraltruck.core.auth.identity import (
    AdminIdentity,
    Collection,
    DriverIdentity,
    Identity,
    Role,
)
from centraltruck.core.auth.session_control import (
    ChangePasswordResult,
    Session,
    SessionManager,
    SessionUser,
)

__all__ = [
    "AttemptRecord",
    "AttemptTracker",
    "AuthContext",
    "AccountLocked",
    "AuthError",
    "CryptoUnavailable",
    "InvalidCredentials",
    "LegacyAccount",
    "NotAuthorized",
    "NotFound",
    "StoreUnavailable",
    "CredentialHasher",
    "AdminIdentity",
    "Collection",
    "DriverIdentity",
    "Identity",
    "Role",
    "ChangePasswordResult",
    "Session",
    "SessionManager",
    "SessionUser",
]
