"""
Session Control
===============

Login, logout, session expiry and password rotation for the current
client process.

Security Features:
- Uniform login failure (wrong password, lockout and store errors all
  look the same to the caller)
- Artificial delays that grow with recent failures
- Lockout refusals never reach the credential store
- Self-expiring sessions (time-based, independent of stored data)
- Single re-armed expiry timer
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Final, Mapping, Optional, Union

from centraltruck.core.auth.attempts import AttemptTracker
from centraltruck.core.auth.errors import (
    AccountLocked,
    AuthError,
    CryptoUnavailable,
    EmptyPassword,
    IncorrectPassword,
    InvalidCredentials,
    LegacyAccount,
    NotAuthorized,
    NotFound,
    StoreUnavailable,
)
from centraltruck.core.auth.hasher import CredentialHasher
from centraltruck.core.auth.identity import (
    Collection,
    Identity,
    Role,
    normalize_login_name,
)
from centraltruck.core.config import SecurityConfig
from centraltruck.db.local_store import (
    REMEMBERED_USER_KEY,
    SESSION_KEY,
    LocalKeyValueStore,
)

if TYPE_CHECKING:
    from centraltruck.db.gateway import CredentialStoreGateway


PASSWORD_CHANGED_MESSAGE: Final[str] = "Senha alterada com sucesso!"
PASSWORD_CHANGE_FAILED_MESSAGE: Final[str] = "Ocorreu um erro ao alterar a senha."

SessionListener = Callable[[Optional["Session"]], None]


@dataclass(frozen=True)
class SessionUser:
    """Authenticated principal as seen by the view layer."""
    name: str
    role: Role
    user_id: str
    driver_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "role": self.role.value,
            "driverId": self.driver_id,
            "userId": self.user_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SessionUser":
        return cls(
            name=str(data["name"]),
            role=Role.from_string(str(data["role"])),
            user_id=str(data["userId"]),
            driver_id=data.get("driverId"),
        )


@dataclass(frozen=True)
class Session:
    """
    Client-held proof of authentication.

    ``user`` set implies ``expires_at`` set. Once ``expires_at`` has passed
    the session counts as absent, whatever is still stored.
    """
    user: Optional[SessionUser] = None
    expires_at: Optional[float] = None

    def is_active(self, now: float) -> bool:
        return (
            self.user is not None
            and self.expires_at is not None
            and now < self.expires_at
        )

    def to_dict(self) -> dict[str, Any]:
        if self.user is None:
            return {"user": None}
        return {"user": self.user.to_dict(), "expiresAt": self.expires_at}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Session":
        user = data.get("user")
        expires_at = data.get("expiresAt")
        if not user or expires_at is None:
            return ANONYMOUS
        return cls(user=SessionUser.from_dict(user), expires_at=float(expires_at))


ANONYMOUS: Final[Session] = Session()


@dataclass(frozen=True)
class ChangePasswordResult:
    success: bool
    message: str


class SessionManager:
    """
    Session state machine (Unauthenticated / Authenticated) for one client.

    Usage:
        manager = SessionManager(store, gateway, hasher, tracker)
        manager.start()

        if await manager.login("joao", "senha123"):
            manager.current_role        # Role.DRIVER
            manager.current_driver_id   # driver document id

        result = await manager.change_password(user_id, "driver", "nova", "senha123")

        manager.logout()
        manager.close()

    Clock and sleep are injectable; every artificial delay goes through
    ``sleep``.
    """

    __slots__ = (
        "_store", "_gateway", "_hasher", "_tracker", "_security",
        "_clock", "_sleep", "_session", "_timer", "_listeners", "_log",
    )

    def __init__(
        self,
        store: LocalKeyValueStore,
        gateway: CredentialStoreGateway,
        hasher: CredentialHasher,
        tracker: AttemptTracker,
        security: Optional[SecurityConfig] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._hasher = hasher
        self._tracker = tracker
        self._security = security or SecurityConfig()
        self._clock = clock
        self._sleep = sleep
        self._session: Session = ANONYMOUS
        self._timer: Optional[asyncio.TimerHandle] = None
        self._listeners: list[SessionListener] = []
        self._log = logging.getLogger("centraltruck.auth")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Restore the persisted session, dropping it if already expired."""
        self.reload()

    def reload(self) -> None:
        """
        Re-read the persisted session (it may have been changed outside
        this manager) and re-arm the expiry timer.
        """
        raw = self._store.get(SESSION_KEY)
        try:
            session = Session.from_dict(raw) if isinstance(raw, dict) else ANONYMOUS
        except (KeyError, TypeError, ValueError):
            self._log.warning("Discarding unreadable persisted session")
            session = ANONYMOUS

        if session.user is not None and not session.is_active(self._clock()):
            self._log.info("Persisted session for %s has expired", session.user.name)
            self._set_session(ANONYMOUS)
            return

        self._session = session
        self._arm_timer()

    def close(self) -> None:
        """Cancel the pending expiry timer. The persisted session is kept."""
        self._cancel_timer()
        self._listeners.clear()

    def add_listener(self, callback: SessionListener) -> None:
        """Call ``callback`` with the new session (or None) on every change."""
        self._listeners.append(callback)

    def remove_listener(self, callback: SessionListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    # ------------------------------------------------------------------
    # Read-only session view
    # ------------------------------------------------------------------

    @property
    def current_session(self) -> Optional[Session]:
        """The active session, or None once it has expired."""
        if self._session.is_active(self._clock()):
            return self._session
        return None

    @property
    def current_user(self) -> Optional[SessionUser]:
        session = self.current_session
        return session.user if session else None

    @property
    def current_role(self) -> Optional[Role]:
        user = self.current_user
        return user.role if user else None

    @property
    def current_driver_id(self) -> Optional[str]:
        user = self.current_user
        return user.driver_id if user else None

    @property
    def is_authenticated(self) -> bool:
        return self.current_session is not None

    def can_access_driver_data(self, driver_id: Optional[str]) -> bool:
        """Admins see every driver's records; drivers only their own."""
        user = self.current_user
        if user is None:
            return False
        if user.role is Role.ADMIN:
            return True
        return driver_id is not None and driver_id == user.driver_id

    def remembered_username(self) -> Optional[str]:
        value = self._store.get(REMEMBERED_USER_KEY)
        return value if isinstance(value, str) and value else None

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------

    async def login(
        self,
        username: str,
        password: str,
        remember: Optional[bool] = None,
    ) -> bool:
        """
        Authenticate against the admin then the driver collection.

        Args:
            username: Login name (case-insensitive, trimmed)
            password: Password (trimmed)
            remember: True stores the login name for the next visit, False
                forgets it, None leaves it alone. Applied on success only.

        Returns:
            True when a session was minted. Every failure returns False.
        """
        key = normalize_login_name(username)
        pwd = (password or "").strip()
        security = self._security

        if not key or not pwd:
            await self._delay(security.empty_input_delay_ms)
            return False

        try:
            identity = await self._authenticate(key, pwd)
        except AccountLocked as e:
            self._log.info("Login refused for locked name %s until %.0f", key, e.lock_until)
            await self._delay(security.locked_delay_ms)
            return False
        except InvalidCredentials:
            record = self._tracker.record_failure(key)
            self._log.info("Failed login for %s (%d in window)", key, record.count)
            return False
        except StoreUnavailable as e:
            self._log.error(
                "Credential store error during login for %s: %r",
                key, e.original_error or e,
            )
            await self._delay(security.store_error_delay_ms)
            self._tracker.record_failure(key)
            return False
        except CryptoUnavailable:
            self._log.critical("Password hashing unavailable during login", exc_info=True)
            return False
        except Exception:
            self._log.error("Unexpected error during login for %s", key, exc_info=True)
            await self._delay(security.store_error_delay_ms)
            self._tracker.record_failure(key)
            return False

        self._mint(identity)
        self._tracker.record_success(key)

        if remember is True:
            self._store.set(REMEMBERED_USER_KEY, (username or "").strip())
        elif remember is False:
            self._store.remove(REMEMBERED_USER_KEY)

        self._log.info("Login succeeded for %s as %s", key, identity.role.value)
        return True

    async def _authenticate(self, key: str, password: str) -> Identity:
        """
        Lockout gate, throttle delay, then admin and driver lookups.

        Raises:
            AccountLocked: lockout in force; the store is not contacted
            InvalidCredentials: no identity matched
        """
        record = self._tracker.get(key)
        if record is not None and record.is_locked(self._clock()):
            raise AccountLocked(key, record.lock_until)

        security = self._security
        failures = self._tracker.failure_count(key)
        await self._delay(
            security.throttle_base_ms
            + min(failures * security.throttle_step_ms, security.throttle_cap_ms)
        )

        for collection in (Collection.ADMINS, Collection.DRIVERS):
            identity = await self._gateway.find_by_normalized_name(collection, key)
            if identity is None or not identity.has_credentials:
                continue
            if await asyncio.to_thread(
                self._hasher.verify, password, identity.salt, identity.password_hash
            ):
                return identity
        raise InvalidCredentials()

    def _mint(self, identity: Identity) -> None:
        user = SessionUser(
            name=identity.display_name,
            role=identity.role,
            user_id=identity.id,
            driver_id=identity.id if identity.role is Role.DRIVER else None,
        )
        expires_at = self._clock() + self._security.session_ttl_seconds
        self._set_session(Session(user=user, expires_at=expires_at))

    def logout(self) -> None:
        """End the current session. Safe to call when already logged out."""
        if self._session.user is not None:
            self._log.info("Logout for %s", self._session.user.name)
        self._set_session(ANONYMOUS)

    # ------------------------------------------------------------------
    # Password rotation
    # ------------------------------------------------------------------

    async def change_password(
        self,
        user_id: str,
        role: Union[Role, str],
        new_password: str,
        old_password: Optional[str] = None,
    ) -> ChangePasswordResult:
        """
        Rotate an identity's salt and hash.

        With ``old_password`` this is a self-service change and the current
        password must verify. Without it (None or empty) this is an
        administrative reset and the acting session must be an admin.
        """
        try:
            collection = Collection.for_role(
                role if isinstance(role, Role) else Role.from_string(role)
            )
        except ValueError:
            return ChangePasswordResult(False, NotFound.user_message)

        try:
            await self._rotate_password(collection, user_id, new_password, old_password)
        except (StoreUnavailable, CryptoUnavailable):
            self._log.error(
                "Password change for %s/%s failed", collection.value, user_id, exc_info=True
            )
            return ChangePasswordResult(False, PASSWORD_CHANGE_FAILED_MESSAGE)
        except AuthError as e:
            self._log.info(
                "Password change for %s/%s refused: %s",
                collection.value, user_id, type(e).__name__,
            )
            return ChangePasswordResult(False, e.user_message)
        except Exception:
            self._log.exception(
                "Unexpected error changing password for %s/%s", collection.value, user_id
            )
            return ChangePasswordResult(False, PASSWORD_CHANGE_FAILED_MESSAGE)

        self._log.info("Password changed for %s/%s", collection.value, user_id)
        return ChangePasswordResult(True, PASSWORD_CHANGED_MESSAGE)

    async def _rotate_password(
        self,
        collection: Collection,
        user_id: str,
        new_password: str,
        old_password: Optional[str],
    ) -> None:
        new_password = (new_password or "").strip()
        if not new_password:
            raise EmptyPassword()

        identity = await self._gateway.get_by_id(collection, user_id)
        if identity is None:
            raise NotFound()

        if old_password:
            if not identity.has_credentials:
                raise LegacyAccount()
            matches = await asyncio.to_thread(
                self._hasher.verify,
                old_password.strip(),
                identity.salt,
                identity.password_hash,
            )
            if not matches:
                raise IncorrectPassword()
        elif self.current_role is not Role.ADMIN:
            raise NotAuthorized()

        salt = self._hasher.generate_salt()
        password_hash = await asyncio.to_thread(self._hasher.hash, new_password, salt)
        await self._gateway.update(
            collection, user_id, {"passwordHash": password_hash, "salt": salt}
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _delay(self, milliseconds: int) -> None:
        await self._sleep(milliseconds / 1000)

    def _set_session(self, session: Session) -> None:
        self._session = session
        self._store.set(SESSION_KEY, session.to_dict())
        self._arm_timer()

        current = self.current_session
        for callback in list(self._listeners):
            try:
                callback(current)
            except Exception:
                self._log.exception("Session listener %r failed", callback)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _arm_timer(self) -> None:
        """Replace any pending expiry timer with one for the current session."""
        self._cancel_timer()

        session = self._session
        if session.user is None or session.expires_at is None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop: expiry is still enforced on every read.
            return

        delay = max(session.expires_at - self._clock(), 0.0)
        self._timer = loop.call_later(delay, self._on_expired)

    def _on_expired(self) -> None:
        self._timer = None
        if self._session.user is not None:
            self._log.info("Session for %s expired", self._session.user.name)
            self._set_session(ANONYMOUS)
