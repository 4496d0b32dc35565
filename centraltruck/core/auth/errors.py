"""
Authentication error kinds.

Login failures of every kind collapse into the same user-facing message;
password-change failures keep their specific message because they are
reported to an already authenticated actor.
"""

from __future__ import annotations

from typing import Final


INVALID_LOGIN_MESSAGE: Final[str] = "Login ou senha inválidos."


class AuthError(Exception):
    """Base class for authentication core errors."""

    user_message: str = "Ocorreu um erro ao processar a solicitação."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)


class InvalidCredentials(AuthError):
    """Wrong login name or password."""

    user_message = INVALID_LOGIN_MESSAGE


class AccountLocked(InvalidCredentials):
    """Too many failures for a login name; reported like InvalidCredentials."""

    def __init__(self, key: str, lock_until: float) -> None:
        super().__init__(f"Login name {key!r} locked until {lock_until:.0f}")
        self.key = key
        self.lock_until = lock_until


class LegacyAccount(AuthError):
    """Identity has no salt/hash and cannot use self-service password change."""

    user_message = "Conta de usuário antiga. Contate um administrador para resetar sua senha."


class IncorrectPassword(AuthError):
    """Current password did not match during a self-service change."""

    user_message = "Senha atual incorreta."


class EmptyPassword(AuthError):
    """New password is empty after trimming."""

    user_message = "A nova senha não pode ser vazia."


class NotAuthorized(AuthError):
    """Acting session is not allowed to reset passwords."""

    user_message = "Apenas administradores podem resetar senhas."


class NotFound(AuthError):
    """Identity id could not be resolved."""

    user_message = "Usuário não encontrado."


class StoreUnavailable(AuthError):
    """Remote credential store failed (network or database error)."""

    user_message = "Ocorreu um erro ao alterar a senha."

    def __init__(self, message: str | None = None, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.original_error = original_error


class CryptoUnavailable(AuthError):
    """Password hashing primitives are missing or unsupported."""

    user_message = "Ocorreu um erro ao alterar a senha."
