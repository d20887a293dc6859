"""Exceptions raised while provisioning backoffice accounts."""

from __future__ import annotations

from typing import Optional


class ProvisioningError(ValueError):
    """Base class for failures reported back to the operator."""

    def __init__(self, message: str, *, hint: Optional[str] = None) -> None:
        super().__init__(message)
        self.hint = hint


class DuplicateAccountError(ProvisioningError):
    """An account with the requested email already exists."""


class AccountNotFoundError(ProvisioningError):
    """No account matches the requested identifier."""


class InvalidEmailError(ProvisioningError):
    """The supplied email address is empty."""


class PasswordMismatchError(ProvisioningError):
    """The password and its confirmation differ."""


class PasswordTooShortError(ProvisioningError):
    """The password does not meet the minimum length."""


__all__ = [
    "AccountNotFoundError",
    "DuplicateAccountError",
    "InvalidEmailError",
    "PasswordMismatchError",
    "PasswordTooShortError",
    "ProvisioningError",
]
