"""Create admin accounts or promote existing ones."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from getpass import getpass
from typing import Callable, Optional

from .database import Database
from .errors import (
    DuplicateAccountError,
    InvalidEmailError,
    PasswordMismatchError,
    PasswordTooShortError,
)
from .models import ROLE_ADMIN, User

logger = logging.getLogger("backoffice.provisioning")

PASSWORD_MIN_LENGTH = 6

PromptFunc = Callable[[str], str]


class ProvisioningAction(str, enum.Enum):
    CREATED = "created"
    PROMOTED = "promoted"


@dataclass(frozen=True)
class ProvisioningResult:
    """Outcome of a successful provisioning run."""

    user: User
    action: ProvisioningAction
    message: str


class AdminProvisioner:
    """Resolve an email to a new or promoted admin account.

    ``prompt`` and ``prompt_secret`` are only consulted for values that were
    not supplied up front. The secret prompt is expected not to echo input.
    """

    def __init__(
        self,
        database: Database,
        *,
        prompt: PromptFunc = input,
        prompt_secret: PromptFunc = getpass,
    ) -> None:
        self._database = database
        self._prompt = prompt
        self._prompt_secret = prompt_secret

    def provision(
        self,
        email: Optional[str] = None,
        password: Optional[str] = None,
        *,
        promote: bool = False,
    ) -> ProvisioningResult:
        if not email:
            email = self._prompt("Enter admin email address: ")
        email = (email or "").strip()
        if not email:
            raise InvalidEmailError("Email address must not be empty!")

        existing = self._database.get_user_by_email(email)

        if promote and existing is not None:
            return self._promote(existing)

        if existing is not None:
            logger.warning("Refusing to recreate existing account <%s>", existing.email)
            raise DuplicateAccountError(
                f'User with email "{email}" already exists!',
                hint="Use --promote option to promote this user to admin",
            )

        if not password:
            password = self._prompt_secret(
                f"Enter admin password (min {PASSWORD_MIN_LENGTH} characters): "
            )
            confirmation = self._prompt_secret("Confirm password: ")
            if password != confirmation:
                logger.warning("Password confirmation mismatch for <%s>", email)
                raise PasswordMismatchError("Passwords do not match!")

        if len((password or "").encode("utf-8")) < PASSWORD_MIN_LENGTH:
            logger.warning("Rejected short password for <%s>", email)
            raise PasswordTooShortError(
                f"Password must be at least {PASSWORD_MIN_LENGTH} characters long!"
            )

        user = self._database.create_user(email, password, roles=(ROLE_ADMIN,))
        logger.info("Created admin account #%s <%s>", user.id, user.email)
        return ProvisioningResult(
            user=user,
            action=ProvisioningAction.CREATED,
            message="Admin user created successfully!",
        )

    def _promote(self, user: User) -> ProvisioningResult:
        roles = user.roles if user.is_admin else (*user.roles, ROLE_ADMIN)
        promoted = self._database.set_user_roles(user.id, roles)
        logger.info("Promoted account #%s <%s> to admin", promoted.id, promoted.email)
        return ProvisioningResult(
            user=promoted,
            action=ProvisioningAction.PROMOTED,
            message=f'User "{promoted.email}" has been promoted to admin!',
        )


__all__ = [
    "AdminProvisioner",
    "PASSWORD_MIN_LENGTH",
    "ProvisioningAction",
    "ProvisioningResult",
]
