from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

import pytest

from backoffice.database import Database
from backoffice.errors import (
    DuplicateAccountError,
    InvalidEmailError,
    PasswordMismatchError,
    PasswordTooShortError,
)
from backoffice.models import ROLE_ADMIN
from backoffice.provisioning import AdminProvisioner, ProvisioningAction


class ScriptedPrompt:
    """Return canned answers in order and remember what was asked."""

    def __init__(self, answers: Iterable[str] = ()) -> None:
        self._answers: List[str] = list(answers)
        self.questions: List[str] = []

    def __call__(self, question: str) -> str:
        self.questions.append(question)
        if not self._answers:
            raise AssertionError(f"Unexpected prompt: {question!r}")
        return self._answers.pop(0)


@pytest.fixture()
def database(tmp_path: Path) -> Database:
    db = Database(tmp_path / "backoffice.sqlite3")
    db.initialize()
    return db


def test_creates_admin_with_hashed_password(database: Database) -> None:
    provisioner = AdminProvisioner(database, prompt=ScriptedPrompt(), prompt_secret=ScriptedPrompt())

    result = provisioner.provision("admin@example.com", "secret1")

    assert result.action is ProvisioningAction.CREATED
    assert result.message == "Admin user created successfully!"
    assert result.user.roles == (ROLE_ADMIN,)

    stored_hash = database.get_password_hash(result.user.id)
    assert stored_hash and stored_hash != "secret1"
    assert database.verify_user_password(result.user.id, "secret1")


def test_interactive_creation_asks_for_email_and_password(database: Database) -> None:
    prompt = ScriptedPrompt(["new@example.com"])
    secret = ScriptedPrompt(["hunter22", "hunter22"])
    provisioner = AdminProvisioner(database, prompt=prompt, prompt_secret=secret)

    result = provisioner.provision()

    assert result.user.email == "new@example.com"
    assert len(prompt.questions) == 1
    assert len(secret.questions) == 2
    assert database.authenticate_user("new@example.com", "hunter22") is not None


def test_existing_account_without_promote_fails(database: Database) -> None:
    database.create_user("taken@example.com", "secret-pass")
    provisioner = AdminProvisioner(database, prompt=ScriptedPrompt(), prompt_secret=ScriptedPrompt())

    with pytest.raises(DuplicateAccountError) as excinfo:
        provisioner.provision("taken@example.com", "another-pass")

    assert str(excinfo.value) == 'User with email "taken@example.com" already exists!'
    assert excinfo.value.hint == "Use --promote option to promote this user to admin"
    assert len(database.list_users()) == 1


def test_promote_existing_account_keeps_password(database: Database) -> None:
    user = database.create_user("staff@example.com", "original-pass", roles=["ROLE_USER"])
    before = database.get_password_hash(user.id)
    secret = ScriptedPrompt()
    provisioner = AdminProvisioner(database, prompt=ScriptedPrompt(), prompt_secret=secret)

    result = provisioner.provision("staff@example.com", promote=True)

    assert result.action is ProvisioningAction.PROMOTED
    assert result.message == 'User "staff@example.com" has been promoted to admin!'
    assert result.user.is_admin
    assert result.user.roles == ("ROLE_USER", ROLE_ADMIN)
    assert database.get_password_hash(user.id) == before
    assert secret.questions == []


def test_promote_is_idempotent_for_admins(database: Database) -> None:
    user = database.create_user("boss@example.com", "secret-pass", roles=[ROLE_ADMIN])
    provisioner = AdminProvisioner(database, prompt=ScriptedPrompt(), prompt_secret=ScriptedPrompt())

    result = provisioner.provision("boss@example.com", promote=True)

    assert result.user.roles == (ROLE_ADMIN,)
    assert result.user.id == user.id


def test_promote_unknown_email_creates_account(database: Database) -> None:
    provisioner = AdminProvisioner(database, prompt=ScriptedPrompt(), prompt_secret=ScriptedPrompt())

    result = provisioner.provision("fresh@example.com", "secret1", promote=True)

    assert result.action is ProvisioningAction.CREATED
    assert result.user.is_admin


@pytest.mark.parametrize("password", ["", "12345", "abc"])
def test_short_password_argument_is_rejected(database: Database, password: str) -> None:
    secret = ScriptedPrompt([password, password]) if not password else ScriptedPrompt()
    provisioner = AdminProvisioner(database, prompt=ScriptedPrompt(), prompt_secret=secret)

    with pytest.raises(PasswordTooShortError):
        provisioner.provision("short@example.com", password)

    assert database.get_user_by_email("short@example.com") is None


def test_short_password_rejected_even_when_confirmation_matches(database: Database) -> None:
    secret = ScriptedPrompt(["abc", "abc"])
    provisioner = AdminProvisioner(database, prompt=ScriptedPrompt(), prompt_secret=secret)

    with pytest.raises(PasswordTooShortError) as excinfo:
        provisioner.provision("short@example.com")

    assert str(excinfo.value) == "Password must be at least 6 characters long!"
    assert database.list_users() == []


def test_mismatched_confirmation_is_rejected_before_persisting(database: Database) -> None:
    secret = ScriptedPrompt(["longenough", "different1"])
    provisioner = AdminProvisioner(database, prompt=ScriptedPrompt(), prompt_secret=secret)

    with pytest.raises(PasswordMismatchError):
        provisioner.provision("mismatch@example.com")

    assert database.list_users() == []


def test_blank_email_is_rejected(database: Database) -> None:
    provisioner = AdminProvisioner(database, prompt=ScriptedPrompt(["   "]), prompt_secret=ScriptedPrompt())

    with pytest.raises(InvalidEmailError):
        provisioner.provision()


def test_minimum_length_counts_utf8_bytes(database: Database) -> None:
    provisioner = AdminProvisioner(database, prompt=ScriptedPrompt(), prompt_secret=ScriptedPrompt())

    result = provisioner.provision("accent@example.com", "ééé")

    assert result.action is ProvisioningAction.CREATED
    assert database.verify_user_password(result.user.id, "ééé")

    with pytest.raises(PasswordTooShortError):
        provisioner.provision("short-accent@example.com", "éé")
