"""Credential verifiers: password hashes from an account lookup."""

import sqlite3
from collections.abc import Callable
from functools import lru_cache

from passlib.context import CryptContext
from starlette.authentication import SimpleUser

from .log import sublogger

# Cryptographic context
# See: https://passlib.readthedocs.io/en/stable/narr/context-tutorial.html
crypt_context = CryptContext(["pbkdf2_sha256"])


class AccountsVerifier:
    """Check the password against the hash found for the login."""

    context = crypt_context

    def __init__(self, accounts: Callable[[str], str | None]):
        """Verifier using `accounts` to find the hash for a login."""
        self.logger = sublogger("accounts")
        self.accounts = accounts

    def verify_credentials(self, login: str, password: str) -> SimpleUser | None:
        """User for valid credentials, None otherwise."""
        hash = self.accounts(login)
        if not hash:
            self.logger.warning("Unknown login {}", login)
            return None
        try:
            ok = self.context.verify(password, hash)
        except ValueError as exc:
            self.logger.error("Unusable hash for {}: {}", login, exc)
            return None
        if not ok:
            self.logger.warning("Invalid password for {}", login)
            return None
        if self.context.needs_update(hash):
            self.logger.warning("Hash needs update for {}", login)
        return SimpleUser(login)


class DictAccounts:
    """Accounts in a dictionary"""

    def __init__(self, accounts: dict[str, str] | None = None):
        """Accounts from a login: hash mapping (copied)."""
        self.accounts = {}
        if accounts is not None:
            self.accounts.update(accounts)

    def __call__(self, login: str) -> str | None:
        """Password hash for login"""
        return self.accounts.get(login)


class SqliteAccounts:
    """Accounts in a sqlite database

    create table ACCOUNTS (USERNAME text unique, PWD_HASH text);
    """

    def __init__(
        self,
        database_file: str,
        table_name: str = "ACCOUNTS",
        user_field: str = "USERNAME",
        hash_field: str = "PWD_HASH",
    ):
        """Accounts from a table in a sqlite database file."""
        self.sql = f"select {hash_field} from {table_name} where {user_field} = ?"
        self.database_file = database_file
        # cache per instance, not shared between databases
        self.lookup = lru_cache(maxsize=10)(self.lookup)

    def lookup(self, login: str) -> str:
        """Password hash from the database, KeyError if there is none

        lru_cache does not keep exceptions, so unknown logins are looked up
        again next time and an account added later is found.
        """
        conn = sqlite3.connect(self.database_file)
        try:
            row = conn.execute(self.sql, (login,)).fetchone()
        finally:
            conn.close()
        if row and row[0]:
            return row[0]
        raise KeyError(login)

    def __call__(self, login: str) -> str | None:
        """Password hash for login"""
        try:
            return self.lookup(login)
        except KeyError:
            return None
