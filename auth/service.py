"""
auth/service.py -- Account signup, login, logout and password change.

State per account: Anonymous -> Authenticated (signup / login issue a
Session) -> Anonymous (logout destroys it, or it expires).

Security design decisions:
  [C1] Timing equalization: login() always runs one PBKDF2 derivation,
       against a dummy hash when the email is unknown, so response time does
       not reveal whether an address is registered. Unknown email and wrong
       password raise the same InvalidCredentials.

  Password changes do not revoke other sessions of the account.

Layer rule: no imports from api/ or sellers/.
"""

from __future__ import annotations

import logging

from auth.models import Account, Role
from auth.passwords import DEFAULT_ITERATIONS, hash_password, verify_password
from auth.store import AccountStore, SessionStore, normalize_email
from core.errors import DuplicateEmail, InvalidCredentials, ValidationError

logger = logging.getLogger("sellerhub.auth")


class AuthService:
    """Orchestrates AccountStore + SessionStore.

    Usage:
        auth = AuthService(AccountStore(engine), SessionStore(engine, ttl_seconds=604800))
        account, session_id = auth.signup("a@x.com", "pw12345678")
        auth.resolve_session(session_id)   # -> Account
        auth.logout(session_id)
    """

    def __init__(
        self,
        accounts: AccountStore,
        sessions: SessionStore,
        hash_iterations: int = DEFAULT_ITERATIONS,
    ) -> None:
        self.accounts = accounts
        self.sessions = sessions
        self.hash_iterations = hash_iterations
        # Computed once per service so the first login is not measurably slower.
        self._dummy_hash = hash_password("sellerhub_timing_dummy", hash_iterations)

    def signup(self, email: str, password: str, role: Role = Role.operator) -> tuple[Account, str]:
        """Create an account and log it in. Returns (account, session_id)."""
        account = self.register(email, password, role)
        session = self.sessions.create(account.id)
        return account, session.id

    def register(self, email: str, password: str, role: Role = Role.operator) -> Account:
        """Create an account without issuing a session.

        Raises DuplicateEmail when the normalized address is taken. The lookup
        gives the clean error; the UNIQUE index catches the concurrent case.
        """
        email = _require(email, "Email")
        password = _require(password, "Password", strip=False)
        if self.accounts.email_exists(email):
            raise DuplicateEmail()
        account = self.accounts.create(
            Account(email=email, password_hash=hash_password(password, self.hash_iterations), role=role)
        )
        logger.info("Account %s registered (role=%s)", account.id, account.role.value)
        return account

    def login(self, email: str, password: str) -> tuple[Account, str]:
        """Verify credentials and issue a new session. Returns (account, session_id)."""
        account = self.authenticate(email, password)
        if account is None:
            raise InvalidCredentials()
        session = self.sessions.create(account.id)
        logger.info("Account %s logged in", account.id)
        return account, session.id

    def authenticate(self, email: str, password: str) -> Account | None:
        """Return the Account for valid credentials, None otherwise [C1]."""
        account = self.accounts.get_by_email(normalize_email(email or ""))
        if account is None:
            # Equalize timing -- do NOT return before running the KDF.
            verify_password(password or "", self._dummy_hash)
            logger.info("Failed login attempt")
            return None
        if not verify_password(password or "", account.password_hash):
            logger.info("Failed login attempt")
            return None
        return account

    def logout(self, session_id: str | None) -> None:
        if session_id:
            self.sessions.destroy(session_id)

    def resolve_session(self, session_id: str | None) -> Account | None:
        """Account behind a live session, or None. Callers turn None into Unauthorized."""
        if not session_id:
            return None
        return self.sessions.resolve(session_id)

    def change_password(self, account_id: str, current_password: str, new_password: str) -> None:
        new_password = _require(new_password, "New password", strip=False)
        account = self.accounts.get_by_id(account_id)
        if account is None or not verify_password(current_password or "", account.password_hash):
            raise InvalidCredentials("Current password is incorrect.")
        self.accounts.update_password(account_id, hash_password(new_password, self.hash_iterations))
        logger.info("Account %s changed its password", account_id)

    def sweep_expired_sessions(self) -> int:
        removed = self.sessions.sweep_expired()
        if removed:
            logger.info("Swept %d expired sessions", removed)
        return removed


def _require(value: str | None, label: str, strip: bool = True) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{label} is required.")
    return value.strip() if strip else value
