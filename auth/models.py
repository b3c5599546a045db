"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services
do the work; these only own the domain shape.

Layer rule: no imports from api/ or sellers/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Role(str, Enum):
    operator = "operator"
    admin = "admin"
    super_admin = "super_admin"


@dataclass
class Account:
    """A local identity with email/password credentials.

    email is stored trimmed and lower-cased, so equality on the stored value
    is the case-insensitive comparison. password_hash is the self-describing
    PBKDF2 string from auth/passwords.py; repr=False keeps it out of logs and
    tracebacks, and no API response model has a field for it.
    """

    email: str
    password_hash: str = field(repr=False)
    role: Role = Role.operator
    id: str | None = None
    created_at: str | None = None


@dataclass
class Session:
    """An issued login session.

    issued_at / expires_at are epoch seconds so expiry is a plain integer
    comparison in SQL and in Python.
    """

    id: str
    account_id: str
    issued_at: int
    expires_at: int
