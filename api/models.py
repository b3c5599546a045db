"""
API request and response models for SellerHub REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
sellers/models.py, which own the internal domain representation. Route
handlers map between the two.

Sensitive fields have no place here: AccountResponse has no password hash
and GlobalSellerResponse has no access token, so neither can leak through
serialization.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import Account
from sellers.models import GlobalSellerRecord

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8


def check_password_policy(value: str) -> str:
    """At least 8 characters with at least one letter and one digit."""
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if not re.search(r"[A-Za-z]", value) or not re.search(r"[0-9]", value):
        raise ValueError("Password must contain letters and numbers.")
    return value


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(max_length=255)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email format.")
        return v

    @field_validator("password")
    @classmethod
    def password_policy(cls, v: str) -> str:
        return check_password_policy(v)


class LoginRequest(BaseModel):
    """No format or policy checks on login -- a bad value just fails to match."""

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=255)
    new_password: str = Field(max_length=255)

    @field_validator("new_password")
    @classmethod
    def password_policy(cls, v: str) -> str:
        return check_password_policy(v)


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class AccountResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    role: str
    created_at: str

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            id=account.id or "",
            email=account.email,
            role=account.role.value,
            created_at=account.created_at or "",
        )


class AuthResponse(BaseModel):
    """Body of signup / login / me responses."""

    model_config = ConfigDict(frozen=True)

    account: AccountResponse


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


# ---------------------------------------------------------------------------
# Global Sellers
# ---------------------------------------------------------------------------


class GlobalSellerWrite(BaseModel):
    """Request body for POST /global-sellers and PUT /global-sellers/{id}.

    Whitespace is stripped before the min_length check, so "   " is rejected
    the same way as "".
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    ml_user_id: str = Field(min_length=1, max_length=64)
    ml_access_token: str = Field(min_length=1, max_length=2048)
    name: Optional[str] = Field(default=None, max_length=255)


class ProfileResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    nickname: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    country_id: Optional[str] = None
    site_id: Optional[str] = None
    registration_date: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    tax_id: Optional[str] = None
    corporate_name: Optional[str] = None
    brand_name: Optional[str] = None
    seller_experience: Optional[str] = None


class GlobalSellerResponse(BaseModel):
    """One Global Seller record as returned to its owner. Never carries the token."""

    model_config = ConfigDict(frozen=True)

    id: str
    ml_user_id: str
    name: Optional[str]
    profile: ProfileResponse
    ml_info_updated_at: Optional[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_record(cls, record: GlobalSellerRecord) -> "GlobalSellerResponse":
        p = record.profile
        return cls(
            id=record.id or "",
            ml_user_id=record.external_id,
            name=record.name,
            profile=ProfileResponse(
                nickname=p.nickname,
                email=p.email,
                first_name=p.first_name,
                last_name=p.last_name,
                full_name=p.full_name,
                country_id=p.country_id,
                site_id=p.site_id,
                registration_date=p.registration_date,
                phone=p.phone,
                address=p.address,
                city=p.city,
                state=p.state,
                zip_code=p.zip_code,
                tax_id=p.tax_id,
                corporate_name=p.corporate_name,
                brand_name=p.brand_name,
                seller_experience=p.seller_experience,
            ),
            ml_info_updated_at=record.enriched_at,
            created_at=record.created_at or "",
            updated_at=record.updated_at or "",
        )


class GlobalSellerListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    global_sellers: list[GlobalSellerResponse]


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
