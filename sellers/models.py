"""
sellers/models.py -- Domain dataclasses for Global Seller records.

ProfileInfo is the enrichment bundle fetched from Mercado Libre. It is an
explicit value type with every field nullable -- never a free-form dict -- so
"replace the whole bundle on every create/update" is a single assignment of
one object, not a merge of keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Optional


@dataclass(frozen=True)
class ProfileInfo:
    nickname: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
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

    @property
    def full_name(self) -> Optional[str]:
        """'first last' with missing parts dropped; None when both are empty."""
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or None

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]


@dataclass
class GlobalSellerRecord:
    """A local account's link to one Mercado Libre seller account.

    external_token is the Mercado Libre access token. It is only populated by
    raw single-record reads (GlobalSellerStore.get_by_id); list reads leave it
    None, and no API response model has a field for it.
    """

    account_id: str
    external_id: str  # ml_user_id
    profile: ProfileInfo = field(default_factory=ProfileInfo)
    external_token: Optional[str] = field(default=None, repr=False)
    name: Optional[str] = None
    id: Optional[str] = None
    enriched_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
