"""
sellers/fetcher.py -- Mercado Libre profile fetching.

GlobalSellerService depends only on the ProfileFetcher protocol; the
concrete MercadoLibreClient is wired in by the API lifespan and swapped for a
fake in tests.

Contract: fetch_profile() either returns a normalized ProfileInfo or raises
ExternalServiceError carrying the upstream status (None when no response
arrived) and message. There are no retries here; retry policy belongs to the
caller.
"""

import logging
from typing import Any, Optional, Protocol

import requests

from core.errors import ExternalServiceError
from sellers.models import ProfileInfo

logger = logging.getLogger("sellerhub.fetcher")

ML_API = "https://api.mercadolibre.com"


class ProfileFetcher(Protocol):
    def fetch_profile(self, access_token: str) -> ProfileInfo: ...


class MercadoLibreClient:
    """Thin client for GET /users/me on the Mercado Libre API.

    One requests.Session per client for connection pooling. max_redirects=3
    replaces the requests default of 30 -- a known public API, 3 hops is
    generous and protects against redirect chains.
    """

    def __init__(
        self,
        base_url: str = ML_API,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.max_redirects = 3

    def fetch_profile(self, access_token: str) -> ProfileInfo:
        """Fetch the profile of the account that owns access_token."""
        try:
            resp = self._session.get(
                f"{self.base_url}/users/me",
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("Mercado Libre request failed: %s", e)
            raise ExternalServiceError(None, f"Mercado Libre request failed: {e}") from e

        if not resp.ok:
            message = _error_message(resp)
            logger.warning("Mercado Libre /users/me returned %d: %s", resp.status_code, message)
            raise ExternalServiceError(resp.status_code, f"Failed to fetch user info: {message}")

        try:
            data = resp.json()
        except ValueError as e:
            raise ExternalServiceError(resp.status_code, "Mercado Libre returned a non-JSON body") from e
        if not isinstance(data, dict):
            raise ExternalServiceError(resp.status_code, "Mercado Libre returned an unexpected body")
        return parse_profile(data)

    def close(self) -> None:
        self._session.close()


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.reason or "Unknown error"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or resp.reason or "Unknown error")
    return resp.reason or "Unknown error"


def _clean(value: Any) -> Optional[str]:
    """Coerce to a stripped string; empty / missing -> None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _obj(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def parse_profile(data: dict[str, Any]) -> ProfileInfo:
    """Normalize a raw /users/me payload into ProfileInfo.

    Nested objects may be missing, null or of the wrong type; all three read
    as empty. phone is area_code + number; tax_id prefers the personal
    identification number and falls back to the company's.
    """
    phone = _obj(data.get("phone"))
    address = _obj(data.get("address"))
    identification = _obj(data.get("identification"))
    company = _obj(data.get("company"))

    phone_text = None
    if phone:
        phone_text = _clean(f"{phone.get('area_code') or ''}{phone.get('number') or ''}")

    return ProfileInfo(
        nickname=_clean(data.get("nickname")),
        email=_clean(data.get("email")),
        first_name=_clean(data.get("first_name")),
        last_name=_clean(data.get("last_name")),
        country_id=_clean(data.get("country_id")),
        site_id=_clean(data.get("site_id")),
        registration_date=_clean(data.get("registration_date")),
        phone=phone_text,
        address=_clean(address.get("address")),
        city=_clean(address.get("city")),
        state=_clean(address.get("state")),
        zip_code=_clean(address.get("zip_code")),
        tax_id=_clean(identification.get("number")) or _clean(company.get("identification")),
        corporate_name=_clean(company.get("corporate_name")),
        brand_name=_clean(company.get("brand_name")),
        seller_experience=_clean(data.get("seller_experience")),
    )
