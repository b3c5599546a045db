"""
api/routes/v1/sellers.py -- Global Seller REST endpoints.

Routes:
  GET    /api/v1/global-sellers        -- list the caller's records (newest first)
  GET    /api/v1/global-sellers/{id}   -- one record (owner only)
  POST   /api/v1/global-sellers        -- create + enrich from Mercado Libre
  PUT    /api/v1/global-sellers/{id}   -- replace credentials + re-enrich (owner only)
  DELETE /api/v1/global-sellers/{id}   -- delete (owner only)

Every route requires a live session (router-level dependency). A record
that exists but belongs to another account returns the same 404 as a
record that does not exist. Responses are built from GlobalSellerResponse,
which has no access token field.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.models import GlobalSellerListResponse, GlobalSellerResponse, GlobalSellerWrite
from auth.dependencies import get_current_account
from auth.models import Account
from sellers.service import GlobalSellerService

router = APIRouter(dependencies=[Depends(get_current_account)])


def _service(request: Request) -> GlobalSellerService:
    return request.app.state.seller_service


@router.get("/global-sellers", response_model=GlobalSellerListResponse)
def list_sellers(
    request: Request,
    current_account: Account = Depends(get_current_account),
) -> GlobalSellerListResponse:
    records = _service(request).get_by_user_id(current_account.id)
    return GlobalSellerListResponse(global_sellers=[GlobalSellerResponse.from_record(r) for r in records])


@router.get("/global-sellers/{record_id}", response_model=GlobalSellerResponse)
def get_seller(
    request: Request,
    record_id: str,
    current_account: Account = Depends(get_current_account),
) -> GlobalSellerResponse:
    record = _service(request).get_owned(record_id, current_account.id)
    return GlobalSellerResponse.from_record(record)


@router.post("/global-sellers", response_model=GlobalSellerResponse, status_code=201)
def create_seller(
    request: Request,
    body: GlobalSellerWrite,
    current_account: Account = Depends(get_current_account),
) -> GlobalSellerResponse:
    """Verify the token against Mercado Libre and store the enriched record.

    409 if this account already linked the same ml_user_id; 502 if the
    profile fetch fails (nothing is stored in that case).
    """
    record = _service(request).create(
        current_account.id,
        body.ml_user_id,
        body.ml_access_token,
        body.name,
    )
    return GlobalSellerResponse.from_record(record)


@router.put("/global-sellers/{record_id}", response_model=GlobalSellerResponse)
def update_seller(
    request: Request,
    record_id: str,
    body: GlobalSellerWrite,
    current_account: Account = Depends(get_current_account),
) -> GlobalSellerResponse:
    """Replace token, name and the whole profile. A failed fetch changes nothing."""
    record = _service(request).update(
        record_id,
        current_account.id,
        body.ml_user_id,
        body.ml_access_token,
        body.name,
    )
    return GlobalSellerResponse.from_record(record)


@router.delete("/global-sellers/{record_id}", status_code=204)
def delete_seller(
    request: Request,
    record_id: str,
    current_account: Account = Depends(get_current_account),
) -> Response:
    _service(request).delete(record_id, current_account.id)
    return Response(status_code=204)
