"""
Roster Router

Endpoints:
- POST /api/verify - Identity provider webhook, records a confirmed login
- GET /api/admin/export - Dump all roster tables
- POST /api/admin/import - Load a dump (add, or replace everything)
- GET /api/admin/stats - Row counts per table

The webhook authenticates with a shared key in the body; the admin endpoints
require an operator API key (X-Internal-Api-Key header).
"""

import logging
import secrets
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from config import get_settings
from middleware.internal_auth import Operator, get_operator

from .exceptions import RecordConflictError, RosterStoreError
from .records import PendingRecord, parse_identity
from .service import RosterStore, get_roster_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Roster"])


# ==================== REQUEST/RESPONSE MODELS ====================

class VerifyRequest(BaseModel):
    """Login confirmation pushed by the identity provider."""
    id: str = Field(..., description="Discord user ID")
    shortcode: str = Field(..., min_length=1, max_length=32)
    fullname: str = Field(..., min_length=1, max_length=200)
    key: str = Field(..., description="Shared webhook key")

    class Config:
        json_schema_extra = {
            "example": {
                "id": "80351110224678912",
                "shortcode": "ab1234",
                "fullname": "Ada Lovelace",
                "key": "<VERIFY_WEBHOOK_KEY>"
            }
        }


class ImportResponse(BaseModel):
    replace: bool
    imported: Dict[str, int]


# ==================== WEBHOOK ====================

@router.post("/verify")
async def verify_login(
    request: VerifyRequest,
    store: RosterStore = Depends(get_roster_store)
):
    """
    Record a login confirmed by the identity provider.

    Any earlier pending record for the same user is replaced.
    """
    expected = get_settings().VERIFY_WEBHOOK_KEY
    if not expected or not secrets.compare_digest(request.key.encode(), expected.encode()):
        logger.warning("Rejected verify webhook call with invalid key")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Auth required")

    identity = parse_identity(request.id.strip())
    if identity is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid request body")

    record = PendingRecord(
        identity=identity,
        shortcode=request.shortcode,
        legal_name=request.fullname,
    )
    try:
        await store.replace(record)
    except (RosterStoreError, RecordConflictError) as e:
        logger.error(f"Failed to record pending login for {record.identity}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record login"
        )

    logger.info(f"Pending login recorded for {record.identity}")
    return {"success": True, "message": "Member added to `pending` database"}


# ==================== OPERATOR ENDPOINTS ====================

@router.get("/admin/export")
async def export_roster(
    operator: Operator = Depends(get_operator),
    store: RosterStore = Depends(get_roster_store)
):
    """
    Export every roster table.

    **Auth:** Operator API key (X-Internal-Api-Key header)
    """
    try:
        dump = await store.export_all()
    except RosterStoreError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to export roster"
        )
    logger.info(f"Roster exported by {operator.name}")
    return dump


@router.post("/admin/import", response_model=ImportResponse)
async def import_roster(
    dump: Dict[str, List[Dict[str, Any]]],
    replace: bool = Query(False, description="Empty every table before importing"),
    operator: Operator = Depends(get_operator),
    store: RosterStore = Depends(get_roster_store)
):
    """
    Import a roster export in a single transaction.

    **Auth:** Operator API key (X-Internal-Api-Key header)
    """
    try:
        counts = await store.import_all(dump, replace=replace)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except RecordConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except RosterStoreError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to import roster"
        )
    logger.warning(f"Roster imported by {operator.name} (replace={replace}): {counts}")
    return ImportResponse(replace=replace, imported=counts)


@router.get("/admin/stats")
async def roster_stats(
    operator: Operator = Depends(get_operator),
    store: RosterStore = Depends(get_roster_store)
):
    """
    Row counts for each roster table.

    **Auth:** Operator API key (X-Internal-Api-Key header)
    """
    try:
        return {"tables": await store.stats()}
    except RosterStoreError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to read roster stats"
        )
