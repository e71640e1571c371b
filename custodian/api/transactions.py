"""
Transfer ledger endpoints: recent history and single record lookup.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from custodian.api.deps import get_ledger
from custodian.config import settings
from custodian.core.exceptions import TransferNotFoundError
from custodian.models.transfer import TransferRecord
from custodian.schemas.transfer import TransferListResponse, TransferRecordResponse
from custodian.services.ledger_service import TransferLedger

router = APIRouter()


def _build_response(record: TransferRecord) -> TransferRecordResponse:
    return TransferRecordResponse.model_validate(record)


@router.get("", response_model=TransferListResponse)
async def list_transactions(
    limit: int = Query(settings.LEDGER_PAGE_SIZE, ge=1, le=1000),
    ledger: TransferLedger = Depends(get_ledger),
):
    """Most recent ledger records, newest first. ``count`` is the ledger size."""
    return TransferListResponse(
        count=len(ledger),
        data=[_build_response(r) for r in ledger.list(limit=limit, newest_first=True)],
    )


@router.get("/{record_id}", response_model=TransferRecordResponse)
async def get_transaction(
    record_id: int,
    ledger: TransferLedger = Depends(get_ledger),
):
    """Single ledger record by id (404 if never appended)."""
    try:
        record = ledger.get(record_id)
    except TransferNotFoundError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.to_dict())
    return _build_response(record)
