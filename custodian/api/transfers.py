"""
Transfer endpoints: every route below runs the same pipeline.

The aliases exist for client compatibility only; the request schema
normalizes their field names before the pipeline sees them.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from custodian.api.deps import get_transfer_pipeline, require_api_key
from custodian.core.exceptions import TransferError
from custodian.schemas.transfer import TransferRequestPayload, TransferResponse
from custodian.services.transfer_service import TransferPipeline

router = APIRouter()

TRANSFER_ROUTES = [
    "/convert",
    "/withdraw",
    "/send-eth",
    "/transfer",
    "/coinbase-withdraw",
    "/send-to-coinbase",
    "/backend-to-coinbase",
    "/treasury-to-coinbase",
    "/fund-from-earnings",
]


async def create_transfer(
    payload: TransferRequestPayload,
    pipeline: TransferPipeline = Depends(get_transfer_pipeline),
    _: None = Depends(require_api_key),
):
    """
    Send ETH from the custodial account.

    Amount is one of ``amountETH``/``amount``, ``amountUSD`` (converted at
    the current price) or ``percentage`` of the live balance minus the fee
    reserve. Returns 400 for rejected requests (with shortfall details on
    insufficient funds) and 500 for network or submission failures.
    """
    try:
        result = await pipeline.execute(payload.to_request())
    except TransferError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.to_dict())

    return TransferResponse(
        record_id=result.record_id,
        tx_hash=result.tx_hash,
        to=result.destination,
        amount=result.amount_eth,
        amount_usd=result.amount_usd,
        price_usd=result.price_usd,
        fee_estimate=result.fee_estimate_eth,
        fee_paid=result.fee_paid_eth,
        block_number=result.block_number,
    )


for _path in TRANSFER_ROUTES:
    router.add_api_route(
        _path,
        create_transfer,
        methods=["POST"],
        response_model=TransferResponse,
        name=f"transfer:{_path.strip('/')}",
    )


async def transfer_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies on transfer routes are 400s; other routes keep FastAPI's 422."""
    if request.url.path not in TRANSFER_ROUTES:
        return await request_validation_exception_handler(request, exc)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": {
            "error": "Invalid request body",
            "code": "INVALID_REQUEST",
            "errors": jsonable_encoder(exc.errors()),
        }},
    )
