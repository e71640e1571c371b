"""
Pydantic schemas for transfer requests, results and ledger records.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from custodian.models.transfer import TransferStage, TransferStatus, TransferType
from custodian.services.transfer_service import TransferRequest


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


class TransferRequestPayload(BaseModel):
    """
    Body shared by ``/convert`` and its aliases.

    Destination may arrive as ``to``, ``toAddress`` or ``treasury``; the ETH
    amount as ``amountETH`` or ``amount``. Amounts are passed through
    unparsed when they are not numbers: the pipeline parses and checks them,
    so a malformed amount lands in the ledger like any other rejection.
    """
    destination: str | None = Field(
        None,
        validation_alias=AliasChoices("to", "toAddress", "treasury", "destination"),
        examples=["0x742d35Cc6634C0532925a3b844Bc454e4438f44e"],
    )
    amount_eth: Decimal | str | None = Field(
        None,
        validation_alias=AliasChoices("amountETH", "amount", "amount_eth"),
        examples=[Decimal("0.05")],
    )
    amount_usd: Decimal | str | None = Field(
        None,
        validation_alias=AliasChoices("amountUSD", "amount_usd"),
        examples=[Decimal("350")],
    )
    percentage: Decimal | str | None = Field(None, examples=[Decimal("50")])

    @field_validator("destination")
    @classmethod
    def blank_destination_is_missing(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None

    def to_request(self) -> TransferRequest:
        return TransferRequest(
            destination=self.destination,
            amount_eth=self.amount_eth,
            amount_usd=self.amount_usd,
            percentage=self.percentage,
        )


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class TransferResponse(BaseModel):
    """Confirmed transfer."""
    success: bool = True
    confirmed: bool = True
    record_id: int
    tx_hash: str
    to: str
    amount: Decimal
    amount_usd: Decimal
    price_usd: Decimal
    fee_estimate: Decimal
    fee_paid: Decimal
    block_number: int


class TransferRecordResponse(BaseModel):
    """One ledger record, exactly as stored."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: TransferType
    status: TransferStatus
    destination: str | None
    amount_eth: Decimal | None
    amount_usd: Decimal | None
    price_usd: Decimal | None
    tx_hash: str | None
    block_number: int | None
    fee_paid_eth: Decimal | None
    fee_estimate_eth: Decimal | None
    error: str | None
    error_code: str | None
    failed_stage: TransferStage | None
    outcome_ambiguous: bool
    timestamp: datetime


class TransferListResponse(BaseModel):
    """Most recent ledger records, newest first."""
    count: int
    data: list[TransferRecordResponse]
