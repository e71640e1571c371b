"""
Transfer record: one immutable ledger entry per transfer attempt.

- ``confirmed`` records always carry a transaction hash
- ``failed`` records always carry an error description
- a failed record has a transaction hash only when submission happened
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TransferStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    FAILED = "failed"


class TransferType(str, enum.Enum):
    WITHDRAWAL = "withdrawal"


class TransferStage(str, enum.Enum):
    """Pipeline states, in execution order."""

    RECEIVED = "received"
    VALIDATED = "validated"
    AMOUNT_RESOLVED = "amount_resolved"
    FEE_QUOTED = "fee_quoted"
    SUFFICIENCY_CHECKED = "sufficiency_checked"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"


# ---------------------------------------------------------------------------
# Record
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransferRecord:
    status: TransferStatus
    destination: str | None
    amount_eth: Decimal | None = None
    amount_usd: Decimal | None = None
    price_usd: Decimal | None = None
    tx_hash: str | None = None
    block_number: int | None = None
    fee_paid_eth: Decimal | None = None
    fee_estimate_eth: Decimal | None = None
    error: str | None = None
    error_code: str | None = None
    failed_stage: TransferStage | None = None
    outcome_ambiguous: bool = False
    type: TransferType = TransferType.WITHDRAWAL
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: int | None = None  # assigned by the ledger on append

    def __post_init__(self):
        if self.status == TransferStatus.CONFIRMED and not self.tx_hash:
            raise ValueError("Confirmed transfer requires a transaction hash")
        if self.status == TransferStatus.FAILED and not self.error:
            raise ValueError("Failed transfer requires an error description")
