"""Domain models for the custodian transfer service."""

from custodian.models.transfer import (
    TransferRecord,
    TransferStage,
    TransferStatus,
    TransferType,
)

__all__ = [
    "TransferRecord", "TransferStage", "TransferStatus", "TransferType",
]
