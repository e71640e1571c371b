"""
Transfer ledger: append-only, in-memory record of every transfer attempt.

Ids are assigned at append time under a lock, so id order always matches
append order even when requests finish out of arrival order.
"""

import dataclasses
import logging
import threading

from custodian.core.exceptions import TransferNotFoundError
from custodian.models.transfer import TransferRecord

logger = logging.getLogger(__name__)


class TransferLedger:
    """Append-only transfer history. No update or delete exists."""

    def __init__(self):
        self._records: list[TransferRecord] = []
        self._by_id: dict[int, TransferRecord] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def append(self, record: TransferRecord) -> TransferRecord:
        """Store *record* under the next id and return the stored copy."""
        with self._lock:
            stored = dataclasses.replace(record, id=self._next_id)
            self._next_id += 1
            self._records.append(stored)
            self._by_id[stored.id] = stored

        logger.info(
            "Ledger #%d: %s %s -> %s (tx=%s)",
            stored.id, stored.status.value, stored.amount_eth,
            stored.destination, stored.tx_hash,
        )
        return stored

    def get(self, record_id: int) -> TransferRecord:
        record = self._by_id.get(record_id)
        if record is None:
            raise TransferNotFoundError("Transaction not found", record_id=record_id)
        return record

    def list(self, limit: int = 50, newest_first: bool = True) -> list[TransferRecord]:
        """Return the most recent *limit* records."""
        if limit <= 0:
            return []
        with self._lock:
            window = self._records[-limit:]
        return list(reversed(window)) if newest_first else list(window)
