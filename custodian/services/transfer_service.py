"""
Transfer pipeline: moves funds out of the custodial account.

Per request, strictly in order:
  1. Validated            destination is 0x + 40 hex, before any network call
  2. AmountResolved       explicit ETH, else USD / price; percentage overrides
  3. FeeQuoted            gas price x gas limit x safety multiplier
  4. SufficiencyChecked   amount + fee <= live balance (fresh read, never cache)
  5. Submitted            signed EIP-1559 transfer through the live endpoint
  6. Confirmed            single-inclusion wait, actual fee from the receipt

Every request ends in exactly one ledger record: ``confirmed`` on success,
``failed`` with the stage and error otherwise. Steps 2-6 run under a
per-account lock so two requests never pass the sufficiency check against
the same observed balance.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext

from custodian.core.exceptions import (
    ConfirmationFailedError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidDestinationError,
    NetworkRequestError,
    SigningUnavailableError,
    SubmissionFailedError,
    TransferError,
)
from custodian.models.transfer import TransferRecord, TransferStage, TransferStatus
from custodian.services.chain_client import ChainHandle, error_code, eth_to_wei, wei_to_eth
from custodian.services.endpoint_selector import EndpointSelector
from custodian.services.ledger_service import TransferLedger
from custodian.services.price_service import PriceState

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
WEI_QUANTUM = Decimal("1e-18")
GWEI = 10**9
# uint256 wei fits in 78 digits
AMOUNT_PRECISION = 78

DEFAULT_FEE_RESERVE = Decimal("0.003")
DEFAULT_WITHDRAW_BUFFER = Decimal("0.0005")


# ---------------------------------------------------------------------------
# Request / result
# ---------------------------------------------------------------------------


@dataclass
class TransferRequest:
    """
    Caller intent. Exactly one amount rule applies (see resolve_amount).

    Amounts may arrive as raw strings; the pipeline parses them so that a
    malformed value is rejected and recorded like any other bad amount.
    """
    destination: str | None
    amount_eth: Decimal | str | None = None
    amount_usd: Decimal | str | None = None
    percentage: Decimal | str | None = None


@dataclass(frozen=True)
class TransferResult:
    record_id: int
    tx_hash: str
    destination: str
    amount_eth: Decimal
    amount_usd: Decimal
    price_usd: Decimal
    fee_estimate_eth: Decimal
    fee_paid_eth: Decimal
    block_number: int


@dataclass
class _Attempt:
    """Mutable progress of one request, used to build its ledger record."""
    destination: str | None
    stage: TransferStage = TransferStage.RECEIVED
    amount_eth: Decimal | None = None
    fee_estimate_eth: Decimal | None = None
    tx_hash: str | None = None
    ambiguous: bool = False


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class TransferPipeline:
    """Single entry point for every outbound transfer."""

    def __init__(
        self,
        selector: EndpointSelector,
        price_state: PriceState,
        ledger: TransferLedger,
        custody_address: str,
        signing_enabled: bool = True,
        fee_reserve: Decimal = DEFAULT_FEE_RESERVE,
        gas_limit: int = 21000,
        fee_multiplier: int = 2,
        priority_fee_gwei: Decimal = Decimal("2"),
        withdraw_buffer: Decimal = DEFAULT_WITHDRAW_BUFFER,
    ):
        self.selector = selector
        self.price_state = price_state
        self.ledger = ledger
        self.custody_address = custody_address
        self.signing_enabled = signing_enabled
        self.fee_reserve = fee_reserve
        self.gas_limit = gas_limit
        self.fee_multiplier = fee_multiplier
        self.priority_fee_wei = int(priority_fee_gwei * GWEI)
        self.withdraw_buffer = withdraw_buffer
        self._submission_lock = asyncio.Lock()

    # ── Public entry point ───────────────────────────────────────────────

    async def execute(self, request: TransferRequest) -> TransferResult:
        """
        Run the pipeline for *request*.

        Raises a TransferError subclass on any rejection or failure; the
        error's ``record_id`` points at the ``failed`` ledger record.
        """
        attempt = _Attempt(destination=request.destination)
        logger.info(
            "Transfer request: to=%s eth=%s usd=%s pct=%s",
            request.destination, request.amount_eth, request.amount_usd, request.percentage,
        )

        try:
            attempt.stage = TransferStage.VALIDATED
            attempt.destination = self.validate_destination(request.destination)

            async with self._submission_lock:
                return await self._run(request, attempt)
        except TransferError as exc:
            record = self._record_failure(attempt, exc.message, exc.code)
            exc.record_id = record.id
            raise
        except asyncio.CancelledError:
            if attempt.tx_hash:
                logger.warning(
                    "AMBIGUOUS OUTCOME: confirmation wait for %s abandoned; "
                    "transfer may still confirm", attempt.tx_hash,
                )
                attempt.ambiguous = True
                self._record_failure(attempt, "Confirmation wait cancelled", "CONFIRMATION_CANCELLED")
            elif attempt.stage in (TransferStage.SUBMITTED, TransferStage.CONFIRMED):
                logger.warning(
                    "AMBIGUOUS OUTCOME: submission to %s abandoned; "
                    "transaction may have been broadcast", attempt.destination,
                )
                attempt.ambiguous = True
                self._record_failure(attempt, "Submission cancelled", "SUBMISSION_CANCELLED")
            else:
                self._record_failure(attempt, "Request cancelled", "CANCELLED")
            raise

    # ── Steps ────────────────────────────────────────────────────────────

    @staticmethod
    def validate_destination(destination: str | None) -> str:
        if not destination:
            raise InvalidDestinationError("Destination address is required")
        if not ADDRESS_PATTERN.match(destination):
            raise InvalidDestinationError(
                "Invalid destination address", destination=destination,
            )
        return destination

    @staticmethod
    def parse_amount(value: Decimal | str | None, field: str) -> Decimal | None:
        """Decimal for *value*; blank means absent, anything unparseable is rejected."""
        if value is None:
            return None
        if not isinstance(value, Decimal):
            text = str(value).strip()
            if not text:
                return None
            try:
                value = Decimal(text)
            except InvalidOperation:
                raise InvalidAmountError(f"Invalid {field}", **{field: text}) from None
        if not value.is_finite():
            raise InvalidAmountError(f"Invalid {field}", **{field: str(value)})
        return value

    @classmethod
    def parse_request(cls, request: TransferRequest) -> TransferRequest:
        return TransferRequest(
            destination=request.destination,
            amount_eth=cls.parse_amount(request.amount_eth, "amount_eth"),
            amount_usd=cls.parse_amount(request.amount_usd, "amount_usd"),
            percentage=cls.parse_amount(request.percentage, "percentage"),
        )

    @staticmethod
    def check_percentage(pct: Decimal) -> None:
        if not Decimal("0") < pct <= Decimal("100"):
            raise InvalidAmountError(
                "Percentage must be greater than 0 and at most 100", percentage=pct,
            )

    def resolve_amount(
        self,
        request: TransferRequest,
        price: Decimal,
        live_balance: Decimal | None = None,
    ) -> Decimal:
        """
        Resolve the base-asset amount.

        Percentage wins over any explicit amount and needs *live_balance*
        (callers check its range first); otherwise an explicit ETH amount
        is used as-is, else USD / price. Amounts too large to express in
        wei are rejected.
        """
        if request.percentage is not None:
            if live_balance is None:
                raise ValueError("percentage resolution needs the live balance")
            amount = request.percentage / Decimal("100") * (live_balance - self.fee_reserve)
        elif request.amount_eth is not None:
            amount = request.amount_eth
        elif request.amount_usd is not None:
            if price <= 0:
                raise InvalidAmountError("No usable price for USD conversion", price=price)
            with localcontext() as ctx:
                ctx.prec = AMOUNT_PRECISION
                amount = request.amount_usd / price
            logger.info("Converted $%s -> %.6f ETH @ $%s", request.amount_usd, amount, price)
        else:
            raise InvalidAmountError("Invalid amount: provide amount, amountUSD or percentage")

        try:
            with localcontext() as ctx:
                ctx.prec = AMOUNT_PRECISION
                amount = amount.quantize(WEI_QUANTUM, rounding=ROUND_DOWN)
        except InvalidOperation:
            raise InvalidAmountError("Amount out of range", amount=amount) from None
        if amount <= 0:
            raise InvalidAmountError("Invalid amount", amount=amount)
        return amount

    def estimate_fee(self, gas_price: int) -> Decimal:
        return wei_to_eth(gas_price * self.gas_limit * self.fee_multiplier)

    async def _run(self, request: TransferRequest, attempt: _Attempt) -> TransferResult:
        handle: ChainHandle | None = None
        price = self.price_state.price

        # 2. Amount
        attempt.stage = TransferStage.AMOUNT_RESOLVED
        request = self.parse_request(request)
        if request.percentage is not None:
            self.check_percentage(request.percentage)
            handle = await self._acquire()
            balance = await self._read_balance(handle)
            amount = self.resolve_amount(request, price, balance)
            logger.info("%s%% of %.6f ETH = %.6f ETH", request.percentage, balance, amount)
        else:
            amount = self.resolve_amount(request, price)
        attempt.amount_eth = amount

        # 3. Fee
        attempt.stage = TransferStage.FEE_QUOTED
        if handle is None:
            handle = await self._acquire()
        gas_price = await self._network_call(handle.get_gas_price(), "gas price")
        fee_estimate = self.estimate_fee(gas_price)
        attempt.fee_estimate_eth = fee_estimate
        logger.info("Gas estimate: %.6f ETH via %s", fee_estimate, handle.label)

        # 4. Sufficiency (live balance, never the cache)
        attempt.stage = TransferStage.SUFFICIENCY_CHECKED
        balance = await self._read_balance(handle)
        total_needed = amount + fee_estimate
        if total_needed > balance:
            max_withdrawable = max(Decimal("0"), balance - fee_estimate - self.withdraw_buffer)
            logger.warning(
                "Insufficient balance: need %.6f ETH, have %.6f ETH", total_needed, balance,
            )
            raise InsufficientFundsError(
                "Insufficient balance (need amount + gas)",
                available=balance,
                requested=amount,
                fee_estimate=fee_estimate,
                total_needed=total_needed,
                max_withdrawable=max_withdrawable,
                price=price,
            )

        # 5. Submit
        attempt.stage = TransferStage.SUBMITTED
        if not self.signing_enabled:
            raise SigningUnavailableError("Custodial signing key is not configured")
        max_fee = gas_price * self.fee_multiplier
        try:
            tx_hash = await handle.send_transfer(
                to=attempt.destination,
                value_wei=eth_to_wei(amount),
                max_fee_per_gas=max_fee,
                max_priority_fee_per_gas=min(self.priority_fee_wei, max_fee),
                gas_limit=self.gas_limit,
            )
        except Exception as exc:
            raise SubmissionFailedError(
                str(exc) or type(exc).__name__, code=error_code(exc),
            ) from exc
        attempt.tx_hash = tx_hash
        logger.info("TX submitted: %s", tx_hash)

        # 6. Confirm
        attempt.stage = TransferStage.CONFIRMED
        try:
            receipt = await handle.wait_for_receipt(tx_hash)
        except Exception as exc:
            attempt.ambiguous = True
            logger.warning(
                "AMBIGUOUS OUTCOME: %s submitted but confirmation failed: %s", tx_hash, exc,
            )
            raise ConfirmationFailedError(
                str(exc) or type(exc).__name__, code=error_code(exc), tx_hash=tx_hash,
            ) from exc
        if not receipt.succeeded:
            raise ConfirmationFailedError(
                "Transaction reverted", tx_hash=tx_hash, block_number=receipt.block_number,
            )

        record = self.ledger.append(TransferRecord(
            status=TransferStatus.CONFIRMED,
            destination=attempt.destination,
            amount_eth=amount,
            amount_usd=amount * price,
            price_usd=price,
            tx_hash=tx_hash,
            block_number=receipt.block_number,
            fee_paid_eth=receipt.fee_paid_eth,
            fee_estimate_eth=fee_estimate,
        ))
        logger.info(
            "TRANSACTION CONFIRMED: %.6f ETH to %s in block %d (tx %s)",
            amount, attempt.destination, receipt.block_number, tx_hash,
        )
        return TransferResult(
            record_id=record.id,
            tx_hash=tx_hash,
            destination=attempt.destination,
            amount_eth=amount,
            amount_usd=amount * price,
            price_usd=price,
            fee_estimate_eth=fee_estimate,
            fee_paid_eth=receipt.fee_paid_eth,
            block_number=receipt.block_number,
        )

    # ── Helpers ──────────────────────────────────────────────────────────

    async def _acquire(self) -> ChainHandle:
        if not self.custody_address:
            raise SigningUnavailableError("Custodial account is not configured")
        return await self.selector.acquire_live_endpoint()

    async def _read_balance(self, handle: ChainHandle) -> Decimal:
        return await self._network_call(handle.get_balance(self.custody_address), "balance")

    @staticmethod
    async def _network_call(awaitable, what: str):
        try:
            return await awaitable
        except Exception as exc:
            raise NetworkRequestError(
                f"Failed to read {what}: {exc}", code=error_code(exc),
            ) from exc

    def _record_failure(self, attempt: _Attempt, message: str, code: str) -> TransferRecord:
        price = self.price_state.price
        amount = attempt.amount_eth
        logger.warning("Transfer failed at %s: [%s] %s", attempt.stage.value, code, message)
        return self.ledger.append(TransferRecord(
            status=TransferStatus.FAILED,
            destination=attempt.destination,
            amount_eth=amount,
            amount_usd=amount * price if amount is not None else None,
            price_usd=price,
            tx_hash=attempt.tx_hash,
            fee_estimate_eth=attempt.fee_estimate_eth,
            error=message,
            error_code=code,
            failed_stage=attempt.stage,
            outcome_ambiguous=attempt.ambiguous,
        ))
