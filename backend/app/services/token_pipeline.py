"""Token Pipeline — delegated transfers, allowance grants and token reads over a ledger client.

Invariants:
    - Stateless per invocation: only the injected client, token address and options are held
    - Mutating flow: START → READ_DECIMALS → VALIDATE_AND_PARSE_AMOUNT → CHECK_PRECONDITION
      → SIMULATE → SUBMIT → AWAIT_CONFIRMATION → DONE; any error → FAILED, no retries
    - Addresses and amount syntax are validated before the first remote call
    - submit() is only reached after simulate() succeeded for the same call
    - Insufficient allowance detected by the precheck never reaches simulate/submit
    - Every failure is classified exactly once, here, into a TokenError
    - An on-chain revert after submission is an outcome (success=False), not an error

Design Decisions:
    - Client injected at construction (app lifespan), never a module global (ADR: no hidden state)
    - Allowance precheck is an optional fast path; the ledger re-checks authoritatively
      in simulate/submit, so disabling it only trades latency for a clearer error
"""

import logging
from contextlib import asynccontextmanager

from app.core.addresses import parse_account_address, parse_address
from app.core.amounts import (
    allowance_covers,
    check_amount_syntax,
    format_units,
    is_unlimited_allowance,
    parse_units,
)
from app.core.classify_errors import classify_failure
from app.core.domain_types import (
    Address,
    Amount,
    ConfirmationStatus,
    Decimals,
    PipelineStage,
    TokenInfo,
    TokenMetadata,
    TokenOperation,
    TransactionOutcome,
    TxHash,
)
from app.core.errors import (
    ErrorContext,
    InsufficientAllowanceError,
    LedgerFailure,
    TokenError,
    UnknownLedgerError,
)
from app.core.ledger_protocols import LedgerClient

logger = logging.getLogger(__name__)


class _Run:
    """Tracks the stage of one pipeline invocation for logging and error context."""

    def __init__(self, operation: TokenOperation):
        self.operation = operation
        self.stage = PipelineStage.START
        self.tx_hash: TxHash | None = None

    def advance(self, stage: PipelineStage) -> None:
        self.stage = stage
        logger.debug(
            f"{self.operation.value}: {stage.value}",
            extra=self.extra(),
        )

    def context(self) -> ErrorContext:
        return ErrorContext(
            operation=self.operation.value,
            stage=self.stage.value,
            tx_hash=self.tx_hash,
        )

    def extra(self, **fields) -> dict:
        return {
            "operation": self.operation.value,
            "stage": self.stage.value,
            "tx_hash": self.tx_hash,
            **fields,
        }


class TokenPipeline:
    """Executes token operations against one token contract with one signer."""

    def __init__(
        self,
        ledger: LedgerClient,
        token_address: str,
        *,
        confirmations: int = 1,
        allowance_precheck: bool = True,
    ):
        self._ledger = ledger
        self._token = parse_address(token_address, "contract_address")
        self._confirmations = confirmations
        self._allowance_precheck = allowance_precheck

    @property
    def token_address(self) -> Address:
        return self._token

    # ─── Reads ──────────────────────────────────────────────────

    async def get_token_info(self) -> TokenInfo:
        """Read name, symbol, totalSupply and decimals; totalSupply is never cached."""
        async with self._run(TokenOperation.TOKEN_INFO):
            logger.info("Fetching token info...")
            name = await self._ledger.call(self._token, "name")
            symbol = await self._ledger.call(self._token, "symbol")
            total_supply = await self._ledger.call(self._token, "totalSupply")
            decimals = await self._read_decimals()
            metadata = TokenMetadata(
                name=str(name), symbol=str(symbol), decimals=decimals,
            )
            info = TokenInfo(
                metadata=metadata,
                total_supply=format_units(int(total_supply), decimals),
            )
            logger.info(
                f"Token info fetched: {metadata.name}, {metadata.symbol}, "
                f"{info.total_supply}",
            )
            return info

    async def get_balance(self, address: str) -> str:
        """Formatted balance of `address` (the zero address is a valid read)."""
        async with self._run(TokenOperation.BALANCE):
            account = parse_address(address)
            logger.info(
                f"Fetching balance for address: {account}...",
                extra={"address": account},
            )
            balance = await self._ledger.call(self._token, "balanceOf", (account,))
            decimals = await self._read_decimals()
            formatted = format_units(int(balance), decimals)
            logger.info(f"Balance for {account}: {formatted}")
            return formatted

    # ─── Mutations ──────────────────────────────────────────────

    async def transfer_from(
        self, sender: str, recipient: str, amount: str,
    ) -> TransactionOutcome:
        """Move `amount` from `sender` to `recipient` using the signer's allowance."""
        async with self._run(TokenOperation.TRANSFER_FROM) as run:
            owner = parse_account_address(sender, "from")
            to = parse_account_address(recipient, "to")
            check_amount_syntax(amount)
            logger.info(
                f"Initiating transferFrom: {amount} tokens from {owner} to {to} "
                f"via {self._ledger.signer}",
                extra=run.extra(),
            )

            run.advance(PipelineStage.READ_DECIMALS)
            decimals = await self._read_decimals()

            run.advance(PipelineStage.VALIDATE_AND_PARSE_AMOUNT)
            value = parse_units(amount, decimals)

            if self._allowance_precheck:
                run.advance(PipelineStage.CHECK_PRECONDITION)
                await self._check_allowance(owner, value, decimals, amount)

            return await self._execute(run, "transferFrom", (owner, to, value))

    async def approve(self, spender: str, amount: str) -> TransactionOutcome:
        """Grant `spender` an allowance of `amount` from the signer's account."""
        async with self._run(TokenOperation.APPROVE) as run:
            grantee = parse_account_address(spender, "spender")
            check_amount_syntax(amount)
            logger.info(
                f"Initiating approve: {amount} tokens for {grantee} "
                f"from {self._ledger.signer}",
                extra=run.extra(),
            )

            run.advance(PipelineStage.READ_DECIMALS)
            decimals = await self._read_decimals()

            run.advance(PipelineStage.VALIDATE_AND_PARSE_AMOUNT)
            value = parse_units(amount, decimals)

            return await self._execute(run, "approve", (grantee, value))

    # ─── Steps ──────────────────────────────────────────────────

    async def _read_decimals(self) -> Decimals:
        return Decimals(int(await self._ledger.call(self._token, "decimals")))

    async def _check_allowance(
        self, owner: Address, required: Amount, decimals: Decimals, requested: str,
    ) -> None:
        signer = self._ledger.signer
        allowance = Amount(int(await self._ledger.call(
            self._token, "allowance", (owner, signer),
        )))
        shown = (
            "unlimited" if is_unlimited_allowance(allowance)
            else format_units(allowance, decimals)
        )
        logger.info(f"Current allowance for {signer} from {owner}: {shown}")
        if not allowance_covers(allowance, required):
            logger.warning(
                f"Insufficient allowance: required {required}, available {allowance}",
            )
            raise InsufficientAllowanceError(
                f"Insufficient allowance. The spender ({signer}) is not approved "
                f"for {requested} tokens from {owner}.",
            )

    async def _execute(
        self, run: _Run, function_name: str, args: tuple,
    ) -> TransactionOutcome:
        run.advance(PipelineStage.SIMULATE)
        plan = await self._ledger.simulate(
            self._ledger.signer, self._token, function_name, args,
        )

        run.advance(PipelineStage.SUBMIT)
        run.tx_hash = await self._ledger.submit(plan)

        run.advance(PipelineStage.AWAIT_CONFIRMATION)
        confirmation = await self._ledger.await_confirmation(
            run.tx_hash, self._confirmations,
        )

        run.advance(PipelineStage.DONE)
        outcome = TransactionOutcome(
            success=confirmation.status == ConfirmationStatus.SUCCESS,
            transaction_hash=run.tx_hash,
            block_number=confirmation.block_number,
        )
        if outcome.success:
            logger.info(
                f"Transaction confirmed: {outcome.transaction_hash} "
                f"in block {outcome.block_number}",
                extra=run.extra(block_number=outcome.block_number),
            )
        else:
            logger.warning(
                f"Transaction reverted on-chain: {outcome.transaction_hash} "
                f"in block {outcome.block_number}",
                extra=run.extra(block_number=outcome.block_number),
            )
        return outcome

    @asynccontextmanager
    async def _run(self, operation: TokenOperation):
        """Classify whatever escapes one invocation; TokenErrors pass through."""
        run = _Run(operation)
        try:
            yield run
        except TokenError as e:
            e.context.operation = e.context.operation or operation.value
            e.context.stage = e.context.stage or run.stage.value
            self._log_failure(run, e, detail=e.message)
            raise
        except LedgerFailure as e:
            error = classify_failure(e, operation, run.context())
            self._log_failure(run, error, detail=e.reason)
            raise error from e
        except Exception as e:
            logger.error(
                f"Unexpected error in {operation.value}: {e}",
                exc_info=True, extra=run.extra(),
            )
            context = run.context()
            run.stage = PipelineStage.FAILED
            raise UnknownLedgerError(operation.value, context=context) from e

    def _log_failure(self, run: _Run, error: TokenError, detail: str) -> None:
        failed_at = run.stage.value
        run.stage = PipelineStage.FAILED
        logger.error(
            f"{run.operation.value} failed at {failed_at}: {detail}",
            extra=run.extra(error_code=error.code.value),
        )
