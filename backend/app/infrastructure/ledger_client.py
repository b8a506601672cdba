"""Web3 Ledger Client — AsyncWeb3 wrapper with failure tagging for the token contract.

Invariants:
    - One endpoint, one signing identity, fixed for the process lifetime
    - Single attempt per call: no retry loops at this layer
    - Every remote failure leaves as LedgerFailure tagged with the FailureStage that saw it
    - Transport timeouts are tagged NETWORK; only receipt waits are tagged CONFIRMATION
    - Nonce assignment + signing + broadcast are serialized by one lock (no nonce reuse
      between concurrent requests); simulation and confirmation waits run concurrently
    - The private key never leaves the LocalAccount and never appears in logs or failures

Design Decisions:
    - Wrapper over raw AsyncWeb3: isolates web3 exception types from the pipeline
      (ADR: single responsibility)
    - simulate() = eth_call from the signer + gas estimation; the plan keeps the gas
      limit so submit() does not estimate twice
    - OpenZeppelin v5 custom errors decoded by 4-byte selector into their names so
      classification works for both revert strings and custom errors
"""

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from typing import Any
from urllib.parse import urlparse

import aiohttp
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import function_signature_to_4byte_selector
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import (
    ContractCustomError,
    ContractLogicError,
    InvalidAddress,
    TimeExhausted,
    Web3Exception,
    Web3RPCError,
)

from app.config import Settings
from app.core.addresses import same_address
from app.core.domain_types import (
    Address,
    CallPlan,
    Confirmation,
    ConfirmationStatus,
    FailureStage,
    TxHash,
)
from app.core.errors import LedgerFailure
from app.infrastructure.erc20_abi import ERC20_ABI, ERC20_CUSTOM_ERRORS

logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"0x[a-fA-F0-9]{40}")

_CUSTOM_ERROR_SELECTORS = {
    "0x" + function_signature_to_4byte_selector(signature).hex(): name
    for name, signature in ERC20_CUSTOM_ERRORS.items()
}


def decode_custom_error(data: str | None) -> str:
    """Name of the ERC-20 custom error whose selector prefixes `data`."""
    if not data:
        return "custom error"
    selector = data[:10].lower()
    return _CUSTOM_ERROR_SELECTORS.get(selector, f"custom error {selector}")


@asynccontextmanager
async def tag_failures(stage: FailureStage, tx_hash: str | None = None):
    """Re-raise web3/transport exceptions as LedgerFailure tagged with `stage`."""
    try:
        yield
    except LedgerFailure:
        raise
    except ContractCustomError as e:
        data = getattr(e, "data", None)
        if not isinstance(data, str):
            data = getattr(e, "message", None)
        raise LedgerFailure(stage, decode_custom_error(data), tx_hash=tx_hash) from e
    except ContractLogicError as e:
        raise LedgerFailure(
            stage, getattr(e, "message", None) or "execution reverted",
            tx_hash=tx_hash,
        ) from e
    except (TimeExhausted, asyncio.TimeoutError) as e:
        timeout_stage = (
            stage if stage == FailureStage.CONFIRMATION else FailureStage.NETWORK
        )
        raise LedgerFailure(
            timeout_stage, f"timed out: {e}", timed_out=True, tx_hash=tx_hash,
        ) from e
    except Web3RPCError as e:
        raise LedgerFailure(
            stage, getattr(e, "message", None) or str(e), tx_hash=tx_hash,
        ) from e
    except InvalidAddress as e:
        raise LedgerFailure(FailureStage.VALIDATION, f"invalid address: {e}") from e
    except (aiohttp.ClientError, OSError) as e:
        raise LedgerFailure(
            FailureStage.NETWORK, str(e) or type(e).__name__, tx_hash=tx_hash,
        ) from e
    except Web3Exception as e:
        raise LedgerFailure(stage, str(e) or type(e).__name__, tx_hash=tx_hash) from e


def _to_call_arg(value: Any) -> Any:
    """Checksum address arguments; pass everything else through."""
    if isinstance(value, str) and _ADDRESS_RE.fullmatch(value):
        return AsyncWeb3.to_checksum_address(value)
    return value


class Web3LedgerClient:
    """Read + transaction capabilities against one EVM endpoint."""

    def __init__(
        self,
        w3: AsyncWeb3,
        account: LocalAccount,
        *,
        chain_id: int,
        confirmation_timeout_seconds: float = 120.0,
        confirmation_poll_seconds: float = 1.0,
    ):
        self._w3 = w3
        self._account = account
        self._signer = Address(account.address.lower())
        self._chain_id = chain_id
        self._confirmation_timeout = confirmation_timeout_seconds
        self._poll_seconds = confirmation_poll_seconds
        self._submit_lock = asyncio.Lock()

    @property
    def signer(self) -> Address:
        return self._signer

    @property
    def chain_id(self) -> int:
        return self._chain_id

    # ─── Read capability ────────────────────────────────────────

    async def call(
        self, contract_address: Address, function_name: str, args: tuple = (),
    ) -> Any:
        """Call a view function; single attempt, failures tagged READ."""
        async with tag_failures(FailureStage.READ):
            fn = self._bind(contract_address, function_name, args)
            return await fn.call()

    # ─── Transaction capability ─────────────────────────────────

    async def simulate(
        self,
        sender: Address,
        contract_address: Address,
        function_name: str,
        args: tuple,
    ) -> CallPlan:
        """Dry-run the call as `sender` and estimate gas. Commits nothing."""
        async with tag_failures(FailureStage.SIMULATION):
            fn = self._bind(contract_address, function_name, args)
            params = {"from": AsyncWeb3.to_checksum_address(sender)}
            await fn.call(params)
            gas = await fn.estimate_gas(params)
        logger.debug(
            f"Simulated {function_name}: gas={gas}",
            extra={"stage": FailureStage.SIMULATION.value},
        )
        return CallPlan(
            sender=Address(sender.lower()),
            contract_address=contract_address,
            function_name=function_name,
            args=tuple(args),
            gas=gas,
        )

    async def submit(self, plan: CallPlan) -> TxHash:
        """Sign with the process identity and broadcast. Returns on node acceptance."""
        if not same_address(plan.sender, self._signer):
            raise ValueError("call plan was simulated for a different sender")
        async with self._submit_lock:
            async with tag_failures(FailureStage.SUBMISSION):
                fn = self._bind(plan.contract_address, plan.function_name, plan.args)
                nonce = await self._w3.eth.get_transaction_count(
                    self._account.address, "pending",
                )
                tx = await fn.build_transaction({
                    "from": self._account.address,
                    "nonce": nonce,
                    "gas": plan.gas,
                    "chainId": self._chain_id,
                })
                signed = self._account.sign_transaction(tx)
                raw_hash = await self._w3.eth.send_raw_transaction(
                    signed.raw_transaction,
                )
        tx_hash = TxHash(AsyncWeb3.to_hex(raw_hash))
        logger.info(
            f"Transaction sent: {plan.function_name}",
            extra={"tx_hash": tx_hash, "stage": FailureStage.SUBMISSION.value},
        )
        return tx_hash

    async def await_confirmation(
        self, tx_hash: TxHash, confirmations: int = 1,
    ) -> Confirmation:
        """Wait for the receipt at `confirmations` depth, bounded by the timeout."""
        async with tag_failures(FailureStage.CONFIRMATION, tx_hash=tx_hash):
            receipt = await self._w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self._confirmation_timeout,
                poll_latency=self._poll_seconds,
            )
            block_number = int(receipt["blockNumber"])
            if confirmations > 1:
                await asyncio.wait_for(
                    self._wait_for_depth(block_number, confirmations),
                    timeout=self._confirmation_timeout,
                )
        status = (
            ConfirmationStatus.SUCCESS if receipt["status"] == 1
            else ConfirmationStatus.REVERTED
        )
        return Confirmation(status=status, block_number=block_number)

    # ─── Lifecycle ──────────────────────────────────────────────

    async def is_connected(self) -> bool:
        """Check endpoint connectivity (for readiness probes)."""
        try:
            return await self._w3.is_connected()
        except Exception as e:
            logger.error(f"Ledger health check failed: {e}")
            return False

    async def close(self) -> None:
        await self._w3.provider.disconnect()

    # ─── Internals ──────────────────────────────────────────────

    def _bind(self, contract_address: Address, function_name: str, args: tuple):
        contract = self._w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(contract_address), abi=ERC20_ABI,
        )
        function = getattr(contract.functions, function_name)
        return function(*(_to_call_arg(a) for a in args))

    async def _wait_for_depth(self, block_number: int, confirmations: int) -> None:
        while await self._w3.eth.block_number - block_number + 1 < confirmations:
            await asyncio.sleep(self._poll_seconds)


async def connect_ledger(settings: Settings) -> Web3LedgerClient:
    """Build the process-wide client; raises if the endpoint or chain is wrong."""
    endpoint = urlparse(settings.rpc_url).hostname
    provider = AsyncHTTPProvider(
        settings.rpc_url,
        request_kwargs={
            "timeout": aiohttp.ClientTimeout(total=settings.rpc_timeout_seconds),
        },
    )
    w3 = AsyncWeb3(provider)
    if not await w3.is_connected():
        raise RuntimeError(f"Ledger endpoint {endpoint} is unreachable")

    chain_id = await w3.eth.chain_id
    if settings.chain_id is not None and settings.chain_id != chain_id:
        raise RuntimeError(
            f"Endpoint {endpoint} serves chain {chain_id}, "
            f"expected CHAIN_ID={settings.chain_id}",
        )

    account: LocalAccount = Account.from_key(settings.private_key.get_secret_value())
    logger.info(
        f"Targeting chain {chain_id} via {endpoint}",
        extra={"chain_id": chain_id, "signer": account.address},
    )
    return Web3LedgerClient(
        w3,
        account,
        chain_id=chain_id,
        confirmation_timeout_seconds=settings.confirmation_timeout_seconds,
        confirmation_poll_seconds=settings.confirmation_poll_seconds,
    )
