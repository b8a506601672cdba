"""Token Pipeline — stage ordering, allowance precheck, outcome vs error, classification.

Invariants:
    - Insufficient allowance detected by the precheck issues zero simulate/submit calls
    - Unlimited allowance is always sufficient and is never written by the pipeline
    - A reverted confirmation is an outcome (success=False), not an error
    - Malformed input fails before any mutating remote call
    - Confirmation timeouts are TRANSACTION_FAILED and never resubmitted
"""

import pytest

from app.core.amounts import MAX_UINT256
from app.core.domain_types import ConfirmationStatus, FailureStage
from app.core.errors import (
    AddressNotFoundError,
    ContractExecutionFailedError,
    ErrorCode,
    InsufficientAllowanceError,
    InsufficientFundsError,
    InvalidAddressError,
    LedgerFailure,
    MalformedAmountError,
    TransactionFailedError,
    UnknownLedgerError,
)
from app.services.token_pipeline import TokenPipeline

from tests.services.fake_ledger import (
    BLOCK_NUMBER,
    OWNER,
    RECIPIENT,
    SIGNER,
    TOKEN_ADDRESS,
    TX_HASH,
    WEI,
)

ZERO = "0x" + "0" * 40


def _kinds(ledger):
    return [(kind, name) for kind, name, _ in ledger.calls]


# ==============================================================================
# Reads
# ==============================================================================


async def test_token_info_formats_total_supply(pipeline, fake_ledger):
    info = await pipeline.get_token_info()

    assert info.metadata.name == "Test Token"
    assert info.metadata.symbol == "TST"
    assert info.metadata.decimals == 18
    assert info.total_supply == "1000000"
    assert fake_ledger.count("call") == 4


async def test_token_info_rereads_total_supply_each_call(pipeline, fake_ledger):
    await pipeline.get_token_info()
    fake_ledger.total_supply = 1_500_000 * WEI + WEI // 2

    info = await pipeline.get_token_info()

    assert info.total_supply == "1500000.5"


async def test_balance_is_formatted_with_decimals(pipeline):
    assert await pipeline.get_balance(OWNER) == "1000"


async def test_balance_accepts_mixed_case_address(pipeline, fake_ledger):
    checksummed = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
    assert await pipeline.get_balance(checksummed) == "1000"
    assert fake_ledger.calls[0] == ("call", "balanceOf", (OWNER,))


async def test_balance_read_failure_is_address_not_found(pipeline, fake_ledger):
    fake_ledger.read_errors["balanceOf"] = LedgerFailure(
        FailureStage.READ, "execution reverted",
    )

    with pytest.raises(AddressNotFoundError) as exc_info:
        await pipeline.get_balance(OWNER)

    assert exc_info.value.http_status == 404


async def test_balance_rejects_malformed_address_without_remote_call(
    pipeline, fake_ledger,
):
    with pytest.raises(InvalidAddressError):
        await pipeline.get_balance("0x1234")
    assert fake_ledger.calls == []


async def test_token_info_failure_is_unknown_and_hides_reason(
    pipeline, fake_ledger,
):
    fake_ledger.read_errors["name"] = LedgerFailure(
        FailureStage.NETWORK, "connect to https://rpc.example/KEY123 refused",
    )

    with pytest.raises(UnknownLedgerError) as exc_info:
        await pipeline.get_token_info()

    error = exc_info.value
    assert error.http_status == 500
    assert "KEY123" not in str(error.to_response())


# ==============================================================================
# transfer_from: happy paths
# ==============================================================================


async def test_transfer_runs_precheck_simulate_submit_confirm(
    pipeline, fake_ledger,
):
    outcome = await pipeline.transfer_from(OWNER, RECIPIENT, "100")

    assert outcome.success is True
    assert outcome.transaction_hash == TX_HASH
    assert outcome.block_number == BLOCK_NUMBER
    assert _kinds(fake_ledger) == [
        ("call", "decimals"),
        ("call", "allowance"),
        ("simulate", "transferFrom"),
        ("submit", "transferFrom"),
        ("confirm", TX_HASH),
    ]


async def test_transfer_reads_allowance_for_signer_and_scales_amount(
    pipeline, fake_ledger,
):
    await pipeline.transfer_from(OWNER, RECIPIENT, "100.25")

    assert ("call", "allowance", (OWNER, SIGNER)) in fake_ledger.calls
    simulate = next(c for c in fake_ledger.calls if c[0] == "simulate")
    assert simulate[2] == (OWNER, RECIPIENT, 100_250_000_000_000_000_000)


async def test_transfer_with_allowance_exactly_equal_succeeds(fake_ledger):
    fake_ledger.allowances[(OWNER, SIGNER)] = 100 * WEI
    pipeline = TokenPipeline(fake_ledger, TOKEN_ADDRESS)

    outcome = await pipeline.transfer_from(OWNER, RECIPIENT, "100")

    assert outcome.success is True
    assert fake_ledger.allowance_of(OWNER, SIGNER) == 0


async def test_transfer_with_unlimited_allowance_leaves_it_unchanged(fake_ledger):
    fake_ledger.allowances[(OWNER, SIGNER)] = MAX_UINT256
    fake_ledger.balances[OWNER] = 10**12 * WEI
    pipeline = TokenPipeline(fake_ledger, TOKEN_ADDRESS)

    outcome = await pipeline.transfer_from(OWNER, RECIPIENT, "999999999999")

    assert outcome.success is True
    assert fake_ledger.allowance_of(OWNER, SIGNER) == MAX_UINT256
    submitted = [c[1] for c in fake_ledger.calls if c[0] in ("simulate", "submit")]
    assert submitted == ["transferFrom", "transferFrom"]


async def test_transfer_reverted_on_chain_is_unsuccessful_outcome(
    pipeline, fake_ledger,
):
    fake_ledger.confirmation_status = ConfirmationStatus.REVERTED

    outcome = await pipeline.transfer_from(OWNER, RECIPIENT, "100")

    assert outcome.success is False
    assert outcome.transaction_hash == TX_HASH
    assert outcome.block_number == BLOCK_NUMBER
    assert fake_ledger.balances[OWNER] == 1000 * WEI


async def test_transfer_waits_for_configured_confirmations(fake_ledger):
    pipeline = TokenPipeline(fake_ledger, TOKEN_ADDRESS, confirmations=3)

    await pipeline.transfer_from(OWNER, RECIPIENT, "1")

    assert ("confirm", TX_HASH, (3,)) in fake_ledger.calls


# ==============================================================================
# transfer_from: precondition and validation failures
# ==============================================================================


async def test_allowance_one_unit_short_fails_before_simulate(fake_ledger):
    fake_ledger.allowances[(OWNER, SIGNER)] = 100 * WEI - 1
    pipeline = TokenPipeline(fake_ledger, TOKEN_ADDRESS)

    with pytest.raises(InsufficientAllowanceError) as exc_info:
        await pipeline.transfer_from(OWNER, RECIPIENT, "100")

    assert exc_info.value.http_status == 403
    assert exc_info.value.context.stage == "check_precondition"
    assert fake_ledger.count("simulate") == 0
    assert fake_ledger.count("submit") == 0


async def test_allowance_of_fifty_rejects_transfer_of_hundred(fake_ledger):
    fake_ledger.allowances[(OWNER, SIGNER)] = 50 * WEI
    pipeline = TokenPipeline(fake_ledger, TOKEN_ADDRESS)

    with pytest.raises(InsufficientAllowanceError) as exc_info:
        await pipeline.transfer_from(OWNER, RECIPIENT, "100")

    assert exc_info.value.code == ErrorCode.INSUFFICIENT_ALLOWANCE
    assert SIGNER in exc_info.value.message
    assert fake_ledger.count("simulate") == 0
    assert fake_ledger.count("submit") == 0


@pytest.mark.parametrize("amount", ["abc", "", "1e18", "-5", "1.", ".5", " 1", "1,5"])
async def test_malformed_amount_makes_no_remote_call(pipeline, fake_ledger, amount):
    with pytest.raises(MalformedAmountError):
        await pipeline.transfer_from(OWNER, RECIPIENT, amount)
    assert fake_ledger.calls == []


async def test_too_many_fractional_digits_never_simulates(pipeline, fake_ledger):
    with pytest.raises(MalformedAmountError):
        await pipeline.transfer_from(OWNER, RECIPIENT, "1.0000000000000000001")

    assert _kinds(fake_ledger) == [("call", "decimals")]


async def test_oversized_amount_is_malformed_not_unknown(pipeline, fake_ledger):
    with pytest.raises(MalformedAmountError):
        await pipeline.transfer_from(OWNER, RECIPIENT, "9" * 5000)

    assert fake_ledger.count("simulate") == 0
    assert fake_ledger.count("submit") == 0


@pytest.mark.parametrize("sender,recipient", [
    (ZERO, RECIPIENT),
    (OWNER, ZERO),
    ("0xnot-an-address", RECIPIENT),
])
async def test_invalid_or_zero_address_rejected_without_remote_call(
    pipeline, fake_ledger, sender, recipient,
):
    with pytest.raises(InvalidAddressError):
        await pipeline.transfer_from(sender, recipient, "1")
    assert fake_ledger.calls == []


# ==============================================================================
# transfer_from: ledger failures
# ==============================================================================


async def test_simulation_balance_revert_is_insufficient_funds(
    pipeline, fake_ledger,
):
    fake_ledger.simulate_error = LedgerFailure(
        FailureStage.SIMULATION,
        "execution reverted: ERC20: transfer amount exceeds balance",
    )

    with pytest.raises(InsufficientFundsError):
        await pipeline.transfer_from(OWNER, RECIPIENT, "100")
    assert fake_ledger.count("submit") == 0


async def test_simulation_generic_revert_is_contract_execution_failed(
    pipeline, fake_ledger,
):
    fake_ledger.simulate_error = LedgerFailure(
        FailureStage.SIMULATION, "execution reverted: Pausable: paused",
    )

    with pytest.raises(ContractExecutionFailedError) as exc_info:
        await pipeline.transfer_from(OWNER, RECIPIENT, "100")

    assert exc_info.value.context.stage == "simulate"
    assert "Pausable" not in exc_info.value.message
    assert fake_ledger.count("submit") == 0


async def test_confirmation_timeout_is_transaction_failed_without_resubmit(
    pipeline, fake_ledger,
):
    fake_ledger.confirm_error = LedgerFailure(
        FailureStage.CONFIRMATION, "timed out", timed_out=True, tx_hash=TX_HASH,
    )

    with pytest.raises(TransactionFailedError) as exc_info:
        await pipeline.transfer_from(OWNER, RECIPIENT, "100")

    assert exc_info.value.context.tx_hash == TX_HASH
    assert exc_info.value.context.stage == "await_confirmation"
    assert fake_ledger.count("submit") == 1


async def test_network_failure_on_submit_is_transaction_failed(
    pipeline, fake_ledger,
):
    fake_ledger.submit_error = LedgerFailure(
        FailureStage.NETWORK, "Cannot connect to host",
    )

    with pytest.raises(TransactionFailedError):
        await pipeline.transfer_from(OWNER, RECIPIENT, "100")


async def test_unexpected_exception_is_unknown_error(pipeline, fake_ledger):
    fake_ledger.simulate_error = RuntimeError("boom")

    with pytest.raises(UnknownLedgerError) as exc_info:
        await pipeline.transfer_from(OWNER, RECIPIENT, "100")

    assert exc_info.value.message == "Failed during transfer_from"
    assert exc_info.value.context.stage == "simulate"


async def test_precheck_disabled_trusts_simulation(fake_ledger):
    fake_ledger.allowances[(OWNER, SIGNER)] = 0
    fake_ledger.simulate_error = LedgerFailure(
        FailureStage.SIMULATION, "ERC20InsufficientAllowance",
    )
    pipeline = TokenPipeline(
        fake_ledger, TOKEN_ADDRESS, allowance_precheck=False,
    )

    with pytest.raises(InsufficientAllowanceError):
        await pipeline.transfer_from(OWNER, RECIPIENT, "100")

    assert ("call", "allowance") not in _kinds(fake_ledger)
    assert fake_ledger.count("simulate") == 1
    assert fake_ledger.count("submit") == 0


# ==============================================================================
# approve
# ==============================================================================


async def test_approve_simulates_and_submits_without_precheck(
    pipeline, fake_ledger,
):
    outcome = await pipeline.approve(RECIPIENT, "250.5")

    assert outcome.success is True
    assert _kinds(fake_ledger) == [
        ("call", "decimals"),
        ("simulate", "approve"),
        ("submit", "approve"),
        ("confirm", TX_HASH),
    ]
    assert fake_ledger.allowance_of(SIGNER, RECIPIENT) == 250_500_000_000_000_000_000


async def test_approve_zero_spender_is_invalid_address(pipeline, fake_ledger):
    with pytest.raises(InvalidAddressError):
        await pipeline.approve(ZERO, "1")
    assert fake_ledger.calls == []


async def test_approve_reverted_returns_unsuccessful_outcome(pipeline, fake_ledger):
    fake_ledger.confirmation_status = ConfirmationStatus.REVERTED

    outcome = await pipeline.approve(RECIPIENT, "1")

    assert outcome.success is False
    assert fake_ledger.allowance_of(SIGNER, RECIPIENT) == 0
