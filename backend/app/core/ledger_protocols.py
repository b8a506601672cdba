"""Boundary Protocols — contracts between the pipeline and the ledger client.

Invariants:
    - Pipeline NEVER imports from infrastructure — dependency arrows point inward only
    - Every remote interaction goes through LedgerReader / LedgerWriter
    - Implementations raise LedgerFailure (tagged with a FailureStage) and nothing else
      for remote failures; no retries inside these calls

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - Two capability groups: read-only calls vs the three-phase transaction path
"""

from typing import Any, Protocol

from app.core.domain_types import Address, CallPlan, Confirmation, TxHash


class LedgerReader(Protocol):
    """Read capability — view-function calls against current state."""
    async def call(
        self, contract_address: Address, function_name: str, args: tuple = (),
    ) -> Any: ...


class LedgerWriter(Protocol):
    """Transaction capability — simulate, submit, await confirmation."""

    @property
    def signer(self) -> Address: ...

    async def simulate(
        self,
        sender: Address,
        contract_address: Address,
        function_name: str,
        args: tuple,
    ) -> CallPlan: ...

    async def submit(self, plan: CallPlan) -> TxHash: ...

    async def await_confirmation(
        self, tx_hash: TxHash, confirmations: int = 1,
    ) -> Confirmation: ...


class LedgerClient(LedgerReader, LedgerWriter, Protocol):
    """Both capabilities bound to one endpoint and one signing identity."""
    async def is_connected(self) -> bool: ...
