"""Infrastructure Layer — ledger client and cross-cutting concerns.

Invariants:
    - Infrastructure never imports from services/ or api/
    - All remote failures leave this layer tagged as LedgerFailure
"""
