"""Token Ledger API Package — HTTP surface over an ERC-20 token on an EVM ledger.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
