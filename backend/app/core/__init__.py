"""Core Layer — pure domain logic: types, amount codec, error taxonomy, classification.

Invariants:
    - No module in core/ imports from services/, api/, or infrastructure/
    - No IO; ledger access only through the Protocols in ledger_protocols.py
"""
