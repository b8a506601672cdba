"""Services Layer — orchestration of token operations over the ledger client.

Invariants:
    - Services hold no per-request state between calls
    - Every failure leaving a service is a classified TokenError
"""
