"""Root conftest — shared test configuration."""

import os

# Ensure tests never use a real key or endpoint (hardhat account #0, local node)
os.environ.setdefault("RPC_URL", "http://127.0.0.1:8545")
os.environ.setdefault(
    "PRIVATE_KEY",
    "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
)
os.environ.setdefault(
    "CONTRACT_ADDRESS", "0x5FbDB2315678afecb367f032d93F642f64180aa3",
)
