"""ERC-20 ABI — the subset of the token contract interface this service calls.

Invariants:
    - Function signatures match the deployed contract (name, symbol, decimals,
      totalSupply, balanceOf, allowance, transferFrom, approve)
    - Custom error signatures are OpenZeppelin v5 (IERC20Errors)
"""


def _fn(name, inputs, outputs, mutability):
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": "", "type": t} for t in outputs],
        "stateMutability": mutability,
    }


def _event(name, inputs):
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [
            {"name": n, "type": t, "indexed": indexed} for n, t, indexed in inputs
        ],
    }


ERC20_ABI = [
    _fn("name", [], ["string"], "view"),
    _fn("symbol", [], ["string"], "view"),
    _fn("decimals", [], ["uint8"], "view"),
    _fn("totalSupply", [], ["uint256"], "view"),
    _fn("balanceOf", [("account", "address")], ["uint256"], "view"),
    _fn(
        "allowance", [("owner", "address"), ("spender", "address")],
        ["uint256"], "view",
    ),
    _fn(
        "transferFrom",
        [("from", "address"), ("to", "address"), ("value", "uint256")],
        ["bool"], "nonpayable",
    ),
    _fn(
        "approve", [("spender", "address"), ("value", "uint256")],
        ["bool"], "nonpayable",
    ),
    _event("Transfer", [
        ("from", "address", True), ("to", "address", True),
        ("value", "uint256", False),
    ]),
    _event("Approval", [
        ("owner", "address", True), ("spender", "address", True),
        ("value", "uint256", False),
    ]),
]

# Name → canonical signature, used to decode custom-error reverts by selector.
ERC20_CUSTOM_ERRORS = {
    "ERC20InsufficientBalance": "ERC20InsufficientBalance(address,uint256,uint256)",
    "ERC20InsufficientAllowance": "ERC20InsufficientAllowance(address,uint256,uint256)",
    "ERC20InvalidSender": "ERC20InvalidSender(address)",
    "ERC20InvalidReceiver": "ERC20InvalidReceiver(address)",
    "ERC20InvalidApprover": "ERC20InvalidApprover(address)",
    "ERC20InvalidSpender": "ERC20InvalidSpender(address)",
}
