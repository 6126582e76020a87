"""Minimal ABI fragments for the ERC-20 tokens and the liquidity pool."""

ERC20_ABI = [
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "allowance",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "approve",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "value", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
]


def _pool_event(name: str) -> dict:
    return {
        "name": name,
        "type": "event",
        "anonymous": False,
        "inputs": [
            {"name": "user", "type": "address", "indexed": True},
            {"name": "usdcAmount", "type": "uint256", "indexed": False},
            {"name": "bltmAmount", "type": "uint256", "indexed": False},
        ],
    }


def _pool_transfer(name: str, arg: str) -> dict:
    return {
        "name": name,
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [{"name": arg, "type": "uint256"}],
        "outputs": [],
    }


def build_pool_abi(swap_function: str, redeem_function: str) -> list[dict]:
    """Pool ABI with configurable swap/redeem function names."""
    return [
        {
            "name": "exchangeRate",
            "type": "function",
            "stateMutability": "view",
            "inputs": [],
            "outputs": [{"name": "", "type": "uint256"}],
        },
        _pool_transfer(swap_function, "usdcAmount"),
        _pool_transfer(redeem_function, "bltmAmount"),
        _pool_event("TokensSwapped"),
        _pool_event("TokensRedeemed"),
    ]
