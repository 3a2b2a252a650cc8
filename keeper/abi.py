"""Minimal contract ABIs used by the keeper."""

ARBITRAGE_PARAMS_COMPONENTS = [
    {"name": "vault", "type": "address"},
    {"name": "router", "type": "address"},
    {"name": "underlying", "type": "address"},
    {"name": "yt", "type": "address"},
    {"name": "market", "type": "address"},
    {"name": "flashAmount", "type": "uint256"},
    {"name": "pyToCycle", "type": "uint256"},
    {"name": "minUnderlyingOut", "type": "uint256"},
]

ARB_CONTRACT_ABI = [
    {
        "inputs": [
            {
                "name": "params",
                "type": "tuple",
                "components": ARBITRAGE_PARAMS_COMPONENTS,
            }
        ],
        "name": "executeArb",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "owner",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
]

PENDLE_MARKET_ABI = [
    {
        "inputs": [],
        "name": "getReserves",
        "outputs": [
            {"name": "syReserve", "type": "uint256"},
            {"name": "ptReserve", "type": "uint256"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]

PENDLE_YT_ABI = [
    {
        "inputs": [],
        "name": "isExpired",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
]
