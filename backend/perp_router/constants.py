"""
Chain Constants and ABI Definitions

Token table, price-feed ids and the minimal contract ABIs used by the
price feeds, venue adapters and registry clients on Cronos.
"""

from typing import Dict, Tuple

CHAIN_ID_CRONOS = 25

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Token symbol -> (address, decimals). Aliases resolve to the wrapped token.
TOKENS: Dict[str, Tuple[str, int]] = {
    "WCRO": ("0x5C7F8A570d578ED84E63fdFA7b1eE72dEae1AE23", 18),
    "CRO": ("0x5C7F8A570d578ED84E63fdFA7b1eE72dEae1AE23", 18),
    "USDC": ("0xc21223249CA28397B4B6541dfFaEcC539BfF0c59", 6),
    "USD": ("0xc21223249CA28397B4B6541dfFaEcC539BfF0c59", 6),  # Priced against USDC
    "WETH": ("0xe44Fd7fCb2b1581822D0c862B68222998a0c299a", 18),
    "ETH": ("0xe44Fd7fCb2b1581822D0c862B68222998a0c299a", 18),
    "WBTC": ("0x062E66477Faf219F25D27dCED647BF57C3107d52", 8),
    "BTC": ("0x062E66477Faf219F25D27dCED647BF57C3107d52", 8),
    "DAI": ("0xF2001B145b43032AAF5Ee2884e456CCd805F677D", 18),
    "USDT": ("0x66e428c3f67a68878562e79A0234c1F83c208770", 6),
}

# Pyth price feed ids (https://pyth.network/developers/price-feed-ids)
PYTH_FEED_IDS: Dict[str, str] = {
    "BTC/USD": "0xe62df6c8b4a85fe1a67db44dc12de5db330f7ac66b72dc658afedf0f4a415b43",
    "ETH/USD": "0xff61491a931112ddf1bd8147cd1b641375f79f5825126d665480874634fd0ace",
    "CRO/USD": "0x23199c2bcb1303f667e733b9934db9eca5991e765b45f5ed18bc4b231415f2fe",
    "USDC/USD": "0xeaa020c61cc479712813461ce153894a96a6c00b21ed0cfc2798d1f9a9e9c94a",
}

DEFAULT_SYMBOLS = ("BTC/USD", "ETH/USD", "CRO/USD")

# Perp contracts quote USD values with 30 decimals (GMX convention)
PRICE_PRECISION_DECIMALS = 30
COLLATERAL_DECIMALS = 6

# Fulcrom (gTrade fork) pair indexes and 10-decimal price precision
FULCROM_PAIR_INDEX: Dict[str, int] = {
    "BTC-USD": 0,
    "ETH-USD": 1,
    "CRO-USD": 2,
}
FULCROM_PRICE_DECIMALS = 10

# Returned by get_venues() when no venues are configured
FALLBACK_VENUES = [
    {
        "id": "moonlander",
        "name": "Moonlander",
        "chain": "cronos",
        "reputation_score": 95.0,
        "success_rate": 0.98,
        "avg_latency_ms": 250,
        "max_leverage": 50,
        "trading_fee_bps": 10,
        "total_volume": 0.0,
    },
    {
        "id": "gmx-cronos",
        "name": "GMX (Cronos)",
        "chain": "cronos",
        "reputation_score": 88.0,
        "success_rate": 0.96,
        "avg_latency_ms": 300,
        "max_leverage": 30,
        "trading_fee_bps": 15,
        "total_volume": 0.0,
    },
]


def _fn(name, inputs, outputs=(), mutability="view", payable=False):
    """Build a minimal ABI function entry from (name, type) pairs"""
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in outputs],
        "stateMutability": "payable" if payable else mutability,
    }


# UniswapV2-style router (VVS Finance, MM Finance)
AMM_ROUTER_ABI = [
    _fn(
        "getAmountsOut",
        [("amountIn", "uint256"), ("path", "address[]")],
        [("amounts", "uint256[]")],
    ),
]

# Chainlink-style price feed (Fulcrom)
PRICE_FEED_ABI = [
    _fn("getPrice", [("token", "address")], [("", "uint256")]),
]

# GMX-v1 style perpetual vault (Moonlander)
MOONLANDER_PERP_ABI = [
    _fn(
        "openPosition",
        [
            ("token", "address"),
            ("isLong", "bool"),
            ("collateralDelta", "uint256"),
            ("sizeDelta", "uint256"),
            ("acceptablePrice", "uint256"),
        ],
        [("", "bytes32")],
        mutability="nonpayable",
    ),
    _fn(
        "closePosition",
        [("positionKey", "bytes32"), ("sizeDelta", "uint256"), ("acceptablePrice", "uint256")],
        [("", "uint256")],
        mutability="nonpayable",
    ),
    _fn(
        "getPosition",
        [("account", "address"), ("token", "address"), ("isLong", "bool")],
        [
            ("size", "uint256"),
            ("collateral", "uint256"),
            ("averagePrice", "uint256"),
            ("entryFundingRate", "uint256"),
            ("reserveAmount", "uint256"),
            ("realisedPnl", "int256"),
            ("lastIncreasedTime", "uint256"),
        ],
    ),
    _fn(
        "getPositionKey",
        [("account", "address"), ("indexToken", "address"), ("isLong", "bool")],
        [("", "bytes32")],
        mutability="pure",
    ),
    _fn("getMaxPrice", [("token", "address")], [("", "uint256")]),
    _fn("getMinPrice", [("token", "address")], [("", "uint256")]),
    {
        "type": "event",
        "name": "IncreasePosition",
        "anonymous": False,
        "inputs": [
            {"name": "key", "type": "bytes32", "indexed": False},
            {"name": "account", "type": "address", "indexed": False},
            {"name": "indexToken", "type": "address", "indexed": False},
            {"name": "collateralDelta", "type": "uint256", "indexed": False},
            {"name": "sizeDelta", "type": "uint256", "indexed": False},
            {"name": "isLong", "type": "bool", "indexed": False},
            {"name": "price", "type": "uint256", "indexed": False},
            {"name": "fee", "type": "uint256", "indexed": False},
        ],
    },
]

GMX_EXCHANGE_ROUTER_ABI = [
    _fn(
        "createIncreaseOrder",
        [
            ("path", "address[]"),
            ("indexToken", "address"),
            ("amountIn", "uint256"),
            ("minOut", "uint256"),
            ("sizeDelta", "uint256"),
            ("isLong", "bool"),
            ("triggerPrice", "uint256"),
            ("triggerAboveThreshold", "bool"),
            ("executionFee", "uint256"),
        ],
        payable=True,
    ),
    _fn(
        "createDecreaseOrder",
        [
            ("indexToken", "address"),
            ("sizeDelta", "uint256"),
            ("collateralToken", "address"),
            ("collateralDelta", "uint256"),
            ("isLong", "bool"),
            ("triggerPrice", "uint256"),
            ("triggerAboveThreshold", "bool"),
        ],
        payable=True,
    ),
]

GMX_READER_ABI = [
    _fn(
        "getPosition",
        [
            ("account", "address"),
            ("collateralToken", "address"),
            ("indexToken", "address"),
            ("isLong", "bool"),
        ],
        [
            ("size", "uint256"),
            ("collateral", "uint256"),
            ("averagePrice", "uint256"),
            ("entryFundingRate", "uint256"),
            ("reserveAmount", "uint256"),
            ("realisedPnl", "uint256"),
            ("hasProfit", "bool"),
            ("lastIncreasedTime", "uint256"),
        ],
    ),
]

GMX_VAULT_ABI = [
    _fn("getMaxPrice", [("token", "address")], [("", "uint256")]),
    _fn("getMinPrice", [("token", "address")], [("", "uint256")]),
]

# GMX requires an execution fee with every order (wei)
GMX_EXECUTION_FEE_WEI = 10**15

_FULCROM_TRADE_COMPONENTS = [
    {"name": "trader", "type": "address"},
    {"name": "pairIndex", "type": "uint256"},
    {"name": "index", "type": "uint256"},
    {"name": "initialPosToken", "type": "uint256"},
    {"name": "positionSizeDai", "type": "uint256"},
    {"name": "openPrice", "type": "uint256"},
    {"name": "buy", "type": "bool"},
    {"name": "leverage", "type": "uint256"},
    {"name": "tp", "type": "uint256"},
    {"name": "sl", "type": "uint256"},
]

FULCROM_TRADING_ABI = [
    {
        "type": "function",
        "name": "openTrade",
        "inputs": [
            {"name": "t", "type": "tuple", "components": _FULCROM_TRADE_COMPONENTS},
            {"name": "orderType", "type": "uint8"},
            {"name": "slippageP", "type": "uint256"},
            {"name": "referrer", "type": "address"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    _fn(
        "closeTradeMarket",
        [("pairIndex", "uint256"), ("index", "uint256")],
        mutability="nonpayable",
    ),
]

FULCROM_STORAGE_ABI = [
    {
        "type": "function",
        "name": "openTrades",
        "inputs": [
            {"name": "trader", "type": "address"},
            {"name": "pairIndex", "type": "uint256"},
            {"name": "index", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "tuple", "components": _FULCROM_TRADE_COMPONENTS}],
        "stateMutability": "view",
    },
    _fn(
        "openTradesCount",
        [("trader", "address"), ("pairIndex", "uint256")],
        [("", "uint256")],
    ),
]

# ERC-8004 Validation Registry
VALIDATION_REGISTRY_ABI = [
    _fn(
        "validationRequest",
        [
            ("validatorAddress", "address"),
            ("agentId", "uint256"),
            ("requestURI", "string"),
            ("requestHash", "bytes32"),
        ],
        mutability="nonpayable",
    ),
]


def token_for_symbol(symbol: str) -> Tuple[str, int]:
    """
    Look up (address, decimals) for a token symbol.

    Raises:
        KeyError: if the token is not on Cronos' supported list
    """
    return TOKENS[symbol.upper()]


def base_token_for_pair(pair: str) -> Tuple[str, int]:
    """Token for the base side of "BTC-USD" or "BTC/USD" """
    base = pair.replace("/", "-").split("-")[0]
    return token_for_symbol(base)
