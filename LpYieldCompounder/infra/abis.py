from typing import Any, Dict, List

MAX_UINT256 = 2**256 - 1


def _fn(name: str, inputs: List[tuple], outputs: List[str], mutability: str = "nonpayable") -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": "", "type": t} for t in outputs],
    }


ERC20_ABI = [
    _fn("symbol", [], ["string"], "view"),
    _fn("balanceOf", [("owner", "address")], ["uint256"], "view"),
    _fn("allowance", [("owner", "address"), ("spender", "address")], ["uint256"], "view"),
    _fn("approve", [("spender", "address"), ("amount", "uint256")], ["bool"]),
]

CURVE_POOL_ABI = [
    _fn("calc_token_amount", [("amounts", "uint256[2]"), ("is_deposit", "bool")], ["uint256"], "view"),
    _fn("add_liquidity", [("amounts", "uint256[2]"), ("min_mint_amount", "uint256")], ["uint256"]),
    _fn("calc_withdraw_one_coin", [("token_amount", "uint256"), ("i", "int128")], ["uint256"], "view"),
    _fn(
        "remove_liquidity_one_coin",
        [("token_amount", "uint256"), ("i", "int128"), ("min_amount", "uint256")],
        ["uint256"],
    ),
]

CURVE_SWAP_ABI = [
    _fn("get_dy", [("i", "uint256"), ("j", "uint256"), ("dx", "uint256")], ["uint256"], "view"),
    _fn(
        "exchange",
        [("i", "uint256"), ("j", "uint256"), ("dx", "uint256"), ("min_dy", "uint256"), ("receiver", "address")],
        ["uint256"],
    ),
]

CONVEX_BOOSTER_ABI = [
    _fn("deposit", [("pid", "uint256"), ("amount", "uint256"), ("stake", "bool")], ["bool"]),
]

CONVEX_REWARDS_ABI = [
    _fn("balanceOf", [("account", "address")], ["uint256"], "view"),
    _fn("earned", [("account", "address")], ["uint256"], "view"),
    _fn("getReward", [], ["bool"]),
    _fn("withdrawAndUnwrap", [("amount", "uint256"), ("claim", "bool")], ["bool"]),
]
