"""
Paper venues - deterministic in-memory pool, staking vault and swap venues.

Balances live in a shared PaperLedger keyed by token symbol and owner.
Prices are fixed per-coin rates (value of one base unit in deposit-token
base units, scaled by RATE_SCALE) that the simulator can move; this is a
stand-in for the real venues, not a pricing model.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any

from infra.venues import LiquidityPool, StakingVault, SwapVenue, Token, VenueSet
from strategies.errors import InsufficientOutput
from utils.logging_utils import get_logger

logger = get_logger(__name__)

RATE_SCALE = 10**18
BPS = 10_000


class PaperLedger:
    def __init__(self):
        self._balances: Dict[str, Dict[str, int]] = {}

    def balance_of(self, symbol: str, owner: str) -> int:
        return self._balances.get(symbol, {}).get(owner, 0)

    def total_supply(self, symbol: str) -> int:
        return sum(self._balances.get(symbol, {}).values())

    def mint(self, symbol: str, owner: str, amount: int):
        if amount < 0:
            raise ValueError(f"Cannot mint negative amount {amount}")
        book = self._balances.setdefault(symbol, {})
        book[owner] = book.get(owner, 0) + amount

    def burn(self, symbol: str, owner: str, amount: int):
        balance = self.balance_of(symbol, owner)
        if amount < 0 or amount > balance:
            raise ValueError(f"Cannot burn {amount} {symbol} from {owner} (balance {balance})")
        self._balances[symbol][owner] = balance - amount

    def transfer(self, symbol: str, sender: str, receiver: str, amount: int):
        self.burn(symbol, sender, amount)
        self.mint(symbol, receiver, amount)

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        return {symbol: dict(book) for symbol, book in self._balances.items()}


class PaperToken(Token):
    def __init__(self, ledger: PaperLedger, symbol: str, decimals: int = 18):
        self.ledger = ledger
        self._symbol = symbol
        self.decimals = decimals

    @property
    def symbol(self) -> str:
        return self._symbol

    def balance_of(self, owner: str) -> int:
        return self.ledger.balance_of(self._symbol, owner)


class PaperLiquidityPool(LiquidityPool):
    def __init__(
        self,
        ledger: PaperLedger,
        account: str,
        coins: List[str],
        rates: List[int],
        share_symbol: str = "POOL-LP",
        fee_bps: int = 4,
        address: str = "paper_pool",
    ):
        if len(coins) != len(rates):
            raise ValueError("coins and rates must have the same length")
        self.ledger = ledger
        self.account = account
        self.coins = list(coins)
        self.rates = list(rates)
        self.share_symbol = share_symbol
        self.fee_bps = fee_bps
        self.address = address

    def set_rate(self, index: int, rate: int):
        self.rates[index] = rate

    def reserves(self) -> List[int]:
        return [self.ledger.balance_of(coin, self.address) for coin in self.coins]

    def total_supply(self) -> int:
        return self.ledger.total_supply(self.share_symbol)

    def _value(self, amounts: List[int]) -> int:
        return sum(a * r // RATE_SCALE for a, r in zip(amounts, self.rates))

    def _raw_shares(self, amounts: List[int]) -> int:
        value = self._value(amounts)
        supply = self.total_supply()
        pool_value = self._value(self.reserves())
        if supply == 0 or pool_value == 0:
            return value
        return value * supply // pool_value

    def estimate_provision(self, amounts: List[int], is_deposit: bool) -> int:
        shares = self._raw_shares(amounts)
        if is_deposit:
            return shares * (BPS - self.fee_bps) // BPS
        return -(-shares * (BPS + self.fee_bps) // BPS)

    def provide(self, amounts: List[int], min_share_out: int) -> int:
        if not any(amounts):
            raise ValueError("Provision of all-zero amounts")
        minted = self.estimate_provision(amounts, True)
        if minted < min_share_out:
            raise InsufficientOutput("provide", min_share_out, minted)
        for coin, amount in zip(self.coins, amounts):
            if amount:
                self.ledger.transfer(coin, self.account, self.address, amount)
        self.ledger.mint(self.share_symbol, self.account, minted)
        return minted

    def estimate_withdraw_one_sided(self, share_amount: int, asset_index: int) -> int:
        if share_amount <= 0:
            raise ValueError("Zero burn amount")
        supply = self.total_supply()
        if share_amount > supply:
            raise ValueError(f"Burn of {share_amount} exceeds supply {supply}")
        value = share_amount * self._value(self.reserves()) // supply
        out = value * RATE_SCALE // self.rates[asset_index]
        out = out * (BPS - self.fee_bps) // BPS
        return min(out, self.reserves()[asset_index])

    def withdraw_one_sided(self, share_amount: int, asset_index: int, min_asset_out: int) -> int:
        out = self.estimate_withdraw_one_sided(share_amount, asset_index)
        if out < min_asset_out:
            raise InsufficientOutput("withdraw_one_sided", min_asset_out, out)
        self.ledger.burn(self.share_symbol, self.account, share_amount)
        self.ledger.transfer(self.coins[asset_index], self.address, self.account, out)
        return out


class PaperStakingVault(StakingVault):
    def __init__(
        self,
        ledger: PaperLedger,
        account: str,
        share_symbol: str,
        reward_symbols: List[str],
        address: str = "paper_booster",
    ):
        self.ledger = ledger
        self.account = account
        self.share_symbol = share_symbol
        self.reward_symbols = list(reward_symbols)
        self.address = address
        self.fail_claims = False
        self._staked: Dict[str, int] = {}
        self._unstaked: Dict[str, int] = {}
        self._pending: Dict[str, Dict[str, int]] = {}

    def deposit(self, pool_id: int, share_amount: int, auto_stake: bool) -> bool:
        self.ledger.transfer(self.share_symbol, self.account, self.address, share_amount)
        book = self._staked if auto_stake else self._unstaked
        book[self.account] = book.get(self.account, 0) + share_amount
        return True

    def staked_balance_of(self, owner: str) -> int:
        return self._staked.get(owner, 0)

    def accrue(self, amounts: List[int], owner: Optional[str] = None):
        owner = owner or self.account
        pending = self._pending.setdefault(owner, {})
        for symbol, amount in zip(self.reward_symbols, amounts):
            self.ledger.mint(symbol, self.address, amount)
            pending[symbol] = pending.get(symbol, 0) + amount

    def earned(self, owner: str) -> int:
        return self._pending.get(owner, {}).get(self.reward_symbols[0], 0)

    def claim_rewards(self) -> bool:
        if self.fail_claims:
            return False
        pending = self._pending.pop(self.account, {})
        for symbol, amount in pending.items():
            if amount:
                self.ledger.transfer(symbol, self.address, self.account, amount)
        return True

    def withdraw_and_unstake(self, share_amount: int, claim_rewards: bool) -> int:
        staked = self.staked_balance_of(self.account)
        if share_amount > staked:
            raise ValueError(f"Unstake of {share_amount} exceeds staked {staked}")
        self._staked[self.account] = staked - share_amount
        self.ledger.transfer(self.share_symbol, self.address, self.account, share_amount)
        if claim_rewards:
            self.claim_rewards()
        return share_amount


class PaperSwapVenue(SwapVenue):
    def __init__(
        self,
        ledger: PaperLedger,
        account: str,
        coins: List[str],
        rates: List[int],
        fee_bps: int = 30,
        address: str = "paper_swap",
    ):
        self.ledger = ledger
        self.account = account
        self.coins = list(coins)
        self.rates = list(rates)
        self.fee_bps = fee_bps
        self.address = address

    def set_rate(self, index: int, rate: int):
        self.rates[index] = rate

    def quote(self, from_index: int, to_index: int, amount_in: int) -> int:
        out = amount_in * self.rates[from_index] // self.rates[to_index]
        out = out * (BPS - self.fee_bps) // BPS
        return min(out, self.ledger.balance_of(self.coins[to_index], self.address))

    def swap(
        self,
        from_index: int,
        to_index: int,
        amount_in: int,
        min_amount_out: int,
        receiver: Optional[str] = None,
    ) -> int:
        out = self.quote(from_index, to_index, amount_in)
        if out < min_amount_out:
            raise InsufficientOutput("swap", min_amount_out, out)
        self.ledger.transfer(self.coins[from_index], self.account, self.address, amount_in)
        self.ledger.transfer(self.coins[to_index], self.address, receiver or self.account, out)
        return out


@dataclass
class PaperEnvironment:
    ledger: PaperLedger
    venues: VenueSet
    pool: PaperLiquidityPool
    staking: PaperStakingVault
    primary_swap: PaperSwapVenue
    secondary_swap: PaperSwapVenue
    metadata: Dict[str, Any] = field(default_factory=dict)

    def fund(self, amount: int, owner: Optional[str] = None):
        self.ledger.mint(self.venues.deposit_token.symbol, owner or self.venues.account, amount)

    def accrue_rewards(self, primary: int, secondary: int = 0):
        self.staking.accrue([primary, secondary])


# Rates: value of one base unit in deposit-token (6 decimals) base units, x1e18
DEFAULT_RATES = {
    "USDC": RATE_SCALE,
    "WETH": 3_000 * 10**6 * RATE_SCALE // 10**18,
    "CRV": 5 * 10**5 * RATE_SCALE // 10**18,
    "CVX": 3 * 10**6 * RATE_SCALE // 10**18,
}


def build_paper_environment(
    account: str = "strategy",
    seed_liquidity: int = 10_000_000 * 10**6,
    rates: Optional[Dict[str, int]] = None,
    pool_fee_bps: int = 4,
    swap_fee_bps: int = 30,
) -> PaperEnvironment:
    rates = {**DEFAULT_RATES, **(rates or {})}
    ledger = PaperLedger()

    usdc = PaperToken(ledger, "USDC", 6)
    weth = PaperToken(ledger, "WETH", 18)
    crv = PaperToken(ledger, "CRV", 18)
    cvx = PaperToken(ledger, "CVX", 18)

    pool = PaperLiquidityPool(
        ledger, account, ["USDC", "WETH"], [rates["USDC"], rates["WETH"]], fee_bps=pool_fee_bps
    )
    # Seed both legs with equal value so the pool has a non-zero supply.
    seed_weth = seed_liquidity * RATE_SCALE // rates["WETH"]
    ledger.mint("USDC", pool.address, seed_liquidity)
    ledger.mint("WETH", pool.address, seed_weth)
    ledger.mint(pool.share_symbol, "paper_seed", 2 * seed_liquidity)

    staking = PaperStakingVault(ledger, account, pool.share_symbol, ["CRV", "CVX"])

    primary_swap = PaperSwapVenue(
        ledger, account, ["WETH", "CRV"], [rates["WETH"], rates["CRV"]],
        fee_bps=swap_fee_bps, address="paper_crv_swap"
    )
    secondary_swap = PaperSwapVenue(
        ledger, account, ["WETH", "CVX"], [rates["WETH"], rates["CVX"]],
        fee_bps=swap_fee_bps, address="paper_cvx_swap"
    )
    for venue in (primary_swap, secondary_swap):
        for coin, rate in zip(venue.coins, venue.rates):
            ledger.mint(coin, venue.address, seed_liquidity * RATE_SCALE // rate)

    venues = VenueSet(
        account=account,
        deposit_token=usdc,
        counter_token=weth,
        primary_reward=crv,
        secondary_reward=cvx,
        pool=pool,
        staking=staking,
        primary_swap=primary_swap,
        secondary_swap=secondary_swap,
    )

    logger.info(f"Paper environment ready for {account} (seed liquidity {seed_liquidity})")
    return PaperEnvironment(
        ledger=ledger,
        venues=venues,
        pool=pool,
        staking=staking,
        primary_swap=primary_swap,
        secondary_swap=secondary_swap,
        metadata={"rates": rates, "seed_liquidity": seed_liquidity},
    )
