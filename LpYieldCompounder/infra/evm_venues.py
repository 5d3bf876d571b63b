from typing import Any, List, Optional

import requests
from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError

from config import Config
from infra.abis import (
    CONVEX_BOOSTER_ABI,
    CONVEX_REWARDS_ABI,
    CURVE_POOL_ABI,
    CURVE_SWAP_ABI,
    ERC20_ABI,
    MAX_UINT256,
)
from infra.venues import LiquidityPool, StakingVault, SwapVenue, Token, VenueSet
from strategies.errors import InsufficientOutput
from utils.logging_utils import get_logger

logger = get_logger(__name__)


class EvmClient:
    def __init__(
        self,
        rpc_url: Optional[str] = None,
        private_key: Optional[str] = None,
        api_key: Optional[str] = None,
        w3: Optional[Web3] = None,
    ):
        self.session = requests.Session()
        api_key = api_key if api_key is not None else Config.EVM_RPC_API_KEY
        if api_key:
            self.session.headers["Authorization"] = f"Bearer {api_key}"

        self.w3 = w3 or Web3(Web3.HTTPProvider(
            rpc_url or Config.EVM_RPC_URL,
            request_kwargs={"timeout": 30},
            session=self.session,
        ))

        self.account = None
        key = private_key if private_key is not None else Config.EVM_PRIVATE_KEY
        if key:
            self.account = Account.from_key(key)
            logger.info(f"Loaded signer {self.account.address}")
        else:
            logger.warning("No signing key loaded - running in read-only mode")

    @property
    def address(self) -> str:
        if self.account is None:
            return Config.STRATEGY_ADDRESS
        return self.account.address

    def contract(self, address: str, abi: List[dict]):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def call(self, fn, block: Any = "latest") -> Any:
        return fn.call({"from": self.address}, block_identifier=block)

    def token_balance(self, token_address: str, owner: Optional[str] = None, block: Any = "latest") -> int:
        token = self.contract(token_address, ERC20_ABI)
        return self.call(token.functions.balanceOf(Web3.to_checksum_address(owner or self.address)), block)

    def transact(self, fn, operation: str, min_out: int = 0) -> Any:
        """Send ``fn`` as a signed transaction and return the mined receipt.

        A revert of a call that carries a non-zero output floor is reported
        as InsufficientOutput; any other revert propagates.
        """
        if self.account is None:
            raise RuntimeError(f"Cannot send {operation}: no signing key configured")

        try:
            fn.call({"from": self.address})
        except ContractLogicError as e:
            if min_out > 0:
                raise InsufficientOutput(operation, min_out) from e
            raise

        tx = fn.build_transaction({
            "from": self.address,
            "nonce": self.w3.eth.get_transaction_count(self.address),
        })
        signed = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=Config.EVM_TX_TIMEOUT_SECONDS)

        if receipt["status"] != 1:
            if min_out > 0:
                raise InsufficientOutput(operation, min_out)
            raise RuntimeError(f"{operation} transaction {tx_hash.hex()} reverted")

        logger.info(f"{operation} confirmed in block {receipt['blockNumber']} ({tx_hash.hex()})")
        return receipt

    def transact_for_balance(
        self,
        fn,
        operation: str,
        token_address: str,
        min_out: int = 0,
        owner: Optional[str] = None,
    ) -> int:
        """Send ``fn`` and return how much of ``token_address`` it delivered to ``owner``.

        The amount is the balance at the mined block minus the balance before
        sending, so it reflects the executed transaction rather than a quote.
        """
        before = self.token_balance(token_address, owner)
        receipt = self.transact(fn, operation, min_out)
        after = self.token_balance(token_address, owner, block=receipt["blockNumber"])
        received = after - before
        logger.debug(f"{operation} delivered {received} (floor {min_out})")
        return received

    def ensure_allowance(self, token_address: str, spender: str, amount: int):
        token = self.contract(token_address, ERC20_ABI)
        spender = Web3.to_checksum_address(spender)
        current = self.call(token.functions.allowance(self.address, spender))
        if current < amount:
            self.transact(token.functions.approve(spender, MAX_UINT256), "approve")


class Erc20Token(Token):
    def __init__(self, client: EvmClient, address: str):
        self.client = client
        self.address = address
        self.contract = client.contract(address, ERC20_ABI)
        self._symbol: Optional[str] = None

    @property
    def symbol(self) -> str:
        if self._symbol is None:
            self._symbol = self.client.call(self.contract.functions.symbol())
        return self._symbol

    def balance_of(self, owner: str) -> int:
        return self.client.call(self.contract.functions.balanceOf(Web3.to_checksum_address(owner)))


class CurvePool(LiquidityPool):
    def __init__(
        self,
        client: EvmClient,
        address: str,
        coin_addresses: List[str],
        lp_token_address: Optional[str] = None,
    ):
        self.client = client
        self.address = address
        self.coin_addresses = list(coin_addresses)
        self.lp_token_address = lp_token_address or address
        self.contract = client.contract(address, CURVE_POOL_ABI)

    def estimate_provision(self, amounts: List[int], is_deposit: bool) -> int:
        return self.client.call(self.contract.functions.calc_token_amount(list(amounts), is_deposit))

    def provide(self, amounts: List[int], min_share_out: int) -> int:
        for coin, amount in zip(self.coin_addresses, amounts):
            if amount:
                self.client.ensure_allowance(coin, self.address, amount)
        return self.client.transact_for_balance(
            self.contract.functions.add_liquidity(list(amounts), min_share_out),
            "add_liquidity",
            self.lp_token_address,
            min_share_out,
        )

    def estimate_withdraw_one_sided(self, share_amount: int, asset_index: int) -> int:
        return self.client.call(self.contract.functions.calc_withdraw_one_coin(share_amount, asset_index))

    def withdraw_one_sided(self, share_amount: int, asset_index: int, min_asset_out: int) -> int:
        return self.client.transact_for_balance(
            self.contract.functions.remove_liquidity_one_coin(share_amount, asset_index, min_asset_out),
            "remove_liquidity_one_coin",
            self.coin_addresses[asset_index],
            min_asset_out,
        )


class ConvexStaking(StakingVault):
    def __init__(self, client: EvmClient, booster_address: str, rewards_address: str, lp_token_address: str):
        self.client = client
        self.booster_address = booster_address
        self.lp_token_address = lp_token_address
        self.booster = client.contract(booster_address, CONVEX_BOOSTER_ABI)
        self.rewards = client.contract(rewards_address, CONVEX_REWARDS_ABI)

    def deposit(self, pool_id: int, share_amount: int, auto_stake: bool) -> bool:
        self.client.ensure_allowance(self.lp_token_address, self.booster_address, share_amount)
        self.client.transact(
            self.booster.functions.deposit(pool_id, share_amount, auto_stake), "booster_deposit"
        )
        return True

    def staked_balance_of(self, owner: str) -> int:
        return self.client.call(self.rewards.functions.balanceOf(Web3.to_checksum_address(owner)))

    def earned(self, owner: str) -> int:
        return self.client.call(self.rewards.functions.earned(Web3.to_checksum_address(owner)))

    def claim_rewards(self) -> bool:
        if not self.client.call(self.rewards.functions.getReward()):
            return False
        self.client.transact(self.rewards.functions.getReward(), "get_reward")
        return True

    def withdraw_and_unstake(self, share_amount: int, claim_rewards: bool) -> int:
        self.client.transact(
            self.rewards.functions.withdrawAndUnwrap(share_amount, claim_rewards), "withdraw_and_unwrap"
        )
        return share_amount


class CurveSwapVenue(SwapVenue):
    def __init__(self, client: EvmClient, address: str, coin_addresses: List[str]):
        self.client = client
        self.address = address
        self.coin_addresses = list(coin_addresses)
        self.contract = client.contract(address, CURVE_SWAP_ABI)

    def quote(self, from_index: int, to_index: int, amount_in: int) -> int:
        return self.client.call(self.contract.functions.get_dy(from_index, to_index, amount_in))

    def swap(
        self,
        from_index: int,
        to_index: int,
        amount_in: int,
        min_amount_out: int,
        receiver: Optional[str] = None,
    ) -> int:
        self.client.ensure_allowance(self.coin_addresses[from_index], self.address, amount_in)
        to = Web3.to_checksum_address(receiver or self.client.address)
        return self.client.transact_for_balance(
            self.contract.functions.exchange(from_index, to_index, amount_in, min_amount_out, to),
            "exchange",
            self.coin_addresses[to_index],
            min_amount_out,
            owner=to,
        )


def build_evm_environment(client: Optional[EvmClient] = None) -> VenueSet:
    client = client or EvmClient()

    mid_idx = Config.SWAP_INTERMEDIATE_INDEX
    reward_idx = Config.SWAP_REWARD_INDEX

    def swap_coins(configured: str, reward_address: str) -> List[str]:
        coins = Config.get_addresses(configured)
        if coins:
            return coins
        coins = ["", ""]
        coins[mid_idx] = Config.COUNTER_TOKEN_ADDRESS
        coins[reward_idx] = reward_address
        return coins

    pool_coins = ["", ""]
    pool_coins[Config.DEPOSIT_ASSET_INDEX] = Config.DEPOSIT_TOKEN_ADDRESS
    pool_coins[Config.COUNTER_ASSET_INDEX] = Config.COUNTER_TOKEN_ADDRESS

    return VenueSet(
        account=client.address,
        deposit_token=Erc20Token(client, Config.DEPOSIT_TOKEN_ADDRESS),
        counter_token=Erc20Token(client, Config.COUNTER_TOKEN_ADDRESS),
        primary_reward=Erc20Token(client, Config.PRIMARY_REWARD_ADDRESS),
        secondary_reward=Erc20Token(client, Config.SECONDARY_REWARD_ADDRESS),
        pool=CurvePool(client, Config.POOL_ADDRESS, pool_coins, Config.LP_TOKEN_ADDRESS),
        staking=ConvexStaking(client, Config.BOOSTER_ADDRESS, Config.REWARDS_ADDRESS, Config.LP_TOKEN_ADDRESS),
        primary_swap=CurveSwapVenue(
            client,
            Config.PRIMARY_SWAP_POOL_ADDRESS,
            swap_coins(Config.PRIMARY_SWAP_COINS, Config.PRIMARY_REWARD_ADDRESS),
        ),
        secondary_swap=CurveSwapVenue(
            client,
            Config.SECONDARY_SWAP_POOL_ADDRESS,
            swap_coins(Config.SECONDARY_SWAP_COINS, Config.SECONDARY_REWARD_ADDRESS),
        ),
        swap_intermediate_index=mid_idx,
        swap_reward_index=reward_idx,
        swap_counter_index=Config.SWAP_COUNTER_INDEX,
    )
