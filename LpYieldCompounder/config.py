import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    MODE = os.getenv("MODE", "simulation")

    STRATEGY_NAME = os.getenv("STRATEGY_NAME", "lp_compounder")

    SLIPPAGE_BPS = int(os.getenv("SLIPPAGE_BPS", "9900"))
    MIN_REWARD_TO_HARVEST = int(os.getenv("MIN_REWARD_TO_HARVEST", str(10**18)))
    MIN_IDLE_TO_DEPLOY = int(os.getenv("MIN_IDLE_TO_DEPLOY", str(10**6)))

    POOL_ID = int(os.getenv("POOL_ID", "0"))
    DEPOSIT_ASSET_INDEX = int(os.getenv("DEPOSIT_ASSET_INDEX", "0"))
    COUNTER_ASSET_INDEX = int(os.getenv("COUNTER_ASSET_INDEX", "1"))

    MANAGEMENT_ADDRESS = os.getenv("MANAGEMENT_ADDRESS", "management")
    KEEPER_ADDRESSES = os.getenv("KEEPER_ADDRESSES", "")
    STRATEGY_ADDRESS = os.getenv("STRATEGY_ADDRESS", "strategy")

    EVM_RPC_URL = os.getenv("EVM_RPC_URL", "http://127.0.0.1:8545")
    EVM_RPC_API_KEY = os.getenv("EVM_RPC_API_KEY", "")
    EVM_PRIVATE_KEY = os.getenv("EVM_PRIVATE_KEY", "")
    EVM_TX_TIMEOUT_SECONDS = int(os.getenv("EVM_TX_TIMEOUT_SECONDS", "120"))

    DEPOSIT_TOKEN_ADDRESS = os.getenv("DEPOSIT_TOKEN_ADDRESS", "")
    COUNTER_TOKEN_ADDRESS = os.getenv("COUNTER_TOKEN_ADDRESS", "")
    PRIMARY_REWARD_ADDRESS = os.getenv("PRIMARY_REWARD_ADDRESS", "")
    SECONDARY_REWARD_ADDRESS = os.getenv("SECONDARY_REWARD_ADDRESS", "")
    POOL_ADDRESS = os.getenv("POOL_ADDRESS", "")
    LP_TOKEN_ADDRESS = os.getenv("LP_TOKEN_ADDRESS", POOL_ADDRESS)
    BOOSTER_ADDRESS = os.getenv("BOOSTER_ADDRESS", "")
    REWARDS_ADDRESS = os.getenv("REWARDS_ADDRESS", "")
    PRIMARY_SWAP_POOL_ADDRESS = os.getenv("PRIMARY_SWAP_POOL_ADDRESS", "")
    SECONDARY_SWAP_POOL_ADDRESS = os.getenv("SECONDARY_SWAP_POOL_ADDRESS", "")

    # Coin indexes inside the reward-swap pools. Without an explicit coin list
    # each swap pool is two coins, [intermediate, reward], and the
    # intermediate is the pool counter asset.
    SWAP_INTERMEDIATE_INDEX = int(os.getenv("SWAP_INTERMEDIATE_INDEX", "0"))
    SWAP_REWARD_INDEX = int(os.getenv("SWAP_REWARD_INDEX", "1"))
    SWAP_COUNTER_INDEX = int(os.getenv("SWAP_COUNTER_INDEX", str(SWAP_INTERMEDIATE_INDEX)))
    PRIMARY_SWAP_COINS = os.getenv("PRIMARY_SWAP_COINS", "")
    SECONDARY_SWAP_COINS = os.getenv("SECONDARY_SWAP_COINS", "")

    REDIS_URL = os.getenv("REDIS_URL", "")
    REDIS_REPORT_TTL_SECONDS = int(os.getenv("REDIS_REPORT_TTL_SECONDS", "604800"))
    REDIS_STATUS_TTL_SECONDS = int(os.getenv("REDIS_STATUS_TTL_SECONDS", "60"))
    MAX_STORED_REPORTS = int(os.getenv("MAX_STORED_REPORTS", "500"))

    SIM_INITIAL_DEPOSIT = int(os.getenv("SIM_INITIAL_DEPOSIT", str(100_000 * 10**6)))
    SIM_STEPS = int(os.getenv("SIM_STEPS", "168"))
    SIM_REPORT_EVERY = int(os.getenv("SIM_REPORT_EVERY", "24"))
    SIM_SEED = int(os.getenv("SIM_SEED", "7"))

    SECRET_KEY = os.getenv("SESSION_SECRET", os.urandom(24).hex())

    STRATEGY_PROFILES = {
        "conservative": {
            "name": "Conservative",
            "description": "Tight slippage floors, compound only sizeable rewards",
            "slippage_bps": 9950,
            "min_reward_to_harvest": 50 * 10**18,
            "min_idle_to_deploy": 1_000 * 10**6,
        },
        "balanced": {
            "name": "Balanced",
            "description": "Default floors and thresholds",
            "slippage_bps": 9900,
            "min_reward_to_harvest": 10**18,
            "min_idle_to_deploy": 10**6,
        },
        "aggro": {
            "name": "Aggressive Compounding",
            "description": "Loose floors, compound and deploy on small amounts",
            "slippage_bps": 9700,
            "min_reward_to_harvest": 10**17,
            "min_idle_to_deploy": 10**5,
        },
    }

    @classmethod
    def is_simulation(cls) -> bool:
        return cls.MODE.lower() == "simulation"

    @classmethod
    def get_addresses(cls, value: str) -> list:
        return [a.strip() for a in value.split(",") if a.strip()]

    @classmethod
    def get_keepers(cls) -> set:
        return set(cls.get_addresses(cls.KEEPER_ADDRESSES))

    @classmethod
    def get_strategy_profile(cls, profile_name: str) -> dict:
        """Get a strategy profile by name. Returns balanced if not found."""
        return cls.STRATEGY_PROFILES.get(profile_name.lower(), cls.STRATEGY_PROFILES["balanced"])

    @classmethod
    def get_all_profiles(cls) -> dict:
        """Return all available strategy profiles."""
        return {
            name: {
                "name": profile["name"],
                "description": profile["description"]
            }
            for name, profile in cls.STRATEGY_PROFILES.items()
        }
