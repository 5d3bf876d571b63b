from .venues import Token, LiquidityPool, StakingVault, SwapVenue, VenueSet
from .paper_venues import PaperEnvironment, build_paper_environment
from .redis_client import RedisCache, is_redis_available

__all__ = [
    "Token",
    "LiquidityPool",
    "StakingVault",
    "SwapVenue",
    "VenueSet",
    "PaperEnvironment",
    "build_paper_environment",
    "RedisCache",
    "is_redis_available",
]
