from typing import Optional


class StrategyError(Exception):
    pass


class InvalidTolerance(StrategyError):
    def __init__(self, bps: int):
        self.bps = bps
        super().__init__(f"Slippage tolerance must be within [0, 10000] bps, got {bps}")


class ZeroLP(StrategyError):
    def __init__(self, amount: int, held: int):
        self.amount = amount
        self.held = held
        super().__init__(f"Nothing to redeem for {amount}: zero pool shares to unstake (held={held})")


class NoRewardsClaimed(StrategyError):
    def __init__(self):
        super().__init__("Staking vault reported a failed reward claim")


class InsufficientOutput(StrategyError):
    def __init__(self, operation: str, minimum: int, actual: Optional[int] = None):
        self.operation = operation
        self.minimum = minimum
        self.actual = actual
        got = "unknown" if actual is None else str(actual)
        super().__init__(f"{operation} returned {got}, below minimum {minimum}")


class NotManagement(StrategyError):
    def __init__(self, caller: str):
        self.caller = caller
        super().__init__(f"{caller} is not management")


class NotKeeper(StrategyError):
    def __init__(self, caller: str):
        self.caller = caller
        super().__init__(f"{caller} is not a keeper")


class StrategyShutdown(StrategyError):
    def __init__(self, message: str = "Operation not allowed in the current shutdown state"):
        super().__init__(message)
