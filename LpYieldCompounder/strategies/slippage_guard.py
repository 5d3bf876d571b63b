from dataclasses import dataclass

from strategies.errors import InvalidTolerance

MAX_BPS = 10_000


@dataclass(frozen=True)
class ExchangeBound:
    expected_output: int
    minimum_accepted_output: int
    slippage_bps: int


def validate_tolerance(tolerance_bps: int) -> int:
    if not 0 <= tolerance_bps <= MAX_BPS:
        raise InvalidTolerance(tolerance_bps)
    return tolerance_bps


def bound(expected: int, tolerance_bps: int) -> int:
    """Minimum output accepted for an exchange expected to return ``expected``.

    Integer floor of ``expected * tolerance_bps / 10000``; every provision,
    withdrawal or swap call carries this floor so the collaborator reverts
    instead of filling at a worse price.
    """
    validate_tolerance(tolerance_bps)
    if expected < 0:
        raise ValueError(f"expected output must be non-negative, got {expected}")
    return expected * tolerance_bps // MAX_BPS


def exchange_bound(expected: int, tolerance_bps: int) -> ExchangeBound:
    return ExchangeBound(
        expected_output=expected,
        minimum_accepted_output=bound(expected, tolerance_bps),
        slippage_bps=tolerance_bps
    )
