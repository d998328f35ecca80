"""
Fixed-point arithmetic for vault solvency and liquidation pricing.

Every function works on integers scaled by the configured precision and
applies percentages with floor division. The truncation is part of the
protocol: it biases each check slightly toward the conservative side and
must not be replaced with rounding.
"""

from dataclasses import dataclass

from engine_config import PRECISION

UNBOUNDED_RATIO = float('inf')


@dataclass
class LiquidationTerms:
    """
    Pricing of a single liquidation.

    ``collateral_clamped`` is True when the bonus-adjusted seizure would
    exceed the vault's collateral, in which case the whole collateral is
    seized and ``debt_covered`` is reduced to what it can buy.
    """
    debt_covered: int = 0
    collateral_seized: int = 0
    collateral_clamped: bool = False


def collateral_value(collateral_amount, price, precision=PRECISION):
    """Value of ``collateral_amount`` in debt-token units."""
    return collateral_amount * price // precision


def collateral_ratio(collateral_amount, debt_amount, price, precision=PRECISION):
    """
    Collateralization ratio as an integer percentage.

    Returns UNBOUNDED_RATIO for a vault without debt.
    """
    if debt_amount == 0:
        return UNBOUNDED_RATIO
    return collateral_value(collateral_amount, price, precision) * 100 // debt_amount


def meets_ratio(collateral_amount, debt_amount, price, ratio, precision=PRECISION):
    """True if the vault is collateralized at ``ratio`` percent or better."""
    value = collateral_value(collateral_amount, price, precision)
    return value * 100 >= debt_amount * ratio


def is_below_threshold(collateral_amount, debt_amount, price, threshold, precision=PRECISION):
    """True if the vault carries debt and its ratio is under ``threshold``."""
    if debt_amount == 0:
        return False
    return collateral_ratio(collateral_amount, debt_amount, price, precision) < threshold


def required_collateral(debt_amount, price, ratio, precision=PRECISION):
    """Collateral needed to back ``debt_amount`` at ``ratio`` percent."""
    required_value = debt_amount * ratio // 100
    return required_value * precision // price


def releasable_collateral(collateral_amount, debt_amount, price, ratio, release_percent,
                          precision=PRECISION):
    """
    Collateral released when a vault keeps ``debt_amount`` outstanding.

    Only ``release_percent`` of the excess over the requirement is released;
    the rest stays in the vault as a margin.
    """
    required = required_collateral(debt_amount, price, ratio, precision)
    if collateral_amount <= required:
        return 0
    excess = collateral_amount - required
    return excess * release_percent // 100


def max_mintable(collateral_amount, debt_amount, price, ratio, precision=PRECISION):
    """Additional debt the vault could mint while staying at ``ratio``."""
    value = collateral_value(collateral_amount, price, precision)
    capacity = value * 100 // ratio
    return max(0, capacity - debt_amount)


def seizable_collateral(debt_to_cover, price, bonus, precision=PRECISION):
    """Collateral paid for ``debt_to_cover``, including the liquidator bonus."""
    debt_with_bonus = debt_to_cover * (100 + bonus) // 100
    return debt_with_bonus * precision // price


def liquidation_terms(collateral_amount, debt_amount, debt_to_cover, price, bonus,
                      precision=PRECISION):
    """
    Prices a liquidation of ``debt_to_cover`` against the vault.

    The cover is clamped to the vault's debt first. If the seizure then
    exceeds the vault's collateral, all of it is seized and the covered debt
    is recomputed downward to the amount that collateral buys at the bonus
    rate, so a liquidation never takes more than the vault holds.
    """
    debt_covered = min(debt_to_cover, debt_amount)
    collateral_seized = seizable_collateral(debt_covered, price, bonus, precision)

    if collateral_seized <= collateral_amount:
        return LiquidationTerms(debt_covered, collateral_seized, False)

    collateral_seized = collateral_amount
    debt_covered = collateral_value(collateral_seized, price, precision) * 100 // (100 + bonus)
    return LiquidationTerms(debt_covered, collateral_seized, True)
