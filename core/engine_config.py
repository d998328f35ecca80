"""
Protocol parameters for the vault engine model.

All monetary quantities are integers scaled by PRECISION. Percentages are
plain integers applied with floor division, so every ratio check truncates
toward zero exactly like the on-chain arithmetic it models.
"""

from dataclasses import dataclass

# Fixed-point scale for prices and amounts
PRECISION = 10**18

# Collateralization parameters (integer percentages)
COLLATERAL_RATIO = 150        # Bar for opening or adjusting a vault
LIQUIDATION_THRESHOLD = 130   # Below this a vault can be liquidated
LIQUIDATION_BONUS = 5         # Liquidator bonus over face value
WITHDRAWAL_RELEASE_PERCENT = 80  # Share of excess collateral released on partial repay

# Minimum nonzero debt a vault may carry
MIN_DEBT = 10 * PRECISION

# Maximum price age in seconds before deposits and mints are refused
PRICE_MAX_AGE = 3600

# Account under which the engine holds collateral and pulled debt tokens
ENGINE_ACCOUNT = "vault_engine"


@dataclass(frozen=True)
class EngineConfig:
    """
    Parameters carried by every engine component.

    The two ``check_price_on_*`` switches control the paths where the
    reference behaviour does not re-check price freshness. Both default to
    False so withdrawals and liquidations keep working on an aged price.
    """
    precision: int = PRECISION
    collateral_ratio: int = COLLATERAL_RATIO
    liquidation_threshold: int = LIQUIDATION_THRESHOLD
    liquidation_bonus: int = LIQUIDATION_BONUS
    withdrawal_release_percent: int = WITHDRAWAL_RELEASE_PERCENT
    min_debt: int = MIN_DEBT
    price_max_age: int = PRICE_MAX_AGE
    engine_account: str = ENGINE_ACCOUNT
    check_price_on_withdrawal: bool = False
    check_price_on_liquidation: bool = False

    def __post_init__(self):
        if self.precision <= 0:
            raise ValueError("Precision must be greater than zero")
        if self.liquidation_threshold > self.collateral_ratio:
            raise ValueError(
                f"Liquidation threshold {self.liquidation_threshold}% cannot exceed "
                f"collateral ratio {self.collateral_ratio}%"
            )
        if self.liquidation_threshold <= 0:
            raise ValueError("Liquidation threshold must be greater than zero")
        if not 0 < self.withdrawal_release_percent <= 100:
            raise ValueError("Withdrawal release percent must be in (0, 100]")
        if self.liquidation_bonus < 0:
            raise ValueError("Liquidation bonus cannot be negative")
        if self.min_debt < 0:
            raise ValueError("Minimum debt cannot be negative")
        if self.price_max_age < 0:
            raise ValueError("Price max age cannot be negative")


DEFAULT_CONFIG = EngineConfig()
