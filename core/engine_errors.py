"""
Error taxonomy for the vault engine.

Every engine error is a ValueError so callers written against the ledger
models (which raise ValueError) keep catching engine failures. All of them
are terminal for the operation that raised them.
"""


class VaultEngineError(ValueError):
    """Base class for vault engine failures."""


class InsufficientCollateral(VaultEngineError):
    """The collateralization bar is not met."""


class VaultNotLiquidatable(VaultEngineError):
    """Liquidation attempted on a vault at or above the liquidation threshold."""


class PriceStale(VaultEngineError):
    """The price source is older than the allowed age."""


class AmountTooSmall(VaultEngineError):
    """Zero amount requested, or resulting debt would be dust."""


class TransferFailed(VaultEngineError):
    """An asset or debt-token transfer did not complete."""


class NothingToClaim(VaultEngineError):
    """No parked collateral is recorded for the account."""


class AmountTooLarge(VaultEngineError):
    """Requested amount exceeds what the vault holds or owes."""


class ReentrantCall(VaultEngineError):
    """A state-changing operation was started while another is in flight."""
