"""
Market simulation for the vault protocol model.

Drives a VaultProtocol through a random price path and lets a keeper
liquidate vaults as they become eligible. Useful for:
1. Testing the engine's solvency under volatile prices
2. Visualizing system debt, collateral and ratio over time
3. Checking that the accounting invariants hold after many operations
"""

import logging

import numpy as np
import matplotlib.pyplot as plt

from engine_errors import VaultEngineError

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 60 * 60


def populate_vaults(protocol, count, rng, min_collateral=1.0, max_collateral=10.0,
                    min_ratio=1.6, max_ratio=3.0, prefix="user"):
    """
    Opens ``count`` vaults with random collateral and target ratios.

    Ratios are drawn above the 150% entry bar so every open succeeds at the
    current price.

    Returns:
        List of opened account names
    """
    precision = protocol.config.precision
    price = protocol.price_feed.latest_price()
    accounts = []

    for i in range(count):
        account = f"{prefix}{i}"
        collateral = int(rng.uniform(min_collateral, max_collateral) * precision)
        target_ratio = rng.uniform(min_ratio, max_ratio)

        value = collateral * price // precision
        debt = max(int(value / target_ratio), protocol.config.min_debt)

        protocol.fund(account, collateral)
        protocol.collateral_engine.open_or_increase(account, collateral, debt)
        accounts.append(account)

    return accounts


def fund_keeper(protocol, keeper, collateral, debt):
    """Opens a vault for the keeper so it holds debt tokens to liquidate with."""
    protocol.fund(keeper, collateral)
    protocol.collateral_engine.open_or_increase(keeper, collateral, debt)
    protocol.approve_engine(keeper, protocol.debt_token.balance_of(keeper))


def run_keeper(protocol, keeper, max_results=20):
    """
    Liquidates every eligible vault the keeper can afford.

    Returns:
        Number of liquidations performed
    """
    liquidated = 0
    for account in protocol.queries.liquidatable_vaults(max_results):
        if account == keeper:
            continue

        vault = protocol.store.get(account)
        if vault.collateral_amount == 0:
            continue

        debt = vault.debt_amount
        budget = min(protocol.debt_token.balance_of(keeper),
                     protocol.debt_token.allowance(keeper, protocol.engine_account))
        if budget < debt:
            logger.debug("Keeper cannot afford %s (%s < %s)", account, budget, debt)
            continue

        try:
            protocol.liquidation_engine.liquidate(keeper, account, debt)
            liquidated += 1
        except VaultEngineError as exc:
            logger.warning(
                "Keeper liquidation failed",
                extra={"event": "keeper.failed", "account": account, "error": str(exc)}
            )
    return liquidated


def simulate_market_scenario(protocol, days, price_volatility=0.02, keeper="keeper",
                             plot_results=True, seed=None):
    """
    Runs the protocol through ``days`` of hourly log-normal price moves.

    Args:
        protocol: VaultProtocol with vaults already opened
        days: Number of days to simulate
        price_volatility: Standard deviation of hourly log returns
        keeper: Account performing liquidations, funded beforehand
        plot_results: Whether to plot the history
        seed: Seed for the random price path

    Returns:
        Dictionary with simulation results
    """
    steps = days * 24
    precision = protocol.config.precision
    clock = protocol.price_feed.clock
    rng = np.random.default_rng(seed)

    time_points = np.zeros(steps)
    price_points = np.zeros(steps)
    total_debt_points = np.zeros(steps)
    total_coll_points = np.zeros(steps)
    system_ratio_points = np.zeros(steps)
    liquidation_points = np.zeros(steps)

    price = protocol.price_feed.latest_price() / precision
    log_returns = rng.normal(0, price_volatility, steps)

    for i in range(steps):
        if clock is not None:
            clock.advance(SECONDS_PER_HOUR)

        price *= np.exp(log_returns[i])
        protocol.set_price(max(int(price * precision), 1))

        run_keeper(protocol, keeper)

        status = protocol.queries.system_status()
        time_points[i] = (i + 1) / 24
        price_points[i] = status.price / precision
        total_debt_points[i] = status.total_debt / precision
        total_coll_points[i] = status.total_collateral / precision
        system_ratio_points[i] = status.system_ratio if np.isfinite(status.system_ratio) else np.nan
        liquidation_points[i] = status.total_liquidations

    if plot_results:
        fig, axs = plt.subplots(4, 1, figsize=(12, 16), sharex=True)

        axs[0].plot(time_points, price_points)
        axs[0].set_title('Collateral Price')
        axs[0].set_ylabel('Debt units')

        axs[1].plot(time_points, total_debt_points, label='Debt')
        axs[1].plot(time_points, total_coll_points * price_points, label='Collateral value')
        axs[1].set_title('System Debt and Collateral Value')
        axs[1].legend()

        axs[2].plot(time_points, system_ratio_points)
        axs[2].axhline(protocol.config.liquidation_threshold, color='r', linestyle='--')
        axs[2].set_title('System Collateral Ratio')
        axs[2].set_ylabel('%')

        axs[3].step(time_points, liquidation_points)
        axs[3].set_title('Cumulative Liquidations')
        axs[3].set_xlabel('Days')

        plt.tight_layout()
        plt.show()

    totals = protocol.store.totals()
    active = sum(1 for account in protocol.store.owners()
                 if not protocol.store.get(account).is_empty())
    return {
        'final_price': protocol.price_feed.latest_price(),
        'final_system_debt': totals.total_debt,
        'final_collateral': totals.total_collateral,
        'active_vaults': active,
        'liquidations': totals.total_liquidations,
        'ratios': protocol.queries.ratio_summary(),
        'history': {
            'days': time_points,
            'price': price_points,
            'total_debt': total_debt_points,
            'total_collateral': total_coll_points,
            'system_ratio': system_ratio_points,
        },
    }
