"""
Ordered rebalance pipeline.

Every step takes the current :class:`StrategyState`, recomputes deviations
from it and returns the next state. Steps only move value between the
positions and the unused balances (or lose it to swap fees), so running
the whole pipeline never increases total strategy value.
"""

from decimal import Decimal
from typing import Callable, Tuple
import logging

from farm_abm.errors import InternalInconsistencyError
from farm_abm.strategy.state import StrategyState, compute_deviations, compute_ideal_setup
from farm_abm.utils.math_helpers import ONE, ZERO, values_close, with_decimal_context

logger = logging.getLogger(__name__)

RebalanceStep = Callable[[StrategyState, Decimal, Decimal], StrategyState]

ADD_LIQUIDITY_THRESHOLD = Decimal("-0.05")
PRICE_TOLERANCE = Decimal("0.001")


@with_decimal_context
def cover_amount_with_usdt(
    state: StrategyState, amount: Decimal, swap_fee: Decimal
) -> Tuple[StrategyState, Decimal]:
    """
    Source ``amount`` of the stable unit from the unused balances.

    Unused USDT is spent first. Any shortfall is swapped from unused TON at the
    oracle price, with the fee taken from the swap output.

    Args:
        state (StrategyState): State to draw from.
        amount (Decimal): USDT requested.
        swap_fee (Decimal): Fee fraction applied on swaps.

    Returns:
        Tuple[StrategyState, Decimal]: Updated state and the USDT actually
        obtained, which is less than ``amount`` when both balances run dry.
    """
    if amount <= ZERO:
        return state, ZERO

    direct = min(state.unused_usdt, amount)
    left_to_cover = amount - direct
    fee_factor = ONE - swap_fee

    ton_to_swap = min(state.unused_ton, left_to_cover / state.price / fee_factor)
    covered = direct + ton_to_swap * fee_factor * state.price

    logger.debug(
        "Covered %s USDT of %s (swapped %s TON)", covered, amount, ton_to_swap
    )
    return (
        state.evolve(
            unused_usdt=state.unused_usdt - direct,
            unused_ton=state.unused_ton - ton_to_swap,
        ),
        covered,
    )


@with_decimal_context
def cover_amount_with_ton(
    state: StrategyState, amount: Decimal, swap_fee: Decimal
) -> Tuple[StrategyState, Decimal]:
    """
    Source ``amount`` of the volatile asset from the unused balances.

    Mirror of :func:`cover_amount_with_usdt`: unused TON first, then a swap
    from unused USDT for the remainder.
    """
    if amount <= ZERO:
        return state, ZERO

    direct = min(state.unused_ton, amount)
    left_to_cover = amount - direct
    fee_factor = ONE - swap_fee

    usdt_to_swap = min(state.unused_usdt, left_to_cover * state.price / fee_factor)
    covered = direct + usdt_to_swap * fee_factor / state.price

    logger.debug(
        "Covered %s TON of %s (swapped %s USDT)", covered, amount, usdt_to_swap
    )
    return (
        state.evolve(
            unused_ton=state.unused_ton - direct,
            unused_usdt=state.unused_usdt - usdt_to_swap,
        ),
        covered,
    )


@with_decimal_context
def withdraw_excess_from_amm(state: StrategyState, ideal_ratio: Decimal, swap_fee: Decimal) -> StrategyState:
    """Step 1: shrink the AMM to its ideal reserve, keeping the X/Y ratio."""
    deviations = compute_deviations(state, ideal_ratio)
    if deviations.amm_reserve_y <= ZERO:
        return state

    reserve_x, reserve_y = state.amm_reserves()
    ideal_reserve_y = reserve_y - deviations.amm_reserve_y
    ideal_reserve_x = reserve_x * ideal_reserve_y / reserve_y

    free_x = reserve_x - ideal_reserve_x
    free_y = reserve_y - ideal_reserve_y
    logger.info("Withdrawing %s TON and %s USDT from AMM", free_x, free_y)

    return state.evolve(
        amm=state.amm.with_reserves(ideal_reserve_x, ideal_reserve_y),
        unused_ton=state.unused_ton + free_x,
        unused_usdt=state.unused_usdt + free_y,
    )


@with_decimal_context
def withdraw_excess_lending_collateral(
    state: StrategyState, ideal_ratio: Decimal, swap_fee: Decimal
) -> StrategyState:
    """Step 2: move collateral above the ideal into unused USDT."""
    excess = compute_deviations(state, ideal_ratio).lending_collateral
    if excess <= ZERO:
        return state

    logger.info("Withdrawing %s USDT of excess collateral", excess)
    return state.evolve(
        lending=state.lending.with_collateral(state.lending.collateral - excess),
        unused_usdt=state.unused_usdt + excess,
    )


@with_decimal_context
def cover_outstanding_borrowed_amount(
    state: StrategyState, ideal_ratio: Decimal, swap_fee: Decimal
) -> StrategyState:
    """Step 3: repay debt above the ideal borrow amount."""
    excess = compute_deviations(state, ideal_ratio).borrow_amount
    if excess <= ZERO:
        return state

    state, covered = cover_amount_with_ton(state, excess, swap_fee)
    logger.debug("Covered borrowed amount: %s", covered)
    return state.evolve(lending=state.lending.with_debt(state.lending.debt - covered))


@with_decimal_context
def cover_outstanding_collateral(
    state: StrategyState, ideal_ratio: Decimal, swap_fee: Decimal
) -> StrategyState:
    """Step 4: top collateral up to its ideal value."""
    deviation = compute_deviations(state, ideal_ratio).lending_collateral
    if deviation >= ZERO:
        return state

    state, covered = cover_amount_with_usdt(state, -deviation, swap_fee)
    logger.debug("Covered collateral: %s", covered)
    return state.evolve(
        lending=state.lending.with_collateral(state.lending.collateral + covered)
    )


@with_decimal_context
def borrow_until_ideal(state: StrategyState, ideal_ratio: Decimal, swap_fee: Decimal) -> StrategyState:
    """Step 5: borrow the shortfall against the ideal amount into unused TON."""
    deviation = compute_deviations(state, ideal_ratio).borrow_amount
    if deviation >= ZERO:
        return state

    to_borrow = -deviation
    logger.info("Borrowing %s TON", to_borrow)
    return state.evolve(
        lending=state.lending.with_debt(state.lending.debt + to_borrow),
        unused_ton=state.unused_ton + to_borrow,
    )


@with_decimal_context
def add_outstanding_liquidity_to_amm(
    state: StrategyState, ideal_ratio: Decimal, swap_fee: Decimal
) -> StrategyState:
    """
    Step 6: deposit unused funds into the AMM when it is more than 5% short.

    Requested amounts are scaled down to what the unused balances can pay for
    after swap fees. The amounts actually obtained must imply the oracle price.

    Raises:
        InternalInconsistencyError: If the deposit ratio disagrees with the price.
    """
    deviation = compute_deviations(state, ideal_ratio).amm_reserve_y
    reserve_x, reserve_y = state.amm_reserves()
    if reserve_y == ZERO:
        if deviation >= ZERO:
            return state
        # Empty pool: target equal-value reserves at the oracle price.
        ideal_reserve_y = compute_ideal_setup(state, ideal_ratio).amm_reserve_y
        ideal_reserve_x = ideal_reserve_y / state.price
    else:
        if deviation / reserve_y >= ADD_LIQUIDITY_THRESHOLD:
            return state
        ideal_reserve_y = reserve_y - deviation
        ideal_reserve_x = reserve_x * ideal_reserve_y / reserve_y

    outstanding_x = ideal_reserve_x - reserve_x
    outstanding_y = ideal_reserve_y - reserve_y

    total_unused = state.unused_funds_value() * (ONE - swap_fee)
    total_outstanding = outstanding_x * state.price + outstanding_y
    if total_unused <= ZERO:
        logger.info("No unused funds to add to AMM")
        return state
    if total_unused < total_outstanding:
        ratio = total_unused / total_outstanding
        outstanding_x *= ratio
        outstanding_y *= ratio

    state, available_x = cover_amount_with_ton(state, outstanding_x, swap_fee)
    state, available_y = cover_amount_with_usdt(state, outstanding_y, swap_fee)
    if available_x <= ZERO or available_y <= ZERO:
        raise InternalInconsistencyError(
            f"AMM deposit is one-sided: {available_x} TON and {available_y} USDT"
        )

    implied_price = available_y / available_x
    if not values_close(implied_price, state.price, PRICE_TOLERANCE):
        raise InternalInconsistencyError(
            f"AMM deposit implies price {implied_price} but oracle price is {state.price}"
        )

    logger.info("Adding %s TON and %s USDT to AMM", available_x, available_y)
    return state.evolve(
        amm=state.amm.with_reserves(reserve_x + available_x, reserve_y + available_y)
    )


REBALANCE_STEPS: Tuple[RebalanceStep, ...] = (
    withdraw_excess_from_amm,
    withdraw_excess_lending_collateral,
    cover_outstanding_borrowed_amount,
    cover_outstanding_collateral,
    borrow_until_ideal,
    add_outstanding_liquidity_to_amm,
)


def run_rebalance(state: StrategyState, ideal_ratio: Decimal, swap_fee: Decimal) -> StrategyState:
    """Apply every step of :data:`REBALANCE_STEPS` in order."""
    for step in REBALANCE_STEPS:
        state = step(state, ideal_ratio, swap_fee)
    return state
