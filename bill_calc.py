# bill_calc.py
"""
Round a payout to the nearest cent and break it into cash denominations.

Denominations are dollar amounts held as Decimal. The greedy walk (largest bill
first) is only optimal for canonical sets such as US currency; any other set is
checked once with ``is_canonical`` and, if it fails, decomposed with a
minimal-count dynamic programme instead. Both paths always rebuild the rounded
amount exactly because the one-cent unit is mandatory.
"""
import math
from decimal import Decimal, ROUND_HALF_UP
from functools import lru_cache
from typing import Dict, Iterable, Tuple

from errors import InvalidInput, NegativePayout, NonFiniteInput

CENT = Decimal("0.01")
DEFAULT_DENOMINATIONS = tuple(
    Decimal(d) for d in ("20", "10", "5", "1", "0.25", "0.10", "0.05", "0.01")
)
# Floats still resolve whole cents well past this, and amounts up to it
# stay exact in the default 28-digit decimal context.
MAX_AMOUNT = Decimal("1000000000000")


def to_cents(amount: Decimal) -> int:
    return int((amount / CENT).to_integral_value())


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) * CENT).quantize(CENT)


def validate_denominations(denominations: Iterable) -> Tuple[Decimal, ...]:
    values = set()
    for d in denominations:
        d = d if isinstance(d, Decimal) else Decimal(str(d))
        if not d.is_finite() or d <= 0:
            raise InvalidInput(f"Denomination must be a positive number: {d}")
        if d % CENT != 0:
            raise InvalidInput(f"Denomination {d} is not a whole number of cents")
        values.add(d)
    if not values:
        raise InvalidInput("At least one denomination is required")
    ordered = tuple(sorted(values, reverse=True))
    if ordered[-1] != CENT:
        raise InvalidInput("Denominations must include the one-cent unit (0.01)")
    return ordered


def _greedy(amount: int, coins: Tuple[int, ...]) -> Dict[int, int]:
    counts = {}
    remaining = amount
    for coin in coins:
        count = remaining // coin
        if count:
            counts[coin] = count
            remaining -= count * coin
        if remaining == 0:
            break
    return counts


def _min_count_table(limit: int, coins: Tuple[int, ...]):
    # best[a] = fewest coins summing to a, last[a] = coin used last to get there
    best = [0] + [math.inf] * limit
    last = [0] * (limit + 1)
    for a in range(1, limit + 1):
        for coin in coins:
            if coin <= a and best[a - coin] + 1 < best[a]:
                best[a] = best[a - coin] + 1
                last[a] = coin
    return best, last


def _bulk_window(coins: Tuple[int, ...]) -> int:
    # An optimal breakdown never needs as many as coins[0] of the smaller coins,
    # so everything above this window can be paid in the largest coin.
    return coins[0] * coins[1] if len(coins) > 1 else 0


@lru_cache(maxsize=8)
def _fallback_table(coins: Tuple[int, ...]):
    return _min_count_table(_bulk_window(coins) + coins[0], coins)[1]


def _min_count(amount: int, coins: Tuple[int, ...]) -> Dict[int, int]:
    largest = coins[0]
    window = _bulk_window(coins)
    bulk = 0
    if amount > window:
        bulk = (amount - window) // largest
        amount -= bulk * largest

    last = _fallback_table(coins)
    counts = {largest: bulk} if bulk else {}
    while amount > 0:
        coin = last[amount]
        counts[coin] = counts.get(coin, 0) + 1
        amount -= coin
    # keep largest-first ordering like the greedy walk
    return {coin: counts[coin] for coin in coins if coin in counts}


@lru_cache(maxsize=32)
def is_canonical(coins: Tuple[int, ...]) -> bool:
    """True when greedy change-making is optimal for every amount.

    ``coins`` are cent values, largest first. If a counter-example exists, the
    smallest one lies below the sum of the two largest coins, so only that
    range needs checking.
    """
    if len(coins) < 3:
        return True
    limit = coins[0] + coins[1]
    best, _ = _min_count_table(limit, coins)
    for amount in range(1, limit):
        if sum(_greedy(amount, coins).values()) > best[amount]:
            return False
    return True


def decompose(cents: int, denominations: Tuple[Decimal, ...] = DEFAULT_DENOMINATIONS) -> Dict[Decimal, int]:
    """Break a whole number of cents into denomination counts, largest first."""
    if cents < 0:
        raise NegativePayout(f"Cannot break a negative amount into bills: {cents} cents")
    by_coin = {to_cents(d): d for d in denominations}
    coins = tuple(by_coin)
    if is_canonical(coins):
        counts = _greedy(cents, coins)
    else:
        counts = _min_count(cents, coins)
    return {by_coin[coin]: count for coin, count in counts.items()}


def round_to_cent(payout) -> Decimal:
    """Half-up rounding to the nearest cent."""
    if isinstance(payout, bool) or not isinstance(payout, (int, float, Decimal)):
        raise InvalidInput(f"Payout must be a number, got {type(payout).__name__}")
    if isinstance(payout, Decimal):
        if not payout.is_finite():
            raise NonFiniteInput(f"Payout is not finite: {payout}")
        value = payout
    else:
        if not math.isfinite(payout):
            raise NonFiniteInput(f"Payout is not finite: {payout}")
        value = Decimal(str(payout))
    if value < 0:
        raise NegativePayout(f"Payout cannot be negative: {payout}")
    if value > MAX_AMOUNT:
        raise InvalidInput(f"Payout {payout} is above the supported maximum of {MAX_AMOUNT:,}")
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def round_and_calculate_bills(payout, denominations: Tuple[Decimal, ...] = DEFAULT_DENOMINATIONS):
    """Return ``(rounded, bill_breakdown)`` for one partner's exact payout."""
    rounded = round_to_cent(payout)
    breakdown = decompose(to_cents(rounded), denominations)
    return rounded, breakdown
