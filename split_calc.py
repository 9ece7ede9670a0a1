# split_calc.py
import logging
import math
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from bill_calc import (
    CENT,
    DEFAULT_DENOMINATIONS,
    MAX_AMOUNT,
    decompose,
    from_cents,
    round_and_calculate_bills,
    round_to_cent,
    to_cents,
    validate_denominations,
)
from errors import EmptyInput, InvalidInput
from models import Distribution, PartnerHours, PartnerPayout

logger = logging.getLogger(__name__)


def _positive(value, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InvalidInput(f"{label} must be a positive number")
    value = float(value)
    if not math.isfinite(value) or value <= 0:
        raise InvalidInput(f"{label} must be a positive number")
    return value


def to_partner_hours(entry) -> PartnerHours:
    """Accept a PartnerHours, a {"name", "hours"} dict or a (name, hours) pair."""
    if isinstance(entry, PartnerHours):
        name, hours = entry.name, entry.hours
    elif isinstance(entry, dict):
        name, hours = entry.get("name"), entry.get("hours")
    elif isinstance(entry, (tuple, list)) and len(entry) == 2:
        name, hours = entry
    else:
        raise InvalidInput(f"Invalid partner hours entry: {entry!r}")

    if not isinstance(name, str) or not name.strip():
        raise InvalidInput("Partner name is required")
    name = name.strip()
    return PartnerHours(name=name, hours=_positive(hours, f"Hours for {name}"))


def allocate(
    total_amount,
    partner_hours: Iterable,
    hourly_rate=None,
    total_hours=None,
) -> Tuple[float, float, List[Tuple[PartnerHours, float]]]:
    """
    Split ``total_amount`` across partners proportionally to hours.

    Returns (hourly_rate, total_hours, [(partner, payout), ...]) in input order.
    A supplied hourly_rate / total_hours is used as is; keeping it consistent
    with total_amount is the caller's job.
    """
    partners = [to_partner_hours(p) for p in partner_hours]
    if not partners:
        raise EmptyInput("Partner hours data is missing or empty")

    total_amount = _positive(total_amount, "Total amount")
    if total_amount > MAX_AMOUNT:
        raise InvalidInput(f"Total amount is above the supported maximum of {MAX_AMOUNT:,}")

    if total_hours is None:
        total_hours = math.fsum(p.hours for p in partners)
    total_hours = _positive(total_hours, "Total hours")

    if hourly_rate is None:
        hourly_rate = total_amount / total_hours
    hourly_rate = _positive(hourly_rate, "Hourly rate")

    shares = [(p, p.hours * hourly_rate) for p in partners]
    return hourly_rate, total_hours, shares


def reconcile(total_amount, rounded_amounts: Sequence[Decimal], denominations=DEFAULT_DENOMINATIONS):
    """
    Compare the rounded payouts with the pool.

    Returns (discrepancy, tolerance, within_tolerance), where a positive
    discrepancy is money left in the pool and a negative one is money paid out
    beyond it.
    """
    total = Decimal(str(total_amount))
    paid = sum(rounded_amounts, Decimal("0"))
    discrepancy = total - paid
    tolerance = len(rounded_amounts) * min(denominations) / 2
    return discrepancy, tolerance, abs(discrepancy) <= tolerance


def settle_remainder(
    total_amount,
    shares: Sequence[Tuple[PartnerHours, float]],
    rounded: Sequence[Decimal],
) -> List[Decimal]:
    """
    Hand out (or claw back) the rounding remainder one cent at a time.

    Largest-remainder method: partners whose exact payout lost the most to
    rounding get the first extra cent; when too much was paid out, those who
    gained the most give a cent back. Each partner moves by at most one cent,
    so a residual larger than that stays in place for the reconciler to report.
    """
    settled = list(rounded)
    target = to_cents(round_to_cent(total_amount))
    diff = target - sum(to_cents(r) for r in settled)
    if diff == 0:
        return settled

    # rounding error per partner, positive when the partner was rounded down
    errors = [Decimal(str(payout)) - r for (_, payout), r in zip(shares, settled)]
    step = 1 if diff > 0 else -1
    order = sorted(range(len(settled)), key=lambda i: (-errors[i] * step, i))

    for i in order:
        if diff == 0:
            break
        if step < 0 and settled[i] < CENT:
            continue
        settled[i] = from_cents(to_cents(settled[i]) + step)
        diff -= step

    if diff:
        logger.warning("Could not settle %s cents of rounding remainder", diff)
    return settled


def calculate_distribution(
    total_amount,
    partner_hours: Iterable,
    hourly_rate=None,
    total_hours=None,
    denominations: Optional[Iterable] = None,
    settle: bool = False,
) -> Distribution:
    denominations = validate_denominations(denominations or DEFAULT_DENOMINATIONS)
    hourly_rate, total_hours, shares = allocate(total_amount, partner_hours, hourly_rate, total_hours)

    rounded_bills = [round_and_calculate_bills(payout, denominations) for _, payout in shares]
    rounded = [r for r, _ in rounded_bills]
    breakdowns = [b for _, b in rounded_bills]

    if settle:
        settled = settle_remainder(total_amount, shares, rounded)
        breakdowns = [
            b if s == r else decompose(to_cents(s), denominations)
            for s, r, b in zip(settled, rounded, breakdowns)
        ]
        rounded = settled

    payouts = tuple(
        PartnerPayout(
            name=partner.name,
            hours=partner.hours,
            payout=payout,
            rounded=r,
            bill_breakdown=b,
        )
        for (partner, payout), r, b in zip(shares, rounded, breakdowns)
    )

    discrepancy, tolerance, within = reconcile(total_amount, rounded, denominations)
    if not within:
        logger.warning(
            "Rounded payouts differ from total %s by %s (tolerance %s)",
            total_amount, discrepancy, tolerance,
        )

    return Distribution(
        total_amount=float(total_amount),
        total_hours=total_hours,
        hourly_rate=hourly_rate,
        partner_payouts=payouts,
        discrepancy=discrepancy,
        tolerance=tolerance,
        within_tolerance=within,
    )
