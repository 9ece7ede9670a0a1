# models.py
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Tuple


def denomination_key(denomination: Decimal) -> str:
    """JSON key for a denomination: "20", "5", "0.25", "0.01"."""
    return format(denomination.normalize(), "f")


@dataclass(frozen=True)
class PartnerHours:
    name: str
    hours: float

    def to_dict(self) -> dict:
        return {"name": self.name, "hours": self.hours}


@dataclass(frozen=True)
class PartnerPayout:
    name: str
    hours: float
    payout: float  # exact share, never truncated
    rounded: Decimal  # payable amount, two places
    bill_breakdown: Dict[Decimal, int]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "hours": self.hours,
            "payout": self.payout,
            "rounded": float(self.rounded),
            "billBreakdown": {denomination_key(d): n for d, n in self.bill_breakdown.items()},
        }


@dataclass(frozen=True)
class Distribution:
    total_amount: float
    total_hours: float
    hourly_rate: float
    partner_payouts: Tuple[PartnerPayout, ...]
    discrepancy: Decimal
    tolerance: Decimal
    within_tolerance: bool

    @property
    def total_rounded(self) -> Decimal:
        return sum((p.rounded for p in self.partner_payouts), Decimal("0"))

    def to_dict(self) -> dict:
        return {
            "totalAmount": self.total_amount,
            "totalHours": self.total_hours,
            "hourlyRate": self.hourly_rate,
            "partnerPayouts": [p.to_dict() for p in self.partner_payouts],
            "totalRounded": float(self.total_rounded),
            "discrepancy": float(self.discrepancy),
            "tolerance": float(self.tolerance),
            "withinTolerance": self.within_tolerance,
        }


@dataclass(frozen=True)
class Partner:
    id: int
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class DistributionRecord:
    id: int
    total_amount: float
    total_hours: float
    hourly_rate: float
    partner_data: List[dict] = field(default_factory=list)
    created_at: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "totalAmount": self.total_amount,
            "totalHours": self.total_hours,
            "hourlyRate": self.hourly_rate,
            "partnerData": self.partner_data,
            "createdAt": self.created_at,
        }


@dataclass
class ParseResult:
    partners: List[PartnerHours]
    skipped: List[str]
