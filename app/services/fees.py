from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Tuple
from app.services.pricing import round_yen


@dataclass(frozen=True)
class FeeTier:
    min_days_before: int
    percentage: int


class FeeSchedule:
    """Cancellation fee as a table of (days before usage -> percentage).

    The tier with the largest ``min_days_before`` not exceeding the actual
    number of days applies. Cancelling further in advance never costs more.
    """

    def __init__(self, tiers: Iterable[Tuple[int, int]]):
        ordered = sorted((FeeTier(int(days), int(pct)) for days, pct in tiers), key=lambda tier: tier.min_days_before)
        if not ordered:
            raise ValueError("Cancellation fee schedule needs at least one tier")
        if ordered[0].min_days_before != 0:
            raise ValueError("Cancellation fee schedule needs a tier starting at 0 days")
        for tier in ordered:
            if not 0 <= tier.percentage <= 100:
                raise ValueError(f"Fee percentage out of range: {tier.percentage}")
        if len({tier.min_days_before for tier in ordered}) != len(ordered):
            raise ValueError("Cancellation fee tiers must have distinct day thresholds")
        for nearer, further in zip(ordered, ordered[1:]):
            if further.percentage > nearer.percentage:
                raise ValueError(
                    f"Fee for {further.min_days_before}+ days ({further.percentage}%) exceeds "
                    f"fee for {nearer.min_days_before}+ days ({nearer.percentage}%)"
                )
        self.tiers: List[FeeTier] = ordered

    def percentage_for(self, days_before: int) -> int:
        days_before = max(days_before, 0)
        percentage = self.tiers[0].percentage
        for tier in self.tiers:
            if tier.min_days_before <= days_before:
                percentage = tier.percentage
        return percentage

    def fee_for(self, total: int, days_before: int) -> int:
        return round_yen(Decimal(total) * self.percentage_for(days_before) / 100)
