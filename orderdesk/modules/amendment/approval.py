"""Threshold-based approval gate for amendments."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from orderdesk.config import settings


@dataclass(frozen=True)
class ApprovalPolicy:
    """Either threshold alone is enough to require approval.

    The percentage rule only applies when the current total is positive;
    against a zero total only the absolute rule can trigger.
    """

    threshold_cents: int
    threshold_percent: Decimal

    @classmethod
    def from_settings(cls) -> ApprovalPolicy:
        return cls(
            threshold_cents=settings.amendment_approval_threshold_cents,
            threshold_percent=Decimal(settings.amendment_approval_threshold_percent),
        )

    def requires_approval(self, difference_cents: int, current_total_cents: int) -> bool:
        magnitude = abs(difference_cents)
        if magnitude > self.threshold_cents:
            return True
        if current_total_cents > 0:
            percent_change = Decimal(magnitude) * 100 / Decimal(current_total_cents)
            return percent_change > self.threshold_percent
        return False
