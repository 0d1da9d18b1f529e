"""Flat-rate tax calculator driven by settings."""

from __future__ import annotations

from decimal import Decimal

from orderdesk.config import settings
from orderdesk.modules.catalog.base import TaxCalculatorBase
from orderdesk.money import round_half_up


class ConfiguredRateTaxCalculator(TaxCalculatorBase):
    """Applies a per-jurisdiction rate, falling back to the default rate."""

    def __init__(
        self,
        rates: dict[str, Decimal] | None = None,
        default_rate: Decimal | None = None,
        default_jurisdiction: str | None = None,
    ) -> None:
        self.rates = {k.upper(): Decimal(v) for k, v in (rates or settings.tax_rates).items()}
        self.default_rate = Decimal(
            default_rate if default_rate is not None else settings.default_tax_rate
        )
        self.default_jurisdiction = default_jurisdiction or settings.default_tax_jurisdiction

    def rate_for(self, jurisdiction: str | None) -> Decimal:
        code = (jurisdiction or self.default_jurisdiction).upper()
        return self.rates.get(code, self.default_rate)

    def compute_tax(self, taxable_cents: int, jurisdiction: str | None) -> int:
        if taxable_cents <= 0:
            return 0
        return round_half_up(Decimal(taxable_cents) * self.rate_for(jurisdiction))
