"""Spending level by credit rating.

Only the band name is derived; cash and assets depend on the era table in
the rulebook and are left for the player to fill in.
"""

from dataclasses import dataclass

from coc_creator.models.catalog import RulebookCatalog


UNKNOWN_FINANCE = "N/A"


@dataclass(frozen=True, slots=True)
class FinanceSnapshot:
    spending_level: str
    cash: str
    assets: str


def finance_by_credit(
    credit_rating: int,
    catalog: RulebookCatalog | None = None,
) -> FinanceSnapshot:
    """Return the finance band for *credit_rating*, or N/A outside every band."""
    catalog = catalog or RulebookCatalog.defaults()
    for band in catalog.finance_bands:
        if band.min_credit <= credit_rating <= band.max_credit:
            return FinanceSnapshot(spending_level=band.spending_level, cash="", assets="")
    return FinanceSnapshot(
        spending_level=UNKNOWN_FINANCE,
        cash=UNKNOWN_FINANCE,
        assets=UNKNOWN_FINANCE,
    )
