"""
Chart Preparation Helpers

Formatting and ranking applied to aggregation results right before they
are drawn. Nothing here groups or sums entries; that belongs to the engine.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from budgetforge.models.summary import CategoryTotal, RankedCategory


MONTH_ABBREVIATIONS: dict[str, tuple[str, ...]] = {
    "en": (
        "Jan", "Feb", "Mar", "Apr", "May", "Jun",
        "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
    ),
    "id": (
        "Jan", "Feb", "Mar", "Apr", "Mei", "Jun",
        "Jul", "Agu", "Sep", "Okt", "Nov", "Des",
    ),
}

DEFAULT_PALETTE: tuple[str, ...] = (
    "#2563eb",
    "#ef4444",
    "#22c55e",
    "#4ade80",
    "#2dd4bf",
    "#f87171",
)

CURRENCY_SYMBOLS = {
    "IDR": "Rp ",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
}


def month_abbreviations(locale: str) -> tuple[str, ...]:
    """Return the twelve month abbreviations for a locale."""
    try:
        return MONTH_ABBREVIATIONS[locale]
    except KeyError:
        raise ValueError(
            f"Unsupported month label locale: {locale}. "
            f"Allowed: {sorted(MONTH_ABBREVIATIONS)}"
        )


def format_month_label(year: int, month: int, locale: str = "en") -> str:
    """Format a (year, month) pair as a 'Mon YYYY' label."""
    if not 1 <= month <= 12:
        raise ValueError(f"Month out of range: {month}")
    return f"{month_abbreviations(locale)[month - 1]} {year}"


def percentage_of(part: Decimal, whole: Decimal) -> int:
    """
    Integer percentage, rounded half-up.

    A zero (or negative) whole yields 0 instead of dividing by zero.
    """
    if whole <= 0:
        return 0
    value = (Decimal(100) * part / whole).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return max(0, min(100, int(value)))


def rank_categories(
    breakdown: Iterable[CategoryTotal],
    top_n: Optional[int] = None,
    palette: Optional[Sequence[str]] = None,
) -> list[RankedCategory]:
    """
    Prepare a category breakdown for a distribution chart.

    Buckets are sorted by total, largest first (ties keep their original
    order). Percentages are computed against the sum of ALL buckets, so a
    truncated chart still shows each slice's share of the whole.
    Colours are assigned by rank, cycling through the palette.
    """
    colors = tuple(palette) if palette else DEFAULT_PALETTE
    buckets = sorted(breakdown, key=lambda bucket: bucket.total, reverse=True)
    grand_total = sum((bucket.total for bucket in buckets), Decimal("0"))

    if top_n is not None:
        buckets = buckets[:max(top_n, 0)]

    return [
        RankedCategory(
            category_id=bucket.category_id,
            category_name=bucket.category_name,
            total=bucket.total,
            percentage=percentage_of(bucket.total, grand_total),
            color=colors[index % len(colors)],
            rank=index + 1,
        )
        for index, bucket in enumerate(buckets)
    ]


def format_currency(amount: Decimal, currency_code: str = "IDR") -> str:
    """
    Format an amount for display.

    IDR uses dot thousands separators and no decimals ("Rp 1.500.000"),
    everything else uses comma separators and two decimals.
    """
    code = currency_code.upper()
    sign = "-" if amount < 0 else ""
    magnitude = abs(Decimal(amount))

    if code == "IDR":
        whole = int(magnitude.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        return f"{sign}Rp {whole:,}".replace(",", ".")

    symbol = CURRENCY_SYMBOLS.get(code, f"{code} ")
    cents = magnitude.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{sign}{symbol}{cents:,.2f}"
