"""
Tests for chart preparation helpers.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from budgetforge.aggregation import (
    DEFAULT_PALETTE,
    format_currency,
    format_month_label,
    percentage_of,
    rank_categories,
)
from budgetforge.models.summary import CategoryTotal


def bucket(name, total):
    return CategoryTotal(category_id=uuid4(), category_name=name, total=Decimal(total))


class TestMonthLabels:
    """Tests for format_month_label."""

    def test_english(self):
        assert format_month_label(2024, 1) == "Jan 2024"
        assert format_month_label(2023, 12) == "Dec 2023"

    def test_indonesian(self):
        assert format_month_label(2024, 8, locale="id") == "Agu 2024"
        assert format_month_label(2024, 10, locale="id") == "Okt 2024"

    def test_month_out_of_range(self):
        with pytest.raises(ValueError):
            format_month_label(2024, 0)

    def test_unknown_locale(self):
        with pytest.raises(ValueError, match="Unsupported month label locale"):
            format_month_label(2024, 1, locale="xx")


class TestPercentages:
    """Tests for percentage_of."""

    def test_zero_whole(self):
        assert percentage_of(Decimal("0"), Decimal("0")) == 0

    def test_rounds_half_up(self):
        assert percentage_of(Decimal("1"), Decimal("8")) == 13  # 12.5
        assert percentage_of(Decimal("1"), Decimal("3")) == 33

    def test_full_share(self):
        assert percentage_of(Decimal("42"), Decimal("42")) == 100


class TestRankCategories:
    """Tests for rank_categories."""

    def test_sorted_descending_with_ranks(self):
        ranked = rank_categories([
            bucket("Transport", "30"),
            bucket("Food", "50"),
            bucket("Bills", "20"),
        ])
        assert [r.category_name for r in ranked] == ["Food", "Transport", "Bills"]
        assert [r.rank for r in ranked] == [1, 2, 3]
        assert [r.percentage for r in ranked] == [50, 30, 20]

    def test_colors_follow_rank(self):
        ranked = rank_categories([bucket("B", "1"), bucket("A", "2")])
        assert ranked[0].category_name == "A"
        assert ranked[0].color == DEFAULT_PALETTE[0]
        assert ranked[1].color == DEFAULT_PALETTE[1]

    def test_palette_cycles(self):
        buckets = [bucket(f"C{i}", str(10 - i)) for i in range(8)]
        ranked = rank_categories(buckets, palette=["#000", "#fff"])
        assert [r.color for r in ranked[:4]] == ["#000", "#fff", "#000", "#fff"]

    def test_truncation_keeps_share_of_whole(self):
        buckets = [bucket(f"C{i}", "10") for i in range(10)]
        ranked = rank_categories(buckets, top_n=6)

        assert len(ranked) == 6
        assert all(r.percentage == 10 for r in ranked)

    def test_ties_keep_input_order(self):
        ranked = rank_categories([bucket("First", "5"), bucket("Second", "5")])
        assert [r.category_name for r in ranked] == ["First", "Second"]

    def test_zero_totals(self):
        ranked = rank_categories([bucket("A", "0"), bucket("B", "0")])
        assert [r.percentage for r in ranked] == [0, 0]

    def test_empty(self):
        assert rank_categories([]) == []


class TestFormatCurrency:
    """Tests for format_currency."""

    def test_rupiah(self):
        assert format_currency(Decimal("1500000")) == "Rp 1.500.000"

    def test_rupiah_negative(self):
        assert format_currency(Decimal("-2500")) == "-Rp 2.500"

    def test_rupiah_rounds_half_up(self):
        assert format_currency(Decimal("999.50")) == "Rp 1.000"

    def test_dollars(self):
        assert format_currency(Decimal("1500"), "usd") == "$1,500.00"

    def test_unknown_code(self):
        assert format_currency(Decimal("1500"), "XYZ") == "XYZ 1,500.00"
