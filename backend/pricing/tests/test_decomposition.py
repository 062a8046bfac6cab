"""
Tests for tax-inclusive price decomposition.

The displayed subtotal and tax lines must always add back up to the
authoritative total, whatever rounding happened per line.
"""

import pytest
from decimal import Decimal
from unittest import mock

from pricing.decomposition import (
    LineAmount,
    PriceBreakdown,
    Tax,
    decompose,
    fallback_breakdown,
    safe_decompose,
)
from pricing.exceptions import InvalidAmountError, ReconciliationError
from pricing.money import reconciles


def _sum_parts(breakdown):
    return breakdown.subtotal + sum(breakdown.per_tax, Decimal("0"))


class TestDecompose:
    """Core decomposition algorithm."""

    def test_single_tax_single_line(self):
        breakdown = decompose(
            "118.00",
            [{"linePriceInclusive": "118.00", "quantity": 1}],
            [Tax(name="VAT", percentage="18")],
        )

        assert breakdown.subtotal == Decimal("100")
        assert breakdown.per_tax == (Decimal("18.00"),)
        assert _sum_parts(breakdown) == Decimal("118.00")

    def test_two_taxes_rounded_per_line(self):
        # 50 / 1.15 = 43.478 -> 43 per line, so the subtotal is 86 and the
        # remaining 14 is split over the two tax lines.
        breakdown = decompose(
            100,
            [LineAmount(Decimal("50")), LineAmount(Decimal("50"))],
            [Tax(name="Service", percentage=10), Tax(name="City", percentage=5)],
        )

        assert breakdown.subtotal == Decimal("86")
        assert reconciles(breakdown.per_tax + (breakdown.subtotal,), Decimal("100"))
        service, city = breakdown.per_tax
        assert service == pytest.approx(Decimal("9.333333"), abs=Decimal("0.000001"))
        assert city == pytest.approx(Decimal("4.666667"), abs=Decimal("0.000001"))
        # The proportional split keeps the 2:1 ratio between the taxes
        assert service / city == pytest.approx(Decimal("2"), abs=Decimal("0.000001"))

    def test_rounding_is_per_line_not_aggregate(self):
        # round(100 / 1.15) would be 87; per line it is 43 + 43
        breakdown = decompose("100", [{"price": "50"}, {"price": "50"}], [15])

        assert breakdown.subtotal == Decimal("86")
        assert breakdown.per_tax == (Decimal("14"),)

    def test_zero_taxes_returns_total_as_subtotal(self):
        breakdown = decompose("57.30", [{"price": "57.30"}], [])

        assert breakdown.subtotal == Decimal("57.30")
        assert breakdown.per_tax == ()
        assert breakdown.tax_total == Decimal("0")

    def test_zero_percentage_taxes_fold_remainder_into_subtotal(self):
        breakdown = decompose("10.4", [{"price": "10.4"}], [{"name": "Exempt", "percentage": "0"}])

        assert breakdown.subtotal == Decimal("10.4")
        assert breakdown.per_tax == (Decimal("0"),)

    def test_accepts_bare_percentages_and_payload_rows(self):
        from_rows = decompose("118", [{"price": "118"}], [{"name": "VAT", "percentage": "18"}])
        from_numbers = decompose("118", [{"price": "118"}], [18])

        assert from_rows == from_numbers

    def test_items_with_attribute_line_price(self):
        item = mock.Mock(spec=["price"], price="118")

        breakdown = decompose("118", [item], [Tax(name="VAT", percentage=18)])

        assert breakdown.subtotal == Decimal("100")

    def test_tax_lines_pair_taxes_in_order(self):
        taxes = [Tax(name="Service", percentage=10), Tax(name="City", percentage=5)]

        breakdown = decompose("115", [{"price": "115"}], taxes)

        assert [t.name for t, _ in breakdown.tax_lines()] == ["Service", "City"]

    @pytest.mark.parametrize("total,lines,percentages", [
        ("118.00", ["118.00"], ["18"]),
        ("100", ["50", "50"], ["10", "5"]),
        ("99.99", ["33.33", "33.33", "33.33"], ["11", "3.5"]),
        ("12100", ["5000", "7100"], ["14"]),
        ("7", ["1", "1", "1", "1", "1", "1", "1"], ["7", "2", "1"]),
        ("250.75", ["250.75"], ["0.5"]),
    ])
    def test_parts_always_reconcile(self, total, lines, percentages):
        breakdown = decompose(total, [{"price": line} for line in lines], percentages)

        assert reconciles([breakdown.subtotal, *breakdown.per_tax], total)

    def test_mismatch_raises_reconciliation_error(self):
        with mock.patch("pricing.decomposition.reconciles", return_value=False):
            with pytest.raises(ReconciliationError) as exc_info:
                decompose("118", [{"price": "118"}], [18])

        assert exc_info.value.total == Decimal("118")
        assert exc_info.value.subtotal == Decimal("100")

    def test_invalid_total_raises(self):
        with pytest.raises(InvalidAmountError):
            decompose("not-a-number", [], [])

    def test_invalid_line_raises(self):
        with pytest.raises(InvalidAmountError):
            decompose("10", [{"quantity": 1}], [])

    def test_unusable_total_rate_raises(self):
        with pytest.raises(InvalidAmountError):
            decompose("10", [{"price": "10"}], [Tax(name="Refund", percentage=-100)])

    def test_invalid_tax_percentage_raises(self):
        with pytest.raises(InvalidAmountError):
            Tax(name="VAT", percentage="eighteen")

    def test_tax_from_payload(self):
        tax = Tax.from_payload({"name": "VAT", "nameAr": "ضريبة", "percentage": "18"})

        assert tax.name_ar == "ضريبة"
        assert tax.percentage == Decimal("18")


class TestSafeDecompose:
    """Display call sites never see a breakdown that does not add up."""

    def test_passes_through_valid_breakdown(self):
        breakdown = safe_decompose("118", [{"price": "118"}], [18])

        assert breakdown.is_fallback is False
        assert breakdown.subtotal == Decimal("100")

    def test_reconciliation_failure_falls_back(self):
        with mock.patch("pricing.decomposition.reconciles", return_value=False), \
                mock.patch("pricing.decomposition.logger") as logger:
            breakdown = safe_decompose("118", [{"price": "118"}], [18])

        assert breakdown == PriceBreakdown(total=Decimal("118"), subtotal=Decimal("118"), is_fallback=True)
        assert breakdown.per_tax == ()
        logger.error.assert_called_once()

    def test_invalid_input_falls_back(self):
        breakdown = safe_decompose("118", [{"quantity": 1}], [18])

        assert breakdown.is_fallback
        assert breakdown.subtotal == Decimal("118")

    def test_fallback_with_unreadable_total_shows_zero(self):
        breakdown = fallback_breakdown("garbage")

        assert breakdown.total == Decimal("0")
        assert breakdown.subtotal == Decimal("0")
