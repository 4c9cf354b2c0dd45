"""Tests for holdings normalization and category estimates."""

import pytest
from fund_overlap.estimates import estimate_holdings
from fund_overlap.holdings import Holding, extract_holdings, normalize_holding


class TestNormalizeHolding:
    """Tests for the normalize_holding function."""

    def test_canonical_fields(self) -> None:
        """Test that canonical field names map straight through."""
        holding = normalize_holding(
            {"name": "Infosys Ltd", "sector": "IT", "percentage": 6.8, "ticker": "INFY"}
        )

        assert holding == Holding(name="Infosys Ltd", sector="IT", percentage=6.8, ticker="INFY")

    def test_alias_fields(self) -> None:
        """Test that alternate API field names are recognized."""
        holding = normalize_holding(
            {"stockName": "Trent Ltd", "sectorName": "Retail", "allocation": 3.2, "isin": "INE849A01020"}
        )

        assert holding.name == "Trent Ltd"
        assert holding.sector == "Retail"
        assert holding.percentage == 3.2
        assert holding.ticker == "INE849A01020"

    def test_alias_priority(self) -> None:
        """Test that earlier aliases win over later ones."""
        holding = normalize_holding(
            {"companyName": "HDFC Bank", "holding": "HDFC", "weight": 7.2, "percent": 1.0, "industry": "Banks"}
        )

        assert holding.name == "HDFC Bank"
        assert holding.percentage == 7.2
        assert holding.sector == "Banks"

    def test_falsy_values_fall_through(self) -> None:
        """Test that empty or zero values give way to the next alias."""
        holding = normalize_holding({"name": "", "companyName": "ITC Ltd", "percentage": 0, "weight": 4.2})

        assert holding.name == "ITC Ltd"
        assert holding.percentage == 4.2

    def test_defaults(self) -> None:
        """Test that missing fields get defaults rather than failing."""
        holding = normalize_holding({})

        assert holding == Holding(name="Unknown", sector="Other", percentage=0.0, ticker=None)

    def test_numeric_strings(self) -> None:
        """Test that numeric strings are parsed and garbage becomes zero."""
        assert normalize_holding({"name": "A", "percentage": "4.5"}).percentage == 4.5
        assert normalize_holding({"name": "A", "percentage": "n/a"}).percentage == 0.0

    @pytest.mark.parametrize("weight", ["NaN", "inf", "-inf", float("nan"), float("inf")])
    def test_non_finite_weights_become_zero(self, weight) -> None:
        """Test that NaN and infinite weights are treated as missing."""
        assert normalize_holding({"name": "A", "weight": weight}).percentage == 0.0

    def test_negative_weights_become_zero(self) -> None:
        """Test that short positions do not carry negative weight."""
        assert normalize_holding({"name": "A", "percentage": -2.5}).percentage == 0.0
        assert normalize_holding({"name": "A", "percentage": "-2.5"}).percentage == 0.0


class TestExtractHoldings:
    """Tests for the extract_holdings function."""

    def test_holdings_field(self) -> None:
        """Test extraction from the holdings list."""
        payload = {"holdings": [{"name": "TCS Ltd", "sector": "IT", "percentage": 5.9}]}

        assert extract_holdings(payload) == [Holding(name="TCS Ltd", sector="IT", percentage=5.9)]

    def test_first_non_empty_list_wins(self) -> None:
        """Test that an empty holdings list falls back to topHoldings."""
        payload = {
            "holdings": [],
            "topHoldings": [{"companyName": "ITC Ltd", "weight": 4.2}],
            "portfolio": [{"name": "Ignored", "percentage": 1.0}],
        }

        holdings = extract_holdings(payload)

        assert [h.name for h in holdings] == ["ITC Ltd"]

    def test_equity_holdings_field(self) -> None:
        """Test extraction from the equityHoldings list."""
        payload = {"equityHoldings": [{"stockName": "Zomato Ltd", "percent": 3.0}]}

        assert extract_holdings(payload)[0].percentage == 3.0

    def test_skips_non_object_entries(self) -> None:
        """Test that malformed entries are skipped."""
        payload = {"holdings": ["oops", None, {"name": "TCS Ltd", "percentage": 5.9}]}

        assert [h.name for h in extract_holdings(payload)] == ["TCS Ltd"]

    def test_unusable_payloads(self) -> None:
        """Test that payloads without holdings give an empty list."""
        assert extract_holdings(None) == []
        assert extract_holdings([{"name": "TCS"}]) == []
        assert extract_holdings({"holdings": "none"}) == []
        assert extract_holdings({}) == []


class TestEstimateHoldings:
    """Tests for the estimate_holdings function."""

    def test_large_cap(self) -> None:
        """Test that large cap funds get the large cap table."""
        holdings = estimate_holdings("Large Cap Fund")

        assert len(holdings) == 10
        assert holdings[0] == Holding(name="Reliance Industries Ltd", sector="Energy", percentage=8.5)

    def test_mid_cap(self) -> None:
        """Test that mid cap funds get the mid cap table."""
        assert estimate_holdings("MID CAP")[0].name == "Dixon Technologies"

    def test_other_categories(self) -> None:
        """Test that other or missing categories get the diversified table."""
        assert estimate_holdings("Flexi Cap")[0].name == "HDFC Bank Ltd"
        assert estimate_holdings(None)[0].name == "HDFC Bank Ltd"

    def test_returns_fresh_lists(self) -> None:
        """Test that callers cannot alter later estimates."""
        first = estimate_holdings("Large Cap")
        first[0].percentage = 99.0

        assert estimate_holdings("Large Cap")[0].percentage == 8.5
