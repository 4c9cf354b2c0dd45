"""Tests for the fund selection state."""

from concurrent.futures import ThreadPoolExecutor

import pytest
from pydantic import ValidationError
from fund_overlap.selection import MAX_FUNDS, FundSelection, SelectedFund, SelectionList


def make_fund(code: str, category: str = "Large Cap") -> SelectedFund:
    return SelectedFund(scheme_code=code, name=f"Fund {code}", category=category)


class TestSelectionList:
    """Tests for the SelectionList class."""

    def test_add_and_read(self) -> None:
        """Test that added funds are returned in order."""
        selection = SelectionList("overlap")

        assert selection.add(make_fund("100"))
        assert selection.add(make_fund("200"))

        assert [f.scheme_code for f in selection.funds] == ["100", "200"]
        assert selection.count == 2

    def test_rejects_duplicates(self) -> None:
        """Test that a fund cannot be selected twice."""
        selection = SelectionList("overlap")
        selection.add(make_fund("100"))

        assert not selection.add(make_fund("100"))
        assert selection.count == 1

    def test_rejects_beyond_max(self) -> None:
        """Test that the list stops accepting funds once full."""
        selection = SelectionList("compare")
        for i in range(MAX_FUNDS):
            assert selection.add(make_fund(str(i)))

        assert not selection.can_add()
        assert not selection.add(make_fund("extra"))
        assert selection.count == MAX_FUNDS

    def test_remove_and_clear(self) -> None:
        """Test removing one fund and clearing the rest."""
        selection = SelectionList("overlap")
        for code in ("100", "200", "300"):
            selection.add(make_fund(code))

        selection.remove("200")
        assert [f.scheme_code for f in selection.funds] == ["100", "300"]
        assert not selection.contains("200")

        selection.clear()
        assert selection.funds == []

    def test_can_analyze_bounds(self) -> None:
        """Test that analysis needs between 2 and 5 funds."""
        selection = SelectionList("overlap")
        assert not selection.can_analyze()

        selection.add(make_fund("100"))
        assert not selection.can_analyze()

        selection.add(make_fund("200"))
        assert selection.can_analyze()

    def test_funds_is_a_copy(self) -> None:
        """Test that callers cannot mutate the list through funds."""
        selection = SelectionList("overlap")
        selection.add(make_fund("100"))

        selection.funds.clear()

        assert selection.count == 1

    def test_toggle(self) -> None:
        """Test that toggling adds then removes a fund."""
        selection = SelectionList("overlap")

        added = selection.toggle(make_fund("100"))
        assert added.added and added.should_redirect
        assert selection.contains("100")

        removed = selection.toggle(make_fund("100"))
        assert not removed.added and not removed.should_redirect
        assert not selection.contains("100")

    def test_toggle_when_full(self) -> None:
        """Test that toggling into a full list neither adds nor redirects."""
        selection = SelectionList("overlap")
        for i in range(MAX_FUNDS):
            selection.add(make_fund(str(i)))

        result = selection.toggle(make_fund("extra"))

        assert not result.added
        assert not result.should_redirect

    def test_concurrent_toggles_pair_up(self) -> None:
        """Test that each toggle sees the previous one, so an even number cancels out."""
        selection = SelectionList("overlap")
        fund = make_fund("100")

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: selection.toggle(fund), range(200)))

        assert sum(r.added for r in results) == 100
        assert not selection.contains("100")
        assert selection.count == 0


class TestSelectedFund:
    """Tests for the SelectedFund model."""

    @pytest.mark.parametrize("code", ["120503", "64a1f0c2e9", "aditya_birla-01"])
    def test_accepts_scheme_codes_and_ids(self, code: str) -> None:
        """Test that numeric codes and document ids are accepted."""
        assert make_fund(code).scheme_code == code

    @pytest.mark.parametrize("code", ["", "../admin", "1?limit=9999&x=", "100/holdings", "a b"])
    def test_rejects_codes_that_alter_urls(self, code: str) -> None:
        """Test that codes with path or query characters are rejected."""
        with pytest.raises(ValidationError):
            make_fund(code)


class TestFundSelection:
    """Tests for the FundSelection class."""

    def test_lists_are_independent(self) -> None:
        """Test that compare and overlap selections do not share funds."""
        selection = FundSelection()
        selection.get("compare").add(make_fund("100"))

        assert selection.compare.count == 1
        assert selection.overlap.count == 0

    def test_unknown_kind(self) -> None:
        """Test that an unknown selection name is rejected."""
        with pytest.raises(KeyError):
            FundSelection().get("watchlist")
