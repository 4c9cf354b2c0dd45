"""Portfolio overlap calculation logic."""

from dataclasses import dataclass, field
from enum import Enum
from itertools import combinations
from typing import Optional
import math

from .holdings import FundHoldingsSet, Holding


class OverlapLevel(str, Enum):
    """Ordinal band for an overlap percentage."""

    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"
    VERY_HIGH = "Very High"


@dataclass
class CommonHolding:
    """A security held by at least two of the selected funds."""

    name: str
    fund_count: int
    avg_percentage: float
    sector: str


@dataclass
class CommonSector:
    """A sector present in at least two of the selected funds."""

    sector: str
    fund_count: int
    avg_weight: float


@dataclass
class OverlapResult:
    """Result of an overlap analysis across the selected funds."""

    common_holdings: list[CommonHolding]
    common_sectors: list[CommonSector]
    overlap_percentage: float
    diversification_score: float

    @property
    def total_common_stocks(self) -> int:
        return len(self.common_holdings)

    @property
    def total_common_sectors(self) -> int:
        return len(self.common_sectors)


@dataclass
class PairCommonHolding:
    """A holding shared by two funds, with its weight in each."""

    name: str
    weight_fund1: float
    weight_fund2: float


@dataclass
class FundPairOverlap:
    """Overlap between one pair of funds."""

    fund1_id: str
    fund2_id: str
    overlap_percentage: float
    common_holdings: list[PairCommonHolding]
    recommendation: str


@dataclass
class FundUniqueHoldings:
    """Holdings of one fund that no other selected fund holds."""

    fund_id: str
    holdings: list[Holding]

    @property
    def count(self) -> int:
        return len(self.holdings)

    @property
    def total_percentage(self) -> float:
        return round(sum((h.percentage for h in self.holdings), 0.0), 2)


@dataclass
class Insight:
    """A single message to show alongside an overlap result."""

    type: str  # "warning" | "info" | "success"
    text: str


class DiversificationRating(str, Enum):
    """Rating of a whole selection, from its overall overlap score."""

    EXCELLENT = "Excellent"
    GOOD = "Good"
    MODERATE = "Moderate"
    POOR = "Poor"
    VERY_POOR = "Very Poor"


@dataclass
class OverlapSummary:
    """Selection-wide overlap score, rating and recommendations."""

    overall_overlap_score: int
    diversification_rating: DiversificationRating
    recommendations: list[str]
    highly_overlapping_pairs: int
    single_fund_holdings: int
    total_unique_stocks: int
    average_overlap: float


@dataclass
class _HoldingAggregate:
    funds: set[str] = field(default_factory=set)
    percentages: list[float] = field(default_factory=list)
    sector: Optional[str] = None


@dataclass
class _SectorAggregate:
    funds: set[str] = field(default_factory=set)
    weight: float = 0.0


def holding_key(name: str) -> str:
    """Dedup key for a security: case-insensitive and trimmed."""
    return name.lower().strip()


def compute_overlap(holdings_by_fund: FundHoldingsSet) -> Optional[OverlapResult]:
    """Calculate common holdings, common sectors and overlap metrics.

    Every occurrence of a security contributes to its average, so a fund
    listing the same security twice weighs twice. The overlap percentage is
    the sum of the common holdings' average weights, clamped to [0, 100].

    Args:
        holdings_by_fund: Holdings per fund identifier.

    Returns:
        OverlapResult, or None when fewer than two funds are supplied.
    """
    if len(holdings_by_fund) < 2:
        return None

    by_name: dict[str, _HoldingAggregate] = {}
    for fund_id, holdings in holdings_by_fund.items():
        for h in holdings:
            data = by_name.setdefault(holding_key(h.name), _HoldingAggregate())
            data.funds.add(fund_id)
            data.percentages.append(h.percentage)
            if data.sector is None:
                data.sector = h.sector

    common_holdings = [
        CommonHolding(
            name=key,
            fund_count=len(data.funds),
            avg_percentage=sum(data.percentages) / len(data.percentages),
            sector=data.sector,
        )
        for key, data in by_name.items()
        if len(data.funds) >= 2
    ]
    common_holdings.sort(key=lambda x: x.avg_percentage, reverse=True)

    # Sector weights are summed within each fund before comparing across funds
    by_sector: dict[str, _SectorAggregate] = {}
    for fund_id, holdings in holdings_by_fund.items():
        sector_weights: dict[str, float] = {}
        for h in holdings:
            sector_weights[h.sector] = sector_weights.get(h.sector, 0.0) + h.percentage

        for sector, weight in sector_weights.items():
            data = by_sector.setdefault(sector, _SectorAggregate())
            data.funds.add(fund_id)
            data.weight += weight

    common_sectors = [
        CommonSector(
            sector=sector,
            fund_count=len(data.funds),
            avg_weight=data.weight / len(data.funds),
        )
        for sector, data in by_sector.items()
        if len(data.funds) >= 2
    ]
    common_sectors.sort(key=lambda x: x.avg_weight, reverse=True)

    total = sum((h.avg_percentage for h in common_holdings), 0.0)
    overlap_percentage = max(0.0, min(100.0, total))

    return OverlapResult(
        common_holdings=common_holdings,
        common_sectors=common_sectors,
        overlap_percentage=overlap_percentage,
        diversification_score=max(0.0, 100.0 - overlap_percentage),
    )


def overlap_level(percentage: float) -> OverlapLevel:
    """Classify an overlap percentage into its band."""
    if percentage >= 70:
        return OverlapLevel.VERY_HIGH
    if percentage >= 50:
        return OverlapLevel.HIGH
    if percentage >= 30:
        return OverlapLevel.MODERATE
    return OverlapLevel.LOW


def _pair_recommendation(overlap_percentage: float) -> str:
    if overlap_percentage > 50:
        return (
            f"Very High Overlap ({overlap_percentage}%). "
            "Consider replacing one fund to improve diversification."
        )
    if overlap_percentage > 30:
        return f"High Overlap ({overlap_percentage}%). These funds have significant common holdings."
    if overlap_percentage > 15:
        return f"Moderate Overlap ({overlap_percentage}%). Acceptable level of diversification."
    return f"Low Overlap ({overlap_percentage}%). Excellent diversification between these funds."


def calculate_pair_overlap(
    fund1_id: str,
    holdings1: list[Holding],
    fund2_id: str,
    holdings2: list[Holding],
) -> FundPairOverlap:
    """Calculate the overlap between two funds.

    The overlap percentage is calculated as the sum of minimum weights
    for holdings that appear in both funds. For example, if fund 1 has
    3% in Infosys and fund 2 has 5% in Infosys, the overlap contribution
    is 3%.

    Args:
        fund1_id: Identifier of the first fund.
        holdings1: Holdings of the first fund.
        fund2_id: Identifier of the second fund.
        holdings2: Holdings of the second fund.

    Returns:
        FundPairOverlap with the shared holdings and a recommendation.
    """
    # Holdings with a ticker on both sides are compared by ticker only
    fund1_by_ticker: dict[str, Holding] = {}
    fund1_by_name: dict[str, Holding] = {}
    fund1_untickered_by_name: dict[str, Holding] = {}

    for h in holdings1:
        key = holding_key(h.name)
        if h.ticker:
            fund1_by_ticker[h.ticker.upper()] = h
        else:
            fund1_untickered_by_name[key] = h
        fund1_by_name[key] = h

    common: list[PairCommonHolding] = []
    total_overlap = 0.0
    matched: set[int] = set()

    for h2 in holdings2:
        h1 = None
        if h2.ticker:
            h1 = fund1_by_ticker.get(h2.ticker.upper())
            if h1 is None:
                h1 = fund1_untickered_by_name.get(holding_key(h2.name))
        else:
            h1 = fund1_by_name.get(holding_key(h2.name))

        # each fund 1 holding pairs at most once
        if h1 is None or id(h1) in matched:
            continue
        matched.add(id(h1))

        total_overlap += min(h1.percentage, h2.percentage)
        common.append(PairCommonHolding(
            name=h1.name,
            weight_fund1=h1.percentage,
            weight_fund2=h2.percentage,
        ))

    common.sort(key=lambda x: x.weight_fund1, reverse=True)
    overlap_percentage = round(total_overlap, 2)

    return FundPairOverlap(
        fund1_id=fund1_id,
        fund2_id=fund2_id,
        overlap_percentage=overlap_percentage,
        common_holdings=common,
        recommendation=_pair_recommendation(overlap_percentage),
    )


def pairwise_overlap(holdings_by_fund: FundHoldingsSet) -> list[FundPairOverlap]:
    """Calculate the overlap of every pair of funds, most overlapping first.

    Pairs with equal overlap keep their input order.
    """
    pairs = [
        calculate_pair_overlap(id1, h1, id2, h2)
        for (id1, h1), (id2, h2) in combinations(holdings_by_fund.items(), 2)
    ]
    pairs.sort(key=lambda x: x.overlap_percentage, reverse=True)
    return pairs


def _holders(holdings_by_fund: FundHoldingsSet) -> dict[str, set[str]]:
    """Map each security key to the funds holding it, in first-seen order."""
    holders: dict[str, set[str]] = {}
    for fund_id, holdings in holdings_by_fund.items():
        for h in holdings:
            holders.setdefault(holding_key(h.name), set()).add(fund_id)
    return holders


def unique_holdings(holdings_by_fund: FundHoldingsSet) -> list[FundUniqueHoldings]:
    """Find, per fund, the holdings that no other fund holds, heaviest first."""
    holders = _holders(holdings_by_fund)

    result = []
    for fund_id, holdings in holdings_by_fund.items():
        unique = [h for h in holdings if holders[holding_key(h.name)] == {fund_id}]
        unique.sort(key=lambda h: h.percentage, reverse=True)
        result.append(FundUniqueHoldings(fund_id=fund_id, holdings=unique))
    return result


def diversification_rating(overall_score: float) -> DiversificationRating:
    """Classify an overall overlap score; lower scores are better diversified."""
    if overall_score < 20:
        return DiversificationRating.EXCELLENT
    if overall_score < 35:
        return DiversificationRating.GOOD
    if overall_score < 50:
        return DiversificationRating.MODERATE
    if overall_score < 70:
        return DiversificationRating.POOR
    return DiversificationRating.VERY_POOR


def summarize_overlap(
    holdings_by_fund: FundHoldingsSet,
    pairs: Optional[list[FundPairOverlap]] = None,
) -> OverlapSummary:
    """Score the selection as a whole and build recommendations.

    The overall score is the average pairwise overlap plus up to 20 points
    for the share of securities held by more than one fund, rounded and
    capped at 100.

    Args:
        holdings_by_fund: Holdings per fund identifier.
        pairs: Precomputed pairwise overlaps; calculated when omitted.

    Returns:
        OverlapSummary for the whole selection.
    """
    if pairs is None:
        pairs = pairwise_overlap(holdings_by_fund)

    holders = _holders(holdings_by_fund)
    display_names: dict[str, str] = {}
    for holdings in holdings_by_fund.values():
        for h in holdings:
            display_names.setdefault(holding_key(h.name), h.name)

    total_unique_stocks = len(holders)
    common_keys = [key for key, funds in holders.items() if len(funds) >= 2]
    in_all_funds = [key for key in common_keys if len(holders[key]) == len(holdings_by_fund)]
    single_fund_holdings = total_unique_stocks - len(common_keys)

    average_overlap = (
        sum(p.overlap_percentage for p in pairs) / len(pairs) if pairs else 0.0
    )
    highly_overlapping_pairs = sum(1 for p in pairs if p.overlap_percentage > 30)

    common_share = len(common_keys) / total_unique_stocks if total_unique_stocks else 0.0
    # Half-up rounding, not Python's round-half-even
    overall_score = min(100, math.floor(average_overlap + common_share * 20 + 0.5))
    rating = diversification_rating(overall_score)

    recommendations: list[str] = []
    if overall_score > 50:
        recommendations.append(
            "Your portfolio has significant overlap. Consider replacing some funds."
        )
    if highly_overlapping_pairs:
        recommendations.append(
            f"{highly_overlapping_pairs} fund pair(s) have >30% overlap. Review these combinations."
        )
    if len(common_keys) > total_unique_stocks * 0.3:
        recommendations.append(
            f"{len(common_keys)} stocks are held by multiple funds. "
            "This reduces diversification benefits."
        )
    if in_all_funds:
        names = ", ".join(display_names[key] for key in in_all_funds[:3])
        recommendations.append(
            f"{len(in_all_funds)} stock(s) appear in ALL funds: {names}. "
            "Consider if this concentration is intentional."
        )
    if rating in (DiversificationRating.EXCELLENT, DiversificationRating.GOOD):
        recommendations.append(
            "Your fund selection shows good diversification with minimal overlap."
        )
    recommendations.append(
        f"Portfolio has {total_unique_stocks} unique stocks with {single_fund_holdings} "
        "holdings appearing in only one fund."
    )

    return OverlapSummary(
        overall_overlap_score=overall_score,
        diversification_rating=rating,
        recommendations=recommendations,
        highly_overlapping_pairs=highly_overlapping_pairs,
        single_fund_holdings=single_fund_holdings,
        total_unique_stocks=total_unique_stocks,
        average_overlap=round(average_overlap, 2),
    )


def overlap_insights(result: OverlapResult) -> list[Insight]:
    """Summarize an overlap result as user-facing messages."""
    count = result.total_common_stocks

    if result.overlap_percentage >= 50:
        return [
            Insight("warning", f"High overlap detected! {count} stocks appear in multiple funds."),
            Insight(
                "info",
                "Consider adding funds from different sectors or categories for better diversification.",
            ),
        ]
    if result.overlap_percentage >= 30:
        return [
            Insight("info", f"Moderate overlap with {count} common holdings."),
            Insight("success", "Your portfolio shows reasonable diversification."),
        ]
    return [
        Insight("success", f"Excellent diversification! Only {count} common holdings."),
        Insight("info", "Your funds invest in different stocks, reducing concentration risk."),
    ]
