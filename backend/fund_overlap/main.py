"""FastAPI application for the Fund Overlap Analyzer."""

from typing import Literal, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import logging

from .config import get_settings
from .fund_api import gather_holdings, get_fund_holdings
from .holdings import Holding
from .overlap import (
    compute_overlap,
    overlap_insights,
    overlap_level,
    pairwise_overlap,
    summarize_overlap,
    unique_holdings,
)
from .selection import (
    MAX_FUNDS,
    MIN_FUNDS,
    FundSelection,
    SelectedFund,
    SelectionList,
    is_valid_scheme_code,
)

settings = get_settings()

# Log level comes from FUND_LOG_LEVEL
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Fund Overlap Analyzer",
    description="Analyze holdings overlap between 2-5 mutual funds",
    version="1.0.0",
)

# Browser clients call the API from the configured origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.selection = FundSelection()

SelectionKind = Literal["compare", "overlap"]


class OverlapRequest(BaseModel):
    """Request body for overlap analysis."""

    funds: list[SelectedFund]


class HoldingResponse(BaseModel):
    """Response model for a single holding."""

    name: str
    sector: str
    percentage: float
    ticker: Optional[str] = None


class HoldingsResponse(BaseModel):
    """Response model for a fund's holdings."""

    fund_id: str
    holdings: list[HoldingResponse]


class CommonHoldingResponse(BaseModel):
    name: str
    fund_count: int
    avg_percentage: float
    sector: str


class CommonSectorResponse(BaseModel):
    sector: str
    fund_count: int
    avg_weight: float


class PairCommonHoldingResponse(BaseModel):
    name: str
    weight_fund1: float
    weight_fund2: float


class FundPairOverlapResponse(BaseModel):
    """Response model for the overlap of one pair of funds."""

    fund1_id: str
    fund2_id: str
    overlap_percentage: float
    common_holdings: list[PairCommonHoldingResponse]
    recommendation: str


class FundUniqueHoldingsResponse(BaseModel):
    fund_id: str
    holdings: list[HoldingResponse]
    count: int
    total_percentage: float


class InsightResponse(BaseModel):
    type: str
    text: str


class OverlapSummaryResponse(BaseModel):
    """Response model for the whole-selection overlap summary."""

    overall_overlap_score: int
    diversification_rating: str
    recommendations: list[str]
    highly_overlapping_pairs: int
    single_fund_holdings: int
    total_unique_stocks: int
    average_overlap: float


class OverlapResponse(BaseModel):
    """Response model for overlap analysis."""

    fund_ids: list[str]
    common_holdings: list[CommonHoldingResponse]
    common_sectors: list[CommonSectorResponse]
    overlap_percentage: float
    diversification_score: float
    overlap_level: str
    total_common_stocks: int
    total_common_sectors: int
    insights: list[InsightResponse]
    pairwise_overlap: list[FundPairOverlapResponse]
    unique_holdings: list[FundUniqueHoldingsResponse]
    summary: OverlapSummaryResponse
    estimated_funds: list[str]


class SelectionResponse(BaseModel):
    """Response model for a fund selection list."""

    kind: str
    funds: list[SelectedFund]
    count: int
    can_add: bool
    can_analyze: bool


class ToggleResponse(BaseModel):
    added: bool
    should_redirect: bool
    selection: SelectionResponse


def get_selection(request: Request) -> FundSelection:
    """Dependency returning the process-wide fund selection."""
    return request.app.state.selection


def _holding_response(h: Holding) -> HoldingResponse:
    return HoldingResponse(name=h.name, sector=h.sector, percentage=h.percentage, ticker=h.ticker)


def _selection_response(kind: str, selection: SelectionList) -> SelectionResponse:
    return SelectionResponse(
        kind=kind,
        funds=selection.funds,
        count=selection.count,
        can_add=selection.can_add(),
        can_analyze=selection.can_analyze(),
    )


def _validate_funds(funds: list[SelectedFund]) -> None:
    """Reject selections the analysis cannot run on.

    Raises:
        HTTPException: If the fund count is outside the limits or funds repeat.
    """
    if not MIN_FUNDS <= len(funds) <= MAX_FUNDS:
        raise HTTPException(
            status_code=400,
            detail=f"Please select between {MIN_FUNDS} and {MAX_FUNDS} funds for overlap analysis.",
        )

    scheme_codes = [f.scheme_code for f in funds]
    if len(set(scheme_codes)) != len(scheme_codes):
        raise HTTPException(
            status_code=400,
            detail="Please select different funds to compare.",
        )


async def _analyze(funds: list[SelectedFund]) -> OverlapResponse:
    """Fetch holdings for the funds and run every overlap calculation."""
    gathered = await gather_holdings(funds)
    result = compute_overlap(gathered.holdings)

    if result is None:
        raise HTTPException(
            status_code=400,
            detail=f"At least {MIN_FUNDS} funds are required for overlap analysis.",
        )

    pairs = pairwise_overlap(gathered.holdings)
    summary = summarize_overlap(gathered.holdings, pairs)

    logger.info(
        f"Analyzed {len(funds)} funds: {result.total_common_stocks} common holdings, "
        f"{result.overlap_percentage:.2f}% overlap"
    )

    return OverlapResponse(
        fund_ids=list(gathered.holdings),
        common_holdings=[
            CommonHoldingResponse(
                name=h.name,
                fund_count=h.fund_count,
                avg_percentage=h.avg_percentage,
                sector=h.sector,
            )
            for h in result.common_holdings
        ],
        common_sectors=[
            CommonSectorResponse(sector=s.sector, fund_count=s.fund_count, avg_weight=s.avg_weight)
            for s in result.common_sectors
        ],
        overlap_percentage=result.overlap_percentage,
        diversification_score=result.diversification_score,
        overlap_level=overlap_level(result.overlap_percentage).value,
        total_common_stocks=result.total_common_stocks,
        total_common_sectors=result.total_common_sectors,
        insights=[InsightResponse(type=i.type, text=i.text) for i in overlap_insights(result)],
        pairwise_overlap=[
            FundPairOverlapResponse(
                fund1_id=p.fund1_id,
                fund2_id=p.fund2_id,
                overlap_percentage=p.overlap_percentage,
                common_holdings=[
                    PairCommonHoldingResponse(
                        name=c.name,
                        weight_fund1=c.weight_fund1,
                        weight_fund2=c.weight_fund2,
                    )
                    for c in p.common_holdings
                ],
                recommendation=p.recommendation,
            )
            for p in pairs
        ],
        unique_holdings=[
            FundUniqueHoldingsResponse(
                fund_id=u.fund_id,
                holdings=[_holding_response(h) for h in u.holdings],
                count=u.count,
                total_percentage=u.total_percentage,
            )
            for u in unique_holdings(gathered.holdings)
        ],
        summary=OverlapSummaryResponse(
            overall_overlap_score=summary.overall_overlap_score,
            diversification_rating=summary.diversification_rating.value,
            recommendations=summary.recommendations,
            highly_overlapping_pairs=summary.highly_overlapping_pairs,
            single_fund_holdings=summary.single_fund_holdings,
            total_unique_stocks=summary.total_unique_stocks,
            average_overlap=summary.average_overlap,
        ),
        estimated_funds=gathered.estimated,
    )


@app.get("/api/holdings/{fund_id}", response_model=HoldingsResponse)
async def get_holdings(fund_id: str) -> HoldingsResponse:
    """Get normalized holdings for a fund.

    Args:
        fund_id: Scheme code or document id of the fund.

    Returns:
        Holdings data for the fund.

    Raises:
        HTTPException: If the fund id is malformed or the fund-data API
            cannot supply holdings.
    """
    if not is_valid_scheme_code(fund_id):
        raise HTTPException(status_code=400, detail=f"Invalid fund id '{fund_id}'.")

    fetch = await get_fund_holdings(fund_id)

    if not fetch.ok:
        raise HTTPException(
            status_code=503,
            detail=f"Could not fetch holdings for '{fund_id}'. Fund data may be unavailable.",
        )

    return HoldingsResponse(
        fund_id=fund_id,
        holdings=[_holding_response(h) for h in fetch.holdings],
    )


@app.post("/api/overlap", response_model=OverlapResponse)
async def analyze_overlap(request: OverlapRequest) -> OverlapResponse:
    """Analyze overlap between the funds in the request body.

    Funds whose holdings cannot be fetched are analyzed with
    category-based estimates and listed in ``estimated_funds``.

    Raises:
        HTTPException: If fewer than 2 or more than 5 funds, or duplicates, are given.
    """
    _validate_funds(request.funds)
    return await _analyze(request.funds)


@app.post("/api/overlap/selection", response_model=OverlapResponse)
async def analyze_selected_overlap(
    selection: FundSelection = Depends(get_selection),
) -> OverlapResponse:
    """Analyze overlap between the funds currently selected for overlap."""
    if not selection.overlap.can_analyze():
        raise HTTPException(
            status_code=400,
            detail=f"Please select between {MIN_FUNDS} and {MAX_FUNDS} funds for overlap analysis.",
        )
    return await _analyze(selection.overlap.funds)


@app.get("/api/selection/{kind}", response_model=SelectionResponse)
async def read_selection(
    kind: SelectionKind, selection: FundSelection = Depends(get_selection)
) -> SelectionResponse:
    """Get the funds selected for comparison or overlap."""
    return _selection_response(kind, selection.get(kind))


@app.post("/api/selection/{kind}", response_model=SelectionResponse)
async def add_to_selection(
    kind: SelectionKind, fund: SelectedFund, selection: FundSelection = Depends(get_selection)
) -> SelectionResponse:
    """Add a fund to a selection list.

    Raises:
        HTTPException: If the list is full or already holds the fund.
    """
    selected = selection.get(kind)
    if not selected.add(fund):
        raise HTTPException(
            status_code=409,
            detail=f"Cannot add '{fund.scheme_code}' to {kind}: already selected or "
            f"{MAX_FUNDS} funds reached.",
        )
    return _selection_response(kind, selected)


@app.post("/api/selection/{kind}/toggle", response_model=ToggleResponse)
async def toggle_selection(
    kind: SelectionKind, fund: SelectedFund, selection: FundSelection = Depends(get_selection)
) -> ToggleResponse:
    """Remove a selected fund, or add it when it is not selected."""
    selected = selection.get(kind)
    result = selected.toggle(fund)
    return ToggleResponse(
        added=result.added,
        should_redirect=result.should_redirect,
        selection=_selection_response(kind, selected),
    )


@app.delete("/api/selection/{kind}/{scheme_code}", response_model=SelectionResponse)
async def remove_from_selection(
    kind: SelectionKind, scheme_code: str, selection: FundSelection = Depends(get_selection)
) -> SelectionResponse:
    """Remove a fund from a selection list."""
    selected = selection.get(kind)
    selected.remove(scheme_code)
    return _selection_response(kind, selected)


@app.delete("/api/selection/{kind}", response_model=SelectionResponse)
async def clear_selection(
    kind: SelectionKind, selection: FundSelection = Depends(get_selection)
) -> SelectionResponse:
    """Clear a selection list."""
    selected = selection.get(kind)
    selected.clear()
    return _selection_response(kind, selected)


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint.

    Returns:
        Health status.
    """
    return {"status": "healthy"}
