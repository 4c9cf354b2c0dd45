"""Canonical holding model and normalization of fund-data API payloads."""

from dataclasses import dataclass
from typing import Any, Optional
import math
import logging

logger = logging.getLogger(__name__)

# Field aliases seen across fund-data API endpoints and versions, in priority order
NAME_FIELDS = ("name", "companyName", "holding", "stockName")
TICKER_FIELDS = ("ticker", "symbol", "isin")
PERCENTAGE_FIELDS = ("percentage", "weight", "percent", "allocation")
SECTOR_FIELDS = ("sector", "industry", "sectorName")
HOLDINGS_LIST_FIELDS = ("holdings", "topHoldings", "portfolio", "equityHoldings")

DEFAULT_NAME = "Unknown"
DEFAULT_SECTOR = "Other"


@dataclass
class Holding:
    """Represents a single position within a fund's portfolio."""

    name: str
    sector: str
    percentage: float
    ticker: Optional[str] = None


# Fund identifier -> ordered holdings
FundHoldingsSet = dict[str, list[Holding]]


def _first_present(raw: dict, fields: tuple[str, ...]) -> Any:
    """Return the first truthy value among the given keys, or None."""
    for field in fields:
        value = raw.get(field)
        if value:
            return value
    return None


def _to_percentage(value: Any) -> float:
    """Coerce an API weight to a float in [0, inf), treating bad values as 0.

    Unparsable, non-finite and negative weights (short derivative
    positions) all become 0.
    """
    if value is None:
        return 0.0
    try:
        weight = float(value)
    except (TypeError, ValueError):
        logger.debug(f"Unparsable holding weight: {value!r}")
        return 0.0
    if not math.isfinite(weight):
        logger.debug(f"Non-finite holding weight: {value!r}")
        return 0.0
    if weight < 0:
        logger.debug(f"Negative holding weight clamped to 0: {value!r}")
        return 0.0
    return weight


def normalize_holding(raw: dict) -> Holding:
    """Map one raw API holding onto the canonical Holding shape.

    Args:
        raw: A holding object as returned by any fund-data endpoint.

    Returns:
        Holding with missing fields defaulted rather than rejected.
    """
    ticker = _first_present(raw, TICKER_FIELDS)
    return Holding(
        name=str(_first_present(raw, NAME_FIELDS) or DEFAULT_NAME),
        sector=str(_first_present(raw, SECTOR_FIELDS) or DEFAULT_SECTOR),
        percentage=_to_percentage(_first_present(raw, PERCENTAGE_FIELDS)),
        ticker=str(ticker) if ticker is not None else None,
    )


def extract_holdings(payload: Any) -> list[Holding]:
    """Pull the holdings list out of a fund payload and normalize it.

    The first non-empty list among ``holdings``, ``topHoldings``,
    ``portfolio`` and ``equityHoldings`` wins. Entries that are not
    objects are skipped.

    Args:
        payload: The ``data`` member of a fund-data API response.

    Returns:
        Normalized holdings, empty when the payload carries none.
    """
    if not isinstance(payload, dict):
        return []

    for field in HOLDINGS_LIST_FIELDS:
        items = payload.get(field)
        if isinstance(items, list) and items:
            return [normalize_holding(item) for item in items if isinstance(item, dict)]

    return []
