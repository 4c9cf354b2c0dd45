"""Client for the fund-data REST API, with estimate fallback for holdings."""

import asyncio
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import quote
import aiohttp
import logging

from .config import Settings, get_settings
from .estimates import estimate_holdings
from .holdings import FundHoldingsSet, Holding, extract_holdings
from .selection import SelectedFund, is_valid_scheme_code

logger = logging.getLogger(__name__)

USER_AGENT = "Fund-Overlap-Analyzer/1.0"


class FundAPIError(Exception):
    """Raised when the fund-data API answers with an error or an unusable body."""


# Failures that mean "this fund's holdings are unavailable", never fatal
FETCH_ERRORS = (FundAPIError, aiohttp.ClientError, asyncio.TimeoutError)


@dataclass
class HoldingsFetch:
    """Tagged outcome of fetching one fund's holdings.

    Either ``holdings`` is populated or ``error`` says why not.
    """

    fund_id: str
    holdings: list[Holding] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class GatheredHoldings:
    """Holdings for a set of funds, noting which ones are estimates."""

    holdings: FundHoldingsSet
    estimated: list[str] = field(default_factory=list)


def _api_url(settings: Settings, endpoint: str) -> str:
    return f"{settings.api_base}/api{endpoint}"


def _fund_details_endpoint(fund_id: str) -> str:
    """Scheme codes are numeric; anything else is a document id."""
    segment = quote(fund_id, safe="")
    if fund_id.isdigit():
        return f"/funds/scheme/{segment}"
    return f"/funds/id/{segment}"


def _session(settings: Settings) -> aiohttp.ClientSession:
    if settings.timeout is not None:
        return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=settings.timeout))
    return aiohttp.ClientSession()


async def _get_json(session: aiohttp.ClientSession, url: str) -> dict:
    """Fetch one URL and validate the response envelope.

    Raises:
        FundAPIError: On a non-2xx status, a non-object body or ``success: false``.
        aiohttp.ClientError: If the request fails at the transport level.
    """
    headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
    async with session.get(url, headers=headers) as response:
        if response.status >= 400:
            text = await response.text()
            if response.status == 404:
                raise FundAPIError(f"API endpoint not found: {url}")
            raise FundAPIError(text or f"HTTP {response.status}: {response.reason}")
        try:
            data = await response.json(content_type=None)
        except ValueError as e:
            raise FundAPIError(f"Invalid JSON from {url}: {e}") from e

    if not isinstance(data, dict):
        raise FundAPIError("Invalid API response: expected object")

    if data.get("success") is False:
        raise FundAPIError(data.get("error") or data.get("message") or "API returned success: false")

    return data


async def _fetch_json(
    session: aiohttp.ClientSession, url: str, attempts: int = 3, delay: float = 1.0
) -> dict:
    """Fetch JSON with retries, doubling the delay after each failure.

    Args:
        session: The aiohttp session.
        url: URL to fetch.
        attempts: Total number of tries.
        delay: Delay in seconds before the first retry.

    Returns:
        The decoded response envelope.

    Raises:
        FundAPIError: If the last attempt got an error response.
        aiohttp.ClientError: If the last attempt failed at the transport level.
    """
    for attempt in range(1, attempts + 1):
        try:
            return await _get_json(session, url)
        except FETCH_ERRORS as e:
            if attempt >= attempts:
                logger.error(f"API error for {url}: {e}")
                raise
            logger.warning(f"Request failed, retrying... ({attempt}/{attempts}): {e}")
            await asyncio.sleep(delay)
            delay *= 2

    raise FundAPIError(f"No attempts made for {url}")


async def fetch_fund_holdings(
    session: aiohttp.ClientSession, fund_id: str, settings: Optional[Settings] = None
) -> HoldingsFetch:
    """Fetch a fund's holdings, trying the holdings endpoint then the fund details.

    Args:
        session: The aiohttp session.
        fund_id: Scheme code or document id of the fund.
        settings: Settings to use; the process settings when omitted.

    Returns:
        HoldingsFetch carrying either the holdings or the failure reason.
    """
    settings = settings or get_settings()
    if not is_valid_scheme_code(fund_id):
        logger.warning(f"Refusing to fetch holdings for invalid fund id {fund_id!r}")
        return HoldingsFetch(fund_id=fund_id, error="invalid fund id")

    errors: list[str] = []
    segment = quote(fund_id, safe="")
    holdings_url = _api_url(settings, f"/funds/{segment}/holdings?limit={settings.holdings_limit}")
    try:
        data = await _fetch_json(session, holdings_url, settings.retry_attempts, settings.retry_delay)
        holdings = extract_holdings(data.get("data"))
        if holdings:
            return HoldingsFetch(fund_id=fund_id, holdings=holdings)
        errors.append("holdings endpoint returned no holdings")
    except FETCH_ERRORS as e:
        errors.append(f"holdings endpoint failed: {e}")

    logger.info(f"No holdings from holdings endpoint for {fund_id}, trying fund details")

    details_url = _api_url(settings, _fund_details_endpoint(fund_id))
    try:
        data = await _fetch_json(session, details_url, settings.retry_attempts, settings.retry_delay)
        holdings = extract_holdings(data.get("data"))
        if holdings:
            return HoldingsFetch(fund_id=fund_id, holdings=holdings)
        errors.append("fund details carried no holdings")
    except FETCH_ERRORS as e:
        errors.append(f"fund details failed: {e}")

    return HoldingsFetch(fund_id=fund_id, error="; ".join(errors))


def resolve_holdings(fetch: HoldingsFetch, fund: SelectedFund) -> tuple[list[Holding], bool]:
    """Choose fetched holdings, or category estimates when the fetch failed.

    Returns:
        The holdings to analyze and whether they are estimates.
    """
    if fetch.ok and fetch.holdings:
        return fetch.holdings, False

    logger.warning(
        f"No holdings found for fund {fund.scheme_code} ({fetch.error}), "
        "using category-based estimates"
    )
    return estimate_holdings(fund.category), True


async def gather_holdings(
    funds: list[SelectedFund], settings: Optional[Settings] = None
) -> GatheredHoldings:
    """Fetch holdings for every fund concurrently, falling back per fund.

    Args:
        funds: The selected funds, in selection order.
        settings: Settings to use; the process settings when omitted.

    Returns:
        GatheredHoldings keyed by scheme code in selection order.
    """
    settings = settings or get_settings()

    async with _session(settings) as session:
        fetches = await asyncio.gather(
            *(fetch_fund_holdings(session, fund.scheme_code, settings) for fund in funds)
        )

    gathered = GatheredHoldings(holdings={})
    for fund, fetch in zip(funds, fetches):
        holdings, estimated = resolve_holdings(fetch, fund)
        gathered.holdings[fund.scheme_code] = holdings
        if estimated:
            gathered.estimated.append(fund.scheme_code)

    return gathered


async def get_fund_holdings(fund_id: str, settings: Optional[Settings] = None) -> HoldingsFetch:
    """Fetch one fund's holdings in a session of its own, without fallback."""
    settings = settings or get_settings()
    async with _session(settings) as session:
        return await fetch_fund_holdings(session, fund_id, settings)
