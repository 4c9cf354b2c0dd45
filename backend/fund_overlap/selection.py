"""Fund selection state for the compare and overlap workflows."""

from dataclasses import dataclass
from threading import Lock
from typing import Optional
import logging
import re

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

MIN_FUNDS = 2
MAX_FUNDS = 5

# Numeric scheme codes or hex document ids; never anything that changes a URL path
SCHEME_CODE_PATTERN = r"^[A-Za-z0-9_-]+$"


def is_valid_scheme_code(value: str) -> bool:
    return re.fullmatch(SCHEME_CODE_PATTERN, value) is not None


class SelectedFund(BaseModel):
    """A fund picked by the user, keyed by its scheme code."""

    scheme_code: str = Field(
        ...,
        pattern=SCHEME_CODE_PATTERN,
        description="Scheme code, the primary fund identifier.",
    )
    name: str
    fund_house: str = ""
    category: str = ""
    sub_category: Optional[str] = None
    nav: float = 0.0
    returns_1y: float = 0.0
    returns_3y: float = 0.0
    returns_5y: float = 0.0
    aum: float = 0.0
    expense_ratio: float = 0.0
    rating: float = 0.0
    risk_level: Optional[str] = None


@dataclass
class ToggleResult:
    """Outcome of toggling a fund in a selection list."""

    added: bool
    should_redirect: bool


class SelectionList:
    """An ordered, bounded list of selected funds without duplicates."""

    def __init__(self, label: str, max_funds: int = MAX_FUNDS, min_funds: int = MIN_FUNDS) -> None:
        self.label = label
        self.max_funds = max_funds
        self.min_funds = min_funds
        self._funds: list[SelectedFund] = []
        self._lock = Lock()

    @property
    def funds(self) -> list[SelectedFund]:
        with self._lock:
            return list(self._funds)

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._funds)

    def _add_locked(self, fund: SelectedFund) -> bool:
        if len(self._funds) >= self.max_funds:
            logger.warning(f"Cannot add more than {self.max_funds} funds to {self.label}")
            return False
        if any(f.scheme_code == fund.scheme_code for f in self._funds):
            logger.warning(f"Fund {fund.scheme_code} already in {self.label} list")
            return False

        self._funds.append(fund)
        logger.info(f"Added to {self.label}: {fund.name} ({len(self._funds)}/{self.max_funds})")
        return True

    def add(self, fund: SelectedFund) -> bool:
        """Add a fund unless the list is full or already holds it.

        Returns:
            True if the fund was added.
        """
        with self._lock:
            return self._add_locked(fund)

    def remove(self, scheme_code: str) -> None:
        with self._lock:
            self._funds = [f for f in self._funds if f.scheme_code != scheme_code]
        logger.info(f"Removed from {self.label}: {scheme_code}")

    def clear(self) -> None:
        with self._lock:
            self._funds = []
        logger.info(f"Cleared all {self.label} funds")

    def contains(self, scheme_code: str) -> bool:
        with self._lock:
            return any(f.scheme_code == scheme_code for f in self._funds)

    def can_add(self) -> bool:
        return self.count < self.max_funds

    def can_analyze(self) -> bool:
        return self.min_funds <= self.count <= self.max_funds

    def toggle(self, fund: SelectedFund) -> ToggleResult:
        """Remove the fund if selected, otherwise try to add it.

        A successful add asks the caller to move on to the analysis view.
        """
        with self._lock:
            if any(f.scheme_code == fund.scheme_code for f in self._funds):
                self._funds = [f for f in self._funds if f.scheme_code != fund.scheme_code]
                logger.info(f"Removed from {self.label}: {fund.scheme_code}")
                return ToggleResult(added=False, should_redirect=False)

            added = self._add_locked(fund)
        return ToggleResult(added=added, should_redirect=added)


class FundSelection:
    """Process-wide holder of the compare and overlap selections."""

    def __init__(self) -> None:
        self.compare = SelectionList("compare")
        self.overlap = SelectionList("overlap")

    def get(self, kind: str) -> SelectionList:
        """Look up a selection list by name.

        Raises:
            KeyError: If kind is not 'compare' or 'overlap'.
        """
        if kind == "compare":
            return self.compare
        if kind == "overlap":
            return self.overlap
        raise KeyError(kind)
