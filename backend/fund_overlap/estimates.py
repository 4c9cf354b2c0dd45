"""Category-based holdings estimates used when a fund's holdings cannot be fetched."""

from typing import Optional

from .holdings import Holding

# (name, sector, percentage) for a representative top-10 per category
LARGE_CAP_HOLDINGS = [
    ("Reliance Industries Ltd", "Energy", 8.5),
    ("HDFC Bank Ltd", "Financials", 7.2),
    ("Infosys Ltd", "IT", 6.8),
    ("ICICI Bank Ltd", "Financials", 6.5),
    ("TCS Ltd", "IT", 5.9),
    ("Hindustan Unilever Ltd", "FMCG", 5.3),
    ("Bharti Airtel Ltd", "Telecom", 4.8),
    ("Kotak Mahindra Bank", "Financials", 4.5),
    ("ITC Ltd", "FMCG", 4.2),
    ("Axis Bank Ltd", "Financials", 3.9),
]

MID_CAP_HOLDINGS = [
    ("Dixon Technologies", "Electronics", 4.8),
    ("Tube Investments", "Industrials", 4.5),
    ("Polycab India", "Industrials", 4.2),
    ("PI Industries", "Chemicals", 3.9),
    ("HDFC Bank Ltd", "Financials", 3.7),
    ("Max Healthcare", "Healthcare", 3.5),
    ("Kalyan Jewellers", "Retail", 3.3),
    ("Trent Ltd", "Retail", 3.2),
    ("Zomato Ltd", "Consumer Services", 3.0),
    ("Muthoot Finance", "Financials", 2.9),
]

DIVERSIFIED_HOLDINGS = [
    ("HDFC Bank Ltd", "Financials", 6.5),
    ("Infosys Ltd", "IT", 5.8),
    ("Reliance Industries", "Energy", 5.5),
    ("ICICI Bank Ltd", "Financials", 5.2),
    ("TCS Ltd", "IT", 4.9),
    ("Bharti Airtel", "Telecom", 4.5),
    ("Larsen & Toubro", "Infrastructure", 4.2),
    ("Asian Paints", "Consumer Durables", 3.9),
    ("Maruti Suzuki", "Automobile", 3.7),
    ("HCL Technologies", "IT", 3.5),
]


def estimate_holdings(category: Optional[str]) -> list[Holding]:
    """Build estimated holdings for a fund from its category.

    Args:
        category: Fund category label, e.g. 'Large Cap Fund'. May be None.

    Returns:
        A fresh list of Holdings for the matching category table.
    """
    label = (category or "").lower()

    if "large" in label:
        table = LARGE_CAP_HOLDINGS
    elif "mid" in label:
        table = MID_CAP_HOLDINGS
    else:
        table = DIVERSIFIED_HOLDINGS

    return [Holding(name=name, sector=sector, percentage=pct) for name, sector, pct in table]
