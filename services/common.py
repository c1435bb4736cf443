"""
Common utilities and shared types.
Error types raised by the clients, and display formatting for asset snapshots.
Every formatter renders an absent value as "N/A".
"""

import logging
from typing import Iterable, Optional, Sequence

import pandas as pd

from models import Asset

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"

DISPLAY_COLUMNS = ["Rank", "Name", "Symbol", "Price", "24h %", "Market Cap", "Volume (24h)"]


class CoinLedgerError(Exception):
    """Base class for recoverable dashboard failures."""


class FetchFailure(CoinLedgerError):
    """The asset list could not be retrieved or parsed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class InsightFailure(CoinLedgerError):
    """An insight could not be obtained from the generative-text service."""


def format_price(value: Optional[float]) -> str:
    """
    Format a USD price with thousands separators and 2 to 6 decimals.

    Examples:
        >>> format_price(43250.5)
        '$43,250.50'
        >>> format_price(0.000123456)
        '$0.000123'
        >>> format_price(None)
        'N/A'
    """
    if value is None:
        return NOT_AVAILABLE
    text = f"{value:,.6f}".rstrip('0')
    whole, _, fraction = text.partition('.')
    return f"${whole}.{fraction.ljust(2, '0')}"


def format_change(value: Optional[float]) -> str:
    """Format a 24h percent change with an explicit sign, e.g. '+3.20%'."""
    if value is None:
        return NOT_AVAILABLE
    return f"{value:+.2f}%"


def format_market_cap(value: Optional[float]) -> str:
    """Market cap in billions, e.g. '$845.00B'."""
    if value is None:
        return NOT_AVAILABLE
    return f"${value / 1e9:.2f}B"


def format_volume(value: Optional[float]) -> str:
    """24h volume in millions, e.g. '$25000.0M'."""
    if value is None:
        return NOT_AVAILABLE
    return f"${value / 1e6:.1f}M"


def format_rank(value: Optional[int]) -> str:
    if value is None:
        return NOT_AVAILABLE
    return f"#{value}"


def format_symbol(symbol: str) -> str:
    return symbol.upper() if symbol else NOT_AVAILABLE


def avatar_initial(symbol: str) -> str:
    """First letter of the symbol for the avatar badge, '?' when unknown."""
    return symbol[0].upper() if symbol else "?"


def card_heading(asset: Asset) -> str:
    """Markdown header of an asset card: avatar initial, name, symbol and rank."""
    return (
        f"**{avatar_initial(asset.symbol)}** · **{asset.name}** `{format_symbol(asset.symbol)}`"
        f"  ·  {format_rank(asset.market_cap_rank)}"
    )


def change_direction(value: Optional[float]) -> Optional[str]:
    """'up' for non-negative change, 'down' for negative, None when absent."""
    if value is None:
        return None
    return "up" if value >= 0 else "down"


def result_count_label(filtered: Sequence[Asset], total: Sequence[Asset]) -> str:
    return f"{len(filtered)} of {len(total)} cryptocurrencies"


def assets_to_frame(assets: Iterable[Asset]) -> pd.DataFrame:
    """
    Build the display table for a list of assets.

    Args:
        assets: Assets in display order

    Returns:
        DataFrame with one formatted row per asset, indexed by asset id
    """
    rows = []
    ids = []
    for asset in assets:
        ids.append(asset.id)
        rows.append({
            "Rank": format_rank(asset.market_cap_rank),
            "Name": asset.name,
            "Symbol": format_symbol(asset.symbol),
            "Price": format_price(asset.current_price),
            "24h %": format_change(asset.price_change_percentage_24h),
            "Market Cap": format_market_cap(asset.market_cap),
            "Volume (24h)": format_volume(asset.total_volume),
        })

    return pd.DataFrame(rows, columns=DISPLAY_COLUMNS, index=pd.Index(ids, name="id"))
