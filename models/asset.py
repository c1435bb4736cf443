"""
Asset model - one cryptocurrency's market snapshot from a refresh cycle.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional


def _as_float(value: Any) -> Optional[float]:
    """Coerce a JSON number to float; anything else is treated as absent."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _as_int(value: Any) -> Optional[int]:
    number = _as_float(value)
    return int(number) if number is not None else None


@dataclass(frozen=True)
class Asset:
    """
    Immutable market snapshot for a single asset.
    Every numeric field is optional; absent values render as "N/A".
    """
    id: str  # e.g., "bitcoin" - stable across refreshes
    name: str  # e.g., "Bitcoin"
    symbol: str  # e.g., "btc"
    current_price: Optional[float] = None
    price_change_percentage_24h: Optional[float] = None
    market_cap: Optional[float] = None
    total_volume: Optional[float] = None
    market_cap_rank: Optional[int] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Asset":
        """
        Project one record of the markets listing onto an Asset.

        Args:
            record: JSON object as returned by the market-data endpoint

        Returns:
            Asset with missing or malformed numeric fields set to None
        """
        return cls(
            id=str(record.get('id') or ''),
            name=str(record.get('name') or ''),
            symbol=str(record.get('symbol') or ''),
            current_price=_as_float(record.get('current_price')),
            price_change_percentage_24h=_as_float(
                record.get('price_change_percentage_24h_in_currency')
            ),
            market_cap=_as_float(record.get('market_cap')),
            total_volume=_as_float(record.get('total_volume')),
            market_cap_rank=_as_int(record.get('market_cap_rank')),
        )
