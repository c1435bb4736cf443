"""
Services package for CoinLedger.
Market data, insight generation, search and refresh scheduling,
kept separate from presentation and storage.
"""

from services.common import (
    CoinLedgerError,
    FetchFailure,
    InsightFailure,
    format_price,
    format_change,
    format_market_cap,
    format_volume,
    assets_to_frame,
)
from services.market_data import MarketDataClient
from services.insight import InsightClient, fallback_insight
from services.search import SearchIndex, SuggestionNavigator
from services.scheduler import RefreshScheduler, RefreshHandle

__all__ = [
    # Errors and formatting
    'CoinLedgerError',
    'FetchFailure',
    'InsightFailure',
    'format_price',
    'format_change',
    'format_market_cap',
    'format_volume',
    'assets_to_frame',
    # Clients
    'MarketDataClient',
    'InsightClient',
    'fallback_insight',
    # Search and refresh
    'SearchIndex',
    'SuggestionNavigator',
    'RefreshScheduler',
    'RefreshHandle',
]
