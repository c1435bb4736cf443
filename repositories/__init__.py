"""
Repositories package for CoinLedger.
Provides data access for the persisted credential slots.
"""

from repositories.credential_store import (
    CredentialStore,
    Credentials,
    MARKET_DATA_KEY,
    INSIGHT_KEY,
)

__all__ = [
    'CredentialStore',
    'Credentials',
    'MARKET_DATA_KEY',
    'INSIGHT_KEY',
]
