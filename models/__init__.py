"""
Data models for CoinLedger.
Only Credential is a table; Asset and Insight are in-memory snapshots.
"""

from models.asset import Asset
from models.credential import Credential
from models.insight import Insight

__all__ = [
    'Asset',
    'Credential',
    'Insight',
]
