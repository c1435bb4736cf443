"""
Credential model - one named secret string (market-data key or insight key).
"""

from typing import Optional
from sqlmodel import SQLModel, Field


class Credential(SQLModel, table=True):
    """A persisted key slot. A missing row means the key is not configured."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)  # e.g., "coinledger_apiKey"
    value: str
