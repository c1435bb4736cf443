"""
Insight model - a short text about one asset, shown until replaced or dismissed.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Insight:
    """Generated (or fallback) insight text for an asset."""
    name: str  # Asset display name, e.g., "Bitcoin"
    text: str
    source: str = "remote"  # "remote" or "fallback"
