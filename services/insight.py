"""
Insight client - short natural-language notes about an asset.
Calls the Gemini generateContent endpoint when an insight key is configured,
and falls back to canned local text when it is not.
"""

import logging
import random
from typing import Any, Callable, Optional, Sequence

import requests

from config import Settings, get_settings
from models import Insight
from prompts import FALLBACK_INSIGHTS, INSIGHT_PROMPT
from services.common import InsightFailure

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Could not generate insight. Please try again."

# Picks an index in [0, count)
Selector = Callable[[int], int]


def build_prompt(asset_name: str) -> str:
    return INSIGHT_PROMPT.format(asset_name=asset_name)


def build_payload(asset_name: str) -> dict:
    """Request body with a single user turn carrying the prompt."""
    return {
        "contents": [
            {"role": "user", "parts": [{"text": build_prompt(asset_name)}]}
        ]
    }


def extract_text(result: Any) -> Optional[str]:
    """
    Pull candidates[0].content.parts[0].text out of a generateContent response.

    Returns:
        The text, or None when any step of the path is missing or empty
    """
    if not isinstance(result, dict):
        return None
    candidates = result.get('candidates')
    if not isinstance(candidates, list) or not candidates:
        return None
    first = candidates[0]
    content = first.get('content') if isinstance(first, dict) else None
    parts = content.get('parts') if isinstance(content, dict) else None
    if not isinstance(parts, list) or not parts:
        return None
    part = parts[0]
    text = part.get('text') if isinstance(part, dict) else None
    if not isinstance(text, str) or not text.strip():
        return None
    return text


def fallback_insight(
    asset_name: str,
    selector: Selector = random.randrange,
    templates: Sequence[str] = FALLBACK_INSIGHTS
) -> Insight:
    """
    Build a canned insight for when no insight key is configured.

    Args:
        asset_name: Display name substituted into the template
        selector: Function mapping the template count to an index
        templates: Template set, each containing '{asset_name}'

    Returns:
        Insight whose name is exactly asset_name
    """
    index = selector(len(templates)) % len(templates)
    return Insight(
        name=asset_name,
        text=templates[index].format(asset_name=asset_name),
        source="fallback"
    )


class InsightClient:
    """
    Two-tier insight retrieval: remote generation with a key, local fallback without.
    Each call is independent; concurrent calls are not de-duplicated.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        settings: Optional[Settings] = None,
        selector: Selector = random.randrange
    ):
        self.settings = settings or get_settings()
        self.session = session or requests.Session()
        self.selector = selector

    def request(self, asset_name: str, access_key: Optional[str] = None) -> Insight:
        """
        Get an insight for an asset.

        Args:
            asset_name: Display name of the asset (e.g., "Bitcoin")
            access_key: Optional generative-text API key

        Returns:
            Insight for asset_name

        Raises:
            InsightFailure: Only on the remote path, for transport errors or an unexpected response
        """
        if not access_key:
            logger.info(f"No insight key configured, using fallback insight for {asset_name}")
            return fallback_insight(asset_name, self.selector)

        logger.info(f"Requesting insight for {asset_name}")
        try:
            response = self.session.post(
                self.settings.insight_url,
                params={"key": access_key},
                json=build_payload(asset_name),
                headers={"Content-Type": "application/json"},
                timeout=self.settings.request_timeout
            )
        except requests.RequestException as e:
            logger.error(f"Error calling insight API: {e}")
            raise InsightFailure(f"Failed to get insight: {e}.") from e

        try:
            result = response.json()
        except ValueError as e:
            logger.error(f"Insight API returned a non-JSON body: {e}")
            raise InsightFailure(GENERIC_FAILURE_MESSAGE) from e

        text = extract_text(result)
        if text is None:
            logger.error(f"Unexpected insight response structure: {result}")
            raise InsightFailure(GENERIC_FAILURE_MESSAGE)

        return Insight(name=asset_name, text=text, source="remote")
