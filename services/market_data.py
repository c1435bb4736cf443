"""
Market data client for the CoinGecko markets listing.
One GET per call: no retries here; the refresh schedule and the manual
"Try Again" action are the only retry paths.
"""

import logging
from typing import Any, List, Optional

import requests

from config import Settings, get_settings
from models import Asset
from services.common import FetchFailure

logger = logging.getLogger(__name__)


class MarketDataClient:
    """
    Client for fetching the top assets by market cap.
    Returns a straight projection of the listing; no re-sorting or aggregation.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        settings: Optional[Settings] = None
    ):
        self.settings = settings or get_settings()
        self.session = session or requests.Session()

    def build_params(self, access_key: Optional[str] = None) -> dict:
        """Query parameters for the listing, with the access key when present."""
        params = dict(self.settings.market_data_params)
        if access_key:
            params[self.settings.market_data_key_param] = access_key
        return params

    def fetch(self, access_key: Optional[str] = None) -> List[Asset]:
        """
        Fetch the current asset list.

        Args:
            access_key: Optional market-data API key

        Returns:
            Assets in the order returned by the service

        Raises:
            FetchFailure: On transport errors, non-success status, or an unparseable body
        """
        url = self.settings.market_data_url
        logger.info(f"Fetching market data from {url} (key {'set' if access_key else 'not set'})")

        try:
            response = self.session.get(
                url,
                params=self.build_params(access_key),
                timeout=self.settings.request_timeout
            )
        except requests.RequestException as e:
            logger.error(f"Market data request failed: {e}")
            raise FetchFailure(str(e)) from e

        if not response.ok:
            message = f"HTTP error! Status: {response.status_code} - {self._error_detail(response)}"
            logger.error(f"Market data request rejected: {message}")
            raise FetchFailure(message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Market data body is not valid JSON: {e}")
            raise FetchFailure(f"Invalid response body: {e}", status_code=response.status_code) from e

        if not isinstance(data, list) or not all(isinstance(record, dict) for record in data):
            logger.error(f"Unexpected market data shape: {type(data).__name__}")
            raise FetchFailure("Unexpected response format", status_code=response.status_code)

        assets = [Asset.from_record(record) for record in data]
        logger.info(f"Fetched {len(assets)} assets")
        return assets

    @staticmethod
    def _error_detail(response: requests.Response) -> str:
        """Server-provided error text, falling back to the HTTP reason phrase."""
        try:
            body: Any = response.json()
        except ValueError:
            body = None

        detail = None
        if isinstance(body, dict):
            detail = body.get('error') or body.get('message')
            status = body.get('status')
            if detail is None and isinstance(status, dict):
                detail = status.get('error_message')
        if isinstance(detail, dict):
            detail = detail.get('message') or detail.get('error_message')

        if detail:
            return str(detail)
        return response.reason or "Unknown error"
