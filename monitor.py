"""
Headless price monitor using APScheduler.
Refreshes the market listing on the configured interval and logs the top
assets, optionally narrowed by a search query.

Usage:
    python monitor.py [--once] [query]
"""

import logging
import sys
import time
from typing import List, Optional, Sequence

from apscheduler.schedulers.base import BaseScheduler
from dotenv import load_dotenv

from config import get_settings
from db_engine import init_db
from models import Asset
from repositories import CredentialStore
from services.common import FetchFailure, assets_to_frame, result_count_label
from services.market_data import MarketDataClient
from services.scheduler import RefreshScheduler
from services.search import SearchIndex

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=get_settings().log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

TOP_N = 10


def render_assets(assets: Sequence[Asset], query: str = "", limit: int = TOP_N) -> str:
    """
    Format the (filtered) asset list as a text table.

    Args:
        assets: Full asset list from the latest refresh
        query: Optional search query
        limit: Maximum rows to show

    Returns:
        Table text preceded by a "N of M" line
    """
    filtered = SearchIndex().filter(assets, query)
    header = result_count_label(filtered, assets)
    if not filtered:
        return f"{header}\n(no matches)"
    frame = assets_to_frame(list(filtered)[:limit])
    return f"{header}\n{frame.to_string(index=False)}"


class PriceMonitor:
    """Logs a price table on every refresh cycle."""

    def __init__(
        self,
        query: str = "",
        client: Optional[MarketDataClient] = None,
        scheduler: Optional[BaseScheduler] = None
    ):
        self.query = query
        self.refresher = RefreshScheduler(
            client or MarketDataClient(),
            on_success=self.report,
            on_failure=self.report_failure,
            scheduler=scheduler
        )

    def report(self, assets: List[Asset]):
        logger.info("Market update:\n" + render_assets(assets, self.query))

    def report_failure(self, failure: FetchFailure):
        logger.error(f"Failed to load cryptocurrency data: {failure}")

    def start(self, access_key: Optional[str] = None):
        self.refresher.activate(access_key)

    def stop(self):
        self.refresher.shutdown()


def run_one_time_check(query: str = "", access_key: Optional[str] = None) -> bool:
    """Fetch once and log the table. Returns False if the fetch failed."""
    logger.info("Running one-time market check...")
    try:
        assets = MarketDataClient().fetch(access_key)
    except FetchFailure as e:
        logger.error(f"Failed to load cryptocurrency data: {e}")
        return False
    logger.info("Market update:\n" + render_assets(assets, query))
    return True


if __name__ == "__main__":
    args = sys.argv[1:]
    once = "--once" in args
    query = " ".join(arg for arg in args if arg != "--once")

    init_db()
    access_key = CredentialStore.load().market_data_key

    if once:
        sys.exit(0 if run_one_time_check(query, access_key) else 1)

    monitor = PriceMonitor(query)
    try:
        monitor.start(access_key)
        print("\n" + "=" * 60)
        print("CoinLedger Price Monitor is running...")
        print("Press Ctrl+C to stop.")
        print("=" * 60 + "\n")

        while True:
            time.sleep(1)

    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down price monitor...")
        monitor.stop()
        logger.info("Price monitor stopped.")
