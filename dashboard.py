"""
Dashboard - composition root for CoinLedger.

MarketFeed owns everything that should exist once per process: the refresh
scheduler, the latest asset list and the saved keys. Dashboard is the
per-viewer layer on top of a feed: search, suggestions and insights. The
Streamlit page and the monitor both drive these objects; neither touches the
components directly.
"""

import itertools
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional, Sequence

from apscheduler.schedulers.base import BaseScheduler

from config import Settings, get_settings
from models import Asset, Insight
from repositories import CredentialStore, Credentials, MARKET_DATA_KEY, INSIGHT_KEY
from services.common import FetchFailure, InsightFailure, result_count_label
from services.insight import InsightClient
from services.market_data import MarketDataClient
from services.scheduler import RefreshScheduler
from services.search import SearchIndex, SuggestionNavigator

logger = logging.getLogger(__name__)


@dataclass
class FeedState:
    """Market data and keys shared by every viewer."""
    assets: List[Asset] = field(default_factory=list)
    loading: bool = True
    error: Optional[str] = None
    last_updated: Optional[datetime] = None
    credentials: Credentials = field(default_factory=Credentials)


@dataclass
class DashboardState:
    """Everything the page renders, apart from the search surface."""
    assets: List[Asset] = field(default_factory=list)
    loading: bool = True
    error: Optional[str] = None
    last_updated: Optional[datetime] = None
    insight: Optional[Insight] = None
    insight_error: Optional[str] = None
    insights_pending: int = 0
    credentials: Credentials = field(default_factory=Credentials)

    @property
    def insight_loading(self) -> bool:
        return self.insights_pending > 0


class MarketFeed:
    """
    Process-wide market data: one refresh cycle, one asset list.

    Refresh results arrive on scheduler threads, so every state mutation
    happens under one lock. The lock is never held while calling into the
    refresh scheduler.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        market_client: Optional[MarketDataClient] = None,
        credential_store=CredentialStore,
        scheduler: Optional[BaseScheduler] = None
    ):
        self.settings = settings or get_settings()
        self.state = FeedState()
        self._lock = threading.RLock()

        self.market_client = market_client or MarketDataClient(settings=self.settings)
        self.credential_store = credential_store
        self.refresher = RefreshScheduler(
            self.market_client,
            on_success=self._apply_assets,
            on_failure=self._apply_failure,
            on_fetch_start=self._mark_loading,
            interval_seconds=self.settings.refresh_interval_seconds,
            scheduler=scheduler
        )

    @property
    def active(self) -> bool:
        return self.refresher.active

    def activate(self):
        """Load saved keys and start the refresh cycle."""
        credentials = self.credential_store.load()
        with self._lock:
            self.state.credentials = credentials
        self.refresher.activate(credentials.market_data_key)

    def deactivate(self):
        """Stop refreshing; late fetch results will not be applied."""
        self.refresher.deactivate()

    def close(self):
        self.refresher.shutdown()

    def snapshot(self) -> FeedState:
        with self._lock:
            return replace(self.state, assets=list(self.state.assets))

    @property
    def assets(self) -> List[Asset]:
        """The current asset list. Replaced, never mutated, on each refresh."""
        with self._lock:
            return self.state.assets

    @property
    def credentials(self) -> Credentials:
        with self._lock:
            return self.state.credentials

    def _mark_loading(self):
        with self._lock:
            self.state.loading = True

    def _apply_assets(self, assets: List[Asset]):
        with self._lock:
            self.state.assets = assets
            self.state.loading = False
            self.state.error = None
            self.state.last_updated = datetime.now()

    def _apply_failure(self, failure: FetchFailure):
        with self._lock:
            self.state.loading = False
            self.state.error = (
                f"Failed to load cryptocurrency data: {failure}. "
                "Please check your API key or try again later."
            )

    def retry(self):
        """'Try Again': re-run the same fetch now."""
        with self._lock:
            self.state.error = None
            access_key = self.state.credentials.market_data_key
        if self.refresher.active:
            self.refresher.refresh_now()
            return

        self._mark_loading()
        try:
            assets = self.market_client.fetch(access_key)
        except FetchFailure as e:
            self._apply_failure(e)
            return
        self._apply_assets(assets)

    def dismiss_error(self):
        with self._lock:
            self.state.error = None

    def set_market_key(self, key: str):
        """Persist the market-data key and restart the refresh cycle with it."""
        self.credential_store.save(MARKET_DATA_KEY, key)
        with self._lock:
            self.state.credentials = replace(self.state.credentials, market_data_key=key or None)
        self.refresher.set_access_key(key or None)

    def set_insight_key(self, key: str):
        self.credential_store.save(INSIGHT_KEY, key)
        with self._lock:
            self.state.credentials = replace(self.state.credentials, insight_key=key or None)

    def clear_credentials(self):
        """'Clear All Saved API Keys'."""
        self.credential_store.clear_all()
        with self._lock:
            self.state.credentials = Credentials()
        self.refresher.set_access_key(None)
        logger.info("All saved API keys cleared")


class Dashboard:
    """
    Per-viewer controller over a MarketFeed.

    Search state is private to the viewer; insight results arrive on a worker
    pool, so both are guarded by this object's own lock. The feed never calls
    back into a Dashboard.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        market_client: Optional[MarketDataClient] = None,
        insight_client: Optional[InsightClient] = None,
        credential_store=CredentialStore,
        scheduler: Optional[BaseScheduler] = None,
        executor: Optional[ThreadPoolExecutor] = None,
        feed: Optional[MarketFeed] = None
    ):
        self.settings = settings or get_settings()
        self._owns_feed = feed is None
        self.feed = feed or MarketFeed(
            settings=self.settings,
            market_client=market_client,
            credential_store=credential_store,
            scheduler=scheduler
        )
        self._lock = threading.RLock()

        self.index = SearchIndex(limit=self.settings.suggestion_limit)
        self.navigator = SuggestionNavigator(self.index)
        self.insight_client = insight_client or InsightClient(settings=self.settings)
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.settings.insight_workers,
            thread_name_prefix="insight"
        )

        self.insight: Optional[Insight] = None
        self.insight_error: Optional[str] = None
        self.insights_pending = 0

        # Insight responses older than the displayed one are discarded
        self._insight_sequence = itertools.count(1)
        self._last_issued = 0
        self._insight_floor = 0

    # ==================== LIFECYCLE ====================

    @property
    def active(self) -> bool:
        return self.feed.active

    def activate(self):
        self.feed.activate()

    def deactivate(self):
        self.feed.deactivate()

    def close(self):
        """Release what this viewer created; a shared feed keeps running."""
        if self._owns_feed:
            self.feed.close()
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    def snapshot(self) -> DashboardState:
        """Consistent copy of the state for rendering."""
        feed = self.feed.snapshot()
        with self._lock:
            return DashboardState(
                assets=feed.assets,
                loading=feed.loading,
                error=feed.error,
                last_updated=feed.last_updated,
                insight=self.insight,
                insight_error=self.insight_error,
                insights_pending=self.insights_pending,
                credentials=feed.credentials
            )

    # ==================== MARKET DATA ====================

    def retry(self):
        self.feed.retry()

    def dismiss_error(self):
        self.feed.dismiss_error()

    # ==================== SEARCH ====================

    def _sync_assets(self) -> Sequence[Asset]:
        """Point the navigator at the feed's latest list; call under self._lock."""
        assets = self.feed.assets
        if assets is not self.navigator.assets:
            self.navigator.update_assets(assets)
        return assets

    @property
    def query(self) -> str:
        return self.navigator.query

    @property
    def filtered_assets(self) -> Sequence[Asset]:
        with self._lock:
            return self.index.filter(self._sync_assets(), self.navigator.query)

    @property
    def suggestions(self) -> List[Asset]:
        with self._lock:
            self._sync_assets()
            return list(self.navigator.suggestions) if self.navigator.shown else []

    @property
    def highlighted_position(self) -> int:
        with self._lock:
            self._sync_assets()
            return self.navigator.cursor

    @property
    def result_count(self) -> str:
        with self._lock:
            assets = self._sync_assets()
            return result_count_label(self.index.filter(assets, self.navigator.query), assets)

    def set_query(self, query: str):
        with self._lock:
            self._sync_assets()
            self.navigator.query_changed(query)

    def focus_search(self):
        with self._lock:
            self._sync_assets()
            self.navigator.focus()

    def move_down(self):
        with self._lock:
            self._sync_assets()
            self.navigator.move_down()

    def move_up(self):
        with self._lock:
            self._sync_assets()
            self.navigator.move_up()

    def hover(self, position: int):
        with self._lock:
            self._sync_assets()
            self.navigator.hover(position)

    def confirm(self) -> Optional[Asset]:
        with self._lock:
            self._sync_assets()
            return self.navigator.confirm()

    def select_suggestion(self, position: int) -> Optional[Asset]:
        with self._lock:
            self._sync_assets()
            return self.navigator.select(position)

    def dismiss_search(self):
        with self._lock:
            self.navigator.dismiss()

    def handle_key(self, key: str) -> Optional[Asset]:
        with self._lock:
            self._sync_assets()
            return self.navigator.handle_key(key)

    # ==================== CREDENTIALS ====================

    def set_market_key(self, key: str):
        self.feed.set_market_key(key)

    def set_insight_key(self, key: str):
        self.feed.set_insight_key(key)

    def clear_credentials(self):
        self.feed.clear_credentials()

    # ==================== INSIGHTS ====================

    def request_insight(self, asset_name: str) -> Future:
        """
        Ask for an insight in the background.

        Args:
            asset_name: Display name of the asset

        Returns:
            Future resolving to the Insight, or None if the request failed or was superseded
        """
        access_key = self.feed.credentials.insight_key
        with self._lock:
            sequence = next(self._insight_sequence)
            self._last_issued = sequence
            self.insights_pending += 1
            self.insight = None
            self.insight_error = None

        return self._executor.submit(self._resolve_insight, sequence, asset_name, access_key)

    def test_insight(self) -> Future:
        """'Test & Get Insight' from the settings panel."""
        return self.request_insight("Bitcoin")

    def _resolve_insight(
        self,
        sequence: int,
        asset_name: str,
        access_key: Optional[str]
    ) -> Optional[Insight]:
        try:
            insight = self.insight_client.request(asset_name, access_key)
        except InsightFailure as e:
            with self._lock:
                if sequence > self._insight_floor:
                    self._insight_floor = sequence
                    self.insight_error = str(e)
            return None
        finally:
            with self._lock:
                self.insights_pending -= 1

        with self._lock:
            if sequence <= self._insight_floor:
                logger.info(f"Discarding superseded insight for {asset_name}")
                return None
            self._insight_floor = sequence
            self.insight = insight
            self.insight_error = None
        return insight

    def dismiss_insight(self):
        """Close the insight panel; responses still in flight will not reopen it."""
        with self._lock:
            self.insight = None
            self._insight_floor = self._last_issued

    def dismiss_insight_error(self):
        with self._lock:
            self.insight_error = None
