"""
CoinLedger - Streamlit Application
Live cryptocurrency prices with search, autocomplete and AI insights.
"""

import atexit
import logging
from concurrent.futures import ThreadPoolExecutor

import streamlit as st
from dotenv import load_dotenv

from config import get_settings
from dashboard import Dashboard, MarketFeed
from db_engine import init_db
from models import Asset
from services.common import (
    assets_to_frame,
    avatar_initial,
    card_heading,
    change_direction,
    format_change,
    format_market_cap,
    format_price,
    format_symbol,
    format_volume,
)

# Load environment variables
load_dotenv()

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Configure Streamlit page
st.set_page_config(
    page_title="CoinLedger - Track Smarter. Trade Better.",
    page_icon="🪙",
    layout="wide"
)

# How often the live sections re-read dashboard state
RERENDER_SECONDS = 5
CARDS_PER_ROW = 3


# ==================== SESSION STATE ====================
@st.cache_resource
def get_feed() -> MarketFeed:
    """One market feed per server process, shared by every browser session."""
    init_db()
    feed = MarketFeed(settings=settings)
    feed.activate()
    atexit.register(feed.close)
    return feed


@st.cache_resource
def get_insight_executor() -> ThreadPoolExecutor:
    executor = ThreadPoolExecutor(
        max_workers=settings.insight_workers,
        thread_name_prefix="insight"
    )
    atexit.register(executor.shutdown, wait=False)
    return executor


def get_dashboard() -> Dashboard:
    """This session's search and insight state on top of the shared feed."""
    if "dashboard" not in st.session_state:
        feed = get_feed()
        st.session_state.dashboard = Dashboard(
            settings=settings,
            feed=feed,
            executor=get_insight_executor()
        )

        credentials = feed.credentials
        st.session_state.market_key_input = credentials.market_data_key or ""
        st.session_state.insight_key_input = credentials.insight_key or ""
        st.session_state.search_query = ""
    return st.session_state.dashboard


# ==================== CALLBACKS ====================
def _sync_query():
    """Reflect a query set by the dashboard (e.g. after a selection) in the search box."""
    st.session_state.search_query = get_dashboard().query


def on_search_change():
    get_dashboard().set_query(st.session_state.search_query)


def on_key(key: str):
    get_dashboard().handle_key(key)
    _sync_query()


def on_select_suggestion(position: int):
    get_dashboard().select_suggestion(position)
    _sync_query()


def on_market_key_change():
    get_dashboard().set_market_key(st.session_state.market_key_input)


def on_insight_key_change():
    get_dashboard().set_insight_key(st.session_state.insight_key_input)


def on_clear_keys():
    get_dashboard().clear_credentials()
    st.session_state.market_key_input = ""
    st.session_state.insight_key_input = ""


def on_live_toggle():
    dashboard = get_dashboard()
    if st.session_state.live_refresh:
        dashboard.activate()
    else:
        dashboard.deactivate()


# ==================== SIDEBAR ====================
def render_sidebar(dashboard: Dashboard):
    """Render API key settings and refresh controls."""
    st.sidebar.title("⚙️ API Settings")

    credentials = dashboard.snapshot().credentials
    if credentials.any_configured:
        st.sidebar.success("✅ API Keys Configured")
    else:
        st.sidebar.info("Running on public rate limits with basic insights.")

    st.sidebar.text_input(
        "CoinGecko API Key",
        type="password",
        key="market_key_input",
        on_change=on_market_key_change,
        placeholder="Enter CoinGecko API Key for higher rate limits",
        help="For higher rate limits, add your CoinGecko API key"
    )
    if st.sidebar.button("Apply", use_container_width=True):
        dashboard.retry()

    st.sidebar.text_input(
        "Gemini API Key",
        type="password",
        key="insight_key_input",
        on_change=on_insight_key_change,
        placeholder="Enter Gemini API Key for AI insights",
        help="For AI-powered insights, add your Gemini API key. Without it, you'll get basic insights."
    )
    if st.sidebar.button("Test & Get Insight", use_container_width=True):
        dashboard.test_insight()
    st.sidebar.markdown("[Get API Key](https://aistudio.google.com/app/apikey)")

    if credentials.any_configured:
        st.sidebar.button(
            "Clear All Saved API Keys",
            on_click=on_clear_keys,
            use_container_width=True
        )

    st.sidebar.markdown("---")
    st.sidebar.toggle(
        "Live refresh",
        value=dashboard.active,
        key="live_refresh",
        on_change=on_live_toggle,
        help=f"Refresh prices every {settings.refresh_interval_seconds}s for every open session"
    )


# ==================== SEARCH ====================
def render_search(dashboard: Dashboard):
    """Search box, keyboard controls and the suggestion dropdown."""
    col1, col2 = st.columns([4, 1])
    with col1:
        st.text_input(
            "Search cryptocurrencies",
            key="search_query",
            on_change=on_search_change,
            placeholder="Search cryptocurrencies...",
            label_visibility="collapsed"
        )
    with col2:
        st.caption(dashboard.result_count)

    suggestions = dashboard.suggestions
    if not suggestions:
        return

    nav = st.columns(4)
    nav[0].button("↑", on_click=on_key, args=("ArrowUp",), use_container_width=True)
    nav[1].button("↓", on_click=on_key, args=("ArrowDown",), use_container_width=True)
    nav[2].button("Select", on_click=on_key, args=("Enter",), use_container_width=True)
    nav[3].button("Esc", on_click=on_key, args=("Escape",), use_container_width=True)

    cursor = dashboard.highlighted_position
    with st.container(border=True):
        for position, asset in enumerate(suggestions):
            label = (
                f"{avatar_initial(asset.symbol)}  {asset.name} ({format_symbol(asset.symbol)})"
                f"  ·  {format_price(asset.current_price)}"
                f"  ·  {format_change(asset.price_change_percentage_24h)}"
            )
            st.button(
                label,
                key=f"suggestion_{asset.id}",
                type="primary" if position == cursor else "secondary",
                on_click=on_select_suggestion,
                args=(position,),
                use_container_width=True
            )


# ==================== MARKET ====================
def render_asset_card(dashboard: Dashboard, asset: Asset):
    """One asset tile with price, change, market cap, volume and an insight button."""
    with st.container(border=True):
        st.markdown(card_heading(asset))
        direction = change_direction(asset.price_change_percentage_24h)
        st.metric(
            "Price",
            format_price(asset.current_price),
            delta=format_change(asset.price_change_percentage_24h) if direction else None
        )
        st.caption(
            f"Market Cap {format_market_cap(asset.market_cap)}  ·  "
            f"Volume (24h) {format_volume(asset.total_volume)}"
        )
        if st.button("✨ Get AI Insight", key=f"insight_{asset.id}", use_container_width=True):
            dashboard.request_insight(asset.name)


@st.fragment(run_every=RERENDER_SECONDS)
def render_market(view: str):
    """Re-rendered periodically so background refreshes and insights show up."""
    dashboard = get_dashboard()
    state = dashboard.snapshot()

    render_insight(dashboard)

    if state.loading and not state.assets:
        st.info("Loading cryptocurrency data...")
        return

    if state.error:
        st.error(state.error)
        col1, col2 = st.columns(2)
        if col1.button("Try Again", use_container_width=True):
            with st.spinner("Fetching prices..."):
                dashboard.retry()
            st.rerun(scope="fragment")
        if col2.button("Dismiss", use_container_width=True):
            dashboard.dismiss_error()
            st.rerun(scope="fragment")
        return

    filtered = dashboard.filtered_assets
    if not filtered:
        st.warning("No cryptocurrencies match your search.")
        return

    if state.last_updated:
        st.caption(f"Last updated {state.last_updated.strftime('%H:%M:%S')}")

    if view == "Table":
        st.dataframe(assets_to_frame(filtered), use_container_width=True, hide_index=True)
        return

    for start in range(0, len(filtered), CARDS_PER_ROW):
        columns = st.columns(CARDS_PER_ROW)
        for column, asset in zip(columns, filtered[start:start + CARDS_PER_ROW]):
            with column:
                render_asset_card(dashboard, asset)


def render_insight(dashboard: Dashboard):
    """Insight panel, loading indicator and failure toast."""
    state = dashboard.snapshot()

    if state.insight_loading:
        st.info("Generating insight...")

    if state.insight_error:
        st.toast(f"⚠️ {state.insight_error}")
        dashboard.dismiss_insight_error()

    if state.insight:
        with st.container(border=True):
            st.subheader(f"{state.insight.name} Insight")
            st.write(state.insight.text)
            if state.insight.source == "fallback":
                st.caption("Basic insight. Add a Gemini API key for AI-generated insights.")
            if st.button("Close", key="close_insight"):
                dashboard.dismiss_insight()
                st.rerun(scope="fragment")


# ==================== MAIN APP ====================
def main():
    """Main application entry point."""
    dashboard = get_dashboard()

    st.title("🪙 CoinLedger")
    st.markdown(
        f"*Track Smarter. Trade Better.*  ·  Live Data  ·  "
        f"Updated every {settings.refresh_interval_seconds}s"
    )

    render_sidebar(dashboard)
    render_search(dashboard)

    view = st.radio("View", ["Cards", "Table"], horizontal=True, label_visibility="collapsed")
    render_market(view)

    # Footer
    st.markdown("---")
    st.markdown(
        "<div style='text-align: center; color: gray;'>"
        "Data from CoinGecko · Insights by Gemini · &copy; 2025 CoinLedger</div>",
        unsafe_allow_html=True
    )


if __name__ == "__main__":
    main()
