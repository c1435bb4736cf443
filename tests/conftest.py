"""
Shared pytest fixtures for CoinLedger tests.
"""

import pytest
import requests
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

from config import reload_settings
from db_engine import dispose_engine, init_db
from models import Asset


# ============================================================================
# Mock Data Fixtures
# ============================================================================

@pytest.fixture
def market_records():
    """Records shaped like the CoinGecko /coins/markets response."""
    return [
        {
            "id": "bitcoin",
            "symbol": "btc",
            "name": "Bitcoin",
            "current_price": 43250.5,
            "price_change_percentage_24h_in_currency": 3.2,
            "market_cap": 845000000000,
            "total_volume": 25000000000,
            "market_cap_rank": 1
        },
        {
            "id": "ethereum",
            "symbol": "eth",
            "name": "Ethereum",
            "current_price": 2250.12,
            "price_change_percentage_24h_in_currency": -1.5,
            "market_cap": 270000000000,
            "total_volume": 12000000000,
            "market_cap_rank": 2
        },
        {
            "id": "bitcoin-cash",
            "symbol": "bch",
            "name": "Bitcoin Cash",
            "current_price": 240.0,
            "price_change_percentage_24h_in_currency": None,
            "market_cap": None,
            "total_volume": 300000000,
            "market_cap_rank": 20
        },
        {
            "id": "wrapped-bitcoin",
            "symbol": "wbtc",
            "name": "Wrapped Bitcoin",
            "current_price": None,
            "price_change_percentage_24h_in_currency": 0.4,
            "market_cap": 7000000000,
            "total_volume": None,
            "market_cap_rank": None
        },
    ]


@pytest.fixture
def assets(market_records):
    return [Asset.from_record(record) for record in market_records]


@pytest.fixture
def many_assets():
    """Twelve assets that all match the query 'coin'."""
    return [Asset(id=f"coin-{i}", name=f"Coin {i}", symbol=f"c{i}") for i in range(12)]


@pytest.fixture
def gemini_response():
    """Mock generateContent response."""
    return {
        "candidates": [{
            "content": {
                "role": "model",
                "parts": [{"text": "Bitcoin remains the largest digital asset by market cap."}]
            },
            "finishReason": "STOP"
        }]
    }


# ============================================================================
# HTTP Fixtures
# ============================================================================

@pytest.fixture
def make_response():
    """Factory for mock requests.Response objects."""
    def _make(status=200, json_data=None, reason="OK", json_error=None):
        response = Mock(spec=requests.Response)
        response.status_code = status
        response.ok = status < 400
        response.reason = reason
        if json_error is not None:
            response.json.side_effect = json_error
        else:
            response.json.return_value = json_data
        return response
    return _make


@pytest.fixture
def mock_session():
    return Mock(spec=requests.Session)


# ============================================================================
# Scheduler / Executor Fixtures
# ============================================================================

@pytest.fixture
def fake_scheduler():
    """APScheduler stand-in that records every job it hands out."""
    scheduler = Mock()
    scheduler.jobs = []

    def add_job(*args, **kwargs):
        job = Mock()
        scheduler.jobs.append(job)
        return job

    scheduler.add_job.side_effect = add_job
    return scheduler


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=2)
    yield pool
    pool.shutdown(wait=True)


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Point the engine at a throwaway SQLite file."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'coinledger_test.db'}")
    reload_settings()
    dispose_engine()
    init_db()
    yield
    dispose_engine()
    monkeypatch.undo()
    reload_settings()
