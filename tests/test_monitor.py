from unittest.mock import Mock

from monitor import PriceMonitor, render_assets
from services.market_data import MarketDataClient


def test_render_assets_filters_by_query(assets):
    text = render_assets(assets, "bit")
    assert text.startswith("3 of 4 cryptocurrencies")
    assert "Bitcoin Cash" in text
    assert "Ethereum" not in text


def test_render_assets_limits_rows(many_assets):
    text = render_assets(many_assets, "", limit=5)
    assert "Coin 4" in text
    assert "Coin 5" not in text


def test_render_assets_no_matches(assets):
    assert render_assets(assets, "zzz") == "0 of 4 cryptocurrencies\n(no matches)"


def test_price_monitor_runs_one_cycle(assets, fake_scheduler, caplog):
    client = Mock(spec=MarketDataClient)
    client.fetch.return_value = assets
    monitor = PriceMonitor("eth", client=client, scheduler=fake_scheduler)

    with caplog.at_level("INFO", logger="monitor"):
        monitor.start("key")
    monitor.stop()

    client.fetch.assert_called_once_with("key")
    assert "1 of 4 cryptocurrencies" in caplog.text
    fake_scheduler.jobs[0].remove.assert_called_once_with()
