import json

import pytest
import requests

from config import Settings
from prompts import FALLBACK_INSIGHTS
from services.common import InsightFailure
from services.insight import (
    GENERIC_FAILURE_MESSAGE,
    InsightClient,
    build_payload,
    extract_text,
    fallback_insight,
)


@pytest.fixture
def client(mock_session):
    return InsightClient(session=mock_session, settings=Settings(), selector=lambda count: 1)


def test_no_key_uses_fallback_without_network(client, mock_session):
    for key in (None, ""):
        insight = client.request("Bitcoin", key)
        assert insight.name == "Bitcoin"
        assert insight.text
        assert "Bitcoin" in insight.text
        assert insight.source == "fallback"
    mock_session.post.assert_not_called()


def test_fallback_never_fails_with_default_selector(mock_session):
    client = InsightClient(session=mock_session, settings=Settings())
    for _ in range(50):
        insight = client.request("Bitcoin")
        assert insight.name == "Bitcoin"
        assert insight.text.startswith("Bitcoin ")


def test_fallback_selection_is_injectable():
    first = fallback_insight("Solana", selector=lambda count: 0)
    second = fallback_insight("Solana", selector=lambda count: 1)
    assert first.text == FALLBACK_INSIGHTS[0].format(asset_name="Solana")
    assert second.text == FALLBACK_INSIGHTS[1].format(asset_name="Solana")
    assert first.text != second.text


def test_fallback_template_set_is_fixed():
    assert len(FALLBACK_INSIGHTS) == 4
    assert all("{asset_name}" in template for template in FALLBACK_INSIGHTS)


def test_payload_has_single_user_prompt():
    payload = build_payload("Ethereum")
    assert len(payload["contents"]) == 1
    turn = payload["contents"][0]
    assert turn["role"] == "user"
    prompt = turn["parts"][0]["text"]
    assert "Ethereum" in prompt
    assert "2-3 sentences" in prompt


def test_remote_insight(client, mock_session, make_response, gemini_response):
    mock_session.post.return_value = make_response(json_data=gemini_response)

    insight = client.request("Bitcoin", "gemini-key")

    assert insight.name == "Bitcoin"
    assert insight.text == "Bitcoin remains the largest digital asset by market cap."
    assert insight.source == "remote"

    args, kwargs = mock_session.post.call_args
    assert args[0].endswith("gemini-2.0-flash:generateContent")
    assert kwargs["params"] == {"key": "gemini-key"}
    assert kwargs["json"] == build_payload("Bitcoin")
    assert mock_session.post.call_count == 1


@pytest.mark.parametrize("body", [
    {},
    {"candidates": []},
    {"candidates": [{"finishReason": "SAFETY"}]},
    {"candidates": [{"content": {"parts": []}}]},
    {"candidates": [{"content": {"parts": [{"inlineData": {}}]}}]},
    {"error": {"code": 400, "message": "API key not valid."}},
])
def test_unexpected_structure_is_generic_failure(client, mock_session, make_response, body):
    mock_session.post.return_value = make_response(json_data=body)

    with pytest.raises(InsightFailure) as excinfo:
        client.request("Bitcoin", "gemini-key")

    assert str(excinfo.value) == GENERIC_FAILURE_MESSAGE


def test_non_json_body_is_generic_failure(client, mock_session, make_response):
    mock_session.post.return_value = make_response(
        json_error=json.JSONDecodeError("Expecting value", "", 0)
    )

    with pytest.raises(InsightFailure, match="Could not generate insight"):
        client.request("Bitcoin", "gemini-key")


def test_transport_error_carries_message(client, mock_session):
    mock_session.post.side_effect = requests.Timeout("Read timed out")

    with pytest.raises(InsightFailure) as excinfo:
        client.request("Bitcoin", "gemini-key")

    assert "Read timed out" in str(excinfo.value)


def test_extract_text_paths(gemini_response):
    assert extract_text(gemini_response).startswith("Bitcoin remains")
    assert extract_text(None) is None
    assert extract_text([]) is None
    assert extract_text({"candidates": ["oops"]}) is None
    assert extract_text({"candidates": [{"content": {"parts": [{"text": "   "}]}}]}) is None
