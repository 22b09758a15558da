import pytest
import requests

from src.errors import FeedPayloadError
from src.providers.goldprice import (
    FALLBACK_QUOTE_VALUES,
    GoldPriceOrgProvider,
    build_feed_payload,
    fallback_quote,
    get_spot_quote,
    parse_feed_payload,
)


class FakeResponse:
    def __init__(self, payload=None, status_code=200, json_error=False):
        self.payload = payload
        self.status_code = status_code
        self.json_error = json_error

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self.json_error:
            raise ValueError("No JSON object could be decoded")
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response


def _provider(session):
    provider = GoldPriceOrgProvider(url="https://feed.test/dbXRates/USD", timeout_seconds=3)
    provider.session = session
    return provider


def test_parse_feed_payload_full_shape():
    quote = parse_feed_payload({"items": [{"xauPrice": 2301.4, "xagPrice": 27.1, "xptPrice": 990, "diaPrice": 5400}]})
    assert (quote.gold, quote.silver, quote.platinum, quote.diamond) == (2301.4, 27.1, 990.0, 5400.0)
    assert quote.source == "upstream"
    assert quote.observed_at.tzinfo is not None


def test_parse_feed_payload_defaults_platinum_and_diamond():
    quote = parse_feed_payload({"items": [{"xauPrice": "2301.4", "xagPrice": "27.1"}]})
    assert quote.platinum == FALLBACK_QUOTE_VALUES["platinum"]
    assert quote.diamond == FALLBACK_QUOTE_VALUES["diamond"]


@pytest.mark.parametrize(
    "payload",
    [
        None,
        [],
        {},
        {"items": []},
        {"items": ["oops"]},
        {"items": [{"xauPrice": 2300}]},
        {"items": [{"xauPrice": "abc", "xagPrice": 27}]},
        {"items": [{"xauPrice": 0, "xagPrice": 27}]},
    ],
)
def test_parse_feed_payload_rejects_malformed(payload):
    with pytest.raises(FeedPayloadError):
        parse_feed_payload(payload)


def test_provider_sends_browser_user_agent():
    session = FakeSession(FakeResponse({"items": [{"xauPrice": 2300, "xagPrice": 27}]}))
    quote = _provider(session).fetch_quote()

    call = session.calls[0]
    assert call["url"] == "https://feed.test/dbXRates/USD"
    assert call["timeout"] == 3
    assert call["headers"]["User-Agent"].startswith("Mozilla/5.0")
    assert quote.gold == 2300
    assert FALLBACK_QUOTE_VALUES["platinum"] <= quote.platinum <= FALLBACK_QUOTE_VALUES["platinum"] + 2
    assert FALLBACK_QUOTE_VALUES["diamond"] <= quote.diamond <= FALLBACK_QUOTE_VALUES["diamond"] + 50


def test_provider_raises_on_non_json_body():
    session = FakeSession(FakeResponse(json_error=True))
    with pytest.raises(FeedPayloadError):
        _provider(session).fetch_quote()


@pytest.mark.parametrize(
    "session",
    [
        FakeSession(error=requests.ConnectionError("offline")),
        FakeSession(FakeResponse(status_code=503)),
        FakeSession(FakeResponse({"unexpected": True})),
    ],
)
def test_get_spot_quote_falls_back_on_any_failure(session):
    quote = get_spot_quote(_provider(session))
    assert quote.is_fallback
    assert (quote.gold, quote.silver, quote.platinum, quote.diamond) == (2025.50, 24.50, 980.20, 5450.00)


def test_get_spot_quote_falls_back_for_unknown_provider(monkeypatch):
    monkeypatch.setenv("PRICE_PROVIDER", "nowhere")
    assert get_spot_quote().is_fallback


def test_build_feed_payload_shape():
    payload = build_feed_payload(fallback_quote())
    assert payload == {
        "items": [
            {"xauPrice": 2025.50, "xagPrice": 24.50, "xptPrice": 980.20, "diaPrice": 5450.00, "curr": "USD"}
        ]
    }
