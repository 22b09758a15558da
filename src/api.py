"""
Price proxy for the back office front end.

Re-exposes the upstream spot feed as ``GET /api/prices`` in a fixed shape.
When the upstream is down the same shape comes back with fallback prices,
so callers never have to handle a feed outage.

Run with: ``uvicorn src.api:app --port 8000``
"""

from pathlib import Path
from typing import Any, Callable

from dotenv import load_dotenv
from fastapi import FastAPI

from src.logger import setup_logging
from src.models import SpotPriceQuote
from src.providers.goldprice import build_feed_payload, get_spot_quote


def create_app(quote_source: Callable[[], SpotPriceQuote] = get_spot_quote) -> FastAPI:
    app = FastAPI(
        title="Back Office Price Proxy",
        description="Live gold, silver, platinum and diamond prices in USD.",
        version="1.0.0",
    )

    @app.get("/api/prices", summary="Latest spot prices")
    def read_prices() -> dict[str, Any]:
        return build_feed_payload(quote_source())

    @app.get("/health", summary="Liveness check")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env")
setup_logging()
app = create_app()
