from datetime import datetime, timezone

import pytest

from src.db import get_connection, init_db
from src.models import SpotPriceQuote


def make_quote(gold=2000.0, silver=25.0, platinum=950.0, diamond=5000.0, source="upstream") -> SpotPriceQuote:
    return SpotPriceQuote(
        gold=gold,
        silver=silver,
        platinum=platinum,
        diamond=diamond,
        observed_at=datetime(2024, 3, 12, 9, 30, tzinfo=timezone.utc),
        source=source,
    )


@pytest.fixture
def quote() -> SpotPriceQuote:
    return make_quote()


@pytest.fixture
def conn():
    connection = get_connection(":memory:")
    init_db(connection)
    yield connection
    connection.close()
