import threading
import time
from typing import Callable

from src.logger import get_logger
from src.models import SpotPriceQuote
from src.providers.goldprice import fallback_quote, get_spot_quote

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 10.0
# Timer ticks can fire slightly early; this share of the interval counts as due.
DUE_FRACTION = 0.9

QuoteListener = Callable[[SpotPriceQuote], None]


class QuoteBoard:
    """
    Holds the current spot quote for one session.

    Every fetch takes a sequence number from ``begin_request`` before it goes
    out. A response is applied only if no newer request has been applied
    already, so a slow response can't overwrite a fresher quote.
    """

    def __init__(self, initial: SpotPriceQuote | None = None):
        self._lock = threading.Lock()
        self._quote = initial or fallback_quote()
        self._received = initial is not None
        self._next_seq = 0
        self._applied_seq = -1
        self._listeners: list[QuoteListener] = []

    def begin_request(self) -> int:
        with self._lock:
            seq = self._next_seq
            self._next_seq += 1
            return seq

    def apply_response(self, seq: int, quote: SpotPriceQuote) -> bool:
        with self._lock:
            if seq <= self._applied_seq:
                logger.debug("Discarding stale quote response #%d (latest applied #%d)", seq, self._applied_seq)
                return False
            self._applied_seq = seq
            self._quote = quote
            self._received = True
            listeners = list(self._listeners)

        for listener in listeners:
            listener(quote)
        return True

    def latest(self) -> SpotPriceQuote:
        with self._lock:
            return self._quote

    @property
    def has_received(self) -> bool:
        with self._lock:
            return self._received

    def subscribe(self, listener: QuoteListener) -> None:
        with self._lock:
            self._listeners.append(listener)


class PricePoller:
    """
    Refreshes a ``QuoteBoard`` on the consuming view's timer.

    The view calls ``tick`` from a timed fragment rerun, so polling belongs to
    the browser session and ends with it. ``stop`` switches polling off when
    the view goes away; a fetch still in flight at that point is dropped.
    """

    def __init__(
        self,
        board: QuoteBoard,
        fetch: Callable[[], SpotPriceQuote] = get_spot_quote,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.board = board
        self.fetch = fetch
        self.interval_seconds = interval_seconds
        self.clock = clock
        self._active = False
        self._generation = 0
        self._last_fetch_at: float | None = None

    @property
    def running(self) -> bool:
        return self._active

    def start(self) -> None:
        if self._active:
            return
        self._active = True
        self._last_fetch_at = None
        logger.debug("Price polling started (every %.0fs)", self.interval_seconds)

    def stop(self) -> None:
        if not self._active:
            return
        self._active = False
        self._generation += 1
        logger.debug("Price polling stopped")

    def is_due(self) -> bool:
        if not self._active:
            return False
        if self._last_fetch_at is None:
            return True
        return self.clock() - self._last_fetch_at >= self.interval_seconds * DUE_FRACTION

    def tick(self) -> bool:
        """Fetches when the interval has elapsed. Page reruns in between reuse the board."""
        if not self.is_due():
            return False
        try:
            return self._fetch_into_board()
        except Exception:
            logger.exception("Price poll failed")
            return False

    def refresh_now(self) -> bool:
        return self._fetch_into_board()

    def _fetch_into_board(self) -> bool:
        generation = self._generation
        self._last_fetch_at = self.clock()
        seq = self.board.begin_request()
        quote = self.fetch()
        if generation != self._generation:
            logger.debug("Dropping quote #%d fetched after polling stopped", seq)
            return False
        return self.board.apply_response(seq, quote)
