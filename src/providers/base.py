from abc import ABC, abstractmethod

from src.models import SpotPriceQuote


class SpotPriceProvider(ABC):
    provider_name: str

    @abstractmethod
    def fetch_quote(self) -> SpotPriceQuote:
        """Returns the latest USD spot quote or raises on any failure."""
        raise NotImplementedError
