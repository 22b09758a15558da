class BackOfficeError(Exception):
    """Base class for errors raised by the back office."""


class FeedPayloadError(BackOfficeError):
    """The spot price feed answered with a payload we can't read."""


class OCRError(BackOfficeError):
    """Text recognition failed for an uploaded image."""


class ExportError(BackOfficeError):
    """A PDF or spreadsheet document could not be generated."""


class LivePriceLockedError(BackOfficeError):
    """Manual price entry attempted on a live-priced line item."""
