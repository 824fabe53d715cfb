"""Errors raised while building and printing receipts."""


class PrinterError(Exception):
    """Base class for every print job failure."""

    status_code = 500


class ValidationError(PrinterError):
    """The request body is missing a printer target or a required field."""

    status_code = 400


class PrinterConnectionError(PrinterError):
    """The transport could not be opened. Nothing was sent to the printer."""


class RenderError(PrinterError):
    """A QR code could not be rendered into a printable image."""


class EmissionError(PrinterError):
    """Writing a command to an open printer failed."""
