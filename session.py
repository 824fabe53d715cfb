"""Printer session: one connection, one pass over a directive sequence.

    IDLE -> OPENING -> READY -> EMITTING -> CLOSED
                 \\         \\          \\
                  +---------+----------+--> FAILED

Whatever happens after the transport has been opened, ``close()`` runs
exactly once before the error reaches the caller. A failed job is not
cut.
"""

import logging
from enum import Enum

from errors import EmissionError, PrinterConnectionError, RenderError
from esc_pos import EscPosEncoder
from directives import EmitQR
from transport import TRANSPORT_ERRORS

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = "idle"
    OPENING = "opening"
    READY = "ready"
    EMITTING = "emitting"
    CLOSED = "closed"
    FAILED = "failed"


class PrinterSession:
    """Drives one transport through open, emit and close.

    Use it as a context manager so the connection is released on every
    exit path::

        with PrinterSession(transport, encoder) as session:
            session.emit(directives)
    """

    def __init__(self, transport, encoder=None):
        self.transport = transport
        self.encoder = encoder or EscPosEncoder()
        self.state = SessionState.IDLE
        self._opened = False
        self._closed = False
        self.close_error = None

    def open(self):
        if self.state is not SessionState.IDLE:
            raise RuntimeError(f"cannot open a session in state {self.state.name}")
        self.state = SessionState.OPENING
        try:
            self.transport.open()
        except Exception as e:
            # bad hosts and settings fail here too (UnicodeError, ValueError)
            self.state = SessionState.FAILED
            logger.error("Error opening %r: %s", self.transport, e)
            # release whatever part of the connection was set up
            self._release()
            raise PrinterConnectionError("Error abriendo el dispositivo") from e
        self._opened = True
        self.state = SessionState.READY
        return self

    def emit(self, directives):
        """Write the printer reset, then every directive in order."""
        if self.state is not SessionState.READY:
            raise RuntimeError(f"cannot emit in state {self.state.name}")
        self.state = SessionState.EMITTING
        try:
            self._write(self.encoder.initialize())
            for directive in directives:
                self._write(self._encode(directive))
        except (RenderError, EmissionError):
            self.state = SessionState.FAILED
            raise
        self.state = SessionState.READY

    def _encode(self, directive):
        try:
            return self.encoder.encode(directive)
        except Exception as e:
            if isinstance(directive, EmitQR):
                logger.error("Error rendering QR code for %r: %s", directive.payload, e)
                raise RenderError("Error imprimiendo el código QR") from e
            logger.error("Error encoding %r: %s", directive, e)
            raise EmissionError("Error imprimiendo el ticket") from e

    def _write(self, data):
        try:
            self.transport.write(data)
        except TRANSPORT_ERRORS as e:
            logger.error("Error writing to %r: %s", self.transport, e)
            raise EmissionError("Error imprimiendo el ticket") from e

    def close(self):
        """Release the transport. Only the first call does anything.

        A failure while closing is logged and kept on ``close_error``; it
        does not turn a printed job into a failed one.
        """
        if self._closed:
            return
        self._closed = True
        if self._opened:
            self._release()
        if self.state is not SessionState.FAILED:
            self.state = SessionState.CLOSED

    def _release(self):
        try:
            self.transport.close()
        except TRANSPORT_ERRORS as e:
            self.close_error = e
            logger.warning("Error closing %r: %s", self.transport, e)

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        if exc is not None and self.state is not SessionState.FAILED:
            self.state = SessionState.FAILED
        self.close()
        return False


def print_directives(transport, directives, encoder=None):
    """Open ``transport``, emit ``directives`` and close, in one call.

    Raises PrinterConnectionError, RenderError or EmissionError.
    """
    directives = tuple(directives)
    with PrinterSession(transport, encoder) as session:
        session.emit(directives)
    logger.info("Printed %d directives on %r", len(directives), transport)
    return session
