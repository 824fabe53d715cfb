import pytest

from conftest import FakeTransport, failing_qr, fake_qr
from directives import Align, Cut, EmitQR, EmitText, SetAlign
from errors import EmissionError, PrinterConnectionError, RenderError
from esc_pos import EscPosEncoder
from session import PrinterSession, SessionState, print_directives

RECEIPT = (
    SetAlign(Align.CENTER),
    EmitText("Orden #12345"),
    EmitText("Total: $150.50 MXN"),
    EmitQR("12345"),
    Cut(),
)


def encoder(qr_renderer=fake_qr):
    return EscPosEncoder("cp858", qr_renderer)


def test_success_writes_every_directive_in_order_then_closes():
    transport = FakeTransport()
    session = print_directives(transport, RECEIPT, encoder())

    assert transport.calls == ["open"] + ["write"] * 6 + ["close"]
    assert transport.writes == [
        b"\x1b@\x1bt\x13",
        b"\x1ba\x01",
        b"Orden #12345\n",
        b"Total: $150.50 MXN\n",
        b"<QR:12345>\n",
        b"\n\n\n\x1dV\x00",
    ]
    assert session.state is SessionState.CLOSED


def test_open_failure_emits_nothing():
    transport = FakeTransport(fail_open=True)
    with pytest.raises(PrinterConnectionError):
        print_directives(transport, RECEIPT, encoder())
    assert transport.writes == []


def test_open_failure_leaves_session_failed():
    session = PrinterSession(FakeTransport(fail_open=True), encoder())
    with pytest.raises(PrinterConnectionError):
        session.open()
    assert session.state is SessionState.FAILED
    with pytest.raises(RuntimeError):
        session.emit(RECEIPT)


def test_qr_failure_still_closes_once_and_skips_the_cut():
    transport = FakeTransport()
    with pytest.raises(RenderError):
        print_directives(transport, RECEIPT, encoder(failing_qr))

    assert transport.close_count == 1
    assert transport.writes[-1] == b"Total: $150.50 MXN\n"
    assert b"\x1dV\x00" not in transport.output


def test_write_failure_closes_once():
    transport = FakeTransport(fail_write_at=2)
    with pytest.raises(EmissionError):
        print_directives(transport, RECEIPT, encoder())
    assert transport.close_count == 1
    assert len(transport.writes) == 2


def test_failed_session_state():
    transport = FakeTransport()
    session = PrinterSession(transport, encoder(failing_qr))
    with pytest.raises(RenderError):
        with session:
            session.emit(RECEIPT)
    assert session.state is SessionState.FAILED


def test_close_failure_after_printing_still_succeeds():
    # a printed job stays printed even if releasing the connection fails
    transport = FakeTransport(fail_close=True)
    session = print_directives(transport, RECEIPT, encoder())
    assert isinstance(session.close_error, OSError)
    assert session.state is SessionState.CLOSED
    assert transport.close_count == 1


def test_close_failure_does_not_hide_emission_error():
    transport = FakeTransport(fail_write_at=0, fail_close=True)
    with pytest.raises(EmissionError):
        print_directives(transport, RECEIPT, encoder())
    assert transport.close_count == 1


def test_close_is_idempotent():
    transport = FakeTransport()
    session = PrinterSession(transport, encoder()).open()
    session.close()
    session.close()
    assert transport.close_count == 1
    assert session.state is SessionState.CLOSED


def test_emit_requires_open_session():
    session = PrinterSession(FakeTransport(), encoder())
    with pytest.raises(RuntimeError):
        session.emit(RECEIPT)


def test_session_cannot_be_reopened():
    session = PrinterSession(FakeTransport(), encoder()).open()
    with pytest.raises(RuntimeError):
        session.open()
