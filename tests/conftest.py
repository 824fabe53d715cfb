"""Shared pytest fixtures: a recording transport and a Flask test client."""

from datetime import datetime

import pytest

from app import create_app
from config import Config
from transport import Transport

FIXED_NOW = datetime(2026, 10, 19, 14, 5, 9)


class FakeTransport(Transport):
    """Records every call; can be told to fail at open, write or close."""

    def __init__(self, fail_open=False, fail_write_at=None, fail_close=False):
        self.fail_open = fail_open
        self.fail_write_at = fail_write_at
        self.fail_close = fail_close
        self.calls = []
        self.writes = []
        self.close_count = 0

    def open(self):
        self.calls.append("open")
        if self.fail_open:
            raise ConnectionRefusedError("connection refused")

    def write(self, data):
        if self.fail_write_at is not None and len(self.writes) == self.fail_write_at:
            raise BrokenPipeError("broken pipe")
        self.calls.append("write")
        self.writes.append(data)

    def close(self):
        self.calls.append("close")
        self.close_count += 1
        if self.fail_close:
            raise OSError("close failed")

    @property
    def output(self):
        return b"".join(self.writes)


def fake_qr(payload, mode="dhdw"):
    return b"<QR:" + payload.encode() + b">"


def failing_qr(payload, mode="dhdw"):
    raise ValueError("data too long for a QR code")


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def targets():
    return []


@pytest.fixture
def make_client(targets):
    """Build a test client whose printer is ``transport``."""

    def _make(transport, qr_renderer=fake_qr):
        def transport_factory(target):
            targets.append(target)
            return transport

        app = create_app(
            Config(),
            transport_factory=transport_factory,
            qr_renderer=qr_renderer,
            clock=lambda: FIXED_NOW,
        )
        app.testing = True
        return app.test_client()

    return _make


@pytest.fixture
def client(make_client, fake_transport):
    return make_client(fake_transport)
