import socket

import pytest

import server
from config import Config
from conftest import FakeTransport


def test_config_from_env():
    config = Config.from_env({
        "PRINT_SERVER_PORT": "3004",
        "PRINTER_ENCODING": "cp437",
        "PRINTER_TIMEOUT": "2.5",
        "LOG_LEVEL": "debug",
    })
    assert config.port == 3004
    assert config.encoding == "cp437"
    assert config.timeout == 2.5
    assert config.log_level == "DEBUG"
    assert config.host == "127.0.0.1"
    assert config.log_file is None


def test_config_defaults():
    assert Config.from_env({}) == Config()


def test_is_port_in_use():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        s.listen(1)
        assert server.is_port_in_use(s.getsockname()[1])


@pytest.fixture
def printer(monkeypatch):
    transport = FakeTransport()
    targets = []

    def fake_transport_for(target, timeout=10.0):
        targets.append(target)
        return transport

    monkeypatch.setattr(server, "transport_for", fake_transport_for)
    transport.targets = targets
    return transport


def test_test_print_over_network(printer):
    assert server.main(["--test-print", "--printer-ip", "10.0.0.5"], environ={}) == 0
    assert "Prueba de impresión\n".encode("cp858") in printer.output
    assert str(printer.targets[0]) == "10.0.0.5:9100"


def test_test_print_over_usb(printer):
    assert server.main(["--test-print", "--vendor", "1208", "--product", "3586"], environ={}) == 0
    assert str(printer.targets[0]) == "usb:0x04b8:0x0e02"


def test_test_print_without_printer(printer):
    assert server.main(["--test-print"], environ={}) == 1
    assert printer.calls == []


def test_test_print_connection_failure(monkeypatch):
    monkeypatch.setattr(server, "transport_for", lambda target, timeout=10.0: FakeTransport(fail_open=True))
    assert server.main(["--test-print", "--serial-port", "COM2"], environ={}) == 1


def test_refuses_to_start_twice(monkeypatch):
    monkeypatch.setattr(server, "is_port_in_use", lambda port, host="127.0.0.1": True)
    monkeypatch.setattr(server, "create_app", lambda config: pytest.fail("server should not start"))
    assert server.main([], environ={}) == 1


def test_runs_app_on_configured_port(monkeypatch):
    runs = []

    class FakeApp:
        def run(self, host, port):
            runs.append((host, port))

    monkeypatch.setattr(server, "is_port_in_use", lambda port, host="127.0.0.1": False)
    monkeypatch.setattr(server, "create_app", lambda config: FakeApp())
    assert server.main(["--port", "3004"], environ={"PRINT_SERVER_HOST": "0.0.0.0"}) == 0
    assert runs == [("0.0.0.0", 3004)]


@pytest.mark.parametrize("env, key", [
    ({"PRINT_SERVER_PORT": "cinco"}, "PRINT_SERVER_PORT"),
    ({"PRINTER_TIMEOUT": "soon"}, "PRINTER_TIMEOUT"),
])
def test_config_rejects_malformed_numbers(env, key):
    with pytest.raises(ValueError, match=key):
        Config.from_env(env)


def test_malformed_config_exits_cleanly(monkeypatch):
    monkeypatch.setattr(server, "create_app", lambda config: pytest.fail("server should not start"))
    assert server.main([], environ={"PRINT_SERVER_PORT": "cinco"}) == 1
