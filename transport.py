"""Printer transports and printer target parsing.

A transport is the physical link to one printer: a TCP socket (raw port
9100), a USB bulk endpoint or a serial port, each driven through the
matching python-escpos printer class. Which one is used is decided only
by the fields present in the request body.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import serial
import usb.core
from escpos.exceptions import Error as EscposError
from escpos.printer import Network, Serial, Usb

from errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_NETWORK_PORT = 9100
DEFAULT_BAUD_RATE = 9600

# errors a transport may raise from write/close
TRANSPORT_ERRORS = (OSError, EscposError, serial.SerialException, usb.core.USBError)


@dataclass(frozen=True)
class NetworkTarget:
    host: str
    port: int = DEFAULT_NETWORK_PORT

    def __str__(self):
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class USBTarget:
    vendor_id: int
    product_id: int

    def __str__(self):
        return f"usb:{self.vendor_id:#06x}:{self.product_id:#06x}"


@dataclass(frozen=True)
class SerialTarget:
    port: str
    baud_rate: int = DEFAULT_BAUD_RATE

    def __str__(self):
        return f"{self.port}@{self.baud_rate}"


def _int_field(data, key, default=None):
    value = data.get(key)
    if value is None or value == "":
        if default is None:
            raise ValidationError(f"{key} es requerido")
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{key} debe ser un número entero")
    try:
        if isinstance(value, str):
            # accepts "1208" as well as "0x04b8"
            return int(value.strip(), 0)
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(value)
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} debe ser un número entero") from None


def parse_target(data):
    """Pick the printer target from a request body.

    ``printerIP`` (+ ``printerPort``) selects the network, ``idVendor`` and
    ``idProduct`` select USB, ``serialPort`` (+ ``baudRate``) selects a
    serial port. A body with none of them is rejected.
    """
    host = data.get("printerIP")
    if isinstance(host, str) and host.strip():
        port = _int_field(data, "printerPort", DEFAULT_NETWORK_PORT)
        if not 0 < port < 65536:
            raise ValidationError("printerPort fuera de rango")
        return NetworkTarget(host.strip(), port)
    if data.get("idVendor") is not None or data.get("idProduct") is not None:
        return USBTarget(_int_field(data, "idVendor"), _int_field(data, "idProduct"))
    serial_port = data.get("serialPort")
    if isinstance(serial_port, str) and serial_port.strip():
        baud_rate = _int_field(data, "baudRate", DEFAULT_BAUD_RATE)
        if baud_rate <= 0:
            raise ValidationError("baudRate debe ser positivo")
        return SerialTarget(serial_port.strip(), baud_rate)
    raise ValidationError("Falta la impresora: envía printerIP/printerPort o idVendor/idProduct")


class Transport(ABC):
    """A connection to one printer: open, write bytes, close."""

    @abstractmethod
    def open(self):
        pass

    @abstractmethod
    def write(self, data: bytes):
        pass

    @abstractmethod
    def close(self):
        """Release the connection. Safe to call when not open."""


class EscposTransport(Transport):
    """Raw byte access to a python-escpos printer.

    The printer object is built unconnected; ``open`` connects it and
    ``write`` hands already encoded commands to ``_raw``.
    """

    def __init__(self, printer):
        self.printer = printer
        self._opened = False

    def open(self):
        self.printer.open()
        self._opened = True

    def write(self, data):
        self.printer._raw(data)

    def close(self):
        if not self._opened:
            return
        self._opened = False
        self.printer.close()


class NetworkTransport(EscposTransport):
    def __init__(self, host, port=DEFAULT_NETWORK_PORT, timeout=10.0):
        self.host = host
        self.port = port
        super().__init__(Network(host, port=port, timeout=timeout))

    def __repr__(self):
        return f"<NetworkTransport {self.host}:{self.port}>"


class USBTransport(EscposTransport):
    def __init__(self, vendor_id, product_id, timeout=10.0):
        self.vendor_id = vendor_id
        self.product_id = product_id
        # python-escpos takes the USB write timeout in milliseconds
        super().__init__(Usb(vendor_id, product_id, timeout=int(timeout * 1000)))

    def __repr__(self):
        return f"<USBTransport {self.vendor_id:#06x}:{self.product_id:#06x}>"


class SerialTransport(EscposTransport):
    def __init__(self, port, baud_rate=DEFAULT_BAUD_RATE, timeout=1):
        self.port = port
        self.baud_rate = baud_rate
        super().__init__(Serial(devfile=port, baudrate=baud_rate, timeout=timeout))

    def __repr__(self):
        return f"<SerialTransport {self.port}@{self.baud_rate}>"


def transport_for(target, timeout=10.0):
    """Build the transport matching ``target``. No fallback between kinds."""
    if isinstance(target, NetworkTarget):
        return NetworkTransport(target.host, target.port, timeout=timeout)
    if isinstance(target, USBTarget):
        return USBTransport(target.vendor_id, target.product_id, timeout=timeout)
    if isinstance(target, SerialTarget):
        return SerialTransport(target.port, target.baud_rate)
    raise TypeError(f"unknown printer target: {target!r}")
