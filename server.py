"""Command line entry point: run the print server or send a test page."""

import argparse
import logging
import socket
import sys
from logging.handlers import RotatingFileHandler

from app import create_app
from config import Config
from errors import PrinterError
from esc_pos import EscPosEncoder
from receipts import build_test_page
from session import print_directives
from transport import parse_target, transport_for

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(config):
    """Console logging, plus a rotating log file when LOG_FILE is set."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, config.log_level, logging.INFO))
    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    if not root.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    if config.log_file:
        file_handler = RotatingFileHandler(
            config.log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding='utf-8',
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)


def is_port_in_use(port, host='127.0.0.1'):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        return s.connect_ex((host, port)) == 0


def send_test_page(args, config):
    """Print the test page on the printer given on the command line."""
    data = {
        "printerIP": args.printer_ip,
        "printerPort": args.printer_port,
        "idVendor": args.vendor,
        "idProduct": args.product,
        "serialPort": args.serial_port,
        "baudRate": args.baud_rate,
    }
    data = {key: value for key, value in data.items() if value is not None}
    try:
        target = parse_target(data)
        transport = transport_for(target, timeout=config.timeout)
        print_directives(transport, build_test_page(), EscPosEncoder(config.encoding))
    except PrinterError as e:
        logger.error("Test print failed: %s", e)
        return 1
    logger.info("Test page sent to %s", target)
    return 0


def build_parser():
    parser = argparse.ArgumentParser(description="ESC/POS receipt print server")
    parser.add_argument("--host", help="address to listen on (PRINT_SERVER_HOST)")
    parser.add_argument("--port", type=int, help="port to listen on (PRINT_SERVER_PORT)")
    parser.add_argument("--test-print", action="store_true",
                        help="print a test page and exit instead of serving")
    parser.add_argument("--printer-ip")
    parser.add_argument("--printer-port", type=int)
    parser.add_argument("--vendor", help="USB vendor id, e.g. 1208 or 0x04b8")
    parser.add_argument("--product", help="USB product id, e.g. 3586 or 0x0e02")
    parser.add_argument("--serial-port", help="serial port, e.g. COM2 or /dev/ttyUSB0")
    parser.add_argument("--baud-rate", type=int)
    return parser


def main(argv=None, environ=None):
    args = build_parser().parse_args(argv)
    try:
        config = Config.from_env(environ)
    except ValueError as e:
        setup_logging(Config())
        logger.error("Invalid configuration: %s", e)
        return 1
    setup_logging(config)

    if args.test_print:
        return send_test_page(args, config)

    host = args.host or config.host
    port = args.port or config.port
    if is_port_in_use(port, '127.0.0.1' if host == '0.0.0.0' else host):
        logger.error("Port %d is already in use; is the print server already running?", port)
        return 1

    app = create_app(config)
    logger.info("Print server listening on http://%s:%d", host, port)
    app.run(host=host, port=port)
    return 0


if __name__ == '__main__':
    sys.exit(main())
