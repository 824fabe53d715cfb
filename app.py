import logging
from datetime import datetime, timezone

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from config import Config
from errors import PrinterError, ValidationError
from esc_pos import EscPosEncoder, render_qr
from receipts import (
    build_cash_drawer_command,
    build_receipt,
    parse_loan_payment,
    parse_order_qr,
    parse_ticket,
)
from session import print_directives
from transport import parse_target, transport_for

logger = logging.getLogger(__name__)

bp = Blueprint("printer", __name__)


def _request_data():
    if request.is_json:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("El cuerpo debe ser un objeto JSON")
        return data
    return request.form.to_dict()


def _print(build):
    """Validate the target, build the receipt and send it to the printer."""
    data = _request_data()
    target = parse_target(data)
    directives = build(data)

    ext = current_app.extensions["printer"]
    config = ext["config"]
    encoder = EscPosEncoder(config.encoding, ext["qr_renderer"])
    transport = ext["transport_factory"](target)
    logger.info("Printing %s on %s", request.path, target)
    print_directives(transport, directives, encoder)


def _build(parse):
    def build(data):
        ext = current_app.extensions["printer"]
        return build_receipt(parse(data), now=ext["clock"](), timezone=ext["config"].timezone)
    return build


@bp.route('/print', methods=['POST'])
@bp.route('/printturn', methods=['POST'])
def print_turn():
    _print(_build(parse_order_qr))
    return jsonify({"status": "success", "message": "Ticket impreso exitosamente"}), 200


@bp.route('/printticket', methods=['POST'])
def print_ticket():
    _print(_build(parse_ticket))
    return jsonify({"status": "success", "message": "Ticket impreso exitosamente"}), 200


@bp.route('/printloanpayment', methods=['POST'])
def print_loan_payment():
    _print(_build(parse_loan_payment))
    return jsonify({"status": "success", "message": "Recibo de pago impreso exitosamente"}), 200


@bp.route('/cashdrawer', methods=['POST'])
def cash_drawer():
    _print(lambda data: build_cash_drawer_command())
    return jsonify({"status": "success", "message": "Caja registradora abierta exitosamente"}), 200


@bp.app_errorhandler(PrinterError)
def handle_printer_error(e):
    status = "fail" if e.status_code < 500 else "error"
    if e.status_code < 500:
        logger.warning("Rejected %s: %s", request.path, e)
    return jsonify({"status": status, "error": str(e)}), e.status_code


@bp.app_errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return jsonify({"status": "fail", "error": e.description}), e.code
    logger.exception("Unexpected error on %s", request.path)
    return jsonify({"status": "error", "error": "Error imprimiendo el ticket"}), 500


def _utc_now():
    return datetime.now(timezone.utc)


def create_app(config=None, transport_factory=None, qr_renderer=None, clock=None):
    """Flask app serving the print endpoints.

    ``transport_factory(target)``, ``qr_renderer(payload, mode)`` and
    ``clock()`` default to the real printer transports, the qrcode based
    renderer and the current UTC time.
    """
    config = config or Config.from_env()
    app = Flask(__name__)
    CORS(app, resources={r"*": {"origins": "*"}})

    if transport_factory is None:
        def transport_factory(target):
            return transport_for(target, timeout=config.timeout)

    app.extensions["printer"] = {
        "config": config,
        "transport_factory": transport_factory,
        "qr_renderer": qr_renderer or render_qr,
        "clock": clock or _utc_now,
    }
    app.register_blueprint(bp)
    return app
