"""Receipt templates.

Each template has a request type parsed from the JSON body and a pure
builder that turns it into the tuple of directives the printer session
writes. ``build_receipt`` dispatches on the request type.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal
from functools import singledispatch
from typing import Optional, Tuple

from config import DEFAULT_TIMEZONE
from directives import (
    Align,
    Cut,
    EmitQR,
    EmitText,
    LARGE_SIZE,
    NORMAL_SIZE,
    OpenCashDrawer,
    SetAlign,
    SetStyle,
    Style,
)
from errors import ValidationError
from text_format import (
    LINE_WIDTH,
    LOAN_AMOUNT_WIDTH,
    TICKET_AMOUNT_WIDTH,
    format_currency,
    format_item_line,
    format_timestamp,
    pad_label_amount,
    separator,
    to_decimal,
)

DEFAULT_HEADER = "Astrova"
DEFAULT_LOAN_FOOTER = "¡Gracias por su pago!"
CASH_DRAWER_PIN = 2


@dataclass(frozen=True)
class OrderQRRequest:
    order_id: str
    total: Decimal = Decimal("0")


@dataclass(frozen=True)
class LineItem:
    name: str
    unit_price: Decimal
    quantity: Decimal

    @property
    def amount(self):
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class TicketRequest:
    order_id: str = ""
    header: str = DEFAULT_HEADER
    items: Tuple[LineItem, ...] = ()
    subtotal: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    footer: Optional[str] = None

    def __post_init__(self):
        if self.footer is None:
            object.__setattr__(self, "footer", f"¡Gracias por comprar en {self.header}!")


@dataclass(frozen=True)
class LoanPaymentRequest:
    header: str = DEFAULT_HEADER
    loan_id: Optional[str] = None
    borrower: Optional[str] = None
    payment_id: Optional[str] = None
    payment_date: Optional[str] = None
    method: Optional[str] = None
    reference: Optional[str] = None
    principal: Decimal = Decimal("0")
    interest: Decimal = Decimal("0")
    amount: Decimal = Decimal("0")
    remaining_balance: Decimal = Decimal("0")
    next_due_date: Optional[str] = None
    footer: str = DEFAULT_LOAN_FOOTER

    @property
    def details(self) -> Tuple[Tuple[str, str], ...]:
        """Labelled detail lines, in print order, skipping absent fields."""
        labelled = (
            ("Préstamo", self.loan_id),
            ("Cliente", self.borrower),
            ("Pago", self.payment_id),
            ("Método", self.method),
            ("Referencia", self.reference),
            ("Próximo pago", self.next_due_date),
        )
        return tuple((label, value) for label, value in labelled if value)


# -- parsing ----------------------------------------------------------------


def _text(value):
    """JSON scalar -> printable string; integral floats lose their ``.0``."""
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def parse_order_qr(data) -> OrderQRRequest:
    order_id = _text(data.get("orderId"))
    if order_id is None:
        raise ValidationError("orderId es requerido")
    return OrderQRRequest(order_id=order_id, total=to_decimal(data.get("total")))


def _parse_item(raw) -> LineItem:
    if not isinstance(raw, dict):
        raise ValidationError("Cada artículo debe ser un objeto")
    price = raw.get("price", raw.get("unitPrice"))
    return LineItem(
        name=_text(raw.get("name")) or "",
        unit_price=to_decimal(price),
        quantity=to_decimal(raw.get("quantity", 1)),
    )


def parse_ticket(data) -> TicketRequest:
    items = data.get("items")
    if items is None:
        items = []
    if not isinstance(items, list):
        raise ValidationError("items debe ser una lista")
    header = _text(data.get("header")) or DEFAULT_HEADER
    return TicketRequest(
        order_id=_text(data.get("orderId")) or "",
        header=header,
        items=tuple(_parse_item(raw) for raw in items),
        subtotal=to_decimal(data.get("subtotal")),
        tax=to_decimal(data.get("iva", data.get("tax"))),
        total=to_decimal(data.get("total")),
        footer=_text(data.get("footer")),
    )


def parse_loan_payment(data) -> LoanPaymentRequest:
    return LoanPaymentRequest(
        header=_text(data.get("header")) or DEFAULT_HEADER,
        loan_id=_text(data.get("loanId")),
        borrower=_text(data.get("borrower")),
        payment_id=_text(data.get("paymentId")),
        payment_date=_text(data.get("paymentDate")),
        method=_text(data.get("method")),
        reference=_text(data.get("reference")),
        principal=to_decimal(data.get("principal")),
        interest=to_decimal(data.get("interest")),
        amount=to_decimal(data.get("amount")),
        remaining_balance=to_decimal(data.get("remainingBalance")),
        next_due_date=_text(data.get("nextDueDate")),
        footer=_text(data.get("footer")) or DEFAULT_LOAN_FOOTER,
    )


# -- builders ---------------------------------------------------------------


def _now(now):
    return now if now is not None else datetime.now(dt_timezone.utc)


@singledispatch
def build_receipt(request, now=None, timezone=DEFAULT_TIMEZONE):
    raise TypeError(f"No receipt template for {type(request).__name__}")


@build_receipt.register
def build_order_qr_receipt(request: OrderQRRequest, now=None, timezone=DEFAULT_TIMEZONE):
    return (
        SetAlign(Align.CENTER),
        EmitText(f"Orden #{request.order_id}"),
        EmitText(f"Total: {format_currency(request.total)} MXN"),
        EmitQR(request.order_id, image_format="png", mode="dhdw"),
        Cut(),
    )


@build_receipt.register
def build_itemized_receipt(request: TicketRequest, now=None, timezone=DEFAULT_TIMEZONE):
    text_width = LINE_WIDTH - TICKET_AMOUNT_WIDTH
    directives = [
        SetAlign(Align.CENTER),
        SetStyle(Style.BOLD),
        EmitText(request.header),
        EmitText(f"Order: {request.order_id}"),
        EmitText(format_timestamp(_now(now), timezone)),
        EmitText(separator()),
        SetAlign(Align.LEFT),
        SetStyle(Style.NORMAL),
    ]
    for item in request.items:
        label = format_item_line(item.quantity, item.name, text_width)
        directives.append(EmitText(pad_label_amount(label, item.amount)))
    directives += [
        EmitText(separator()),
        EmitText(pad_label_amount("Subtotal:", request.subtotal)),
        EmitText(pad_label_amount("IVA:", request.tax)),
        LARGE_SIZE,
        EmitText(pad_label_amount("Total:", request.total)),
        NORMAL_SIZE,
        EmitText(separator()),
        SetAlign(Align.CENTER),
        SetStyle(Style.BOLD),
        EmitText(request.footer),
        EmitText(separator()),
        Cut(),
    ]
    return tuple(directives)


def _payment_date_text(value, now, timezone):
    if value is None:
        return format_timestamp(_now(now), timezone)
    try:
        if len(value) == 10:
            return date.fromisoformat(value).strftime("%d/%m/%Y")
        return format_timestamp(datetime.fromisoformat(value), timezone)
    except ValueError:
        return value


@build_receipt.register
def build_loan_payment_receipt(request: LoanPaymentRequest, now=None, timezone=DEFAULT_TIMEZONE):
    def line(label, amount):
        return EmitText(pad_label_amount(label, amount, LINE_WIDTH, LOAN_AMOUNT_WIDTH))

    directives = [
        SetAlign(Align.CENTER),
        SetStyle(Style.BOLD),
        EmitText(request.header),
        EmitText("Pago de Préstamo"),
        SetStyle(Style.NORMAL),
        EmitText("Fecha: " + _payment_date_text(request.payment_date, now, timezone)),
        EmitText(separator()),
        SetAlign(Align.LEFT),
    ]
    directives += [EmitText(f"{label}: {value}") for label, value in request.details]
    directives += [
        EmitText(separator()),
        line("Capital:", request.principal),
        line("Interés:", request.interest),
        SetStyle(Style.BOLD),
        LARGE_SIZE,
        line("Total Pagado:", request.amount),
        NORMAL_SIZE,
        SetStyle(Style.NORMAL),
        EmitText(separator()),
        SetStyle(Style.BOLD),
        line("Saldo Restante:", request.remaining_balance),
        SetStyle(Style.NORMAL),
        EmitText(separator()),
        SetAlign(Align.CENTER),
        SetStyle(Style.BOLD),
        EmitText(request.footer),
        SetStyle(Style.NORMAL),
        Cut(),
    ]
    return tuple(directives)


def build_cash_drawer_command():
    return (OpenCashDrawer(pin=CASH_DRAWER_PIN),)


def build_test_page():
    return (
        SetAlign(Align.CENTER),
        EmitText("Prueba de impresión"),
        Cut(),
    )
