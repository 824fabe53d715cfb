"""Fixed-width text helpers for 80mm receipts.

Everything here is pure: amounts in, strings out. Amounts are accepted in
whatever shape the JSON body carried them (int, float, numeric string or
Decimal) and anything that is not a finite number prints as zero.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from zoneinfo import ZoneInfo

from config import DEFAULT_TIMEZONE

LINE_WIDTH = 42  # 80mm paper, font A
TICKET_AMOUNT_WIDTH = 10
LOAN_AMOUNT_WIDTH = 12

_CENTS = Decimal("0.01")
_ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    """Coerce a JSON value to a finite Decimal, falling back to 0."""
    if isinstance(value, bool) or value is None:
        return _ZERO
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        # str() keeps 28.8 as 28.8 instead of its binary expansion
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            return _ZERO
    else:
        return _ZERO
    if not result.is_finite():
        return _ZERO
    return result


def format_currency(amount) -> str:
    """``$`` plus the amount with two decimals and es-MX grouping: ``$1,234.50``."""
    value = to_decimal(amount)
    try:
        value = value.quantize(_CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # more digits than the context precision allows; format as is
        pass
    if value == 0:
        value = abs(value)
    return f"${value:,.2f}"


def format_quantity(quantity) -> str:
    value = to_decimal(quantity)
    if value == value.to_integral_value():
        return str(int(value))
    return f"{value.normalize():f}"


def pad_label_amount(label, amount, total_width=LINE_WIDTH, amount_width=TICKET_AMOUNT_WIDTH) -> str:
    """Left-justified label followed by a right-justified amount.

    The returned line is always exactly ``total_width`` characters. When the
    formatted amount does not fit in ``amount_width`` it takes the room it
    needs from the label.
    """
    amount_text = format_currency(amount).rjust(amount_width)
    if len(amount_text) >= total_width:
        return amount_text[-total_width:]
    label_width = total_width - len(amount_text)
    return str(label)[:label_width].ljust(label_width) + amount_text


def format_item_line(quantity, name, width) -> str:
    text = f"{format_quantity(quantity)} x {name}"
    return text[:width].ljust(width)


def separator(width=LINE_WIDTH) -> str:
    return "-" * width


def format_timestamp(moment: datetime, timezone=DEFAULT_TIMEZONE) -> str:
    """Render a date the way es-MX does: ``19/10/2026, 14:05:09``.

    Aware datetimes are converted to ``timezone`` first; naive ones are
    assumed to be local time already.
    """
    if moment.tzinfo is not None:
        moment = moment.astimezone(ZoneInfo(timezone))
    return moment.strftime("%d/%m/%Y, %H:%M:%S")
