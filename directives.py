"""Printer directives: the abstract command stream a receipt is made of.

A receipt is an ordered tuple of these. ``esc_pos`` turns each one into
bytes and the session writes them in order.
"""

from dataclasses import dataclass
from enum import Enum


class Align(Enum):
    LEFT = "left"
    CENTER = "center"


class Style(Enum):
    NORMAL = "normal"
    BOLD = "bold"


@dataclass(frozen=True)
class SetAlign:
    align: Align


@dataclass(frozen=True)
class SetStyle:
    style: Style


@dataclass(frozen=True)
class SetSize:
    width: int = 1
    height: int = 1


@dataclass(frozen=True)
class EmitText:
    text: str


@dataclass(frozen=True)
class EmitQR:
    payload: str
    image_format: str = "png"
    # dhdw = double height, double width
    mode: str = "dhdw"


@dataclass(frozen=True)
class Cut:
    pass


@dataclass(frozen=True)
class OpenCashDrawer:
    pin: int = 2


NORMAL_SIZE = SetSize(1, 1)
LARGE_SIZE = SetSize(1, 2)
