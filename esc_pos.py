"""ESC/POS byte encoding for printer directives."""

import logging

import qrcode
from qrcode.image.pil import PilImage
from escpos.printer import Dummy

from directives import Align, Cut, EmitQR, EmitText, OpenCashDrawer, SetAlign, SetSize, SetStyle, Style

logger = logging.getLogger(__name__)

ESC = b'\x1B'   # ESC
GS = b'\x1D'    # GS
LF = b'\n'
INIT = ESC + b'@'  # 프린터 초기화 명령
CUT = GS + b'\x56\x00'  # 용지 자르기 명령
CUT_FEED_LINES = 3

ALIGN = {
    Align.LEFT: ESC + b'a\x00',
    Align.CENTER: ESC + b'a\x01',
}

STYLE = {
    Style.NORMAL: ESC + b'E\x00',
    Style.BOLD: ESC + b'E\x01',
}

# ESC p m t1 t2: pulse the drawer kick connector
DRAWER_KICK = {
    2: ESC + b'p\x00\x19\x32',
    5: ESC + b'p\x01\x19\x32',
}

# ESC t n character code tables
CODE_PAGES = {
    "cp437": 0,
    "cp850": 2,
    "cp860": 3,
    "cp863": 4,
    "cp865": 5,
    "cp1252": 16,
    "cp866": 17,
    "cp852": 18,
    "cp858": 19,
}

# raster scale -> (high_density_horizontal, high_density_vertical) for GS v 0
RASTER_MODES = {
    "normal": (True, True),
    "dw": (False, True),
    "dh": (True, False),
    "dhdw": (False, False),
}


def initialize(encoding):
    """Reset the printer and select the code table matching ``encoding``."""
    data = INIT
    table = CODE_PAGES.get(encoding.lower())
    if table is not None:
        data += ESC + b't' + bytes([table])
    return data


def raster_image(image, mode="dhdw"):
    """Render a PIL image as a ``GS v 0`` raster block with python-escpos."""
    if mode not in RASTER_MODES:
        raise ValueError(f"unsupported raster mode: {mode}")
    horizontal, vertical = RASTER_MODES[mode]
    buffer = Dummy()
    buffer.image(
        image,
        high_density_vertical=vertical,
        high_density_horizontal=horizontal,
        impl="bitImageRaster",
    )
    return buffer.output


def render_qr(payload, mode="dhdw", box_size=4):
    """Default QR renderer: payload -> printable raster bytes."""
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=4,
        image_factory=PilImage,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white").convert("RGB")
    logger.debug("QR for %r rendered at %dx%d", payload, image.width, image.height)
    return raster_image(image, mode)


class EscPosEncoder:
    """Turns one directive into the bytes sent to the printer.

    QR codes go through ``qr_renderer(payload, mode)``, which must return
    ready-to-send raster bytes. Its failures propagate unchanged so the
    session can tell them apart from write failures.
    """

    def __init__(self, encoding="cp858", qr_renderer=render_qr):
        self.encoding = encoding
        self.qr_renderer = qr_renderer

    def initialize(self):
        return initialize(self.encoding)

    def encode(self, directive):
        if isinstance(directive, EmitText):
            return directive.text.encode(self.encoding, errors="replace") + LF
        if isinstance(directive, SetAlign):
            return ALIGN[directive.align]
        if isinstance(directive, SetStyle):
            return STYLE[directive.style]
        if isinstance(directive, SetSize):
            width = min(max(directive.width, 1), 8) - 1
            height = min(max(directive.height, 1), 8) - 1
            return GS + b'!' + bytes([(width << 4) | height])
        if isinstance(directive, EmitQR):
            return self.qr_renderer(directive.payload, directive.mode) + LF
        if isinstance(directive, Cut):
            return LF * CUT_FEED_LINES + CUT
        if isinstance(directive, OpenCashDrawer):
            try:
                return DRAWER_KICK[directive.pin]
            except KeyError:
                raise ValueError(f"cash drawer pin must be 2 or 5, got {directive.pin}") from None
        raise TypeError(f"unknown directive: {directive!r}")
