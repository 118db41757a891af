from __future__ import annotations

import io

import qrcode
from qrcode.constants import ERROR_CORRECT_M

QR_WIDTH = 360


def render_png(data: str, width: int = QR_WIDTH) -> bytes:
    """PNG bytes of a QR code for ``data``, scaled to ``width`` pixels."""
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, box_size=10, border=1)
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white").get_image()
    img = img.resize((width, width))

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
