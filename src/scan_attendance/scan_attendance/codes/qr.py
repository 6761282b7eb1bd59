from __future__ import annotations

import io
from typing import Optional

import qrcode
from PIL import Image


def render_qr_png(payload: str, *, box_size: int = 10, border: int = 2) -> bytes:
    """Render a scan code as a PNG QR image."""

    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=box_size,
        border=border,
    )
    qr.add_data(payload)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def decode_qr_image(stream) -> Optional[str]:
    """Decode the first QR code found in an uploaded image, or None."""

    # pyzbar needs the native zbar library; only the upload endpoint pays for it.
    from pyzbar.pyzbar import decode as pyzbar_decode

    img = Image.open(stream).convert("RGB")
    decoded = pyzbar_decode(img)
    if not decoded:
        return None
    return decoded[0].data.decode("utf-8").strip()
