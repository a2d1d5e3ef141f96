"""
Invitation QR codes
"""

import io

import qrcode
from qrcode.image.pil import PilImage

def invitation_qr_png(token: str, box_size: int = 10, border: int = 4) -> bytes:
    """PNG of a QR code carrying the invitation token.

    Medium error correction keeps codes scannable from a phone screen held at
    an angle; the version grows with the token length.
    """
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
        image_factory=PilImage,
    )
    qr.add_data(token)
    qr.make(fit=True)

    buffer = io.BytesIO()
    qr.make_image(fill_color="black", back_color="white").save(buffer, format="PNG")
    return buffer.getvalue()
