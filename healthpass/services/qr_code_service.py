"""
QR Code Service - renders health pass access links as PNG data URLs.
"""

import base64
import io
import logging
import qrcode
from qrcode.constants import ERROR_CORRECT_H

logger = logging.getLogger(__name__)


class QrCodeService:
    """Builds the scannable image that points a clinician at a health pass."""

    def __init__(self, public_app_url: str):
        self.public_app_url = public_app_url.rstrip("/")

    def get_access_url(self, access_code: str) -> str:
        """URL the QR code encodes for a given access code."""
        return f"{self.public_app_url}/health-summary?code={access_code}"

    def generate_qr_code(self, access_code: str) -> str:
        """
        Render the access URL as a QR code.

        Returns:
            str: ``data:image/png;base64,...`` URL
        """
        qr = qrcode.QRCode(error_correction=ERROR_CORRECT_H, box_size=10, border=2)
        qr.add_data(self.get_access_url(access_code))
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        encoded = base64.b64encode(buf.getvalue()).decode()

        logger.debug(f"QR code generated ({len(encoded)} base64 chars)")
        return f"data:image/png;base64,{encoded}"
