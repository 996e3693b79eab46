"""
QR code generation service
"""

import io
import qrcode

from allocator.core.config import settings

class QRService:
    """Service for generating QR codes"""

    @staticmethod
    def get_join_url(join_code: str, base_url: str = None) -> str:
        """Get the URL that the QR code will redirect to"""
        return f"{base_url or settings.BASE_URL}/join/{join_code}"

    @staticmethod
    def generate_join_qr(join_code: str, base_url: str = None, format: str = 'PNG') -> bytes:
        """Generate QR code pointing participants at an event's join page"""
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_L,
            box_size=10,
            border=4,
        )
        qr.add_data(QRService.get_join_url(join_code, base_url))
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        img.save(buffer, format=format)

        return buffer.getvalue()
