import numpy as np
import pytest
from PIL import Image


def decode_qr(image: Image.Image) -> str | None:
    """Decode with OpenCV's QR detector, trying the inverted image for light-on-dark codes."""
    cv2 = pytest.importorskip("cv2")
    gray = np.array(image.convert("L"))
    detector = cv2.QRCodeDetector()
    for candidate in (gray, 255 - gray):
        data, _points, _ = detector.detectAndDecode(candidate)
        if data:
            return data
    return None


def reference_modules(text: str, version: int, mask: int) -> list[list[bool]]:
    """Module grid from the qrcode package for a single-mode text at level H."""
    qrcode = pytest.importorskip("qrcode")
    qr = qrcode.QRCode(
        version=version,
        error_correction=qrcode.constants.ERROR_CORRECT_H,
        box_size=1,
        border=0,
        mask_pattern=mask,
    )
    qr.add_data(text, optimize=0)
    qr.make(fit=False)
    return [[bool(m) for m in row] for row in qr.modules]


@pytest.fixture
def logo_2x1() -> Image.Image:
    """Opaque 200x100 logo: light pink with a darker stripe."""
    img = Image.new("RGBA", (200, 100), (255, 210, 210, 255))
    for x in range(90, 110):
        for y in range(100):
            img.putpixel((x, y), (200, 120, 120, 255))
    return img
