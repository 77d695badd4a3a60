from io import BytesIO
from pathlib import Path
import qrcode
from qrcode.constants import ERROR_CORRECT_H
from app.core.config import settings
from app.core.logging_config import logger


def render_qr_png(data: str) -> bytes:
    """Render ``data`` as a PNG QR code (high error correction, survives printing)."""
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_H, box_size=10, border=2)
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    img.save(buffer, format='PNG')
    return buffer.getvalue()


class LocalFileStorage:
    """
    Stores artifacts under a local directory, addressed by relative keys
    such as ``qr-codes/<tenant_id>/<code>.png``.
    """

    def __init__(self, root: str):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Storage key escapes the storage root: {key}")
        return path

    def save(self, key: str, data: bytes) -> str:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info(f"Stored artifact: key={key}, bytes={len(data)}")
        return key

    def delete(self, key: str) -> None:
        """
        Raises:
            FileNotFoundError: If nothing is stored under ``key``
        """
        self._path(key).unlink()
        logger.info(f"Deleted artifact: key={key}")

    def exists(self, key: str) -> bool:
        return self._path(key).exists()


storage = LocalFileStorage(settings.UPLOADS_DIR)
