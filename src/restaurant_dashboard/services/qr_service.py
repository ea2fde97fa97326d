"""Table QR code generation, persistence and export."""

import asyncio
import base64
import io
import logging
import math
from pathlib import Path

import qrcode
from PIL import Image
from qrcode.constants import ERROR_CORRECT_M

from restaurant_dashboard.models.admin_models import TableQrCode
from restaurant_dashboard.repositories.local_store import ClientStateRepository

logger = logging.getLogger(__name__)

IMAGE_SIZE = 512
QUIET_ZONE = 1
EXPORT_DELAY_SECONDS = 0.12
DATA_URI_PREFIX = "data:image/png;base64,"
MAX_TABLE_COUNT = 200


def table_url(origin: str, table: int) -> str:
    return f"{origin.rstrip('/')}/display-screen?table={table}"


def encode_png_data_uri(value: str) -> str:
    """Encode a value as a square PNG QR code, returned as a data URI."""
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, border=QUIET_ZONE)
    qr.add_data(value)
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white").get_image()
    image = image.convert("RGB").resize((IMAGE_SIZE, IMAGE_SIZE), Image.NEAREST)

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return DATA_URI_PREFIX + base64.b64encode(buffer.getvalue()).decode("ascii")


def generate_table_codes(count: int | str, origin: str) -> list[TableQrCode]:
    """Generate one QR code per table, numbered from 1.

    Args:
        count: Number of tables; fractions are truncated and anything below 1
            or not a finite number yields a single table
        origin: Origin the display-screen URLs are built on

    Returns:
        Codes for tables 1..count
    """
    try:
        number = float(count)
    except (TypeError, ValueError):
        number = 1.0
    total = max(1, int(number)) if math.isfinite(number) else 1

    codes = []
    for table in range(1, total + 1):
        value = table_url(origin, table)
        codes.append(TableQrCode(table=table, value=value, image=encode_png_data_uri(value)))
    return codes


class QrCodeBook:
    """The current batch of table QR codes, kept in local storage."""

    def __init__(self, repository: ClientStateRepository, origin: str) -> None:
        self.repository = repository
        self.origin = origin
        self.table_count = repository.get_qr_table_count() or 1
        self.codes: list[TableQrCode] = repository.get_qr_codes()

    def generate(self, count: int | str) -> list[TableQrCode]:
        """Replace the batch with codes for ``count`` tables and persist it."""
        self.codes = generate_table_codes(count, self.origin)
        self.table_count = len(self.codes)

        if not (self.repository.save_qr_table_count(self.table_count) and self.repository.save_qr_codes(self.codes)):
            logger.warning("Generated QR codes could not be persisted")
        logger.info(f"Generated QR codes for {self.table_count} tables")
        return self.codes

    def clear(self) -> None:
        self.codes = []
        self.table_count = 1
        self.repository.clear_qr_codes()

    async def export_png_files(self, directory: str | Path) -> list[Path]:
        """Write each code to ``table-{n}.png``, one at a time.

        Export is best-effort: a failed file is logged and skipped and files
        already written are kept.

        Returns:
            Paths written
        """
        target = Path(directory)
        written: list[Path] = []
        for index, code in enumerate(self.codes):
            if index:
                await asyncio.sleep(EXPORT_DELAY_SECONDS)
            path = target / f"table-{code.table}.png"
            try:
                target.mkdir(parents=True, exist_ok=True)
                path.write_bytes(base64.b64decode(code.image.removeprefix(DATA_URI_PREFIX)))
            except (OSError, ValueError) as e:
                logger.warning(f"Could not export QR code for table {code.table}: {e}")
                continue
            written.append(path)
        return written
