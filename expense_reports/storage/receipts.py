"""
Receipt store for uploaded receipt files.
Local filesystem under RECEIPT_ROOT; items only keep the returned reference URL.
"""

from pathlib import Path
from typing import Optional

import structlog

from expense_reports.config import settings
from expense_reports.storage.paths import ensure_parent_dirs, resolve_inside

logger = structlog.get_logger(__name__)


class ReceiptStore:
    """
    Save and load receipt files.
    All paths are relative to the store root.
    """

    def __init__(self, root: Optional[str] = None, base_url: Optional[str] = None):
        self.root = Path(root or settings.RECEIPT_ROOT)
        self.root.mkdir(parents=True, exist_ok=True)
        self.base_url = (base_url or settings.RECEIPT_BASE_URL).rstrip("/")

    def save_bytes(self, relative_path: str, data: bytes) -> str:
        """Save (or replace) a receipt. Returns the relative path."""
        full_path = ensure_parent_dirs(str(self.root), relative_path)
        full_path.write_bytes(data)
        logger.info("receipt_saved", path=relative_path, size_bytes=len(data))
        return relative_path

    def load_bytes(self, relative_path: str) -> bytes:
        full_path = self.full_path(relative_path)
        if not full_path.is_file():
            raise FileNotFoundError(f"Receipt not found: {relative_path}")
        return full_path.read_bytes()

    def exists(self, relative_path: str) -> bool:
        try:
            return self.full_path(relative_path).is_file()
        except ValueError:
            return False

    def delete(self, relative_path: str) -> bool:
        """Delete a receipt. Returns True if it existed."""
        full_path = self.full_path(relative_path)
        if full_path.is_file():
            full_path.unlink()
            logger.info("receipt_deleted", path=relative_path)
            return True
        return False

    def full_path(self, relative_path: str) -> Path:
        """Absolute filesystem path; raises ValueError for paths outside the root."""
        return resolve_inside(str(self.root), relative_path)

    def owner_of(self, relative_path: str) -> str:
        """
        Owner id of a receipt, read from the normalized path so that
        "u1/../u2/k/a.pdf" belongs to u2. Raises ValueError outside the root.
        """
        relative = self.full_path(relative_path).relative_to(self.root.resolve())
        if not relative.parts:
            raise ValueError(f"Not a receipt path: {relative_path}")
        return relative.parts[0]

    def url_for(self, relative_path: str) -> str:
        """The opaque reference stored on the expense item."""
        return f"{self.base_url}/{relative_path}"
