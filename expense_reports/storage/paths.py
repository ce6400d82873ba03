"""
Path generation for receipt storage.
All paths are relative to RECEIPT_ROOT.
"""

import hashlib
import re
from pathlib import Path
from typing import Optional

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def receipt_hash(file_bytes: bytes) -> str:
    """SHA-256 hash of file content."""
    return hashlib.sha256(file_bytes).hexdigest()


def safe_file_name(file_name: str) -> str:
    """Reduce an uploaded file name to a single safe path component."""
    name = _UNSAFE.sub("_", Path(file_name or "").name).strip("._")
    return name or "receipt"


def receipt_path(owner_id: str, item_key: str, file_name: str, report_id: Optional[str] = None) -> str:
    """
    Path for an uploaded receipt.
    Receipts for a report that does not exist yet live directly under the owner.
    """
    parts = [owner_id]
    if report_id:
        parts.append(report_id)
    parts.extend([safe_file_name(item_key), safe_file_name(file_name)])
    return "/".join(parts)


def resolve_inside(root: str, relative_path: str) -> Path:
    """Absolute path for relative_path, refusing anything that escapes root."""
    base = Path(root).resolve()
    full_path = (base / relative_path).resolve()
    if base != full_path and base not in full_path.parents:
        raise ValueError(f"Path escapes storage root: {relative_path}")
    return full_path


def ensure_parent_dirs(root: str, relative_path: str) -> Path:
    """Create parent directories and return the full absolute path."""
    full_path = resolve_inside(root, relative_path)
    full_path.parent.mkdir(parents=True, exist_ok=True)
    return full_path
