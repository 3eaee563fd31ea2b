"""Atomic JSON document persistence.

Shared by the file-backed notification and preference stores. Writes go to
a temporary file in the target directory which is fsynced and renamed over
the destination, so readers never see a half-written document.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

import structlog

from subwatch.utils.exceptions import StoreError

logger = structlog.get_logger()


def ensure_private_directory(path: Path) -> None:
    """Create the parent directory of ``path`` with owner-only permissions."""
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        os.chmod(path.parent, 0o700)
    except OSError as e:
        logger.warning("store_dir_chmod_failed", path=str(path.parent), error=str(e))


def load_json_document(path: Path) -> Dict[str, Any]:
    """Load a JSON object from disk.

    A missing file yields an empty document. A corrupt file is moved aside
    to ``<name>.backup`` and an empty document is returned.

    Raises:
        StoreError: If the file exists but cannot be read.
    """
    if not path.exists():
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.error("store_parse_error", path=str(path), error=str(e))
        backup_path = path.with_suffix(path.suffix + ".backup")
        path.rename(backup_path)
        logger.warning("store_backed_up", backup=str(backup_path))
        return {}
    except OSError as e:
        raise StoreError(f"Failed to read {path}: {e}") from e

    if not isinstance(data, dict):
        logger.error("store_unexpected_document", path=str(path))
        return {}
    return data


def save_json_document(path: Path, document: Dict[str, Any]) -> None:
    """Write a JSON object to disk atomically.

    Raises:
        StoreError: If the document cannot be written.
    """
    try:
        ensure_private_directory(path)
        fd, tmp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.stem}_",
            suffix=".tmp",
        )

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, default=str)
                f.flush()
                os.fsync(f.fileno())

            os.rename(tmp_path, path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        try:
            os.chmod(path, 0o600)
        except OSError as e:
            logger.warning("store_file_chmod_failed", path=str(path), error=str(e))

    except OSError as e:
        logger.error("store_save_error", path=str(path), error=str(e))
        raise StoreError(f"Failed to write {path}: {e}") from e
