"""Backup files holding a whole state.

An export file is indented JSON::

    {"version": "1.0", "export_date": "<iso-8601>", "state": <state>}

Importing one replaces the state wholesale; see ``SyncEngine.import_state``.
"""

import json
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any, Optional

import structlog

from stashsync.errors import InvalidExportFile

logger = structlog.get_logger(__name__)

EXPORT_FORMAT_VERSION = "1.0"
SUPPORTED_FORMAT_VERSIONS = frozenset({EXPORT_FORMAT_VERSION})


def build_export_filename(day: Optional[date] = None) -> str:
    """Default file name for an export taken on ``day`` (today if omitted)."""
    day = day or datetime.now(UTC).date()
    return f"stash-backup-{day.isoformat()}.json"


def export_state(state: Any, path: str | Path) -> Path:
    """Write ``state`` to an export file.

    Args:
        state: Whole state to export, in JSON-compatible form.
        path: Destination file; parent directories are created.

    Returns:
        The path written.
    """
    path = Path(path)
    document = {
        "version": EXPORT_FORMAT_VERSION,
        "export_date": datetime.now(UTC).isoformat(),
        "state": state,
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("State exported", path=str(path))
    return path


def load_export(path: str | Path) -> Any:
    """Read the state from an export file.

    Raises:
        InvalidExportFile: If the file cannot be read, is not JSON, or is
            not a supported export document.
    """
    path = Path(path)
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise InvalidExportFile(f"Cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise InvalidExportFile(f"{path} is not valid JSON: {e}") from e

    if not isinstance(document, dict) or "state" not in document:
        raise InvalidExportFile(f"{path} is not a stashsync export")

    version = document.get("version")
    if version not in SUPPORTED_FORMAT_VERSIONS:
        raise InvalidExportFile(f"Unsupported export version: {version!r}")

    logger.info("Export loaded", path=str(path), export_date=document.get("export_date"))
    return document["state"]
