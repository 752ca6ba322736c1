"""Environment utilities for resolving Docker secret files."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)

SECRET_FILE_SUFFIX = "_FILE"

# Settings prefixes whose values may be provided through secret files
SECRET_PREFIXES = (
    "DB_",
    "MONGO_",
    "CELERY_",
    "COLLAB_",
    "FORECAST_",
    "SERVICE_",
)


def _read_secret(key: str, file_path: str) -> Optional[str]:
    try:
        return Path(file_path).read_text(encoding="utf-8").strip()
    except FileNotFoundError as exc:
        event = "env.secret_file.missing"
        error = exc
    except UnicodeDecodeError as exc:
        event = "env.secret_file.decode_failed"
        error = exc
    except OSError as exc:
        event = "env.secret_file.load_failed"
        error = exc
    logger.warning(event, extra={"key": key, "path": file_path, "error": str(error)})
    return None


def load_secret_file_variables(
    prefixes: Iterable[str] = SECRET_PREFIXES,
) -> List[str]:
    """
    Resolve ``<NAME>_FILE`` variables into ``<NAME>``.

    Only names starting with one of ``prefixes`` are resolved and values
    already present in the environment win. Unreadable files are logged
    and skipped.

    Returns:
        Names of the variables that were populated
    """

    allowed = tuple(prefixes)
    resolved: List[str] = []
    for key, file_path in list(os.environ.items()):
        if not key.endswith(SECRET_FILE_SUFFIX) or not key.startswith(allowed):
            continue
        target_key = key[: -len(SECRET_FILE_SUFFIX)]
        if os.environ.get(target_key) or not file_path:
            continue
        value = _read_secret(key, file_path)
        if value is None:
            continue
        os.environ[target_key] = value
        resolved.append(target_key)
    return resolved


load_secret_file_variables()
