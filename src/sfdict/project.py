# src/sfdict/project.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

_logger = logging.getLogger(__name__)

PROJECT_FILE = "sfdx-project.json"


def find_project_file(start: Optional[Path] = None) -> Optional[Path]:
    """Walk up from ``start`` (default: cwd) looking for sfdx-project.json."""
    here = (start or Path.cwd()).resolve()
    for directory in (here, *here.parents):
        candidate = directory / PROJECT_FILE
        if candidate.is_file():
            return candidate
    return None


def load_project_config(start: Optional[Path] = None) -> Dict[str, Any]:
    path = find_project_file(start)
    if path is None:
        return {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        _logger.warning("Ignoring unreadable %s: %s", path, e)
        return {}


def get_name(start: Optional[Path] = None) -> Optional[str]:
    return load_project_config(start).get("name") or None


def get_source_api_version(start: Optional[Path] = None) -> Optional[str]:
    return load_project_config(start).get("sourceApiVersion") or None
