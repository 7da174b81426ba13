"""Shared JSON file helpers for the stores."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

DATA_DIR_NAME = ".jiratrack"


def read_json(path: Path, default: dict[str, Any] | None = None) -> dict[str, Any]:
    """Read and parse a JSON file, returning ``default`` if it is missing."""
    if default is not None and not path.exists():
        return default
    with open(path) as f:
        return json.load(f)


def write_json(path: Path, data: dict[str, Any]) -> None:
    """Write data to JSON file atomically with sorted keys."""
    # Write to temp file first, then rename for atomic operation
    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=".json")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=2, sort_keys=True)
            f.write("\n")
        os.replace(temp_path, path)
    except Exception:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise
