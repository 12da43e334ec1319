"""Helper utility functions for qualitygate."""

import json
from pathlib import Path
from typing import Any

from .logging import logger


def normalize_path(file_path: str, project_root: Path | str | None = None) -> str:
    """Normalize a tool-reported file path to a Unix-style project-relative path.

    Coverage and lint tools report absolute paths, Windows paths, or paths
    relative to the crate. Everything downstream groups on the relative form.

    Args:
        file_path: The file path to normalize
        project_root: Optional project root to strip from absolute paths

    Returns:
        Normalized relative path

    Examples:
        >>> normalize_path("crates\\\\core\\\\src\\\\lib.rs")
        'crates/core/src/lib.rs'

        >>> normalize_path("/work/repo/crates/core/src/lib.rs", "/work/repo")
        'crates/core/src/lib.rs'
    """
    normalized = file_path.replace("\\", "/")

    if project_root is not None:
        root_str = str(project_root).replace("\\", "/").rstrip("/")

        if root_str and normalized.startswith(root_str + "/"):
            normalized = normalized[len(root_str) + 1 :]

    while normalized.startswith("./"):
        normalized = normalized[2:]

    return normalized.lstrip("/")


def load_json_file(file_path: str | Path) -> Any:
    """
    Load and parse a JSON file.

    Args:
        file_path: Path to JSON file

    Returns:
        Parsed JSON value

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If file contains invalid JSON
    """
    try:
        with open(file_path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        logger.error(f"JSON file not found: {file_path}")
        raise
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in file {file_path}: {e}")
        raise


def save_json_file(data: Any, file_path: str | Path) -> None:
    """
    Save data as JSON to file, creating parent directories.

    Args:
        data: Data to save
        file_path: Path to output file
    """
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, sort_keys=False)
        f.write("\n")


# Run output stays out of commits; the user's config.json does not
ARTIFACT_GITIGNORE = "*\n!config.json\n"


def prepare_artifact_dir(path: Path) -> Path:
    """Create the artifact directory with a .gitignore covering everything qg writes there."""
    path.mkdir(parents=True, exist_ok=True)
    ignore = path / ".gitignore"
    if not ignore.exists():
        ignore.write_text(ARTIFACT_GITIGNORE, encoding="utf-8")
    return path
