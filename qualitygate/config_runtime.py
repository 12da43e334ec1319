"""Runtime configuration for qualitygate - centralized configuration management."""

import copy
import json
import os
from pathlib import Path
from typing import Any

from qualitygate.errors import ConfigError
from qualitygate.utils.logging import logger

DEFAULTS = {
    "paths": {
        "qg_dir": "./.qg",
        "raw_dir": "./.qg/raw",
        "coverage_report": "./.qg/coverage_report.json",
        "run_report": "./.qg/run_report.json",
        "pipeline_log": "./.qg/pipeline.log",
        "error_log": "./.qg/error.log",
        "commit_message": "./.qg/commit_message.txt",
        "coverage_artifact": "./.qg/raw/tarpaulin-report.json",
        "manifest": "./Cargo.toml",
        "components_dir": "./crates",
    },
    "thresholds": {
        "minimum": 60.0,
        "ideal": 80.0,
    },
    "timeouts": {
        "preflight": 30,
        "format": 120,
        "lint": 900,
        "build": 1800,
        "test": 1800,
        "coverage": 3600,
        "audit": 300,
        "docs": 300,
        "stage": 60,
        "terminal": 120,
        "git": 30,
    },
    "limits": {
        "max_workers": 4,
        "grace_period": 5.0,
        "retry_backoff": 1.0,
        "max_pattern_length": 200,
        "expected_test_count": 0,
    },
    "tools": {
        "format": ["cargo", "fmt", "--all", "--", "--check"],
        "format_fix": ["cargo", "fmt", "--all"],
        "lint": ["cargo", "clippy", "--workspace", "--all-targets", "--", "-D", "warnings"],
        "lint_fix": [
            "cargo", "clippy", "--workspace", "--all-targets", "--fix", "--allow-dirty",
            "--", "-D", "warnings",
        ],
        "build": ["cargo", "build", "--workspace", "--locked"],
        "test": ["cargo", "test", "--workspace"],
        "coverage": [
            "cargo", "tarpaulin", "--workspace", "--skip-clean",
            "--out", "Json", "--output-dir", ".qg/raw",
        ],
        "audit": ["cargo", "audit"],
        "link_check": ["lychee", "--offline", "--no-progress", "README.md", "docs"],
        "stage": ["git", "add", "--all"],
    },
    "terminal_action": ["git", "commit", "--file", ".qg/commit_message.txt"],
    # Branch the preflight git-status check expects to release from
    "release_branch": "main",
    # Known component identifiers. Empty means: discover workspace crates.
    "components": [],
    # Category keyword -> extra argv tokens appended to the test command
    "categories": {
        "unit": ["--lib", "--bins"],
        "integration": ["--test", "*"],
        "doc": ["--doc"],
        "examples": ["--examples"],
        "benches": ["--benches"],
    },
    # Phase name -> change classes under which the phase is skipped
    "skip_when": {
        "format": ["docs-only"],
        "lint": ["docs-only"],
        "build": ["docs-only"],
        "test": ["docs-only"],
        "coverage": ["docs-only"],
        "audit": ["docs-only"],
    },
    "docs_patterns": ["*.md", "docs/*", "*.txt", "LICENSE*", ".github/*.md"],
}

# Sections merged key by key; the rest are replaced wholesale.
_NESTED_SECTIONS = ("paths", "thresholds", "timeouts", "limits", "tools", "categories", "skip_when")
_LIST_SECTIONS = ("terminal_action", "components", "docs_patterns")
_STRING_SECTIONS = ("release_branch",)
# Sections that can be overridden from QUALITYGATE_<SECTION>_<KEY>
_ENV_SECTIONS = ("paths", "thresholds", "timeouts", "limits")


def _merge_user_config(cfg: dict[str, Any], user: dict[str, Any]) -> None:
    """Merge a user config dict into cfg in place, ignoring unknown keys."""
    for section in _NESTED_SECTIONS:
        values = user.get(section)
        if values is None:
            continue
        if not isinstance(values, dict):
            logger.warning(f"Config section '{section}' must be an object - ignored")
            continue
        for key, value in values.items():
            if section in ("tools", "categories", "skip_when"):
                # Open-ended maps: any key allowed, values must be string lists
                if isinstance(value, list) and all(isinstance(v, str) for v in value):
                    cfg[section][key] = list(value)
                else:
                    logger.warning(f"Config {section}.{key} must be a list of strings - ignored")
            elif key not in cfg[section]:
                logger.warning(f"Unknown config key {section}.{key} - ignored")
            elif isinstance(cfg[section][key], float) and isinstance(value, int | float):
                cfg[section][key] = float(value)
            elif isinstance(value, type(cfg[section][key])):
                cfg[section][key] = value
            else:
                logger.warning(f"Config {section}.{key} has wrong type - ignored")

    for section in _LIST_SECTIONS:
        value = user.get(section)
        if value is None:
            continue
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            cfg[section] = list(value)
        else:
            logger.warning(f"Config '{section}' must be a list of strings - ignored")

    for section in _STRING_SECTIONS:
        value = user.get(section)
        if value is None:
            continue
        if isinstance(value, str) and value:
            cfg[section] = value
        else:
            logger.warning(f"Config '{section}' must be a non-empty string - ignored")


def _apply_env_overrides(cfg: dict[str, Any]) -> None:
    for section in _ENV_SECTIONS:
        for key in cfg[section]:
            env_var = f"QUALITYGATE_{section.upper()}_{key.upper()}"
            if env_var not in os.environ:
                continue
            value = os.environ[env_var]
            default_value = cfg[section][key]
            try:
                if isinstance(default_value, bool):
                    cfg[section][key] = value.lower() in ("1", "true", "yes")
                elif isinstance(default_value, int):
                    cfg[section][key] = int(value)
                elif isinstance(default_value, float):
                    cfg[section][key] = float(value)
                elif isinstance(default_value, list):
                    cfg[section][key] = [v.strip() for v in value.split(",") if v.strip()]
                else:
                    cfg[section][key] = value
            except ValueError as e:
                logger.warning(
                    f"Invalid value for environment variable {env_var}: '{value}' - {e}; "
                    f"using {cfg[section][key]}"
                )

    components = os.environ.get("QUALITYGATE_COMPONENTS")
    if components is not None:
        cfg["components"] = [c.strip() for c in components.split(",") if c.strip()]

    branch = os.environ.get("QUALITYGATE_RELEASE_BRANCH", "").strip()
    if branch:
        cfg["release_branch"] = branch


def validate_thresholds(thresholds: dict[str, float]) -> None:
    """Raise ConfigError unless 0 <= minimum <= ideal <= 100."""
    minimum = thresholds["minimum"]
    ideal = thresholds["ideal"]
    if not 0.0 <= minimum <= 100.0 or not 0.0 <= ideal <= 100.0:
        raise ConfigError(f"Thresholds must be within 0..100 (minimum={minimum}, ideal={ideal})")
    if minimum > ideal:
        raise ConfigError(f"Minimum threshold {minimum} exceeds ideal threshold {ideal}")


def load_runtime_config(root: str | Path = ".") -> dict[str, Any]:
    """
    Load runtime configuration from .qg/config.json and environment variables.

    Config priority (highest to lowest):
    1. Environment variables (QUALITYGATE_* prefixed)
    2. .qg/config.json file
    3. Built-in defaults

    Args:
        root: Root directory to look for config file

    Returns:
        Configuration dictionary with merged values

    Raises:
        ConfigError: If the merged thresholds are unusable
    """
    cfg = copy.deepcopy(DEFAULTS)

    path = Path(root) / ".qg" / "config.json"
    try:
        if path.exists():
            with open(path, encoding="utf-8") as f:
                user = json.load(f)
            if isinstance(user, dict):
                _merge_user_config(cfg, user)
            else:
                logger.warning(f"Config file {path} is not a JSON object - using defaults")
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not load config file from {path}: {e}")
        logger.info("Continuing with default configuration")

    _apply_env_overrides(cfg)
    validate_thresholds(cfg["thresholds"])

    return cfg


def resolve_path(cfg: dict[str, Any], root: str | Path, key: str) -> Path:
    """Resolve a configured path relative to the project root."""
    return (Path(root) / cfg["paths"][key]).resolve()
