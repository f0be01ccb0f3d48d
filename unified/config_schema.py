"""Configuration schema and defaults for the Unified grades dashboard."""

from typing import Any
import copy
import json
import os

DEFAULT_CONFIG: dict[str, Any] = {
    "api": {
        "base_url": "http://localhost:5000/api/proxy",
        "token": None,
        # Grade updates carry no timeout; only the login handshake does
        "timeout": None,
        "login_timeout": 12
    },
    "grade_system": "12-point",
    "grade_systems": {
        "12-point": 12,
        "5-point": 5
    },
    "templates": {
        "admin": "UnifiedWeb Admin Grades",
        "teacher": "UnifiedWeb Teacher Grades"
    },
    "sheet_name": "Grades",
    "log_level": "INFO",
    "developer_mode": False
}

ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "UNIFIED_API_BASE": ("api", "base_url"),
    "UNIFIED_API_TOKEN": ("api", "token"),
    "UNIFIED_LOG_LEVEL": ("log_level",),
    "UNIFIED_DEVELOPER_MODE": ("developer_mode",),
}


def get_default_config() -> dict[str, Any]:
    """Return a deep copy of the default configuration."""
    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(user_config: dict[str, Any]) -> dict[str, Any]:
    """
    Merge user configuration with defaults.

    User config values override defaults. Missing keys use default values.
    """
    result = get_default_config()

    if "api" in user_config:
        result["api"].update(user_config["api"])

    if "grade_systems" in user_config:
        result["grade_systems"].update(user_config["grade_systems"])

    if "templates" in user_config:
        result["templates"].update(user_config["templates"])

    for key in ("grade_system", "sheet_name", "log_level", "developer_mode"):
        if key in user_config:
            result[key] = user_config[key]

    return result


def load_config(config_path: str | None = None) -> dict[str, Any]:
    """Load a JSON config file (if given), merge it with defaults and apply env overrides."""
    user_config: dict[str, Any] = {}
    if config_path:
        with open(config_path, "r", encoding="utf-8") as f:
            user_config = json.load(f)
    return apply_env_overrides(merge_config(user_config))


def apply_env_overrides(config: dict[str, Any], environ=None) -> dict[str, Any]:
    """Apply ``UNIFIED_*`` environment variables on top of a config dict."""
    environ = os.environ if environ is None else environ
    result = copy.deepcopy(config)

    for env_key, path in ENV_OVERRIDES.items():
        raw = environ.get(env_key)
        if raw is None or raw == "":
            continue

        value: Any = raw
        if path == ("developer_mode",):
            value = raw.strip().lower() in ("1", "true", "yes", "on")

        target = result
        for part in path[:-1]:
            target = target.setdefault(part, {})
        target[path[-1]] = value

    return result


def validate_config(config: dict[str, Any]) -> list[dict[str, str]]:
    """
    Validate configuration and return list of issues.

    Returns:
        List of dicts with 'type' (error/warning) and 'message'.
    """
    issues = []

    if not config.get("api", {}).get("base_url"):
        issues.append({
            "type": "error",
            "message": "API base URL is not configured"
        })

    grade_systems = config.get("grade_systems", {})
    selected = config.get("grade_system")
    if selected not in grade_systems:
        issues.append({
            "type": "error",
            "message": f"Grade system '{selected}' is not defined"
        })

    for name, max_grade in grade_systems.items():
        if not isinstance(max_grade, int) or isinstance(max_grade, bool) or max_grade < 1:
            issues.append({
                "type": "error",
                "message": f"Grade system '{name}' must have a positive integer maximum"
            })

    templates = config.get("templates", {})
    for role in ("admin", "teacher"):
        if not templates.get(role):
            issues.append({
                "type": "error",
                "message": f"No template name defined for role '{role}'"
            })

    if templates.get("admin") and templates.get("admin") == templates.get("teacher"):
        issues.append({
            "type": "warning",
            "message": "Admin and teacher templates share the same name"
        })

    if not config.get("api", {}).get("token"):
        issues.append({
            "type": "warning",
            "message": "No API token configured; sign-in is required"
        })

    return issues
