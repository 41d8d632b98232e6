"""
Configuration — loads settings from .agent_toolkit.yaml, environment variables,
and built-in defaults (in that priority order: CLI args > env > YAML > defaults).
"""

import os

import yaml


_DEFAULTS = {
    "fuzzy_match": True,
    "fuzzy_threshold": 0.95,
    "diagnostics_command": "",
    "diagnostics_timeout": 30.0,
    "edit_metrics": False,
    "metrics_dir": "",
    "log_dir": ".agent_toolkit/logs",
    "image_model": "gemini-3-pro-image-preview",
    "image_openrouter_model": "google/gemini-3-pro-image-preview",
    "image_timeout_seconds": 120,
}

# Config file search locations
_CONFIG_FILENAMES = [".agent_toolkit.yaml", ".agent_toolkit.yml"]


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, CWD, then user home."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    search_dirs = [os.getcwd(), os.path.expanduser("~")]
    for d in search_dirs:
        for name in _CONFIG_FILENAMES:
            path = os.path.join(d, name)
            if os.path.isfile(path):
                return path
    return None


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


class Config:
    """Application configuration.

    Settings are resolved in priority order:
    1. CLI arguments (handled by caller)
    2. Environment variables
    3. .agent_toolkit.yaml config file
    4. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}

        # Helper: env var > yaml > default
        def _get(env_key: str, yaml_key: str, default, cast=str, section: dict | None = None):
            env_val = os.getenv(env_key)
            if env_val is not None:
                return cast(env_val)
            yaml_val = (section if section is not None else yd).get(yaml_key)
            if yaml_val is not None:
                return cast(yaml_val)
            return default

        def _get_bool(env_key: str, yaml_key: str, default: bool) -> bool:
            env_val = os.getenv(env_key)
            if env_val is not None:
                return env_val.lower() in ("1", "true", "yes")
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return bool(yaml_val)
            return default

        # Edit tool
        self.FUZZY_MATCH = _get_bool("AGENT_TOOLKIT_FUZZY_MATCH", "fuzzy_match",
                                     _DEFAULTS["fuzzy_match"])
        self.FUZZY_THRESHOLD = _get("AGENT_TOOLKIT_FUZZY_THRESHOLD", "fuzzy_threshold",
                                    _DEFAULTS["fuzzy_threshold"], cast=float)
        if not 0.0 < self.FUZZY_THRESHOLD <= 1.0:
            raise ValueError(
                f"fuzzy_threshold must be in (0, 1], got {self.FUZZY_THRESHOLD}")

        self.DIAGNOSTICS_COMMAND = _get("AGENT_TOOLKIT_DIAGNOSTICS_COMMAND",
                                        "diagnostics_command",
                                        _DEFAULTS["diagnostics_command"])
        self.DIAGNOSTICS_TIMEOUT = _get("AGENT_TOOLKIT_DIAGNOSTICS_TIMEOUT",
                                        "diagnostics_timeout",
                                        _DEFAULTS["diagnostics_timeout"], cast=float)

        # Edit metrics (JSONL log)
        self.EDIT_METRICS = _get_bool("AGENT_TOOLKIT_EDIT_METRICS", "edit_metrics",
                                      _DEFAULTS["edit_metrics"])
        self.METRICS_DIR = _get("AGENT_TOOLKIT_METRICS_DIR", "metrics_dir",
                                _DEFAULTS["metrics_dir"])

        self.LOG_DIR = _get("AGENT_TOOLKIT_LOG_DIR", "log_dir", _DEFAULTS["log_dir"])

        # Image generation
        image_section = yd.get("image", {}) if isinstance(yd.get("image"), dict) else {}
        self.IMAGE_MODEL = _get("AGENT_TOOLKIT_IMAGE_MODEL", "model",
                                _DEFAULTS["image_model"], section=image_section)
        self.IMAGE_OPENROUTER_MODEL = _get("AGENT_TOOLKIT_IMAGE_OPENROUTER_MODEL",
                                           "openrouter_model",
                                           _DEFAULTS["image_openrouter_model"],
                                           section=image_section)
        self.IMAGE_TIMEOUT_SECONDS = _get("AGENT_TOOLKIT_IMAGE_TIMEOUT", "timeout_seconds",
                                          _DEFAULTS["image_timeout_seconds"], cast=int,
                                          section=image_section)

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data)
