"""Configuration loading: YAML file -> env vars -> Pydantic defaults."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel


class LayoutConfig(BaseModel):
    x_start: int = 250
    x_spacing: int = 300
    y_start: int = 300
    y_branch_offset: int = 150


class CompilerConfig(BaseModel):
    default_version: str = "1.0.0"
    node_id_prefix: str = "node"
    workflow_settings: dict[str, Any] = {
        "executionOrder": "v1",
        "saveDataSuccessExecution": "all",
        "saveDataErrorExecution": "all",
    }


class Settings(BaseModel):
    layout: LayoutConfig = LayoutConfig()
    compiler: CompilerConfig = CompilerConfig()
    log_level: str = "INFO"


_ENV_MAP: dict[str, tuple[str | None, str, type]] = {
    "SOPC_LAYOUT_X_START": ("layout", "x_start", int),
    "SOPC_LAYOUT_X_SPACING": ("layout", "x_spacing", int),
    "SOPC_LAYOUT_Y_START": ("layout", "y_start", int),
    "SOPC_LAYOUT_Y_BRANCH_OFFSET": ("layout", "y_branch_offset", int),
    "SOPC_DEFAULT_VERSION": ("compiler", "default_version", str),
    "SOPC_NODE_ID_PREFIX": ("compiler", "node_id_prefix", str),
    "SOPC_LOG_LEVEL": (None, "log_level", str),
}


def load_settings(config_path: str | None = None) -> Settings:
    """Load settings: YAML file -> env var overrides -> Pydantic defaults."""
    yaml_data: dict = {}

    # 1. Resolve config file path
    path = _resolve_config_path(config_path)
    if path and path.is_file():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}

    # 2. Build settings from YAML (or defaults)
    settings = Settings.model_validate(yaml_data) if yaml_data else Settings()

    # 3. Override with env vars
    overrides: dict[str | None, dict[str, Any]] = {}
    for env_key, (section, field_name, field_type) in _ENV_MAP.items():
        val = os.environ.get(env_key)
        if val is not None:
            overrides.setdefault(section, {})[field_name] = field_type(val)

    if overrides:
        merged = settings.model_dump()
        for section, values in overrides.items():
            if section is None:
                merged.update(values)
            else:
                merged[section].update(values)
        settings = Settings.model_validate(merged)

    return settings


def _resolve_config_path(explicit_path: str | None) -> Path | None:
    if explicit_path:
        return Path(explicit_path)

    env_path = os.environ.get("SOPC_CONFIG_FILE")
    if env_path:
        return Path(env_path)

    # Default: config.yaml next to this module
    pkg_dir = Path(__file__).parent
    default = pkg_dir / "config.yaml"
    if default.is_file():
        return default

    return None
