"""Application configuration loader.

Loads configuration from data/config/editor_config_v1.yaml (or the path in
$MANUALS_CONFIG), falling back to built-in defaults.

Usage:
    from manual_editor.config.app_config import load_app_config

    config = load_app_config()
    config.drafts.debounce_seconds
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/editor_config_v1.yaml")
CONFIG_ENV = "MANUALS_CONFIG"
TOKEN_ENV = "MANUALS_API_TOKEN"


@dataclass
class ApiConfig:
    """Manuals API connection settings."""

    base_url: str = "http://localhost:3000/api"
    timeout_seconds: float = 10.0
    token_env: str = TOKEN_ENV

    def get_token(self) -> str | None:
        """Get bearer token from environment variable."""
        return os.environ.get(self.token_env) or None


@dataclass
class DraftConfig:
    """Draft autosave settings."""

    state_dir: str = "data/state"
    key: str = "manual-draft"
    debounce_seconds: float = 1.0


@dataclass
class ImageConfig:
    """Step image limits."""

    max_images: int = 5
    max_file_size_bytes: int = 5 * 1024 * 1024
    allowed_mime_types: list[str] = field(
        default_factory=lambda: ["image/png", "image/jpeg", "image/jpg"]
    )


@dataclass
class EditorConfig:
    """Application-wide configuration."""

    api: ApiConfig = field(default_factory=ApiConfig)
    drafts: DraftConfig = field(default_factory=DraftConfig)
    images: ImageConfig = field(default_factory=ImageConfig)
    ui_lang: str = "ar"


# Module-level cache
_cached_config: EditorConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "api": {
            "base_url": "http://localhost:3000/api",
            "timeout_seconds": 10.0,
            "token_env": TOKEN_ENV,
        },
        "drafts": {
            "state_dir": "data/state",
            "key": "manual-draft",
            "debounce_seconds": 1.0,
        },
        "images": {
            "max_images": 5,
            "max_file_size_bytes": 5 * 1024 * 1024,
            "allowed_mime_types": ["image/png", "image/jpeg", "image/jpg"],
        },
        "ui_lang": "ar",
    }


def _parse_config(data: dict[str, Any]) -> EditorConfig:
    """Parse configuration dictionary into EditorConfig object."""
    defaults = _get_defaults()

    api_data = {**defaults["api"], **(data.get("api") or {})}
    api = ApiConfig(
        base_url=str(api_data["base_url"]).rstrip("/"),
        timeout_seconds=float(api_data["timeout_seconds"]),
        token_env=api_data["token_env"],
    )

    drafts_data = {**defaults["drafts"], **(data.get("drafts") or {})}
    drafts = DraftConfig(
        state_dir=str(drafts_data["state_dir"]),
        key=str(drafts_data["key"]),
        debounce_seconds=float(drafts_data["debounce_seconds"]),
    )

    images_data = {**defaults["images"], **(data.get("images") or {})}
    images = ImageConfig(
        max_images=int(images_data["max_images"]),
        max_file_size_bytes=int(images_data["max_file_size_bytes"]),
        allowed_mime_types=list(images_data["allowed_mime_types"]),
    )

    return EditorConfig(
        api=api,
        drafts=drafts,
        images=images,
        ui_lang=data.get("ui_lang", defaults["ui_lang"]),
    )


def _resolve_config_path(config_path: Path | None) -> Path:
    if config_path is not None:
        return config_path
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        return Path(env_path)
    return CONFIG_FILE


def load_app_config(
    force_reload: bool = False, config_path: Path | None = None
) -> EditorConfig:
    """Load application config, falling back to defaults.

    Args:
        force_reload: If True, ignore cached config and reload from file.
        config_path: Explicit config file; overrides $MANUALS_CONFIG.

    Returns:
        EditorConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload and config_path is None:
        return _cached_config

    path = _resolve_config_path(config_path)

    data: dict[str, Any]
    if path.exists():
        logger.debug("loading_app_config", source=str(path))
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config", missing=str(path))
        data = _get_defaults()

    config = _parse_config(data)
    if config_path is None:
        _cached_config = config
    return config


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
