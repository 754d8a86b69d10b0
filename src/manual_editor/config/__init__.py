"""Configuration package for the manual editor."""

from manual_editor.config.app_config import (
    ApiConfig,
    DraftConfig,
    EditorConfig,
    ImageConfig,
    clear_config_cache,
    load_app_config,
)

__all__ = [
    "ApiConfig",
    "DraftConfig",
    "EditorConfig",
    "ImageConfig",
    "clear_config_cache",
    "load_app_config",
]
