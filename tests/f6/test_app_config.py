"""Tests for application configuration loading (F6)."""

import pytest

from manual_editor.config import clear_config_cache, load_app_config


@pytest.fixture(autouse=True)
def _fresh_cache():
    clear_config_cache()
    yield
    clear_config_cache()


def test_defaults_when_file_missing(tmp_path):
    config = load_app_config(config_path=tmp_path / "missing.yaml")
    assert config.api.base_url == "http://localhost:3000/api"
    assert config.drafts.debounce_seconds == 1.0
    assert config.images.max_images == 5
    assert config.ui_lang == "ar"


def test_partial_file_merged_with_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "api:\n  base_url: https://manuals.example.com/api/\n"
        "drafts:\n  debounce_seconds: 0.25\n"
        "ui_lang: en\n",
        encoding="utf-8",
    )
    config = load_app_config(config_path=path)
    assert config.api.base_url == "https://manuals.example.com/api"
    assert config.api.timeout_seconds == 10.0
    assert config.drafts.debounce_seconds == 0.25
    assert config.drafts.key == "manual-draft"
    assert config.ui_lang == "en"


def test_env_path_and_cache(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("images:\n  max_images: 3\n", encoding="utf-8")
    monkeypatch.setenv("MANUALS_CONFIG", str(path))

    first = load_app_config()
    assert first.images.max_images == 3

    path.write_text("images:\n  max_images: 4\n", encoding="utf-8")
    assert load_app_config() is first
    assert load_app_config(force_reload=True).images.max_images == 4


def test_token_from_env(tmp_path, monkeypatch):
    config = load_app_config(config_path=tmp_path / "missing.yaml")
    monkeypatch.delenv("MANUALS_API_TOKEN", raising=False)
    assert config.api.get_token() is None
    monkeypatch.setenv("MANUALS_API_TOKEN", "abc")
    assert config.api.get_token() == "abc"
