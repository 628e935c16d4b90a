"""Tests for settings and the model catalogue."""

import pytest

from chatblocks.modules.config.config_manager import ConfigManager, ModelsConfig, resolve_env_var


def test_packaged_catalogue_loads():
    config = ConfigManager()
    ids = [m.id for m in config.models_config.models]
    assert "gpt-4o" in ids
    assert config.models_config.default_model in ids
    assert config.get_model("not-there") is None


def test_defaults(monkeypatch):
    monkeypatch.delenv("MAX_STEPS", raising=False)
    monkeypatch.delenv("TURN_TIMEOUT_SECONDS", raising=False)
    settings = ConfigManager().app_settings
    assert settings.max_steps == 5
    assert settings.turn_timeout_seconds == 60.0


def test_user_config_dir_overrides_package_defaults(tmp_path, monkeypatch):
    (tmp_path / "models.yml").write_text(
        "models:\n"
        "  local-llama:\n"
        "    label: Local\n"
        "    api_identifier: llama3\n"
        "    api_base: ${LOCAL_LLM_URL}\n"
    )
    monkeypatch.setenv("APP_CONFIG_DIR", str(tmp_path))
    monkeypatch.setenv("LOCAL_LLM_URL", "http://localhost:11434/v1")

    config = ConfigManager()

    assert [m.id for m in config.models_config.models] == ["local-llama"]
    assert config.models_config.default_model == "local-llama"
    assert config.get_model("local-llama").api_base == "http://localhost:11434/v1"


def test_broken_catalogue_falls_back_to_empty(tmp_path, monkeypatch):
    (tmp_path / "models.yml").write_text("default_model: ghost\nmodels:\n  - id: a\n    label: A\n    api_identifier: a\n")
    monkeypatch.setenv("APP_CONFIG_DIR", str(tmp_path))
    assert ConfigManager().models_config.models == []


def test_duplicate_ids_rejected():
    entry = {"id": "a", "label": "A", "api_identifier": "a"}
    with pytest.raises(ValueError):
        ModelsConfig(models=[entry, entry])


def test_resolve_env_var(monkeypatch):
    monkeypatch.setenv("SOME_KEY", "secret")
    assert resolve_env_var("${SOME_KEY}") == "secret"
    assert resolve_env_var("prefix-${SOME_KEY}") == "prefix-${SOME_KEY}"
    assert resolve_env_var(None) is None
    monkeypatch.delenv("MISSING_KEY", raising=False)
    assert resolve_env_var("${MISSING_KEY}", required=False) is None
    with pytest.raises(ValueError):
        resolve_env_var("${MISSING_KEY}")


def test_reload_picks_up_new_catalogue(tmp_path, monkeypatch):
    monkeypatch.setenv("APP_CONFIG_DIR", str(tmp_path))
    catalogue = tmp_path / "models.yml"
    catalogue.write_text("models:\n  - id: first\n    label: First\n    api_identifier: first\n")
    config = ConfigManager()
    assert config.models_config.default_model == "first"

    catalogue.write_text("models:\n  - id: second\n    label: Second\n    api_identifier: second\n")
    assert config.get_model("second") is None
    config.reload_configs()
    assert config.get_model("second") is not None
