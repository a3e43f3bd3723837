"""Tests for gateway.config -- layered configuration loading."""

import os

import pytest

from gateway.config import ENV_VARS, ConfigError, NiraConfig, load_config
from nira_constants import DEFAULT_MODEL, DEFAULT_PORT


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("NIRA_HOME", str(tmp_path / "home"))


def _write_yaml(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestDefaults:
    def test_defaults_without_any_source(self, tmp_path):
        cfg = load_config(load_env_files=False)
        assert cfg.model == DEFAULT_MODEL
        assert cfg.port == DEFAULT_PORT
        assert cfg.host == "127.0.0.1"
        assert cfg.ollama_endpoint == "http://localhost:11434"
        assert cfg.max_tool_rounds == 5
        assert cfg.allowed_paths == []
        assert cfg.database_path == str(tmp_path / "home" / "nira.db")
        assert cfg.log_level == "INFO"

    def test_model_validation(self):
        with pytest.raises(ValueError):
            NiraConfig(port=0)
        with pytest.raises(ValueError):
            NiraConfig(max_tool_rounds=0)
        with pytest.raises(ValueError):
            NiraConfig(log_level="chatty")
        assert NiraConfig(log_level="debug").log_level == "DEBUG"

    def test_allowed_paths_string_is_split(self):
        cfg = NiraConfig(allowed_paths=os.pathsep.join(["/a", "", "/b"]))
        assert cfg.allowed_paths == ["/a", "/b"]


class TestPrecedence:
    def test_yaml_file(self, tmp_path):
        _write_yaml(tmp_path / "home" / "config.yaml", "model: llama3\nport: 9001\n")
        cfg = load_config(load_env_files=False)
        assert cfg.model == "llama3"
        assert cfg.port == 9001

    def test_env_beats_yaml(self, tmp_path, monkeypatch):
        _write_yaml(tmp_path / "home" / "config.yaml", "model: llama3\nport: 9001\n")
        monkeypatch.setenv("NIRA_MODEL", "mistral")
        cfg = load_config(load_env_files=False)
        assert cfg.model == "mistral"
        assert cfg.port == 9001

    def test_overrides_beat_env(self, monkeypatch):
        monkeypatch.setenv("NIRA_PORT", "9002")
        monkeypatch.setenv("NIRA_MODEL", "mistral")
        cfg = load_config(load_env_files=False, port=9003, model=None)
        assert cfg.port == 9003
        assert cfg.model == "mistral"

    def test_env_values_are_coerced(self, monkeypatch):
        monkeypatch.setenv("NIRA_PORT", "8181")
        monkeypatch.setenv("NIRA_WEB_SEARCH", "false")
        monkeypatch.setenv("NIRA_ALLOWED_PATHS", os.pathsep.join(["/notes", "/docs"]))
        cfg = load_config(load_env_files=False)
        assert cfg.port == 8181
        assert cfg.enable_web_search is False
        assert cfg.allowed_paths == ["/notes", "/docs"]

    def test_empty_env_value_is_ignored(self, monkeypatch):
        monkeypatch.setenv("NIRA_MODEL", "")
        assert load_config(load_env_files=False).model == DEFAULT_MODEL

    def test_explicit_config_path(self, tmp_path):
        path = _write_yaml(tmp_path / "custom.yaml", "host: 0.0.0.0\n")
        assert load_config(path, load_env_files=False).host == "0.0.0.0"

    def test_dotenv_file_in_home(self, tmp_path, monkeypatch):
        home = tmp_path / "home"
        home.mkdir()
        (home / ".env").write_text("NIRA_MODEL=from-dotenv\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        try:
            assert load_config().model == "from-dotenv"
        finally:
            os.environ.pop("NIRA_MODEL", None)


class TestErrors:
    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError, match="config file not found"):
            load_config(tmp_path / "nope.yaml", load_env_files=False)

    def test_bad_yaml(self, tmp_path):
        _write_yaml(tmp_path / "home" / "config.yaml", "model: [unclosed\n")
        with pytest.raises(ConfigError, match="failed to read"):
            load_config(load_env_files=False)

    def test_yaml_must_be_mapping(self, tmp_path):
        _write_yaml(tmp_path / "home" / "config.yaml", "- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(load_env_files=False)

    def test_invalid_yaml_value_names_file(self, tmp_path):
        path = _write_yaml(tmp_path / "home" / "config.yaml", "port: 70000\n")
        with pytest.raises(ConfigError, match=f"invalid configuration from {path}"):
            load_config(load_env_files=False)

    def test_invalid_env_value_names_environment(self, monkeypatch):
        monkeypatch.setenv("NIRA_PORT", "not-a-port")
        with pytest.raises(ConfigError, match="invalid configuration from environment"):
            load_config(load_env_files=False)

    def test_invalid_override(self):
        with pytest.raises(ConfigError, match="invalid configuration from overrides"):
            load_config(load_env_files=False, max_tool_rounds=0)

    def test_unknown_override(self):
        with pytest.raises(ConfigError, match="unknown configuration option"):
            load_config(load_env_files=False, colour="blue")

    def test_unknown_yaml_key_is_warned_and_ignored(self, tmp_path, caplog):
        _write_yaml(tmp_path / "home" / "config.yaml", "model: llama3\ncolour: blue\n")
        cfg = load_config(load_env_files=False)
        assert cfg.model == "llama3"
        assert "colour" in caplog.text
