"""Tests for aska.config — AskaConfig, TOML loading, env and CLI overrides."""

from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from aska.config import AskaConfig, load_config, merge_cli_overrides

_ENV_VARS = (
    "ASKA_STORE_DIR",
    "ASKA_MODEL",
    "ASKA_LLM_TIMEOUT",
    "ASKA_USE_CLI",
    "ASKA_MIN_CONFIDENCE",
    "ASKA_FANOUT_DELAY",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in _ENV_VARS:
        monkeypatch.delenv(key, raising=False)


class TestAskaConfigDefaults:
    def test_default_store(self):
        cfg = AskaConfig()
        assert cfg.store.directory == "./aska-data"
        assert cfg.store_path == Path("./aska-data")

    def test_default_llm(self):
        cfg = AskaConfig()
        assert cfg.llm.model is None
        assert cfg.llm.timeout == 120
        assert cfg.llm.use_cli is False

    def test_default_pipeline_settings(self):
        cfg = AskaConfig()
        assert cfg.ingest.max_input_chars == 50_000
        assert cfg.ingest.run_suitability is True
        assert cfg.fanout.min_confidence == 0.7
        assert cfg.fanout.delay_seconds == 2.0
        assert cfg.batch.delay_seconds == 2.0

    def test_min_confidence_out_of_range(self):
        with pytest.raises(ValidationError):
            AskaConfig.model_validate({"fanout": {"min_confidence": 1.5}})


class TestLoadConfig:
    def test_explicit_path(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text(
            '[store]\ndirectory = "/data/aska"\n\n[fanout]\nmin_confidence = 0.8\n'
        )
        cfg = load_config(path)
        assert cfg.store.directory == "/data/aska"
        assert cfg.fanout.min_confidence == 0.8
        assert cfg.llm.timeout == 120

    def test_missing_explicit_path_uses_defaults(self, tmp_path):
        cfg = load_config(tmp_path / "nope.toml")
        assert cfg == AskaConfig()

    def test_finds_file_in_cwd(self, tmp_path, monkeypatch):
        (tmp_path / ".aska.toml").write_text('[llm]\nmodel = "haiku"\n')
        monkeypatch.chdir(tmp_path)
        with patch("aska.config.GLOBAL_CONFIG_PATH", tmp_path / "absent.toml"):
            cfg = load_config()
        assert cfg.llm.model == "haiku"

    def test_falls_back_to_global(self, tmp_path, monkeypatch):
        global_path = tmp_path / "global.toml"
        global_path.write_text("[batch]\ndelay_seconds = 0.5\n")
        monkeypatch.chdir(tmp_path)
        with patch("aska.config.GLOBAL_CONFIG_PATH", global_path):
            cfg = load_config()
        assert cfg.batch.delay_seconds == 0.5

    def test_invalid_toml_is_ignored(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[store\ndirectory = ")
        cfg = load_config(path)
        assert cfg.store.directory == "./aska-data"


class TestEnvOverrides:
    def test_env_overrides_toml(self, tmp_path, monkeypatch):
        path = tmp_path / "c.toml"
        path.write_text('[llm]\nmodel = "haiku"\n')
        monkeypatch.setenv("ASKA_MODEL", "opus")
        monkeypatch.setenv("ASKA_LLM_TIMEOUT", "30")
        cfg = load_config(path)
        assert cfg.llm.model == "opus"
        assert cfg.llm.timeout == 30

    def test_use_cli_truthy_values(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ASKA_USE_CLI", "yes")
        assert load_config(tmp_path / "none.toml").llm.use_cli is True
        monkeypatch.setenv("ASKA_USE_CLI", "0")
        assert load_config(tmp_path / "none.toml").llm.use_cli is False

    def test_fanout_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ASKA_MIN_CONFIDENCE", "0.9")
        monkeypatch.setenv("ASKA_FANOUT_DELAY", "0")
        cfg = load_config(tmp_path / "none.toml")
        assert cfg.fanout.min_confidence == 0.9
        assert cfg.fanout.delay_seconds == 0.0


class TestMergeCliOverrides:
    def test_none_values_do_not_override(self):
        cfg = AskaConfig.model_validate({"llm": {"model": "haiku"}})
        merged = merge_cli_overrides(cfg, model=None, store_directory=None)
        assert merged.llm.model == "haiku"

    def test_explicit_values_override(self):
        merged = merge_cli_overrides(
            AskaConfig(), model="opus", store_directory="/tmp/x", min_confidence=0.5
        )
        assert merged.llm.model == "opus"
        assert merged.store.directory == "/tmp/x"
        assert merged.fanout.min_confidence == 0.5

    def test_unknown_keys_ignored(self):
        merged = merge_cli_overrides(AskaConfig(), colour="blue")
        assert merged == AskaConfig()
