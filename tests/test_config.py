# File: tests/test_config.py
import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from context_scribe.config import LLMConfig, ScribeConfig, load_config


def write_file(tmp_path: Path, content: str, suffix: str) -> Path:
    path = tmp_path / f"config{suffix}"
    path.write_text(content, encoding="utf-8")
    return path


@pytest.mark.parametrize(
    "content,suffix,expect_exc",
    [
        ("concurrency: 3\ncleanup: language", ".yaml", None),
        (json.dumps({"concurrency": 3, "cleanup": "language"}), ".json", None),
        ("concurrency: 0", ".yaml", ValidationError),
        ("cleanup: magic", ".yaml", ValidationError),
        ("wordlists: {}", ".yaml", ValidationError),
        ("not: a: mapping", ".yaml", ValueError),
        ("::invalid yaml", ".yaml", TypeError),
        ("{broken", ".json", ValueError),
        ("concurrency = 3", ".toml", ValueError),
    ],
)
def test_load_config_variants(tmp_path, content, suffix, expect_exc):
    cfg_path = write_file(tmp_path, content, suffix)
    if expect_exc:
        with pytest.raises(expect_exc):
            load_config(cfg_path)
    else:
        cfg = load_config(cfg_path)
        assert isinstance(cfg, ScribeConfig)
        assert cfg.concurrency == 3
        assert cfg.cleanup == "language"
        # untouched fields keep their defaults
        assert cfg.timeout == 30.0


def test_empty_yaml_gives_defaults(tmp_path):
    cfg = load_config(write_file(tmp_path, "", ".yml"))
    assert cfg == ScribeConfig()


def test_defaults():
    cfg = ScribeConfig()
    assert cfg.concurrency == 10
    assert cfg.user_agent == "ContextScribe/1.0"
    assert cfg.cleanup == "rules"
    assert cfg.cache_ttl_seconds == 24 * 3600
    assert cfg.keep_partial_on_stop is False
    assert (cfg.host, cfg.port) == ("127.0.0.1", 8080)


def test_target_language_is_normalised():
    assert ScribeConfig(target_language=" DE ").target_language == "de"


def test_nested_llm_section(tmp_path, monkeypatch):
    cfg_path = write_file(tmp_path, "llm:\n  model: local\n  api_key_env: SCRIBE_KEY\n", ".yaml")
    monkeypatch.setenv("SCRIBE_KEY", "secret")
    cfg = load_config(cfg_path)
    assert cfg.llm.model == "local"
    assert cfg.llm.api_key == "secret"
    assert LLMConfig(api_key_env="SCRIBE_UNSET_KEY").api_key is None


def test_load_config_default_missing(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert load_config(None) == ScribeConfig()


def test_load_config_default_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "configs").mkdir()
    (tmp_path / "configs" / "default.yaml").write_text("port: 9000\n", encoding="utf-8")
    assert load_config(None).port == 9000


def test_explicit_path_must_exist(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_shipped_default_config_is_valid():
    shipped = Path(__file__).resolve().parent.parent / "configs" / "default.yaml"
    assert load_config(shipped) == ScribeConfig(cache_dir=Path(".cache"))
