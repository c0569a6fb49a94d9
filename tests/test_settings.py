import logging

import pytest

from dockgen.config import Settings, load_settings
from dockgen.config import env_adapter
from dockgen.errors import DockgenError, ErrorKind


def test_defaults_without_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    settings = load_settings()
    assert settings.log_level == "INFO"
    assert settings.output_dir == "./output"
    assert settings.registry == "docker.io"
    assert settings.console_diagnostics is True
    assert settings.error_handler.max_retries == 3
    assert settings.error_handler.retry_delay_ms == 1000
    assert settings.source is None


def test_default_file_picked_up_from_cwd(tmp_path, monkeypatch):
    (tmp_path / "dockgen.yaml").write_text("registry: ghcr.io\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    settings = load_settings()
    assert settings.registry == "ghcr.io"
    assert settings.source == "dockgen.yaml"


def test_yaml_file(tmp_path):
    cfg = tmp_path / "settings.yaml"
    cfg.write_text(
        "log_level: debug\n"
        "output_dir: build/out\n"
        "console_diagnostics: false\n"
        "error_handler:\n"
        "  max_retries: 1\n"
        "  retry_delay_ms: 250\n"
        "  enable_recovery: false\n",
        encoding="utf-8",
    )
    settings = load_settings(cfg)
    assert settings.log_level == "DEBUG"
    assert settings.output_dir == "build/out"
    assert settings.console_diagnostics is False
    assert settings.error_handler.max_retries == 1
    assert settings.error_handler.retry_delay_ms == 250
    assert settings.error_handler.enable_recovery is False
    assert settings.error_handler.max_error_history == 100


def test_json_file(tmp_path):
    cfg = tmp_path / "settings.json"
    cfg.write_text('{"registry": "quay.io", "error_handler": {"max_error_history": 10}}', encoding="utf-8")
    settings = load_settings(cfg)
    assert settings.registry == "quay.io"
    assert settings.error_handler.max_error_history == 10


def test_empty_file_is_defaults(tmp_path):
    cfg = tmp_path / "empty.yaml"
    cfg.write_text("", encoding="utf-8")
    assert load_settings(cfg).registry == Settings().registry


def test_unknown_keys_warn(tmp_path, caplog):
    cfg = tmp_path / "settings.yaml"
    cfg.write_text("colour: blue\nerror_handler:\n  retries: 2\n", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="dockgen.config.settings"):
        load_settings(cfg)
    text = caplog.text
    assert "'colour'" in text
    assert "'retries'" in text


def test_environment_overrides_file(tmp_path, monkeypatch):
    cfg = tmp_path / "settings.yaml"
    cfg.write_text("registry: ghcr.io\nerror_handler:\n  max_retries: 1\n", encoding="utf-8")
    monkeypatch.setenv("DOCKGEN_REGISTRY", "registry.local:5000")
    monkeypatch.setenv("DOCKGEN_MAX_RETRIES", "5")
    monkeypatch.setenv("DOCKGEN_ENABLE_CLASSIFICATION", "off")
    monkeypatch.setenv("DOCKGEN_CONSOLE_DIAGNOSTICS", "no")

    settings = load_settings(cfg)
    assert settings.registry == "registry.local:5000"
    assert settings.error_handler.max_retries == 5
    assert settings.error_handler.enable_classification is False
    assert settings.console_diagnostics is False


def test_environment_ignored_when_disabled(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DOCKGEN_REGISTRY", "registry.local")
    assert load_settings(use_env=False).registry == "docker.io"


def test_missing_file_is_config_load_error(tmp_path):
    with pytest.raises(DockgenError) as exc_info:
        load_settings(tmp_path / "nope.yaml")
    err = exc_info.value
    assert err.kind is ErrorKind.CONFIG_LOAD
    assert err.details["code"] == "ENOENT"


def test_malformed_yaml_is_config_load_error(tmp_path):
    cfg = tmp_path / "broken.yaml"
    cfg.write_text("registry: [unclosed\n", encoding="utf-8")
    with pytest.raises(DockgenError) as exc_info:
        load_settings(cfg)
    assert exc_info.value.kind is ErrorKind.CONFIG_LOAD


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "registry: 42\n",
        "console_diagnostics: maybe\n",
        "error_handler: 3\n",
        "error_handler:\n  max_retries: three\n",
        "error_handler:\n  max_retries: true\n",
        "error_handler:\n  enable_recovery: 1\n",
        "error_handler:\n  retry_delay_ms: -5\n",
        "log_level: loud\n",
    ],
)
def test_invalid_values_are_validation_errors(tmp_path, content):
    cfg = tmp_path / "settings.yaml"
    cfg.write_text(content, encoding="utf-8")
    with pytest.raises(DockgenError) as exc_info:
        load_settings(cfg)
    assert exc_info.value.kind is ErrorKind.VALIDATION


def test_bad_environment_integer(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DOCKGEN_RETRY_DELAY_MS", "soon")
    with pytest.raises(DockgenError) as exc_info:
        load_settings()
    assert exc_info.value.kind is ErrorKind.VALIDATION
    assert exc_info.value.details["variable"] == "DOCKGEN_RETRY_DELAY_MS"


def test_env_adapter_helpers(monkeypatch):
    monkeypatch.setenv("DOCKGEN_FLAG", " Yes ")
    monkeypatch.setenv("DOCKGEN_OFF", "0")
    monkeypatch.setenv("DOCKGEN_ODD", "sometimes")
    monkeypatch.setenv("DOCKGEN_LIST", "a, b,,c ")

    assert env_adapter.get_bool("DOCKGEN_FLAG") is True
    assert env_adapter.get_bool("DOCKGEN_MISSING", True) is True
    assert env_adapter.get_optional_bool("DOCKGEN_OFF") is False
    assert env_adapter.get_optional_bool("DOCKGEN_ODD") is None
    assert env_adapter.get_optional_bool("DOCKGEN_MISSING") is None
    assert env_adapter.get_csv("DOCKGEN_LIST") == ["a", "b", "c"]
    assert env_adapter.get_csv("DOCKGEN_LIST", transform=str.upper) == ["A", "B", "C"]
    assert env_adapter.get_str("DOCKGEN_MISSING", "x") == "x"
