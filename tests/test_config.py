from __future__ import annotations

import os
from pathlib import Path

import pytest

from exit_offboard import config as config_module
from exit_offboard.config import (
    DEFAULT_DISPLAY_NAME_PREFIX,
    DEFAULT_LOG_FILE,
    ConfigurationError,
    load_config,
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    for key in list(os.environ):
        if key.startswith("OFFBOARD_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults_when_default_file_is_absent():
    config = load_config()

    assert config.run.display_name_prefix == DEFAULT_DISPLAY_NAME_PREFIX
    assert config.run.log_file == DEFAULT_LOG_FILE
    assert not config.graph.has_credentials
    assert config.exchange.shell == "pwsh"


def test_explicit_missing_file_is_an_error(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "missing.yaml")


def test_file_values_and_environment_overrides(tmp_path, monkeypatch):
    settings = tmp_path / "settings.yaml"
    settings.write_text(
        "graph:\n"
        "  tenant_id: tenant\n"
        "  client_id: client\n"
        "  client_secret: from-file\n"
        "exchange:\n"
        "  organization: contoso.onmicrosoft.com\n"
        "  timeout: '90'\n"
        "run:\n"
        "  display_name_prefix: 'LEAVER - '\n"
        "  log_file: /var/log/offboard.log\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("OFFBOARD_GRAPH__CLIENT_SECRET", "from-env")

    config = load_config(settings)

    assert config.graph.has_credentials
    assert config.graph.client_secret == "from-env"
    assert config.exchange.organization == "contoso.onmicrosoft.com"
    assert config.exchange.timeout == 90
    assert config.run.display_name_prefix == "LEAVER - "
    assert config.run.log_file == Path("/var/log/offboard.log")


def test_config_path_from_environment(tmp_path, monkeypatch):
    settings = tmp_path / "custom.yaml"
    settings.write_text("run:\n  display_name_prefix: 'OUT-'\n", encoding="utf-8")
    monkeypatch.setenv(config_module.ENV_CONFIG_PATH, str(settings))

    assert load_config().run.display_name_prefix == "OUT-"


def test_invalid_timeout_is_reported(tmp_path):
    settings = tmp_path / "settings.yaml"
    settings.write_text("exchange:\n  timeout: soon\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_config(settings)


def test_non_mapping_section_is_reported(tmp_path):
    settings = tmp_path / "settings.yaml"
    settings.write_text("graph: just-a-string\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_config(settings)
