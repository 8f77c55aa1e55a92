"""Tests for the cfgbind CLI: root options and config show/get/set/path."""

from __future__ import annotations

import importlib

import pytest
import yaml
from click.testing import CliRunner

from cfgbind import __version__, loader
from cfgbind.cli.app import CliOptions, build_command

# cfgbind.cli re-exports the Typer app under the module's name
app_mod = importlib.import_module("cfgbind.cli.app")

runner = CliRunner()

CONFIG = """
cli:
  log_level: INFO
Nested:
  FifthParam: 78
  SixthParam: Sixth
region: eu-west-1
"""


def flat(output: str) -> str:
    return output.replace("\n", "")


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / ".demo.yaml"
    path.write_text(CONFIG)
    loader.configure(app_name="demo", search_paths=[tmp_path])
    return path


@pytest.fixture
def logging_calls(monkeypatch):
    calls = []
    monkeypatch.setattr(app_mod, "configure_logging", lambda **kwargs: calls.append(kwargs))
    return calls


class TestRootOptions:
    """Root options resolve like any other bound record."""

    def test_version(self, logging_calls):
        result = runner.invoke(build_command(), ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_log_level_from_config(self, config_file, logging_calls):
        options = CliOptions()
        result = runner.invoke(build_command(options), ["config", "path"])

        assert result.exit_code == 0, result.output
        assert options.log_level == "INFO"
        assert logging_calls == [{"level": "INFO", "json_format": False}]

    def test_log_level_flag_beats_config(self, config_file, logging_calls):
        options = CliOptions()
        result = runner.invoke(build_command(options), ["--log-level", "ERROR", "--log-format", "json", "config", "path"])

        assert result.exit_code == 0, result.output
        assert logging_calls == [{"level": "ERROR", "json_format": True}]

    def test_defaults_without_config(self, tmp_path, logging_calls):
        loader.configure(app_name="demo", search_paths=[tmp_path])
        options = CliOptions()

        runner.invoke(build_command(options), ["config", "path"])

        assert options.log_level == "WARNING"

    def test_defaults_from_cfgbind_settings(self, tmp_path, logging_calls, monkeypatch):
        """CFGBIND_LOG_LEVEL and CFGBIND_LOG_FORMAT seed the root options."""
        monkeypatch.setenv("CFGBIND_LOG_LEVEL", "ERROR")
        monkeypatch.setenv("CFGBIND_LOG_FORMAT", "json")
        loader.configure(app_name="demo", search_paths=[tmp_path])

        result = runner.invoke(build_command(), ["config", "path"])

        assert result.exit_code == 0, result.output
        assert logging_calls == [{"level": "ERROR", "json_format": True}]

    def test_config_beats_cfgbind_settings(self, config_file, logging_calls, monkeypatch):
        monkeypatch.setenv("CFGBIND_LOG_LEVEL", "ERROR")

        runner.invoke(build_command(), ["config", "path"])

        assert logging_calls == [{"level": "INFO", "json_format": False}]


class TestShowConfig:
    def test_show_table(self, config_file, logging_calls):
        result = runner.invoke(build_command(), ["config", "show"])
        assert result.exit_code == 0, result.output
        assert "Nested.FifthParam" in result.output
        assert "eu-west-1" in result.output

    def test_show_json(self, config_file, logging_calls):
        result = runner.invoke(build_command(), ["config", "show", "--format", "json"])
        assert result.exit_code == 0, result.output
        assert '"FifthParam": 78' in result.output

    def test_show_applies_environment(self, config_file, logging_calls, monkeypatch):
        monkeypatch.setenv("REGION", "from-env")
        result = runner.invoke(build_command(), ["config", "show"])
        assert "from-env" in result.output


class TestGetValue:
    def test_get_nested_key(self, config_file, logging_calls):
        result = runner.invoke(build_command(), ["config", "get", "nested.fifth_param"])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "78"

    def test_get_missing_key(self, config_file, logging_calls):
        result = runner.invoke(build_command(), ["config", "get", "nope"])
        assert result.exit_code == 1


class TestSetValue:
    def test_set_in_memory(self, config_file, logging_calls):
        result = runner.invoke(build_command(), ["config", "set", "nested.fifth_param", "5"])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "5"
        assert "FifthParam: 78" in config_file.read_text()

    def test_set_and_write(self, config_file, logging_calls):
        result = runner.invoke(build_command(), ["config", "set", "nested.fifth_param", "5", "--write"])

        assert result.exit_code == 0, result.output
        assert "Wrote" in result.output
        assert yaml.safe_load(config_file.read_text())["Nested"]["FifthParam"] == 5

    def test_write_without_file_fails(self, tmp_path, logging_calls):
        loader.configure(app_name="demo", search_paths=[tmp_path])
        result = runner.invoke(build_command(), ["config", "set", "region", "us", "--write"])
        assert result.exit_code == 1


class TestShowPath:
    def test_path_of_loaded_file(self, config_file, logging_calls):
        result = runner.invoke(build_command(), ["config", "path"])
        assert result.exit_code == 0, result.output
        assert ".demo.yaml" in flat(result.output)

    def test_no_file(self, tmp_path, logging_calls):
        loader.configure(app_name="demo", search_paths=[tmp_path])
        result = runner.invoke(build_command(), ["config", "path"])
        assert "No config file loaded." in result.output
