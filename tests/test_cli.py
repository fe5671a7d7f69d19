"""Tests for the pulsar-survey command line."""

import json

import pytest
from pydantic import ValidationError
from typer.testing import CliRunner

from pulsar_survey import cli
from pulsar_survey.config import load_settings
from pulsar_survey.errors import ConfigError, TunnelNotReadyError
from pulsar_survey.types import ClusterResult, Stats

runner = CliRunner()


class FakeEngine:
    """Stands in for SurveyEngine and records the config it was given."""

    configs: list = []
    error: Exception | None = None

    def __init__(self, config):
        FakeEngine.configs.append(config)

    async def run(self):
        if FakeEngine.error is not None:
            raise FakeEngine.error
        result = ClusterResult(name="clusterA", origin="http://h1", clusters=["clusterA"])
        result.stats = Stats(1.0, 2.0, 3.0, 4.0)
        return [result]


@pytest.fixture(autouse=True)
def fake_engine(monkeypatch):
    FakeEngine.configs = []
    FakeEngine.error = None
    monkeypatch.setattr(cli, "SurveyEngine", FakeEngine)
    monkeypatch.delenv("KUBECONFIG", raising=False)
    return FakeEngine


def test_no_targets_and_no_kubeconfig():
    result = runner.invoke(cli.app, [])

    assert result.exit_code == 1
    assert "No kubefiles specified" in result.output
    assert FakeEngine.configs == []


def test_kubeconfig_fallback(monkeypatch):
    monkeypatch.setenv("KUBECONFIG", "/a/kc:/b/kc")

    result = runner.invoke(cli.app, ["--json"])

    assert result.exit_code == 0
    assert FakeEngine.configs[0].targets == ["/a/kc", "/b/kc"]


def test_explicit_targets_win_over_kubeconfig(monkeypatch):
    monkeypatch.setenv("KUBECONFIG", "/a/kc")

    result = runner.invoke(cli.app, ["http://h1,clusterA", "--json"])

    assert result.exit_code == 0
    assert FakeEngine.configs[0].targets == ["http://h1,clusterA"]


def test_options_reach_config():
    result = runner.invoke(
        cli.app,
        [
            "http://h1,clusterA",
            "-f", "orders",
            "-N", "pulsar-proxy",
            "-P", "19000",
            "-n", "pulsar",
            "--json",
        ],
    )

    assert result.exit_code == 0
    config = FakeEngine.configs[0]
    assert config.topic_filter == "orders"
    assert config.service_name == "pulsar-proxy"
    assert config.local_port == 19000
    assert config.namespace == "pulsar"


def test_settings_supply_defaults(monkeypatch):
    monkeypatch.setenv("PULSAR_SURVEY_LOCAL_PORT", "18000")
    monkeypatch.setenv("PULSAR_SURVEY_SERVICE_NAME", "broker")

    result = runner.invoke(cli.app, ["http://h1,clusterA", "--json"])

    assert result.exit_code == 0
    assert FakeEngine.configs[0].local_port == 18000
    assert FakeEngine.configs[0].service_name == "broker"


def test_json_output():
    result = runner.invoke(cli.app, ["http://h1,clusterA", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data[0]["name"] == "clusterA"
    assert data[0]["stats"]["msg_throughput_out"] == 4.0


def test_table_output():
    result = runner.invoke(cli.app, ["http://h1,clusterA"])

    assert result.exit_code == 0
    assert "clusterA" in result.output


def test_unknown_log_level():
    result = runner.invoke(cli.app, ["http://h1,clusterA", "-l", "chatty"])

    assert result.exit_code == 1
    assert "Unknown log-level" in result.output
    assert FakeEngine.configs == []


def test_fatal_error_exits_non_zero():
    FakeEngine.error = TunnelNotReadyError("clusterB", "error: unable to forward")

    result = runner.invoke(cli.app, ["http://h1,clusterA"])

    assert result.exit_code == 1
    assert "clusterB" in result.output


def test_malformed_setting_exits_non_zero(monkeypatch):
    monkeypatch.setenv("PULSAR_SURVEY_LOCAL_PORT", "abc")

    result = runner.invoke(cli.app, ["http://h1,clusterA"])

    assert result.exit_code == 1
    assert "local_port" in result.output
    assert not isinstance(result.exception, ValidationError)
    assert FakeEngine.configs == []


def test_load_settings_wraps_validation_error(monkeypatch):
    monkeypatch.setenv("PULSAR_SURVEY_TUNNEL_READY_TIMEOUT", "soon")

    with pytest.raises(ConfigError, match="tunnel_ready_timeout"):
        load_settings()
