"""Tests for the plugstats CLI."""
import json
from unittest import mock

import pytest
from click.testing import CliRunner

from plugstats import __version__
from plugstats.cli import cli
from plugstats.config import TELEMETRY_ENV


@pytest.fixture
def runner(monkeypatch):
    monkeypatch.delenv(TELEMETRY_ENV, raising=False)
    return CliRunner()


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_config_show_creates_file(runner, tmp_path):
    path = tmp_path / "config.json"
    result = runner.invoke(cli, ["config", "show", "--path", str(path)])
    assert result.exit_code == 0, result.output
    assert path.exists()
    assert "enabled: on" in result.output
    assert "log-errors: off" in result.output


def test_config_set_persists(runner, tmp_path):
    path = str(tmp_path / "config.json")
    result = runner.invoke(cli, ["config", "set", "enabled", "off", "--path", path])
    assert result.exit_code == 0, result.output
    assert json.loads(open(path).read())["enabled"] is False

    result = runner.invoke(cli, ["config", "set", "log-sent-data", "on", "--path", path])
    assert result.exit_code == 0
    saved = json.loads(open(path).read())
    assert saved["logSentData"] is True
    assert saved["enabled"] is False


def test_config_set_rejects_unknown_key(runner, tmp_path):
    result = runner.invoke(cli, ["config", "set", "telemetry", "on",
                                 "--path", str(tmp_path / "c.json")])
    assert result.exit_code != 0


def test_preview_prints_payload(runner):
    result = runner.invoke(cli, ["preview", "--service-id", "7", "--plugin-version", "0.1"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["serviceId"] == 7
    assert data["pluginVersion"] == "0.1"
    assert data["customCharts"] == []


def test_preview_pretty(runner):
    result = runner.invoke(cli, ["preview", "--service-id", "7", "--pretty"])
    assert result.exit_code == 0
    assert '\n  "serviceId": 7' in result.output


def test_send_uses_transport(runner, tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"enabled": True, "serverUuid": "uuid-9"}))
    with mock.patch("plugstats.cli.HttpTransport") as transport_cls:
        transport_cls.return_value.return_value = "ok"
        result = runner.invoke(cli, ["send", "--service-id", "3", "--path", str(path)])
    assert result.exit_code == 0, result.output
    sent = json.loads(transport_cls.return_value.call_args.args[0])
    assert sent["serverUUID"] == "uuid-9"
    assert sent["serviceId"] == 3


def test_send_failure_exits_nonzero(runner, tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"enabled": True, "serverUuid": "uuid-9"}))
    with mock.patch("plugstats.cli.HttpTransport") as transport_cls:
        transport_cls.return_value.side_effect = OSError("connection refused")
        result = runner.invoke(cli, ["send", "--service-id", "3", "--path", str(path)])
    assert result.exit_code == 1
    assert "connection refused" in result.output


def test_send_refuses_when_disabled(runner, tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"enabled": False, "serverUuid": "uuid-9"}))
    with mock.patch("plugstats.cli.HttpTransport") as transport_cls:
        result = runner.invoke(cli, ["send", "--service-id", "3", "--path", str(path)])
    assert result.exit_code == 1
    transport_cls.return_value.assert_not_called()
