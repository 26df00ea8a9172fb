"""Tests for the Metrics host adapter and its default collaborators."""
import json
import logging
from unittest import mock

import pytest

from plugstats.charts import SingleLineChart
from plugstats.config import TELEMETRY_ENV
from plugstats.coordinator import CoordinatorState
from plugstats.hostinfo import append_python_platform_data, service_data_appender
from plugstats.metrics import MIN_INTERVAL_SECONDS, Metrics, _default_scheduler
from plugstats.payload import PayloadBuilder
from plugstats.sinks import logging_sinks


# ── Helpers ─────────────────────────────────────────────────────────


class FakeScheduler:
    def __init__(self):
        self.tasks = []

    def __call__(self, task):
        self.tasks.append(task)
        return mock.Mock()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv(TELEMETRY_ENV, raising=False)


def _write_config(path, **values):
    data = {"enabled": True, "serverUuid": "uuid-1"}
    data.update(values)
    path.write_text(json.dumps(data))


# ── Metrics ─────────────────────────────────────────────────────────


def test_metrics_end_to_end(tmp_path):
    config_path = tmp_path / "config.json"
    _write_config(config_path)
    schedule = FakeScheduler()
    transport = mock.Mock(return_value="ok")

    metrics = Metrics(42, plugin_version="2.0", config_path=str(config_path),
                      schedule=schedule, transport=transport)
    metrics.add_custom_chart(SingleLineChart("players", lambda: 7))
    schedule.tasks[0]()

    sent = json.loads(transport.call_args.args[0])
    assert sent["pluginVersion"] == "2.0"
    assert sent["serviceId"] == 42
    assert sent["serverUUID"] == "uuid-1"
    assert "pythonVersion" in sent
    assert sent["customCharts"] == [{"chartId": "players", "data": {"value": 7}}]


def test_extra_platform_data_follows_python_data(tmp_path):
    config_path = tmp_path / "config.json"
    _write_config(config_path)
    transport = mock.Mock(return_value=None)

    def extra(builder):
        builder.append_field("workerCount", 3)

    metrics = Metrics(1, config_path=str(config_path), schedule=FakeScheduler(),
                      transport=transport, extra_platform_data=extra)
    metrics.coordinator.run_cycle()
    keys = list(json.loads(transport.call_args.args[0]))
    assert keys.index("workerCount") == keys.index("coreCount") + 1


def test_disabled_config_gives_inert_coordinator(tmp_path):
    config_path = tmp_path / "config.json"
    _write_config(config_path, enabled=False)
    schedule = FakeScheduler()
    metrics = Metrics(1, config_path=str(config_path), schedule=schedule)
    assert metrics.coordinator.state is CoordinatorState.INERT
    assert schedule.tasks == []
    metrics.shutdown()


def test_env_opt_out(tmp_path, monkeypatch):
    config_path = tmp_path / "config.json"
    _write_config(config_path)
    monkeypatch.setenv(TELEMETRY_ENV, "off")
    schedule = FakeScheduler()
    metrics = Metrics(1, config_path=str(config_path), schedule=schedule)
    assert metrics.coordinator.state is CoordinatorState.INERT
    assert schedule.tasks == []


def test_config_failure_is_logged_and_inert(tmp_path, caplog):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    schedule = FakeScheduler()
    with caplog.at_level(logging.WARNING, logger="plugstats"):
        metrics = Metrics(1, config_path=str(blocker / "config.json"), schedule=schedule)
    assert metrics.coordinator.state is CoordinatorState.INERT
    assert schedule.tasks == []
    assert "Failed to load metrics config" in caplog.text


def test_first_run_notice(tmp_path, caplog):
    with caplog.at_level(logging.INFO, logger="plugstats"):
        Metrics(1, config_path=str(tmp_path / "config.json"), schedule=FakeScheduler())
    assert "collects some basic information" in caplog.text

    caplog.clear()
    with caplog.at_level(logging.INFO, logger="plugstats"):
        Metrics(1, config_path=str(tmp_path / "config.json"), schedule=FakeScheduler())
    assert "collects some basic information" not in caplog.text


def test_is_enabled_predicate_is_used(tmp_path):
    config_path = tmp_path / "config.json"
    _write_config(config_path)
    schedule = FakeScheduler()
    transport = mock.Mock()
    Metrics(1, config_path=str(config_path), schedule=schedule, transport=transport,
            is_enabled=lambda: False)
    schedule.tasks[0]()
    transport.assert_not_called()


def test_short_interval_is_clamped(caplog):
    with caplog.at_level(logging.WARNING):
        scheduler = _default_scheduler(0, 1)
    assert scheduler.interval == MIN_INTERVAL_SECONDS
    assert "too short" in caplog.text


def test_default_first_delay_is_jittered():
    scheduler = _default_scheduler(None, 1800)
    assert scheduler.initial_delay == 180
    assert scheduler.jitter == 180
    assert scheduler.interval == 1800


# ── Sinks & host data ───────────────────────────────────────────────


def test_logging_sinks(caplog):
    log = logging.getLogger("plugstats.test")
    error_sink, info_sink = logging_sinks(log)
    with caplog.at_level(logging.INFO, logger="plugstats.test"):
        try:
            raise OSError("nope")
        except OSError as e:
            error_sink("Could not submit metrics data", e)
        info_sink("hello")

    error, info = caplog.records
    assert error.levelno == logging.WARNING
    assert error.exc_info[1].args == ("nope",)
    assert info.levelno == logging.INFO
    assert info.getMessage() == "hello"


def test_python_platform_data():
    builder = PayloadBuilder()
    append_python_platform_data(builder)
    data = json.loads(str(builder.build()))
    assert list(data) == [
        "pythonVersion", "pythonImplementation", "osName", "osArch", "osVersion", "coreCount",
    ]
    assert data["coreCount"] >= 1


def test_service_data_defaults_to_unknown():
    builder = PayloadBuilder()
    service_data_appender(None)(builder)
    assert str(builder.build()) == '{"pluginVersion":"unknown"}'
