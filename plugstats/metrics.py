"""Ready-made host adapter for Python plugins.

    from plugstats.metrics import Metrics
    from plugstats import SimplePie

    metrics = Metrics(service_id=1234, plugin_version=__version__)
    metrics.add_custom_chart(SimplePie("storage_backend", lambda: settings.backend))
    ...
    metrics.shutdown()

Metrics reads the shared config file, builds the logging sinks, the
background scheduler and the HTTP transport, and hands them to a
MetricsCoordinator. If the config cannot be loaded the coordinator is
created disabled and the failure is logged once.
"""
from __future__ import annotations

import logging
from collections.abc import Callable

from plugstats.charts import CustomChart
from plugstats.config import NOTICE, MetricsConfig, load_config
from plugstats.coordinator import DataAppender, MetricsCoordinator, ScheduleFn, Transport
from plugstats.hostinfo import append_python_platform_data, service_data_appender
from plugstats.payload import PayloadBuilder
from plugstats.scheduler import IntervalScheduler
from plugstats.sinks import logging_sinks
from plugstats.transport import HttpTransport

logger = logging.getLogger(__name__)

# First submission 3-6 minutes after start, then every 30 minutes.
INITIAL_DELAY_SECONDS = 3 * 60
INITIAL_DELAY_JITTER_SECONDS = 3 * 60
INTERVAL_SECONDS = 30 * 60
MIN_INTERVAL_SECONDS = 5 * 60


class Metrics:
    """One plugin's metrics, wired with the default host collaborators.

    Args:
        service_id: Id of the plugin as registered with the collector.
        plugin_version: Reported as "pluginVersion".
        platform: Platform name; selects the collector endpoint.
        config_path: Config file to use instead of the shared default.
        log: Logger for the error and info sinks.
        initial_delay: Seconds before the first submission. Defaults to a
            random value between 3 and 6 minutes.
        interval: Seconds between submissions. Values below five minutes
            are raised to five minutes.
        transport: Replaces the HTTP transport.
        schedule: Replaces the background scheduler.
        is_enabled: Checked before every cycle, e.g. "is the plugin loaded".
        extra_platform_data: Called after the Python platform data to add
            host-specific platform fields.
    """

    def __init__(
        self,
        service_id: int,
        plugin_version: str | None = None,
        platform: str = "python",
        config_path: str | None = None,
        log: logging.Logger | None = None,
        initial_delay: float | None = None,
        interval: float = INTERVAL_SECONDS,
        transport: Transport | None = None,
        schedule: ScheduleFn | None = None,
        is_enabled: Callable[[], bool] | None = None,
        extra_platform_data: DataAppender | None = None,
    ) -> None:
        self._error_sink, self._info_sink = logging_sinks(log)
        self._extra_platform_data = extra_platform_data

        try:
            config = load_config(config_path)
        except (OSError, ValueError) as e:
            self._error_sink("Failed to load metrics config", e)
            config = MetricsConfig(enabled=False, did_exist_before=True)

        if not config.did_exist_before:
            for line in NOTICE:
                self._info_sink(line)

        if schedule is None:
            schedule = _default_scheduler(initial_delay, interval)

        self.config = config
        self.coordinator = MetricsCoordinator(
            platform=platform,
            server_uuid=config.server_uuid,
            service_id=service_id,
            enabled=config.enabled,
            append_platform_data=self._append_platform_data,
            append_service_data=service_data_appender(plugin_version),
            schedule=schedule,
            check_service_enabled=is_enabled or (lambda: True),
            error_sink=self._error_sink,
            info_sink=self._info_sink,
            transport=transport or HttpTransport(platform),
            log_errors=config.log_errors,
            log_sent_data=config.log_sent_data,
            log_response_text=config.log_response_text,
        )

    def add_custom_chart(self, chart: CustomChart) -> None:
        self.coordinator.add_custom_chart(chart)

    def shutdown(self) -> None:
        """Stop the background submissions."""
        self.coordinator.shutdown()

    def _append_platform_data(self, builder: PayloadBuilder) -> None:
        append_python_platform_data(builder)
        if self._extra_platform_data is not None:
            self._extra_platform_data(builder)


def _default_scheduler(initial_delay: float | None, interval: float) -> IntervalScheduler:
    if interval < MIN_INTERVAL_SECONDS:
        logger.warning(
            "Metrics interval of %ss is too short, using %ss",
            interval, MIN_INTERVAL_SECONDS,
        )
        interval = MIN_INTERVAL_SECONDS
    if initial_delay is None:
        return IntervalScheduler(INITIAL_DELAY_SECONDS, interval,
                                 jitter=INITIAL_DELAY_JITTER_SECONDS)
    return IntervalScheduler(initial_delay, interval)
