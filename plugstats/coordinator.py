"""Per-service reporting coordinator.

One MetricsCoordinator belongs to exactly one plugin. It is handed every
host-specific piece it needs (scheduler, collectors, logging sinks,
transport) and never spawns threads or touches shared module state, so
any number of plugins can embed their own copy side by side.

Lifecycle:

    INERT      enabled=False at construction. Terminal; nothing is ever
               scheduled, collected or sent.
    ARMED      enabled, constructor still running.
    SCHEDULED  cycle task handed to the host scheduler.
    STOPPED    shutdown() was called on an enabled coordinator.

A cycle never raises to the scheduler. Collector and transport failures
are logged through the error sink when log_errors is set and otherwise
dropped. Only host bugs in payload building (InvalidArgumentError,
BuilderStateError) escape.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from plugstats import METRICS_VERSION
from plugstats.charts import CustomChart, ErrorSink
from plugstats.errors import BuilderStateError, InvalidArgumentError
from plugstats.payload import Payload, PayloadBuilder

logger = logging.getLogger(__name__)

DataAppender = Callable[[PayloadBuilder], None]
ScheduleFn = Callable[[Callable[[], None]], Any]
Transport = Callable[[bytes], str | None]
InfoSink = Callable[[str], None]


class CoordinatorState(str, Enum):
    INERT = "inert"
    ARMED = "armed"
    SCHEDULED = "scheduled"
    STOPPED = "stopped"


class MetricsCoordinator:
    """Collects, encodes and submits one service's metrics on a schedule.

    Args:
        platform: Short platform name, e.g. "python". Used in debug logs.
        server_uuid: Stable random id of this installation.
        service_id: Id of the service as registered with the collector.
        enabled: Whether the operator allows metrics at all.
        append_platform_data: Writes platform fields into the payload.
        append_service_data: Writes service fields into the payload.
        schedule: Called once with the cycle task. May return a handle
            with a cancel() method, which shutdown() will call.
        check_service_enabled: Checked before every cycle; False skips it.
        error_sink: ``error_sink(message, exc)``.
        info_sink: ``info_sink(message)``.
        transport: Sends the UTF-8 payload bytes and returns the response
            text (or None). Raises on failure.
        log_errors: Report failures through error_sink.
        log_sent_data: Report every payload through info_sink.
        log_response_text: Report the collector's response through info_sink.
    """

    def __init__(
        self,
        platform: str,
        server_uuid: str,
        service_id: int,
        enabled: bool,
        append_platform_data: DataAppender,
        append_service_data: DataAppender,
        schedule: ScheduleFn,
        check_service_enabled: Callable[[], bool],
        error_sink: ErrorSink,
        info_sink: InfoSink,
        transport: Transport,
        log_errors: bool = False,
        log_sent_data: bool = False,
        log_response_text: bool = False,
    ) -> None:
        if service_id is None:
            raise InvalidArgumentError("service_id must not be null")
        if isinstance(service_id, bool) or not isinstance(service_id, int):
            raise InvalidArgumentError(f"service_id must be an int, got {service_id!r}")
        for name, fn in (
            ("append_platform_data", append_platform_data),
            ("append_service_data", append_service_data),
            ("schedule", schedule),
            ("check_service_enabled", check_service_enabled),
            ("error_sink", error_sink),
            ("info_sink", info_sink),
            ("transport", transport),
        ):
            if fn is None:
                raise InvalidArgumentError(f"{name} must not be null")

        self.platform = platform
        self.server_uuid = server_uuid
        self.service_id = service_id
        self.enabled = bool(enabled)
        self.log_errors = log_errors
        self.log_sent_data = log_sent_data
        self.log_response_text = log_response_text

        self._append_platform_data = append_platform_data
        self._append_service_data = append_service_data
        self._schedule = schedule
        self._check_service_enabled = check_service_enabled
        self._error_sink = error_sink
        self._info_sink = info_sink
        self._transport = transport

        self._charts: list[CustomChart] = []
        self._handle: Any = None
        self._stopped = False

        if not self.enabled:
            self._state = CoordinatorState.INERT
            return
        if not server_uuid:
            raise InvalidArgumentError("server_uuid must not be empty when enabled")

        self._state = CoordinatorState.ARMED
        self._start_submitting()

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def charts(self) -> tuple[CustomChart, ...]:
        return tuple(self._charts)

    def add_custom_chart(self, chart: CustomChart) -> None:
        """Register a chart. Charts are reported in registration order."""
        if chart is None:
            raise InvalidArgumentError("chart must not be null")
        if self._state is CoordinatorState.INERT:
            return
        self._charts.append(chart)

    def shutdown(self) -> None:
        """Stop submitting. Safe to call more than once and on inert coordinators.

        Cycles already running are allowed to finish.
        """
        if self._state in (CoordinatorState.INERT, CoordinatorState.STOPPED):
            return
        self._stopped = True
        self._state = CoordinatorState.STOPPED
        handle, self._handle = self._handle, None
        cancel = getattr(handle, "cancel", None)
        if callable(cancel):
            cancel()

    def _start_submitting(self) -> None:
        self._handle = self._schedule(self.run_cycle)
        self._state = CoordinatorState.SCHEDULED

    # ── Cycle ────────────────────────────────────────────────────────

    def run_cycle(self) -> None:
        """Collect, encode and submit once. Never raises for runtime failures."""
        if not self.enabled or self._stopped:
            return

        try:
            allowed = self._check_service_enabled()
        except Exception as e:
            if self.log_errors:
                self._error_sink("Could not check whether the service is enabled", e)
            else:
                logger.debug("Enabled check for %s service %s failed: %s",
                             self.platform, self.service_id, e)
            return
        if not allowed:
            logger.debug("%s service %s not enabled, skipping cycle",
                         self.platform, self.service_id)
            return

        try:
            self.submit()
        except (InvalidArgumentError, BuilderStateError):
            raise
        except Exception as e:
            if self.log_errors:
                self._error_sink("Could not submit metrics data", e)
            else:
                logger.debug("Metrics submission for %s service %s failed: %s",
                             self.platform, self.service_id, e)

    def submit(self) -> None:
        """Build and send one payload right away. Failures propagate."""
        self._send(self.build_payload())

    def build_payload(self) -> Payload:
        """Build this cycle's payload. Collector errors propagate."""
        builder = PayloadBuilder()
        self._append_platform_data(builder)
        self._append_service_data(builder)

        chart_data = []
        for chart in self._charts:
            data = chart.produce_payload(self._error_sink, self.log_errors)
            if data is not None:
                chart_data.append(data)

        builder.append_field("serviceId", self.service_id)
        builder.append_field("customCharts", chart_data)
        builder.append_field("serverUUID", self.server_uuid)
        builder.append_field("metricsVersion", METRICS_VERSION)
        return builder.build()

    def _send(self, payload: Payload) -> None:
        if self.log_sent_data:
            self._info_sink(f"Sent metrics data: {payload}")
        response = self._transport(payload.to_bytes())
        if self.log_response_text and response is not None:
            self._info_sink(f"Sent data and received response: {response}")
