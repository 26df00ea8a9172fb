"""Custom charts contributed by plugin code.

A chart pairs an id with a collector callable. Once per cycle the
coordinator asks every chart for its payload; the chart calls its
collector and turns the result into

    {"chartId": <id>, "data": {"value": ...}}      (single-value charts)
    {"chartId": <id>, "data": {"values": {...}}}   (mapping charts)

or returns None to leave itself out of this cycle. A collector that
raises never affects sibling charts.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence

from plugstats.errors import InvalidArgumentError
from plugstats.payload import Payload, PayloadBuilder

logger = logging.getLogger(__name__)

ErrorSink = Callable[[str, BaseException], None]


class CustomChart:
    """Base class for all chart variants."""

    def __init__(self, chart_id: str, collector: Callable) -> None:
        if chart_id is None or chart_id == "":
            raise InvalidArgumentError("chart_id must not be null or empty")
        if collector is None:
            raise InvalidArgumentError("collector must not be null")
        self._chart_id = chart_id
        self._collector = collector

    @property
    def chart_id(self) -> str:
        return self._chart_id

    def produce_payload(
        self, error_sink: ErrorSink | None = None, log_errors: bool = False,
    ) -> Payload | None:
        """Build this chart's entry for the customCharts array.

        Returns None when the chart is skipped or its collector failed.
        """
        try:
            data = self.chart_data()
        except Exception as e:
            if log_errors and error_sink is not None:
                error_sink(f"Failed to get data for custom chart with id {self._chart_id}", e)
            else:
                logger.debug("Chart %s failed: %s", self._chart_id, e)
            return None
        if data is None:
            return None
        return (
            PayloadBuilder()
            .append_field("chartId", self._chart_id)
            .append_field("data", data)
            .build()
        )

    def chart_data(self) -> Payload | None:
        """Call the collector and return the chart's data object, or None to skip."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._chart_id!r})"


def _single_value(value) -> Payload:
    return PayloadBuilder().append_field("value", value).build()


def _values(values: Payload) -> Payload:
    return PayloadBuilder().append_field("values", values).build()


def _count(label, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"count for {label!r} must be an int, got {value!r}")
    return value


def _non_zero_values(counts: Mapping[str, int] | None) -> Payload | None:
    """Shared by AdvancedPie and MultiLineChart: drop zero entries, skip if none remain."""
    if not counts:
        return None
    builder = PayloadBuilder()
    all_skipped = True
    for label, count in counts.items():
        if _count(label, count) == 0:
            continue
        all_skipped = False
        builder.append_field(label, count)
    if all_skipped:
        return None
    return _values(builder.build())


class SimplePie(CustomChart):
    """A pie with one slice per server: the collector returns a single label."""

    def __init__(self, chart_id: str, collector: Callable[[], str | None]) -> None:
        super().__init__(chart_id, collector)

    def chart_data(self) -> Payload | None:
        value = self._collector()
        if not value:
            return None
        return _single_value(value)


class AdvancedPie(CustomChart):
    """A pie where each server contributes weighted slices (label -> count)."""

    def __init__(
        self, chart_id: str, collector: Callable[[], Mapping[str, int] | None],
    ) -> None:
        super().__init__(chart_id, collector)

    def chart_data(self) -> Payload | None:
        return _non_zero_values(self._collector())


class DrilldownPie(CustomChart):
    """A two-level pie: label -> (sublabel -> count).

    Outer entries whose inner mapping is empty are dropped. Inner counts
    are sent as-is, zeros included.
    """

    def __init__(
        self,
        chart_id: str,
        collector: Callable[[], Mapping[str, Mapping[str, int]] | None],
    ) -> None:
        super().__init__(chart_id, collector)

    def chart_data(self) -> Payload | None:
        outer = self._collector()
        if not outer:
            return None
        values = PayloadBuilder()
        really_all_skipped = True
        for label, inner in outer.items():
            if not inner:
                continue
            entry = PayloadBuilder()
            for sublabel, count in inner.items():
                entry.append_field(sublabel, _count(sublabel, count))
            really_all_skipped = False
            values.append_field(label, entry.build())
        if really_all_skipped:
            return None
        return _values(values.build())


class SingleLineChart(CustomChart):
    """One line, one integer per server. Zero means "nothing to report"."""

    def __init__(self, chart_id: str, collector: Callable[[], int]) -> None:
        super().__init__(chart_id, collector)

    def chart_data(self) -> Payload | None:
        value = _count(self._chart_id, self._collector())
        if value == 0:
            return None
        return _single_value(value)


class MultiLineChart(CustomChart):
    """Several lines (label -> count); zero entries are dropped."""

    def __init__(
        self, chart_id: str, collector: Callable[[], Mapping[str, int] | None],
    ) -> None:
        super().__init__(chart_id, collector)

    def chart_data(self) -> Payload | None:
        return _non_zero_values(self._collector())


class SimpleBarChart(CustomChart):
    """Bars with one value each. Zero is a valid bar height."""

    def __init__(
        self, chart_id: str, collector: Callable[[], Mapping[str, int] | None],
    ) -> None:
        super().__init__(chart_id, collector)

    def chart_data(self) -> Payload | None:
        counts = self._collector()
        if not counts:
            return None
        values = PayloadBuilder()
        for label, count in counts.items():
            values.append_field(label, [_count(label, count)])
        return _values(values.build())


class AdvancedBarChart(CustomChart):
    """Bars with several stacked values (label -> [int, ...])."""

    def __init__(
        self,
        chart_id: str,
        collector: Callable[[], Mapping[str, Sequence[int]] | None],
    ) -> None:
        super().__init__(chart_id, collector)

    def chart_data(self) -> Payload | None:
        bars = self._collector()
        if not bars:
            return None
        values = PayloadBuilder()
        all_skipped = True
        for label, stack in bars.items():
            if isinstance(stack, str):
                raise TypeError(f"stack for {label!r} must be a sequence of ints, got {stack!r}")
            if not stack:
                continue
            all_skipped = False
            values.append_field(label, [_count(label, v) for v in stack])
        if all_skipped:
            return None
        return _values(values.build())


def bool_value(fn: Callable[[], bool]) -> Callable[[], str]:
    """Adapt a bool-returning callable for use as a SimplePie collector.

    >>> chart = SimplePie("uses_proxy", bool_value(lambda: settings.proxy_enabled))
    """
    def collector() -> str:
        return "true" if fn() else "false"
    return collector
