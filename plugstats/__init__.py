"""plugstats - anonymous usage metrics for host plugins.

Each plugin owns one MetricsCoordinator. The coordinator periodically
collects a platform snapshot, service data and custom charts, encodes
them into a single JSON object and hands it to a one-way transport.
"""
from __future__ import annotations

__version__ = "1.0.0"

# Emitted as "metricsVersion" in every payload.
METRICS_VERSION = __version__

from plugstats.charts import (  # noqa: E402
    AdvancedBarChart,
    AdvancedPie,
    CustomChart,
    DrilldownPie,
    MultiLineChart,
    SimpleBarChart,
    SimplePie,
    SingleLineChart,
    bool_value,
)
from plugstats.coordinator import CoordinatorState, MetricsCoordinator  # noqa: E402
from plugstats.errors import BuilderStateError, InvalidArgumentError  # noqa: E402
from plugstats.payload import Payload, PayloadBuilder  # noqa: E402

__all__ = [
    "AdvancedBarChart",
    "AdvancedPie",
    "BuilderStateError",
    "CoordinatorState",
    "CustomChart",
    "DrilldownPie",
    "InvalidArgumentError",
    "METRICS_VERSION",
    "MetricsCoordinator",
    "MultiLineChart",
    "Payload",
    "PayloadBuilder",
    "SimpleBarChart",
    "SimplePie",
    "SingleLineChart",
    "bool_value",
    "__version__",
]
