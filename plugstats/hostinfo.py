"""Platform and service data for Python hosts."""
from __future__ import annotations

import os
import platform
import sys
from collections.abc import Callable

from plugstats.payload import PayloadBuilder


def append_python_platform_data(builder: PayloadBuilder) -> None:
    """Write the interpreter and OS snapshot shared by every service."""
    builder.append_field(
        "pythonVersion",
        f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
    )
    builder.append_field("pythonImplementation", platform.python_implementation())
    builder.append_field("osName", platform.system() or sys.platform)
    builder.append_field("osArch", platform.machine() or "unknown")
    builder.append_field("osVersion", platform.release() or "unknown")
    builder.append_field("coreCount", os.cpu_count() or 1)


def service_data_appender(plugin_version: str | None) -> Callable[[PayloadBuilder], None]:
    """Return an append_service_data callable reporting the plugin version."""
    version = plugin_version or "unknown"

    def append_service_data(builder: PayloadBuilder) -> None:
        builder.append_field("pluginVersion", version)

    return append_service_data
