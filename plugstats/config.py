"""Shared metrics configuration file.

All plugins of one host read the same config.json, so the operator can
opt out once for everything. The file is created with defaults (and a
fresh server UUID) on first use.
"""
from __future__ import annotations

import json
import logging
import os
import uuid
from dataclasses import dataclass

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "PLUGSTATS_CONFIG_DIR"
TELEMETRY_ENV = "PLUGSTATS_TELEMETRY"
CONFIG_FILENAME = "config.json"

NOTICE = (
    "plugstats collects some basic information for plugin authors, like how many",
    "people use their plugin and which Python versions they run. It's recommended",
    "to keep it enabled, but if you're not comfortable with this, you can turn",
    "this setting off. There is no performance penalty associated with having",
    "metrics enabled, and data sent can't identify your installation.",
)


@dataclass
class MetricsConfig:
    enabled: bool = True
    server_uuid: str = ""
    log_errors: bool = False
    log_sent_data: bool = False
    log_response_text: bool = False
    did_exist_before: bool = True

    def to_dict(self) -> dict:
        return {
            "_comment": " ".join(NOTICE),
            "enabled": self.enabled,
            "serverUuid": self.server_uuid,
            "logErrors": self.log_errors,
            "logSentData": self.log_sent_data,
            "logResponseText": self.log_response_text,
        }


def default_config_path() -> str:
    """$PLUGSTATS_CONFIG_DIR/config.json, else ~/.plugstats/config.json."""
    config_dir = os.environ.get(CONFIG_DIR_ENV) or os.path.join(
        os.path.expanduser("~"), ".plugstats"
    )
    return os.path.join(config_dir, CONFIG_FILENAME)


def load_config(config_path: str | None = None,
                recreate_when_malformed: bool = True,
                apply_env: bool = True) -> MetricsConfig:
    """Load the config, creating it with defaults if it does not exist.

    A file that is not valid UTF-8 JSON or lacks a server UUID is deleted and
    written again once. With apply_env, PLUGSTATS_TELEMETRY=off forces
    enabled to False without touching the file.

    Raises:
        OSError: The file could not be read or written.
        ValueError: The file is still malformed after re-creating it.
    """
    config_path = config_path or default_config_path()
    did_exist_before = os.path.exists(config_path)
    if not did_exist_before:
        save_config(config_path, MetricsConfig(server_uuid=str(uuid.uuid4())))

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raw = None

    if not isinstance(raw, dict) or not raw.get("serverUuid"):
        if not recreate_when_malformed:
            raise ValueError(f"Failed to re-create malformed metrics config {config_path}")
        logger.info("Found malformed metrics config file %s. Re-creating it...", config_path)
        os.remove(config_path)
        config = load_config(config_path, recreate_when_malformed=False,
                             apply_env=apply_env)
        config.did_exist_before = did_exist_before
        return config

    config = MetricsConfig(
        enabled=_as_bool(raw.get("enabled"), True),
        server_uuid=str(raw["serverUuid"]),
        log_errors=_as_bool(raw.get("logErrors"), False),
        log_sent_data=_as_bool(raw.get("logSentData"), False),
        log_response_text=_as_bool(raw.get("logResponseText"), False),
        did_exist_before=did_exist_before,
    )
    if apply_env and os.environ.get(TELEMETRY_ENV, "").lower() == "off":
        config.enabled = False
    return config


def save_config(config_path: str, config: MetricsConfig) -> None:
    """Write the config file, creating its directory if needed."""
    directory = os.path.dirname(config_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)
        f.write("\n")


def _as_bool(value, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "on", "yes", "1")
    return default
