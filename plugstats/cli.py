"""Click CLI entry point for plugstats."""
from __future__ import annotations

import json
import logging
import sys

import click
from rich.console import Console
from rich.panel import Panel

from plugstats import __version__
from plugstats.config import NOTICE, default_config_path, load_config, save_config
from plugstats.coordinator import MetricsCoordinator
from plugstats.hostinfo import append_python_platform_data, service_data_appender
from plugstats.sinks import logging_sinks
from plugstats.transport import DEFAULT_ENDPOINT, HttpTransport

# CLI key -> MetricsConfig attribute
CONFIG_KEYS = {
    "enabled": "enabled",
    "log-errors": "log_errors",
    "log-sent-data": "log_sent_data",
    "log-response-text": "log_response_text",
}


@click.group()
@click.version_option(version=__version__, prog_name="plugstats")
def cli() -> None:
    """plugstats - anonymous usage metrics for plugins."""
    pass


@cli.group()
def config() -> None:
    """Manage the shared metrics configuration."""
    pass


@config.command("show")
@click.option("--path", "config_path", type=click.Path(dir_okay=False),
              default=None, help="Config file (default: shared config)")
def config_show(config_path: str | None) -> None:
    """Print the current configuration, creating it if missing."""
    config_path = config_path or default_config_path()
    cfg = _load_or_exit(config_path)
    if not cfg.did_exist_before:
        print_first_run_notice(config_path)
    click.echo(f"config: {config_path}")
    click.echo(f"serverUuid: {cfg.server_uuid}")
    for key, attr in CONFIG_KEYS.items():
        click.echo(f"{key}: {'on' if getattr(cfg, attr) else 'off'}")


@config.command("set")
@click.argument("key", type=click.Choice(sorted(CONFIG_KEYS)))
@click.argument("value", type=click.Choice(["on", "off"]))
@click.option("--path", "config_path", type=click.Path(dir_okay=False),
              default=None, help="Config file (default: shared config)")
def config_set(key: str, value: str, config_path: str | None) -> None:
    """Turn a configuration flag on or off."""
    config_path = config_path or default_config_path()
    cfg = _load_or_exit(config_path, apply_env=False)
    setattr(cfg, CONFIG_KEYS[key], value == "on")
    try:
        save_config(config_path, cfg)
    except OSError as e:
        click.echo(f"Failed to write config: {e}", err=True)
        sys.exit(1)
    click.echo(f"{key}: {value}")


@cli.command()
@click.option("--service-id", type=int, required=True, help="Service id to report")
@click.option("--plugin-version", default=None, help="Reported plugin version")
@click.option("--platform", default="python", show_default=True)
@click.option("--pretty", is_flag=True, help="Indent the JSON output")
def preview(service_id: int, plugin_version: str | None, platform: str,
            pretty: bool) -> None:
    """Print the payload that would be sent, without sending it."""
    coordinator = _one_shot_coordinator(
        platform, service_id, plugin_version, transport=_no_transport,
        server_uuid="00000000-0000-0000-0000-000000000000",
    )
    payload = coordinator.build_payload()
    if pretty:
        click.echo(json.dumps(json.loads(str(payload)), indent=2))
    else:
        click.echo(str(payload))


@cli.command()
@click.option("--service-id", type=int, required=True, help="Service id to report")
@click.option("--plugin-version", default=None, help="Reported plugin version")
@click.option("--platform", default="python", show_default=True)
@click.option("--endpoint", default=DEFAULT_ENDPOINT, show_default=True,
              help="Collector URL; {platform} is substituted")
@click.option("--path", "config_path", type=click.Path(dir_okay=False),
              default=None, help="Config file (default: shared config)")
def send(service_id: int, plugin_version: str | None, platform: str,
         endpoint: str, config_path: str | None) -> None:
    """Submit one payload now and log the outcome."""
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")
    cfg = _load_or_exit(config_path or default_config_path())
    if not cfg.enabled:
        click.echo("Metrics are disabled in the config; nothing sent.", err=True)
        sys.exit(1)
    coordinator = _one_shot_coordinator(
        platform, service_id, plugin_version,
        transport=HttpTransport(platform, endpoint=endpoint),
        server_uuid=cfg.server_uuid,
    )
    try:
        coordinator.submit()
    except Exception as e:
        click.echo(f"Failed to send metrics: {e}", err=True)
        sys.exit(1)


def print_first_run_notice(config_path: str, file=None) -> None:
    """Print the opt-out notice after the config file was created."""
    c = Console(file=file or sys.stderr)
    body = "\n".join(NOTICE) + (
        f"\n\nConfig: {config_path}"
        "\nDisable:  plugstats config set enabled off"
        "\nOne-time: PLUGSTATS_TELEMETRY=off"
    )
    c.print(Panel(body, title="plugstats", expand=False), style="dim")


def _load_or_exit(config_path: str, apply_env: bool = True):
    try:
        return load_config(config_path, apply_env=apply_env)
    except (OSError, ValueError) as e:
        click.echo(f"Failed to load config {config_path}: {e}", err=True)
        sys.exit(1)


def _no_transport(data: bytes) -> None:
    return None


def _one_shot_coordinator(platform, service_id, plugin_version, transport,
                          server_uuid) -> MetricsCoordinator:
    """A coordinator that is never scheduled; cycles run on demand."""
    error_sink, info_sink = logging_sinks(logging.getLogger("plugstats"))
    return MetricsCoordinator(
        platform=platform,
        server_uuid=server_uuid,
        service_id=service_id,
        enabled=True,
        append_platform_data=append_python_platform_data,
        append_service_data=service_data_appender(plugin_version),
        schedule=lambda task: None,
        check_service_enabled=lambda: True,
        error_sink=error_sink,
        info_sink=info_sink,
        transport=transport,
        log_errors=True,
        log_sent_data=True,
        log_response_text=True,
    )


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
