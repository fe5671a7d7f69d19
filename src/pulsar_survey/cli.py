"""pulsar-survey CLI - one-shot snapshot of Pulsar clusters.

Targets are positional:
    url[,cluster-name]
    kubeconfig[,cluster-name[,namespace[,service-name]]]

When no targets are given, KUBECONFIG (colon-separated) is used instead.

Per project patterns:
- Typer options with envvar fallbacks through SurveySettings
- asyncio.run() to drive the async engine from a sync command
- Rich tables for humans, JSON for automation
"""

import asyncio
import json
import logging
import os
import sys

import typer
from rich.console import Console

from pulsar_survey.config import KUBECONFIG_ENV, SurveyConfig, load_settings
from pulsar_survey.engine import SurveyEngine
from pulsar_survey.errors import SurveyError
from pulsar_survey.report import render_summary, results_to_dict
from pulsar_survey.targets import targets_from_env

app = typer.Typer(
    name="pulsar-survey",
    help="Snapshot topology and traffic of one or more Pulsar clusters",
    add_completion=False,
)

LOG_LEVELS = {
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
}

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(log_level: str) -> None:
    """
    Send log records to stderr at the requested level.

    "trace" is "debug" plus the HTTP client's own request logging.

    Raises:
        ValueError: On an unknown level name.
    """
    level = LOG_LEVELS.get(log_level.lower())
    if level is None:
        raise ValueError(
            f"Unknown log-level '{log_level}'; one of {', '.join(LOG_LEVELS)}"
        )

    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger("pulsar_survey").setLevel(level)
    http_level = logging.DEBUG if log_level.lower() == "trace" else logging.WARNING
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(http_level)


@app.command()
def survey(
    targets: list[str] = typer.Argument(
        None,
        help="url|kubeconfig,cluster-name[,namespace[,brokerSvcName]]",
        show_default=False,
    ),
    topic_filter: str = typer.Option(
        None, "--topic-filter", "-f", help="Only fetch stats for topics matching this regex"
    ),
    service_name: str = typer.Option(
        None, "--service-name", "-N", help="Broker service to port-forward (default: pulsar-broker)"
    ),
    local_port: int = typer.Option(
        None, "--local-port", "-P", help="First local port for port-forwarding (default: 9123)"
    ),
    namespace: str = typer.Option(
        None, "--namespace", "-n", help="Kubernetes namespace of the broker service"
    ),
    log_level: str = typer.Option(
        "info", "--log-level", "-l", help="Log-level to use; one of 'info', 'debug', 'trace'"
    ),
    hide_idle: bool = typer.Option(False, "--hide-idle", help="Hide namespaces without traffic"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Fetch cluster, tenant, namespace and topic stats and print a summary."""
    err_console = Console(stderr=True)

    try:
        configure_logging(log_level)
    except ValueError as e:
        err_console.print(f"Error: {e}", style="bold red", markup=False)
        raise typer.Exit(1)

    descriptors = list(targets or []) or targets_from_env(os.environ.get(KUBECONFIG_ENV))
    if not descriptors:
        err_console.print(
            "No kubefiles specified. Please set KUBECONFIG to point to your kubefiles.",
            style="bold red",
            markup=False,
        )
        raise typer.Exit(1)

    try:
        config = SurveyConfig.from_settings(
            load_settings(),
            targets=descriptors,
            topic_filter=topic_filter,
            service_name=service_name,
            local_port=local_port,
            namespace=namespace,
        )
        results = asyncio.run(SurveyEngine(config).run())
    except SurveyError as e:
        err_console.print(f"Error: {e}", style="bold red", markup=False)
        raise typer.Exit(1)

    if json_output:
        print(json.dumps(results_to_dict(results), indent=2, default=str))
        return

    render_summary(results, hide_idle=hide_idle)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
