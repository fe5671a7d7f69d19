"""
Report rendering for finished surveys.

Two outputs:
- render_summary: Rich tables, one per cluster, listing tenants and
  namespaces with their replication targets and rolled-up traffic
- results_to_dict: plain dict tree for JSON output
"""

from dataclasses import asdict
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from pulsar_survey.types import ClusterResult, NamespaceNode, Stats


def format_rate(value: float) -> str:
    """Format a per-second counter compactly (1234.5 -> "1.2k")."""
    for unit, size in (("G", 1e9), ("M", 1e6), ("k", 1e3)):
        if abs(value) >= size:
            return f"{value / size:.1f}{unit}"
    return f"{value:.1f}"


def format_list(items: list[str]) -> str:
    return escape("[" + " ".join(items) + "]")


def _stats_cells(stats: Stats) -> list[str]:
    return [
        format_rate(stats.msg_rate_in),
        format_rate(stats.msg_throughput_in),
        format_rate(stats.msg_rate_out),
        format_rate(stats.msg_throughput_out),
    ]


def build_cluster_table(cluster: ClusterResult, hide_idle: bool = False) -> Table:
    """
    Build the summary table for one cluster.

    Args:
        cluster: A finished ClusterResult
        hide_idle: Leave out namespaces without any traffic

    Returns:
        Rich Table with one row per namespace plus a total row
    """
    table = Table(title=f"Cluster {escape(cluster.name)}: {format_list(cluster.clusters)}")
    table.add_column("Tenant", style="cyan")
    table.add_column("Namespace")
    table.add_column("Replication")
    table.add_column("Topics", justify="right")
    table.add_column("Msg/s in", justify="right")
    table.add_column("Bytes/s in", justify="right")
    table.add_column("Msg/s out", justify="right")
    table.add_column("Bytes/s out", justify="right")

    for tenant_name, tenant in sorted(cluster.tenants.items()):
        namespaces: list[NamespaceNode] = [
            ns
            for _, ns in sorted(tenant.namespaces.items())
            if not (hide_idle and ns.stats.idle)
        ]
        if not namespaces and not hide_idle:
            table.add_row(escape(tenant_name), "[dim]-[/dim]", "", "0", *_stats_cells(tenant.stats))
        for ns in namespaces:
            table.add_row(
                escape(tenant_name),
                escape(ns.name),
                format_list(ns.policies.replication_clusters),
                str(len(ns.topics)),
                *_stats_cells(ns.stats),
            )

    table.add_section()
    table.add_row(
        "[bold]Total[/bold]",
        "",
        "",
        str(cluster.topic_count()),
        *_stats_cells(cluster.stats),
    )
    return table


def render_summary(
    results: list[ClusterResult],
    console: Console | None = None,
    hide_idle: bool = False,
) -> None:
    """Print one table per cluster."""
    console = console or Console()
    for cluster in results:
        console.print(build_cluster_table(cluster, hide_idle=hide_idle))
        console.print()


def results_to_dict(results: list[ClusterResult]) -> list[dict[str, Any]]:
    """Convert finished results into JSON-serializable dicts."""
    return [
        {
            "name": cluster.name,
            "origin": cluster.origin,
            "url": cluster.url,
            "clusters": list(cluster.clusters),
            "stats": asdict(cluster.stats),
            "tenants": {
                tenant_name: {
                    "stats": asdict(tenant.stats),
                    "namespaces": {
                        ns_name: {
                            "replication_clusters": list(ns.policies.replication_clusters),
                            "stats": asdict(ns.stats),
                            "topics": {
                                topic_name: {
                                    "stats": asdict(record.stats),
                                    "payload": record.payload.model_dump(),
                                }
                                for topic_name, record in ns.topics.items()
                            },
                        }
                        for ns_name, ns in tenant.namespaces.items()
                    },
                }
                for tenant_name, tenant in cluster.tenants.items()
            },
        }
        for cluster in results
    ]
