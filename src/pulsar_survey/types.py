"""
Shared data types for the survey.

This module defines the internal data structures that describe configured
targets and the per-cluster aggregation tree (cluster -> tenant ->
namespace -> topic). These are internal types - not API models; admin API
payloads are Pydantic models in pulsar_survey.admin_types.

Aggregation rules:
- Stats is immutable and closed under +, with Stats() as the identity.
- Parent stats only ever change through ClusterResult.add_topic, which
  folds a topic into its namespace, tenant and cluster in that order.
- Nodes are created explicitly with get-or-create helpers, never as a side
  effect of looking something up.
"""

from dataclasses import dataclass, field
from enum import Enum

from pulsar_survey.admin_types import NamespacePolicies, PersistentTopicStats


@dataclass(frozen=True)
class Stats:
    """
    Leaf traffic counters.

    Attributes:
        msg_rate_in: Inbound messages per second.
        msg_throughput_in: Inbound bytes per second.
        msg_rate_out: Outbound messages per second.
        msg_throughput_out: Outbound bytes per second.
    """

    msg_rate_in: float = 0.0
    msg_throughput_in: float = 0.0
    msg_rate_out: float = 0.0
    msg_throughput_out: float = 0.0

    def __add__(self, other: "Stats") -> "Stats":
        if not isinstance(other, Stats):
            return NotImplemented
        return Stats(
            msg_rate_in=self.msg_rate_in + other.msg_rate_in,
            msg_throughput_in=self.msg_throughput_in + other.msg_throughput_in,
            msg_rate_out=self.msg_rate_out + other.msg_rate_out,
            msg_throughput_out=self.msg_throughput_out + other.msg_throughput_out,
        )

    @property
    def idle(self) -> bool:
        """True when no traffic was observed in either direction."""
        return self == Stats()

    @classmethod
    def from_topic_stats(cls, payload: PersistentTopicStats) -> "Stats":
        """Derive leaf counters from a topic stats payload."""
        return cls(
            msg_rate_in=payload.msgRateIn,
            msg_throughput_in=payload.msgThroughputIn,
            msg_rate_out=payload.msgRateOut,
            msg_throughput_out=payload.msgThroughputOut,
        )


@dataclass
class TopicRecord:
    """
    A topic's raw stats payload plus its derived Stats.

    Attributes:
        name: Topic name as listed by the broker (usually "persistent://...").
        payload: Stats document returned by the admin API.
        stats: Counters derived from payload.
    """

    name: str
    payload: PersistentTopicStats
    stats: Stats

    @classmethod
    def from_payload(cls, name: str, payload: PersistentTopicStats) -> "TopicRecord":
        return cls(name=name, payload=payload, stats=Stats.from_topic_stats(payload))


@dataclass
class NamespaceNode:
    """
    A namespace with its policies and successfully fetched topics.

    Attributes:
        name: Qualified namespace name ("tenant/ns").
        policies: Namespace policies (replication targets).
        topics: Topic name -> TopicRecord.
        stats: Sum of the stats of every topic in topics.
    """

    name: str
    policies: NamespacePolicies = field(default_factory=NamespacePolicies)
    topics: dict[str, TopicRecord] = field(default_factory=dict)
    stats: Stats = field(default_factory=Stats)


@dataclass
class TenantNode:
    """
    A tenant and the namespaces that were crawled successfully.

    Attributes:
        name: Tenant name.
        namespaces: Qualified namespace name -> NamespaceNode.
        stats: Sum of the stats of every namespace in namespaces.
    """

    name: str
    namespaces: dict[str, NamespaceNode] = field(default_factory=dict)
    stats: Stats = field(default_factory=Stats)

    def namespace(
        self, name: str, policies: NamespacePolicies | None = None
    ) -> NamespaceNode:
        """
        Get or create the namespace node called name.

        policies, when given, replaces the node's policies.
        """
        node = self.namespaces.get(name)
        if node is None:
            node = NamespaceNode(name=name)
            self.namespaces[name] = node
        if policies is not None:
            node.policies = policies
        return node


@dataclass
class ClusterResult:
    """
    Everything learned about one cluster during a crawl.

    Created empty when a crawl starts, populated only by that crawl's task,
    and treated as read-only once the crawl finishes.

    Attributes:
        name: Logical cluster name.
        origin: URL or kubeconfig path the cluster was reached through.
        url: Admin base URL used for REST calls.
        clusters: Cluster names known to this cluster (GET /clusters).
        tenants: Tenant name -> TenantNode.
        stats: Sum of the stats of every tenant in tenants.
    """

    name: str
    origin: str
    url: str = ""
    clusters: list[str] = field(default_factory=list)
    tenants: dict[str, TenantNode] = field(default_factory=dict)
    stats: Stats = field(default_factory=Stats)

    def tenant(self, name: str) -> TenantNode:
        """Get or create the tenant node called name."""
        node = self.tenants.get(name)
        if node is None:
            node = TenantNode(name=name)
            self.tenants[name] = node
        return node

    def add_topic(
        self, tenant: TenantNode, namespace: NamespaceNode, record: TopicRecord
    ) -> None:
        """
        Store a topic record and fold its stats upwards.

        Namespace, tenant and cluster totals are always updated together,
        in that order.
        """
        namespace.topics[record.name] = record
        namespace.stats += record.stats
        tenant.stats += record.stats
        self.stats += record.stats

    def topic_count(self) -> int:
        """Number of topics with stats across all tenants."""
        return sum(
            len(ns.topics)
            for tenant in self.tenants.values()
            for ns in tenant.namespaces.values()
        )


class TargetKind(str, Enum):
    """How a target is reached."""

    DIRECT = "direct"
    TUNNELED = "tunneled"


@dataclass
class ClusterTarget:
    """
    One configured destination.

    Only resolved_url and logical_name change after resolution.

    Attributes:
        origin: Admin URL (direct) or kubeconfig path (tunneled).
        kind: DIRECT or TUNNELED.
        namespace: Kubernetes namespace of the broker service (tunneled only).
        service_name: Broker service name to port-forward (tunneled only).
        logical_name: Pulsar cluster name; may be empty until resolved.
        resolved_url: Admin base URL once the cluster is reachable.
    """

    origin: str
    kind: TargetKind
    namespace: str = ""
    service_name: str = ""
    logical_name: str = ""
    resolved_url: str | None = None

    @property
    def label(self) -> str:
        """Name for log lines and error messages."""
        return self.logical_name or self.origin
