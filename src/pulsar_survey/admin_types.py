"""
Pulsar admin API Pydantic response types.

This module provides Pydantic models for parsing responses from the Pulsar
admin REST API (v2):
- Namespace policies: GET /admin/v2/namespaces/{tenant}/{ns}
- Persistent topic stats: GET /admin/v2/persistent/{tenant}/{ns}/{topic}/stats

These are API response types for external data validation. Internal
types (Stats, ClusterResult, etc.) are dataclasses in pulsar_survey.types.

Notes:
- Pulsar returns camelCase keys; field names mirror them so payloads
  validate without aliases.
- Brokers add fields between releases, so unknown keys are ignored.
- Listing endpoints (clusters, tenants, namespaces, topics) return plain
  JSON string arrays and are validated with StringList.
"""

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

StringList = TypeAdapter(list[str])
"""Validator for the plain string arrays returned by listing endpoints."""


class _AdminModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


# =============================================================================
# Namespace policies
# =============================================================================


class NamespacePolicies(_AdminModel):
    """
    Response from GET /admin/v2/namespaces/{tenant}/{ns}.

    Only the replication target list is used by the survey; the rest of
    the policy document is dropped.
    """

    replication_clusters: list[str] = Field(default_factory=list)


# =============================================================================
# Topic stats
# =============================================================================


class Publisher(_AdminModel):
    """A producer attached to a topic."""

    msgRateIn: float = 0.0
    msgThroughputIn: float = 0.0
    averageMsgSize: float = 0.0
    producerId: int = 0
    address: str | None = None
    clientVersion: str | None = None
    connectedSince: str | None = None
    producerName: str | None = None


class Consumer(_AdminModel):
    """A consumer attached to a subscription."""

    msgRateOut: float = 0.0
    msgThroughputOut: float = 0.0
    msgRateRedeliver: float = 0.0
    consumerName: str | None = None
    availablePermits: int = 0
    unackedMessages: int = 0
    blockedConsumerOnUnackedMsgs: bool = False
    address: str | None = None
    clientVersion: str | None = None
    connectedSince: str | None = None


class Subscription(_AdminModel):
    """Per-subscription counters and its consumers."""

    msgRateOut: float = 0.0
    msgThroughputOut: float = 0.0
    msgRateRedeliver: float = 0.0
    msgBacklog: int = 0
    blockedSubscriptionOnUnackedMsgs: bool = False
    unackedMessages: int = 0
    type: str | None = None
    activeConsumerName: str | None = None
    msgRateExpired: float = 0.0
    consumers: list[Consumer] = Field(default_factory=list)


class Replication(_AdminModel):
    """Geo-replication counters towards one remote cluster."""

    msgRateIn: float = 0.0
    msgThroughputIn: float = 0.0
    msgRateOut: float = 0.0
    msgThroughputOut: float = 0.0
    msgRateExpired: float = 0.0
    replicationBacklog: int = 0
    connected: bool = False
    replicationDelayInSeconds: int = 0
    outboundConnection: str | None = None
    outboundConnectedSince: str | None = None


class PersistentTopicStats(_AdminModel):
    """
    Response from GET /admin/v2/persistent/{tenant}/{ns}/{topic}/stats.

    Example response (trimmed):
    {
        "msgRateIn": 12.5,
        "msgThroughputIn": 2048.0,
        "msgRateOut": 25.0,
        "msgThroughputOut": 4096.0,
        "averageMsgSize": 163.8,
        "storageSize": 1048576,
        "publishers": [{"producerName": "p-1", "msgRateIn": 12.5}],
        "subscriptions": {"sub-a": {"msgBacklog": 3, "consumers": []}},
        "replication": {},
        "deduplicationStatus": "Disabled"
    }
    """

    msgRateIn: float = 0.0
    msgThroughputIn: float = 0.0
    msgRateOut: float = 0.0
    msgThroughputOut: float = 0.0
    averageMsgSize: float = 0.0
    storageSize: float = 0.0
    publishers: list[Publisher] = Field(default_factory=list)
    subscriptions: dict[str, Subscription] = Field(default_factory=dict)
    replication: dict[str, Replication] = Field(default_factory=dict)
    deduplicationStatus: str | None = None
