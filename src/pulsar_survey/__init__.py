"""
pulsar-survey: one-shot topology and traffic snapshot for Pulsar clusters.

This package provides:

- SurveyEngine: resolves targets, supervises port-forwards, crawls clusters
- TunnelSupervisor: kubectl port-forward processes with readiness tracking
- ClusterCrawler / AdminClient: admin REST traversal with inline rollup
- Result tree types: ClusterResult, TenantNode, NamespaceNode, TopicRecord, Stats
"""

from pulsar_survey.admin_client import AdminClient, strip_persistent
from pulsar_survey.config import SurveyConfig, SurveySettings, load_settings
from pulsar_survey.crawler import ClusterCrawler, compile_topic_filter
from pulsar_survey.engine import SurveyEngine
from pulsar_survey.errors import (
    ClusterListingError,
    ConfigError,
    MissingClusterNameError,
    SurveyError,
    TunnelError,
    TunnelLaunchError,
    TunnelNotReadyError,
    UnknownOriginError,
)
from pulsar_survey.targets import parse_target, resolve_targets
from pulsar_survey.tunnel import TunnelHandle, TunnelSupervisor
from pulsar_survey.types import (
    ClusterResult,
    ClusterTarget,
    NamespaceNode,
    Stats,
    TargetKind,
    TenantNode,
    TopicRecord,
)

__all__ = [
    # Engine
    "SurveyEngine",
    "SurveyConfig",
    "SurveySettings",
    "load_settings",
    # Components
    "AdminClient",
    "ClusterCrawler",
    "TunnelSupervisor",
    "TunnelHandle",
    "compile_topic_filter",
    "parse_target",
    "resolve_targets",
    "strip_persistent",
    # Result tree
    "ClusterResult",
    "ClusterTarget",
    "NamespaceNode",
    "Stats",
    "TargetKind",
    "TenantNode",
    "TopicRecord",
    # Errors
    "SurveyError",
    "ConfigError",
    "UnknownOriginError",
    "MissingClusterNameError",
    "ClusterListingError",
    "TunnelError",
    "TunnelLaunchError",
    "TunnelNotReadyError",
]
