"""
Crawl engine for one Pulsar cluster.

Walks the admin hierarchy of a single cluster and builds its ClusterResult:

    /clusters -> /tenants -> /namespaces/{tenant}
        -> /namespaces/{tenant/ns} + /persistent/{tenant/ns}
            -> /persistent/{topic}/stats

Steps run strictly in order because every URL depends on the previous
listing. Each admin call goes through _fetch(), which never raises and
returns a FetchResult tagged with what a failure means:

- FATAL (the cluster listing): ClusterListingError aborts the run
- SUBTREE (everything else): logged as a warning, the tenant list, tenant,
  namespace or topic is left out of the result and the crawl moves on

Topic stats are folded into the namespace, tenant and cluster totals as
soon as they arrive. Nothing is retried.
"""

import logging
import re
from collections.abc import Awaitable

import httpx

from pulsar_survey.admin_client import AdminClient
from pulsar_survey.errors import (
    ClusterListingError,
    ConfigError,
    ErrorKind,
    FetchResult,
    MissingClusterNameError,
)
from pulsar_survey.types import ClusterResult, ClusterTarget, TenantNode, TopicRecord

logger = logging.getLogger(__name__)


def compile_topic_filter(pattern: str | None) -> re.Pattern[str] | None:
    """
    Compile a topic filter; empty means no filtering.

    Raises:
        ConfigError: If pattern is not a valid regular expression.
    """
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ConfigError(f"Invalid topic filter '{pattern}': {e}") from e


def _describe(error: Exception) -> str:
    if isinstance(error, httpx.HTTPStatusError):
        return f"HTTP {error.response.status_code}"
    return str(error) or type(error).__name__


class ClusterCrawler:
    """
    Crawls one cluster through an AdminClient.

    Example:
        async with httpx.AsyncClient(base_url=target.resolved_url) as http:
            crawler = ClusterCrawler(AdminClient(http), compile_topic_filter("orders"))
            result = await crawler.crawl(target)
    """

    def __init__(
        self,
        client: AdminClient,
        topic_filter: re.Pattern[str] | None = None,
    ) -> None:
        self.client = client
        self.topic_filter = topic_filter

    def matches(self, topic: str) -> bool:
        """True if topic passes the filter (search, not full match)."""
        return self.topic_filter is None or self.topic_filter.search(topic) is not None

    async def _fetch(
        self, path: str, call: Awaitable[object], kind: ErrorKind
    ) -> FetchResult:
        url = self.client.url_for(path)
        try:
            value = await call
        except (httpx.HTTPError, ValueError) as e:
            return FetchResult(url=url, kind=kind, error=_describe(e))
        return FetchResult(url=url, kind=kind, value=value)

    def _accept(self, cluster: ClusterResult, result: FetchResult) -> bool:
        """
        Decide what to do with a fetch result.

        Returns:
            True on success, False if the subtree should be skipped.

        Raises:
            ClusterListingError: If a FATAL fetch failed.
        """
        if result.ok:
            return True
        if result.fatal:
            logger.error("%s: Failed to access %s: %s", cluster.name, result.url, result.error)
            raise ClusterListingError(cluster.name, result.url, result.error or "")
        logger.warning("%s: Failed to access %s: %s", cluster.name, result.url, result.error)
        return False

    async def crawl(self, target: ClusterTarget) -> ClusterResult:
        """
        Crawl the cluster behind target.

        Args:
            target: A resolved target (resolved_url set, logical name known).

        Returns:
            The populated ClusterResult.

        Raises:
            MissingClusterNameError: If target has no logical name.
            ClusterListingError: If /clusters cannot be fetched.
        """
        if not target.logical_name:
            logger.error("%s: No local cluster-name provided.", target.origin)
            raise MissingClusterNameError(target.origin)

        cluster = ClusterResult(
            name=target.logical_name,
            origin=target.origin,
            url=target.resolved_url or "",
        )

        known = await self._fetch("/clusters", self.client.get_clusters(), ErrorKind.FATAL)
        self._accept(cluster, known)
        cluster.clusters = known.value
        if cluster.name not in cluster.clusters:
            logger.warning(
                "%s: not among the clusters it knows about: %s",
                cluster.name,
                ", ".join(cluster.clusters) or "none",
            )

        tenants = await self._fetch("/tenants", self.client.get_tenants(), ErrorKind.SUBTREE)
        if self._accept(cluster, tenants):
            for tenant_name in tenants.value:
                await self._crawl_tenant(cluster, tenant_name)

        logger.info(
            "%s: %d tenants, %d topics with stats",
            cluster.name,
            len(cluster.tenants),
            cluster.topic_count(),
        )
        return cluster

    async def _crawl_tenant(self, cluster: ClusterResult, tenant_name: str) -> None:
        listing = await self._fetch(
            self.client.namespaces_path(tenant_name),
            self.client.get_namespaces(tenant_name),
            ErrorKind.SUBTREE,
        )
        if not self._accept(cluster, listing):
            return

        tenant = cluster.tenant(tenant_name)
        for namespace_name in listing.value:
            await self._crawl_namespace(cluster, tenant, namespace_name)

    async def _crawl_namespace(
        self, cluster: ClusterResult, tenant: TenantNode, namespace_name: str
    ) -> None:
        # namespace_name is qualified: "tenant/ns"
        policies = await self._fetch(
            self.client.policies_path(namespace_name),
            self.client.get_policies(namespace_name),
            ErrorKind.SUBTREE,
        )
        if not self._accept(cluster, policies):
            return

        topics = await self._fetch(
            self.client.topics_path(namespace_name),
            self.client.get_topics(namespace_name),
            ErrorKind.SUBTREE,
        )
        if not self._accept(cluster, topics):
            return

        namespace = tenant.namespace(namespace_name, policies.value)

        for topic in topics.value:
            if not self.matches(topic):
                continue

            stats = await self._fetch(
                self.client.stats_path(topic),
                self.client.get_topic_stats(topic),
                ErrorKind.SUBTREE,
            )
            if not self._accept(cluster, stats):
                continue

            logger.debug("%s: Got stats from topic %s", cluster.name, topic)
            cluster.add_topic(tenant, namespace, TopicRecord.from_payload(topic, stats.value))
