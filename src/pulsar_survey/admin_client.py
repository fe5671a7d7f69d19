"""
Pulsar admin API client.

This module provides the AdminClient class for querying the read-only
parts of the Pulsar admin REST API (v2) needed to survey a cluster:
clusters, tenants, namespaces, namespace policies, topics and topic stats.

AdminClient receives an injected httpx.AsyncClient with base_url set to the
admin root (".../admin/v2"). All methods are async and fail loudly: HTTP
errors, undecodable bodies and unexpected payloads raise. Deciding which
failures are survivable is the crawler's job.

Pulsar admin API documentation:
- https://pulsar.apache.org/admin-rest-api/
"""

from dataclasses import dataclass

import httpx

from pulsar_survey.admin_types import NamespacePolicies, PersistentTopicStats, StringList

PERSISTENT_PREFIX = "persistent://"


def strip_persistent(topic: str) -> str:
    """
    Remove leading "persistent://" prefixes from a topic name.

    "persistent://t/ns/orders" -> "t/ns/orders". Repeated prefixes are all
    removed and names without one are returned unchanged, so applying this
    twice equals applying it once.
    """
    while topic.startswith(PERSISTENT_PREFIX):
        topic = topic[len(PERSISTENT_PREFIX):]
    return topic


@dataclass
class AdminClient:
    """
    Pulsar admin API client with injected httpx client.

    Attributes:
        http: Pre-configured httpx.AsyncClient with base_url set to the
            admin root of one cluster.

    Example:
        async with httpx.AsyncClient(base_url="http://broker:8080/admin/v2") as http:
            client = AdminClient(http=http)
            for tenant in await client.get_tenants():
                print(tenant, await client.get_namespaces(tenant))
    """

    http: httpx.AsyncClient

    def url_for(self, path: str) -> str:
        """Absolute URL for an admin path, for log and error messages."""
        return str(self.http.base_url).rstrip("/") + path

    async def _get_json(self, path: str) -> object:
        response = await self.http.get(path)
        response.raise_for_status()
        return response.json()

    async def get_clusters(self) -> list[str]:
        """
        Get the cluster names known to this cluster.

        Calls GET /clusters.

        Raises:
            httpx.HTTPError: On transport errors and 4xx/5xx responses.
            ValueError: On undecodable or malformed response data.
        """
        return StringList.validate_python(await self._get_json("/clusters"))

    async def get_tenants(self) -> list[str]:
        """Get all tenant names. Calls GET /tenants."""
        return StringList.validate_python(await self._get_json("/tenants"))

    async def get_namespaces(self, tenant: str) -> list[str]:
        """
        Get a tenant's namespaces.

        Calls GET /namespaces/{tenant}.

        Returns:
            Qualified namespace names ("tenant/ns").
        """
        return StringList.validate_python(
            await self._get_json(self.namespaces_path(tenant))
        )

    async def get_policies(self, namespace: str) -> NamespacePolicies:
        """
        Get a namespace's policies.

        Calls GET /namespaces/{tenant}/{ns}.

        Args:
            namespace: Qualified namespace name ("tenant/ns").
        """
        return NamespacePolicies.model_validate(
            await self._get_json(self.policies_path(namespace))
        )

    async def get_topics(self, namespace: str) -> list[str]:
        """
        Get the persistent topics of a namespace.

        Calls GET /persistent/{tenant}/{ns}.

        Returns:
            Topic names, usually prefixed "persistent://".
        """
        return StringList.validate_python(
            await self._get_json(self.topics_path(namespace))
        )

    async def get_topic_stats(self, topic: str) -> PersistentTopicStats:
        """
        Get the stats of one persistent topic.

        Calls GET /persistent/{tenant}/{ns}/{topic}/stats.

        Args:
            topic: Topic name, with or without the "persistent://" prefix.
        """
        return PersistentTopicStats.model_validate(
            await self._get_json(self.stats_path(topic))
        )

    # -------------------------------------------------------------------------
    # Paths - relative to the admin root
    # -------------------------------------------------------------------------

    @staticmethod
    def namespaces_path(tenant: str) -> str:
        return f"/namespaces/{tenant}"

    @staticmethod
    def policies_path(namespace: str) -> str:
        return f"/namespaces/{namespace}"

    @staticmethod
    def topics_path(namespace: str) -> str:
        return f"/persistent/{namespace}"

    @staticmethod
    def stats_path(topic: str) -> str:
        return f"/persistent/{strip_persistent(topic)}/stats"
