"""Shared fixtures: a mocked Pulsar admin API."""

import copy
from collections.abc import Callable

import httpx
import pytest
from httpx import Request, Response


class AdminMockTransport(httpx.AsyncBaseTransport):
    """Mock transport serving canned admin API responses."""

    def __init__(self, responses: dict[str, dict]):
        """
        Initialize with mapping of paths to response data.

        Args:
            responses: Dict mapping URL paths to response data.
                       Each value should have 'status_code' and/or 'json' keys.
        """
        self._responses = responses
        self.requested: list[str] = []

    async def handle_async_request(self, request: Request) -> Response:
        """Handle an async request by returning mocked response."""
        path = request.url.path
        self.requested.append(path)
        if path in self._responses:
            resp_data = self._responses[path]
            if "content" in resp_data:
                return Response(
                    status_code=resp_data.get("status_code", 200),
                    content=resp_data["content"],
                    request=request,
                )
            return Response(
                status_code=resp_data.get("status_code", 200),
                json=resp_data.get("json", {}),
                request=request,
            )
        # Return 404 for unknown paths
        return Response(status_code=404, request=request)


ORDERS_STATS = {
    "msgRateIn": 10.0,
    "msgThroughputIn": 1000.0,
    "msgRateOut": 20.0,
    "msgThroughputOut": 2000.0,
    "averageMsgSize": 100.0,
    "storageSize": 4096,
    "publishers": [{"producerName": "orders-producer", "msgRateIn": 10.0, "producerId": 1}],
    "subscriptions": {
        "billing": {
            "msgRateOut": 20.0,
            "msgBacklog": 3,
            "type": "Shared",
            "consumers": [{"consumerName": "billing-0", "msgRateOut": 20.0}],
        }
    },
    "replication": {},
    "deduplicationStatus": "Disabled",
}

AUDIT_STATS = {
    "msgRateIn": 1.5,
    "msgThroughputIn": 150.0,
    "msgRateOut": 0.5,
    "msgThroughputOut": 50.0,
}


@pytest.fixture
def cluster_a_responses() -> dict[str, dict]:
    """Admin API of a cluster with one tenant, one namespace and two topics."""
    return copy.deepcopy(
        {
            "/admin/v2/clusters": {"json": ["clusterA", "clusterB"]},
            "/admin/v2/tenants": {"json": ["t1"]},
            "/admin/v2/namespaces/t1": {"json": ["t1/ns1"]},
            "/admin/v2/namespaces/t1/ns1": {"json": {"replication_clusters": ["clusterA"]}},
            "/admin/v2/persistent/t1/ns1": {
                "json": ["persistent://t1/ns1/orders", "persistent://t1/ns1/audit"]
            },
            "/admin/v2/persistent/t1/ns1/orders/stats": {"json": ORDERS_STATS},
            "/admin/v2/persistent/t1/ns1/audit/stats": {"json": AUDIT_STATS},
        }
    )


@pytest.fixture
def two_tenant_responses(cluster_a_responses) -> dict[str, dict]:
    """cluster_a_responses plus a second tenant with two namespaces."""
    cluster_a_responses.update(
        {
            "/admin/v2/tenants": {"json": ["t1", "t2"]},
            "/admin/v2/namespaces/t2": {"json": ["t2/events", "t2/metrics"]},
            "/admin/v2/namespaces/t2/events": {"json": {"replication_clusters": []}},
            "/admin/v2/persistent/t2/events": {"json": ["persistent://t2/events/clicks"]},
            "/admin/v2/persistent/t2/events/clicks/stats": {
                "json": {"msgRateIn": 4.0, "msgThroughputIn": 400.0}
            },
            "/admin/v2/namespaces/t2/metrics": {"json": {"replication_clusters": []}},
            "/admin/v2/persistent/t2/metrics": {"json": ["persistent://t2/metrics/cpu"]},
            "/admin/v2/persistent/t2/metrics/cpu/stats": {
                "json": {"msgRateOut": 8.0, "msgThroughputOut": 800.0}
            },
        }
    )
    return cluster_a_responses


@pytest.fixture
def make_http() -> Callable[..., tuple[httpx.AsyncClient, AdminMockTransport]]:
    """Factory for an httpx client backed by an AdminMockTransport."""

    def _make(
        responses: dict[str, dict], base_url: str = "http://h1/admin/v2"
    ) -> tuple[httpx.AsyncClient, AdminMockTransport]:
        transport = AdminMockTransport(responses)
        return httpx.AsyncClient(base_url=base_url, transport=transport), transport

    return _make
