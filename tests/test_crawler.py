"""
Tests for the per-cluster crawl.

These tests verify the ClusterCrawler:
- Builds the tenant/namespace/topic tree with rolled-up stats
- Applies the topic filter before any stats fetch
- Skips failed tenants, namespaces and topics without touching siblings
- Aborts on a missing cluster name or a failed cluster listing
"""

import pytest

from pulsar_survey.admin_client import AdminClient
from pulsar_survey.crawler import ClusterCrawler, compile_topic_filter
from pulsar_survey.errors import ClusterListingError, ConfigError, MissingClusterNameError
from pulsar_survey.types import ClusterTarget, Stats, TargetKind

ORDERS = "persistent://t1/ns1/orders"
AUDIT = "persistent://t1/ns1/audit"


def _target(name: str = "clusterA") -> ClusterTarget:
    return ClusterTarget(
        origin="http://h1/admin/v2",
        kind=TargetKind.DIRECT,
        logical_name=name,
        resolved_url="http://h1/admin/v2",
    )


async def _crawl(make_http, responses, topic_filter: str = "", name: str = "clusterA"):
    http, transport = make_http(responses)
    async with http:
        crawler = ClusterCrawler(AdminClient(http=http), compile_topic_filter(topic_filter))
        result = await crawler.crawl(_target(name))
    return result, transport


class TestCompileTopicFilter:
    def test_empty_means_none(self):
        assert compile_topic_filter("") is None
        assert compile_topic_filter(None) is None

    def test_invalid_pattern(self):
        with pytest.raises(ConfigError, match="Invalid topic filter"):
            compile_topic_filter("orders(")


class TestCrawl:
    @pytest.mark.asyncio
    async def test_full_tree(self, cluster_a_responses, make_http):
        result, _ = await _crawl(make_http, cluster_a_responses)

        assert result.name == "clusterA"
        assert result.url == "http://h1/admin/v2"
        assert result.clusters == ["clusterA", "clusterB"]
        assert list(result.tenants) == ["t1"]

        ns = result.tenants["t1"].namespaces["t1/ns1"]
        assert ns.policies.replication_clusters == ["clusterA"]
        assert set(ns.topics) == {ORDERS, AUDIT}

        expected = Stats(11.5, 1150.0, 20.5, 2050.0)
        assert ns.stats == expected
        assert result.tenants["t1"].stats == expected
        assert result.stats == expected

    @pytest.mark.asyncio
    async def test_topic_filter_excludes_non_matching(self, cluster_a_responses, make_http):
        result, transport = await _crawl(make_http, cluster_a_responses, topic_filter="ord")

        ns = result.tenants["t1"].namespaces["t1/ns1"]
        assert list(ns.topics) == [ORDERS]
        assert result.stats == ns.topics[ORDERS].stats
        assert result.stats == Stats(10.0, 1000.0, 20.0, 2000.0)
        assert "/admin/v2/persistent/t1/ns1/audit/stats" not in transport.requested

    @pytest.mark.asyncio
    async def test_topic_filter_is_search_not_full_match(self, cluster_a_responses, make_http):
        result, _ = await _crawl(make_http, cluster_a_responses, topic_filter=r"ns1/aud")
        assert list(result.tenants["t1"].namespaces["t1/ns1"].topics) == [AUDIT]

    @pytest.mark.asyncio
    async def test_filter_matching_nothing_keeps_namespace(self, cluster_a_responses, make_http):
        result, transport = await _crawl(make_http, cluster_a_responses, topic_filter="^nomatch$")

        ns = result.tenants["t1"].namespaces["t1/ns1"]
        assert ns.topics == {}
        assert result.stats == Stats()
        assert not any(path.endswith("/stats") for path in transport.requested)

    @pytest.mark.asyncio
    async def test_policy_404_drops_namespace(self, cluster_a_responses, make_http):
        del cluster_a_responses["/admin/v2/namespaces/t1/ns1"]

        result, _ = await _crawl(make_http, cluster_a_responses)

        tenant = result.tenants["t1"]
        assert "t1/ns1" not in tenant.namespaces
        assert tenant.stats == Stats()
        assert result.stats == Stats()

    @pytest.mark.asyncio
    async def test_topic_list_failure_drops_namespace(self, cluster_a_responses, make_http):
        cluster_a_responses["/admin/v2/persistent/t1/ns1"] = {"status_code": 500}

        result, _ = await _crawl(make_http, cluster_a_responses)

        assert result.tenants["t1"].namespaces == {}

    @pytest.mark.asyncio
    async def test_namespace_failure_spares_siblings(self, two_tenant_responses, make_http):
        two_tenant_responses["/admin/v2/namespaces/t2/events"] = {"status_code": 403}

        result, _ = await _crawl(make_http, two_tenant_responses)

        t2 = result.tenants["t2"]
        assert list(t2.namespaces) == ["t2/metrics"]
        assert t2.stats == Stats(0.0, 0.0, 8.0, 800.0)
        assert result.stats == result.tenants["t1"].stats + t2.stats

    @pytest.mark.asyncio
    async def test_tenant_namespace_list_failure_skips_tenant(
        self, two_tenant_responses, make_http
    ):
        del two_tenant_responses["/admin/v2/namespaces/t1"]

        result, transport = await _crawl(make_http, two_tenant_responses)

        assert list(result.tenants) == ["t2"]
        assert result.stats == result.tenants["t2"].stats
        assert not any(p.startswith("/admin/v2/persistent/t1") for p in transport.requested)

    @pytest.mark.asyncio
    async def test_topic_stats_failure_skips_only_that_topic(
        self, cluster_a_responses, make_http
    ):
        cluster_a_responses["/admin/v2/persistent/t1/ns1/orders/stats"] = {"status_code": 500}

        result, _ = await _crawl(make_http, cluster_a_responses)

        ns = result.tenants["t1"].namespaces["t1/ns1"]
        assert list(ns.topics) == [AUDIT]
        assert result.stats == Stats(1.5, 150.0, 0.5, 50.0)

    @pytest.mark.asyncio
    async def test_malformed_topic_stats_skipped(self, cluster_a_responses, make_http):
        cluster_a_responses["/admin/v2/persistent/t1/ns1/audit/stats"] = {
            "json": {"msgRateIn": "not-a-number"}
        }

        result, _ = await _crawl(make_http, cluster_a_responses)

        assert list(result.tenants["t1"].namespaces["t1/ns1"].topics) == [ORDERS]

    @pytest.mark.asyncio
    async def test_skipped_subtrees_are_logged(self, cluster_a_responses, make_http, caplog):
        del cluster_a_responses["/admin/v2/namespaces/t1/ns1"]

        with caplog.at_level("WARNING"):
            await _crawl(make_http, cluster_a_responses)

        assert "Failed to access http://h1/admin/v2/namespaces/t1/ns1" in caplog.text

    @pytest.mark.asyncio
    async def test_empty_tenant_is_present(self, cluster_a_responses, make_http):
        cluster_a_responses["/admin/v2/namespaces/t1"] = {"json": []}

        result, _ = await _crawl(make_http, cluster_a_responses)

        assert result.tenants["t1"].namespaces == {}
        assert result.stats == Stats()

    @pytest.mark.asyncio
    async def test_tenant_listing_failure_keeps_cluster(self, cluster_a_responses, make_http):
        cluster_a_responses["/admin/v2/tenants"] = {"status_code": 500}

        result, transport = await _crawl(make_http, cluster_a_responses)

        assert result.clusters == ["clusterA", "clusterB"]
        assert result.tenants == {}
        assert result.stats == Stats()
        assert transport.requested == ["/admin/v2/clusters", "/admin/v2/tenants"]


class TestCrawlFatal:
    @pytest.mark.asyncio
    async def test_missing_name(self, cluster_a_responses, make_http):
        with pytest.raises(MissingClusterNameError):
            await _crawl(make_http, cluster_a_responses, name="")

    @pytest.mark.asyncio
    async def test_missing_name_makes_no_requests(self, cluster_a_responses, make_http):
        http, transport = make_http(cluster_a_responses)
        async with http:
            crawler = ClusterCrawler(AdminClient(http=http))
            with pytest.raises(MissingClusterNameError):
                await crawler.crawl(_target(name=""))
        assert transport.requested == []

    @pytest.mark.asyncio
    async def test_cluster_listing_failure(self, cluster_a_responses, make_http):
        cluster_a_responses["/admin/v2/clusters"] = {"status_code": 503}

        with pytest.raises(ClusterListingError) as exc_info:
            await _crawl(make_http, cluster_a_responses)

        assert exc_info.value.cluster == "clusterA"
        assert exc_info.value.url == "http://h1/admin/v2/clusters"
        assert "503" in exc_info.value.reason
