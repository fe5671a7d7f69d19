"""
SurveyEngine: one-shot multi-cluster acquisition.

Run order:
1. Resolve every target (no network or subprocess activity yet)
2. Open a port-forward for each tunneled target and wait until all of them
   report forwarding
3. Crawl every cluster concurrently, one task per cluster, each with its
   own httpx.AsyncClient
4. Release tunnels and HTTP clients

Any fatal error aborts the run without partial output. Cluster tasks are
never cancelled: the engine waits for all of them, then raises the first
fatal error if there was one.
"""

import asyncio
import logging
import re
from collections.abc import Callable

import httpx

from pulsar_survey.admin_client import AdminClient
from pulsar_survey.config import SurveyConfig
from pulsar_survey.crawler import ClusterCrawler, compile_topic_filter
from pulsar_survey.targets import resolve_targets
from pulsar_survey.tunnel import TunnelSupervisor
from pulsar_survey.types import ClusterResult, ClusterTarget, TargetKind

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], httpx.AsyncClient]
"""Builds the HTTP client for one cluster from its admin base URL."""


class SurveyEngine:
    """
    Resolves targets, supervises tunnels and crawls clusters.

    Example:
        engine = SurveyEngine(SurveyConfig(targets=["http://broker:8080,east"]))
        results = await engine.run()
    """

    def __init__(
        self,
        config: SurveyConfig,
        client_factory: ClientFactory | None = None,
        supervisor: TunnelSupervisor | None = None,
    ) -> None:
        """
        Args:
            config: Options for this run
            client_factory: HTTP client builder; defaults to
                httpx.AsyncClient with the configured request timeout
            supervisor: Tunnel supervisor; defaults to one built from config
        """
        self.config = config
        self.client_factory = client_factory or self._default_client
        self.supervisor = supervisor or TunnelSupervisor(
            base_port=config.local_port,
            kubectl=config.kubectl,
            remote_port=config.remote_port,
        )
        self.targets: list[ClusterTarget] = []
        self.topic_filter: re.Pattern[str] | None = None

    def _default_client(self, base_url: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=base_url, timeout=self.config.request_timeout)

    def prepare(self) -> None:
        """
        Resolve targets and validate the topic filter.

        Raises:
            ConfigError: On an empty target list, duplicate names or an
                invalid topic filter.
            UnknownOriginError: On an unresolvable target.
        """
        self.topic_filter = compile_topic_filter(self.config.topic_filter)
        self.targets = resolve_targets(
            self.config.targets,
            namespace=self.config.namespace,
            service_name=self.config.service_name,
        )

    async def run(self) -> list[ClusterResult]:
        """
        Survey every configured cluster.

        Returns:
            One ClusterResult per target, in configuration order.

        Raises:
            SurveyError: On the first fatal error (configuration, tunnel,
                missing cluster name or root listing failure).
        """
        self.prepare()

        async with self.supervisor:
            for target in self.targets:
                if target.kind is TargetKind.TUNNELED:
                    await self.supervisor.open(target)
            await self.supervisor.wait_ready(self.config.tunnel_ready_timeout)

            logger.info("Fetching information. This may take a little while...")
            outcomes = await asyncio.gather(
                *(self._crawl(target) for target in self.targets),
                return_exceptions=True,
            )

        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        logger.info("Done fetching information.")
        return list(outcomes)

    async def _crawl(self, target: ClusterTarget) -> ClusterResult:
        async with self.client_factory(target.resolved_url or "") as http:
            crawler = ClusterCrawler(AdminClient(http=http), self.topic_filter)
            return await crawler.crawl(target)
