from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Iterable, List, Tuple

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from ..config import Settings
from ..errors import DuplicateMetric
from ..services.collector import DocumentCollector
from ..services.scraper import NodeStatsScraper
from ..services.source import DocumentSource
from . import catalog
from .base import MetricDescriptor

logger = logging.getLogger(__name__)


class ExporterRegistry:
    """Registry that owns the Prometheus registry and every metric group."""

    def __init__(self) -> None:
        self.registry = CollectorRegistry()
        self._collectors: "OrderedDict[str, DocumentCollector]" = OrderedDict()
        self._scrapers: "OrderedDict[str, NodeStatsScraper]" = OrderedDict()

    def _check_group(self, group: str) -> None:
        if group in self._collectors or group in self._scrapers:
            raise ValueError(f"Metric group '{group}' is already registered.")

    def register_collector(self, group: str, collector: DocumentCollector) -> None:
        """Publish ``collector`` under ``group``.

        Registration calls ``collector.describe()``, which freezes its metric
        set even when a duplicate name then makes registration fail. That
        failure is a startup error; the collector is not meant to be reused.
        """
        self._check_group(group)
        try:
            self.registry.register(collector)
        except ValueError as exc:
            raise DuplicateMetric(str(exc)) from exc
        self._collectors[group] = collector

    def register_scraper(self, group: str, scraper: NodeStatsScraper) -> None:
        self._check_group(group)
        try:
            scraper.register(self.registry)
        except ValueError as exc:
            raise DuplicateMetric(str(exc)) from exc
        self._scrapers[group] = scraper

    def collectors(self) -> Iterable[DocumentCollector]:
        return self._collectors.values()

    def scrapers(self) -> Iterable[NodeStatsScraper]:
        return self._scrapers.values()

    def groups(self) -> List[str]:
        return list(self._collectors) + list(self._scrapers)

    def start(self) -> None:
        for scraper in self.scrapers():
            scraper.start()

    async def stop(self) -> None:
        for scraper in self.scrapers():
            await scraper.stop()

    def render(self) -> Tuple[bytes, str]:
        """Return the exposition payload and its content type.

        Pull collectors fetch their documents here, once per call.
        """
        return generate_latest(self.registry), CONTENT_TYPE_LATEST


def build_registry(settings: Settings, source: DocumentSource) -> ExporterRegistry:
    """Assemble the default metric groups for ``settings``."""
    ns = settings.namespace
    registry = ExporterRegistry()

    health = DocumentCollector(
        source,
        "/_cluster/health",
        up=MetricDescriptor(f"{ns}_cluster_health_up", "Status of the last cluster health request"),
    )
    health.add_metrics(catalog.cluster_health_metrics(ns))
    registry.register_collector("cluster_health", health)

    registry.register_scraper(
        "nodes",
        NodeStatsScraper(
            source,
            "/_nodes/stats",
            catalog.node_metrics(ns),
            up=MetricDescriptor(f"{ns}_up", "Current status of ES"),
            interval_seconds=settings.scrape_interval_seconds,
        ),
    )

    if settings.enable_siren:
        registry.register_scraper(
            "siren",
            NodeStatsScraper(
                source,
                "/_siren/nodes/stats",
                catalog.siren_metrics(ns),
                up=MetricDescriptor(f"{ns}_siren_up", "Current status of Siren Federate"),
                interval_seconds=settings.scrape_interval_seconds,
            ),
        )

    if settings.snapshot_repository:
        snapshots = DocumentCollector(
            source,
            f"/_snapshot/{settings.snapshot_repository}/_all",
            up=MetricDescriptor(f"{ns}_snapshot_up", "Status of the last snapshot request"),
        )
        snapshots.add_metrics(catalog.snapshot_metrics(ns))
        registry.register_collector("snapshot", snapshots)

    logger.info("Registered metric groups: %s", ", ".join(registry.groups()))
    return registry
