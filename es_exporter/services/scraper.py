from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from prometheus_client import CollectorRegistry, Gauge

from ..errors import ExtractionError, FetchError, MissingNodeLabel, PathNotFound
from ..metrics.base import MetricDefinition, MetricDescriptor
from ..metrics.paths import compile_path
from .source import DocumentSource

logger = logging.getLogger(__name__)

NODE_LABEL = "node"
HOST_PATH = compile_path("host")


class NodeMetric:
    """A gauge filled from every node of a node statistics document.

    The ``node`` label comes from the node's own ``host`` field. With
    ``composite_label`` the node id is appended, for clusters running several
    nodes per host.
    """

    def __init__(self, definition: MetricDefinition, composite_label: bool = False) -> None:
        if definition.is_liveness:
            raise ValueError("Node metrics need a path expression.")
        self.definition = definition
        self.composite_label = composite_label
        self.gauge = Gauge(
            definition.name,
            definition.descriptor.help,
            labelnames=[NODE_LABEL],
            registry=None,
        )
        self._labels: Set[str] = set()

    @classmethod
    def from_path(
        cls, path: str, name: str, help: str, composite_label: bool = False, **kwargs: Any
    ) -> "NodeMetric":
        definition = MetricDefinition(
            descriptor=MetricDescriptor(name, help, (NODE_LABEL,)),
            path=compile_path(path),
            **kwargs,
        )
        return cls(definition, composite_label=composite_label)

    @property
    def name(self) -> str:
        return self.definition.name

    def label_for(self, node_id: str, node: Any) -> str:
        host, found = HOST_PATH.evaluate(node)
        if not found or not isinstance(host, str) or not host:
            raise MissingNodeLabel(f"node {node_id} has no string 'host' field")
        return f"{host}/{node_id}" if self.composite_label else host

    def observe(self, node_id: str, node: Any) -> str:
        """Set the gauge from one node document and return the label used."""
        value = self.definition.extract(node)
        label = self.label_for(node_id, node)
        self.gauge.labels(label).set(value)
        self._labels.add(label)
        return label

    def retain(self, labels: Set[str]) -> None:
        """Drop every series whose label was not written by the last pass."""
        for label in self._labels - labels:
            self.gauge.remove(label)
        self._labels &= labels

    def clear(self) -> None:
        self.gauge.clear()
        self._labels.clear()

    def __str__(self) -> str:
        return str(self.definition)


class NodeStatsScraper:
    """Background task that periodically refreshes per-node gauges.

    Unlike :class:`~es_exporter.services.collector.DocumentCollector` the
    gauges are long-lived: exposition reads whatever the last pass wrote and
    never triggers a fetch. Series not written by the last pass are removed,
    and a failed pass removes them all.
    """

    def __init__(
        self,
        source: DocumentSource,
        endpoint: str,
        metrics: Sequence[NodeMetric],
        up: MetricDescriptor,
        interval_seconds: float,
    ) -> None:
        self.source = source
        self.endpoint = endpoint
        self.metrics: List[NodeMetric] = list(metrics)
        self.up = Gauge(up.name, up.help, registry=None)
        self.interval_seconds = max(interval_seconds, 1)
        self._task: Optional[asyncio.Task[None]] = None
        self._stop_event = asyncio.Event()

    def gauges(self) -> Iterable[Gauge]:
        yield self.up
        for metric in self.metrics:
            yield metric.gauge

    def register(self, registry: CollectorRegistry) -> None:
        """Register every gauge, or none of them if one name is taken."""
        registered = []
        try:
            for gauge in self.gauges():
                registry.register(gauge)
                registered.append(gauge)
        except ValueError:
            for gauge in registered:
                registry.unregister(gauge)
            raise

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._stop_event.clear()
            self._task = asyncio.create_task(self._run(), name=f"scraper:{self.endpoint}")

    async def stop(self) -> None:
        """Stop scheduling passes, waiting for a pass in flight to finish."""
        if self._task is None:
            return
        self._stop_event.set()
        try:
            await self._task
        finally:
            self._task = None

    def next_delay(self, elapsed: float) -> float:
        """Seconds until the next tick, skipping ticks a slow pass overran."""
        return self.interval_seconds - (elapsed % self.interval_seconds)

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            started = time.monotonic()
            try:
                await asyncio.to_thread(self.scrape_once)
            except Exception:
                logger.exception("Unexpected error scraping %s", self.endpoint)
            delay = self.next_delay(time.monotonic() - started)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                continue

    def scrape_once(self) -> bool:
        try:
            nodes = self.source.fetch_nodes(self.endpoint)
        except FetchError as exc:
            self.up.set(0)
            for metric in self.metrics:
                metric.clear()
            logger.warning("Scrape of %s failed: %s", self.endpoint, exc)
            return False

        written: Dict[str, Set[str]] = {metric.name: set() for metric in self.metrics}
        for node_id, node in nodes.items():
            if not isinstance(node, dict):
                logger.warning("Skipping node %s: stats are not an object", node_id)
                continue
            for metric in self.metrics:
                label = self._observe(metric, node_id, node)
                if label is not None:
                    written[metric.name].add(label)

        for metric in self.metrics:
            metric.retain(written[metric.name])
        self.up.set(1)
        return True

    def _observe(self, metric: NodeMetric, node_id: str, node: Any) -> Optional[str]:
        try:
            return metric.observe(node_id, node)
        except PathNotFound as exc:
            logger.debug("Skipping %s for node %s: %s", metric.name, node_id, exc)
        except ExtractionError as exc:
            logger.warning("Error observing metric from '%s' for node %s: %s", metric, node_id, exc)
        return None
