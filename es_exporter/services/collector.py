from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Any, Iterable, List, Optional

from prometheus_client.core import GaugeMetricFamily

from ..errors import (
    AlreadyRegistered,
    ConfigurationError,
    DuplicateMetric,
    ExtractionError,
    FetchError,
    PathNotFound,
)
from ..metrics.base import MetricDefinition, MetricDescriptor, Observation
from .source import DocumentSource

logger = logging.getLogger(__name__)

DEFAULT_UP = MetricDescriptor("es_up", "Status of the last Elasticsearch request")


class DocumentCollector:
    """Prometheus collector that fetches a fresh document on every scrape.

    The collector starts unregistered. The first ``describe()`` call (made by
    ``CollectorRegistry.register``) registers it, after which the metric set is
    frozen and ``add_metric`` raises :class:`AlreadyRegistered`.
    """

    def __init__(
        self,
        source: DocumentSource,
        endpoint: str,
        up: MetricDescriptor = DEFAULT_UP,
    ) -> None:
        self.source = source
        self.endpoint = endpoint
        self.up = MetricDefinition(descriptor=up)
        self._metrics: List[MetricDefinition] = [self.up]
        self._lock = threading.Lock()
        self._registered = False

    @property
    def is_registered(self) -> bool:
        return self._registered

    @property
    def metrics(self) -> List[MetricDefinition]:
        with self._lock:
            return list(self._metrics)

    def add_metric(self, definition: MetricDefinition) -> None:
        with self._lock:
            if self._registered:
                raise AlreadyRegistered()
            if definition.is_liveness:
                raise ConfigurationError("Only the collector's own liveness metric may omit a path.")
            definition.descriptor.check_labels(definition.label_values)
            for existing in self._metrics:
                if existing.name != definition.name:
                    continue
                if existing.descriptor != definition.descriptor:
                    raise DuplicateMetric(
                        f"Metric '{definition.name}' is already defined with a different descriptor."
                    )
                if existing.label_values == definition.label_values:
                    raise DuplicateMetric(
                        f"Metric '{definition.name}' {list(definition.label_values)} is already defined."
                    )
            self._metrics.append(definition)

    def add_metrics(self, definitions: Iterable[MetricDefinition]) -> None:
        for definition in definitions:
            self.add_metric(definition)

    def describe(self) -> List[GaugeMetricFamily]:
        with self._lock:
            self._registered = True
            metrics = list(self._metrics)
        families: "OrderedDict[str, GaugeMetricFamily]" = OrderedDict()
        for definition in metrics:
            descriptor = definition.descriptor
            if descriptor.name not in families:
                families[descriptor.name] = _family(descriptor)
        return list(families.values())

    def collect(self) -> List[GaugeMetricFamily]:
        observations = self.scrape()
        families: "OrderedDict[str, GaugeMetricFamily]" = OrderedDict()
        for observation in observations:
            family = families.get(observation.name)
            if family is None:
                family = families[observation.name] = _family(observation.descriptor)
            family.add_metric(list(observation.label_values), observation.value)
        return list(families.values())

    def scrape(self) -> List[Observation]:
        """Fetch the document and evaluate every metric against it."""
        try:
            document = self.source.fetch(self.endpoint)
        except FetchError as exc:
            logger.warning("Scrape of %s failed: %s", self.endpoint, exc)
            return [self._up_observation(0.0)]
        return self.observe(document)

    def observe(self, document: Any) -> List[Observation]:
        observations = [self._up_observation(1.0)]
        for definition in self.metrics:
            if definition.is_liveness:
                continue
            observation = self._observe_one(definition, document)
            if observation is not None:
                observations.append(observation)
        return observations

    def _observe_one(self, definition: MetricDefinition, document: Any) -> Optional[Observation]:
        try:
            value = definition.extract(document)
        except PathNotFound as exc:
            logger.debug("Skipping %s: %s", definition.name, exc)
            return None
        except ExtractionError as exc:
            logger.warning("Skipping %s (%s): %s", definition.name, definition, exc)
            return None
        return Observation(definition.descriptor, definition.label_values, value)

    def _up_observation(self, value: float) -> Observation:
        return Observation(self.up.descriptor, (), value)


def _family(descriptor: MetricDescriptor) -> GaugeMetricFamily:
    return GaugeMetricFamily(descriptor.name, descriptor.help, labels=list(descriptor.label_names))
