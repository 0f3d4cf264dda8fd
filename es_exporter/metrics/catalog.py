"""Metric sets published by the exporter.

Node-level helpers mirror the layout of ``GET /_nodes/stats``; every metric
name is prefixed with a namespace (``es`` by default).
"""

from typing import Any, List

from ..services.scraper import NodeMetric
from .base import MetricDefinition, MetricDescriptor
from .transforms import BOOLEAN, CategoricalEquals, Custom

DEFAULT_NAMESPACE = "es"

HEALTH_STATUSES = ("green", "yellow", "red")

HEALTH_FIELDS = {
    "number_of_nodes": "Number of nodes in the cluster",
    "number_of_data_nodes": "Number of data nodes in the cluster",
    "active_primary_shards": "Number of active primary shards",
    "active_shards": "Number of active shards",
    "relocating_shards": "Number of relocating shards",
    "initializing_shards": "Number of initializing shards",
    "unassigned_shards": "Number of unassigned shards",
    "delayed_unassigned_shards": "Number of shards whose allocation has been delayed",
    "number_of_pending_tasks": "Number of cluster-level changes not yet executed",
    "number_of_in_flight_fetch": "Number of unfinished shard fetches",
    "task_max_waiting_in_queue_millis": "Time the oldest pending task has waited, in milliseconds",
    "active_shards_percent_as_number": "Ratio of active shards in the cluster, in percent",
}

THREAD_POOL_STATS = ("threads", "queue", "active", "rejected", "largest", "completed")

DEFAULT_MEMORY_POOLS = ("young", "survivor", "old")
DEFAULT_GC_COLLECTORS = ("young", "old")
DEFAULT_THREAD_POOLS = ("search", "write", "get")
DEFAULT_RAW_PATHS = ("indices.recovery.throttle_time_in_millis",)


def heap_metric(kind: str, namespace: str = DEFAULT_NAMESPACE) -> NodeMetric:
    return NodeMetric.from_path(
        f"jvm.mem.heap_{kind}_in_bytes",
        f"{namespace}_memory_heap_{kind}_bytes",
        f"{kind} heap in bytes",
    )


def memory_pool_metric(pool: str, kind: str, namespace: str = DEFAULT_NAMESPACE) -> NodeMetric:
    return NodeMetric.from_path(
        f"jvm.mem.pools.{pool}.{kind}_in_bytes",
        f"{namespace}_memory_pool_{pool}_{kind}_bytes",
        f"{kind} memory of pool {pool}",
    )


def gc_time_metric(collector: str, namespace: str = DEFAULT_NAMESPACE) -> NodeMetric:
    return NodeMetric.from_path(
        f"jvm.gc.collectors.{collector}.collection_time_in_millis",
        f"{namespace}_gc_{collector}_collection_time_ms",
        f"Time of collections of {collector} GC",
    )


def gc_count_metric(collector: str, namespace: str = DEFAULT_NAMESPACE) -> NodeMetric:
    return NodeMetric.from_path(
        f"jvm.gc.collectors.{collector}.collection_count",
        f"{namespace}_gc_{collector}_collection_count",
        f"Number of collections of {collector} GC",
    )


def raw_metric(path: str, namespace: str = DEFAULT_NAMESPACE) -> NodeMetric:
    """A metric named after its own dotted path."""
    return NodeMetric.from_path(path, f"{namespace}_{path.replace('.', '_')}", path)


def thread_pool_metrics(pool: str, namespace: str = DEFAULT_NAMESPACE) -> List[NodeMetric]:
    return [
        NodeMetric.from_path(
            f"thread_pool.{pool}.{stat}",
            f"{namespace}_thread_pool_{pool}_{stat}",
            "See thread_pool ES doc",
        )
        for stat in THREAD_POOL_STATS
    ]


def total_and_millis_metrics(prefix: str, namespace: str = DEFAULT_NAMESPACE) -> List[NodeMetric]:
    """``<prefix>_total`` and ``<prefix>_time_in_millis``, e.g. ``indices.search.query``."""
    return [
        raw_metric(f"{prefix}_total", namespace),
        raw_metric(f"{prefix}_time_in_millis", namespace),
    ]


def node_metrics(namespace: str = DEFAULT_NAMESPACE) -> List[NodeMetric]:
    metrics = [heap_metric(kind, namespace) for kind in ("used", "committed", "max")]
    for pool in DEFAULT_MEMORY_POOLS:
        metrics.extend(memory_pool_metric(pool, kind, namespace) for kind in ("used", "max"))
    for collector in DEFAULT_GC_COLLECTORS:
        metrics.append(gc_time_metric(collector, namespace))
        metrics.append(gc_count_metric(collector, namespace))
    for pool in DEFAULT_THREAD_POOLS:
        metrics.extend(thread_pool_metrics(pool, namespace))
    metrics.extend(raw_metric(path, namespace) for path in DEFAULT_RAW_PATHS)
    metrics.extend(total_and_millis_metrics("indices.search.query", namespace))
    metrics.extend(total_and_millis_metrics("indices.indexing.index", namespace))
    return metrics


def siren_metrics(namespace: str = DEFAULT_NAMESPACE) -> List[NodeMetric]:
    return [
        NodeMetric.from_path(
            "memory.root_allocator_dump_peak_in_bytes",
            f"{namespace}_siren_federate_memory_peak",
            "Peak memory usage of Siren Federate off-heap storage",
        ),
        NodeMetric.from_path(
            "memory.root_allocator_dump_limit_in_bytes",
            f"{namespace}_siren_federate_memory_limit",
            "Memory limit of Siren Federate off-heap storage",
        ),
        NodeMetric.from_path(
            "license_validation.is_valid",
            f"{namespace}_siren_license_valid",
            "Siren license validation status (1 if valid, 0 if invalid)",
            transform=BOOLEAN,
        ),
    ]


def cluster_health_metrics(namespace: str = DEFAULT_NAMESPACE) -> List[MetricDefinition]:
    status = MetricDescriptor(
        f"{namespace}_cluster_health_status",
        "Whether the cluster health status is the labelled color",
        ("color",),
    )
    # One indicator per color, all sharing the status path and gauge name.
    definitions = [
        MetricDefinition.from_path(
            "status",
            status.name,
            status.help,
            transform=CategoricalEquals(color),
            labels={"color": color},
        )
        for color in HEALTH_STATUSES
    ]
    definitions.extend(
        MetricDefinition.from_path(field, f"{namespace}_cluster_health_{field}", description)
        for field, description in HEALTH_FIELDS.items()
    )
    return definitions


def _millis_to_seconds(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected milliseconds, got {value!r}")
    return value / 1000.0


def snapshot_metrics(namespace: str = DEFAULT_NAMESPACE) -> List[MetricDefinition]:
    """Status of the most recent snapshot of ``GET /_snapshot/<repo>/_all``."""
    seconds = Custom(_millis_to_seconds)
    return [
        MetricDefinition.from_path(
            "snapshots[-1].state",
            f"{namespace}_snapshot_last_successful",
            "Indicates whether the last snapshot was successful (1 for success, 0 for failure)",
            transform=CategoricalEquals("SUCCESS"),
        ),
        MetricDefinition.from_path(
            "snapshots[-1].start_time_in_millis",
            f"{namespace}_snapshot_last_start_timestamp",
            "Unix timestamp of the last snapshot start time",
            transform=seconds,
        ),
        MetricDefinition.from_path(
            "snapshots[-1].duration_in_millis",
            f"{namespace}_snapshot_last_duration_seconds",
            "Duration in seconds of the last snapshot",
            transform=seconds,
        ),
    ]
