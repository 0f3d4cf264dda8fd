"""Shared test fixtures for all test modules."""

import json
import threading
from typing import Any, Callable, Dict, List

import httpx
import pytest

from es_exporter.services.source import DocumentSource

CLUSTER_HEALTH = {
    "cluster_name": "testcluster",
    "status": "yellow",
    "timed_out": False,
    "number_of_nodes": 3,
    "number_of_data_nodes": 3,
    "active_primary_shards": 5,
    "active_shards": 7,
    "relocating_shards": 0,
    "initializing_shards": 0,
    "unassigned_shards": 1,
    "delayed_unassigned_shards": 0,
    "number_of_pending_tasks": 0,
    "number_of_in_flight_fetch": 0,
    "task_max_waiting_in_queue_millis": 0,
    "active_shards_percent_as_number": 87.5,
}


def node(host: str, heap_used: int = 104857600) -> Dict[str, Any]:
    return {
        "name": host,
        "host": host,
        "jvm": {
            "mem": {"heap_used_in_bytes": heap_used, "heap_max_in_bytes": 1073741824},
            "gc": {"collectors": {"young": {"collection_count": 12, "collection_time_in_millis": 340}}},
        },
        "thread_pool": {"search": {"threads": 4, "queue": 0, "active": 1, "rejected": 2}},
    }


class FakeElasticsearch:
    """Serves canned JSON per path through ``httpx.MockTransport``.

    A route value may be a JSON-able object, an ``httpx.Response``, or an
    exception instance to raise.
    """

    def __init__(self, routes: Dict[str, Any]) -> None:
        self.routes = routes
        self.requests: List[httpx.Request] = []
        self._lock = threading.Lock()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"error": "not found"})
        if isinstance(route, Exception):
            raise route
        if isinstance(route, httpx.Response):
            return route
        if callable(route):
            return route(request)
        return httpx.Response(200, content=json.dumps(route).encode())

    def count(self, path: str) -> int:
        with self._lock:
            return sum(1 for request in self.requests if request.url.path == path)


@pytest.fixture
def make_source() -> Callable[..., DocumentSource]:
    created: List[DocumentSource] = []

    def factory(es: FakeElasticsearch, **kwargs: Any) -> DocumentSource:
        source = DocumentSource("http://es.test:9200/", transport=httpx.MockTransport(es), **kwargs)
        created.append(source)
        return source

    yield factory
    for source in created:
        source.close()
