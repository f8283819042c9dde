import asyncio
import json
from typing import Any, Dict, List, Optional, Sequence
from unittest.mock import MagicMock

import pytest

from kubernetes_mcp.k8s_config import KubeconfigSnapshot
from kubernetes_mcp.models import ResourceDescriptor, ResourceList
from kubernetes_mcp.registry import ClusterRegistry


def make_list(group_version: str, *specs) -> ResourceList:
    """specs: (kind, plural, short_names, namespaced)."""
    group, _, version = group_version.rpartition("/")
    descriptors = tuple(
        ResourceDescriptor(
            group=group,
            version=version,
            plural_name=plural,
            kind=kind,
            short_names=tuple(shorts),
            namespaced=namespaced,
        )
        for kind, plural, shorts, namespaced in specs
    )
    return ResourceList(group_version=group_version, resources=descriptors)


def core_and_apps() -> List[ResourceList]:
    return [
        make_list(
            "v1",
            ("Pod", "pods", ["po"], True),
            ("Namespace", "namespaces", ["ns"], False),
        ),
        make_list("apps/v1", ("Deployment", "deployments", [], True)),
    ]


class FakeDiscovery:
    def __init__(self, resource_lists: Sequence[ResourceList], error: Optional[Exception] = None):
        self.resource_lists = list(resource_lists)
        self.error = error

    def preferred_resources(self) -> List[ResourceList]:
        if self.error is not None:
            raise self.error
        return self.resource_lists


class FakeHandle:
    def __init__(self, items: Optional[List[Dict[str, Any]]] = None, obj: Optional[Dict[str, Any]] = None,
                 get_error: Optional[Exception] = None, list_metadata: Optional[Dict[str, Any]] = None):
        self.items = items or []
        self.obj = obj
        self.get_error = get_error
        self.list_metadata = list_metadata or {}
        self.list_calls: List[Dict[str, Any]] = []
        self.get_calls: List[str] = []

    def list(self, **kwargs) -> Dict[str, Any]:
        self.list_calls.append(kwargs)
        return {"items": self.items, "metadata": self.list_metadata}

    def get(self, name: str) -> Dict[str, Any]:
        self.get_calls.append(name)
        if self.get_error is not None:
            raise self.get_error
        return self.obj


class FakeConnection:
    def __init__(self, context: str, resource_lists: Sequence[ResourceList] = (),
                 handle: Optional[FakeHandle] = None, discovery_error: Optional[Exception] = None):
        self.context = context
        self._discovery = FakeDiscovery(resource_lists, discovery_error)
        self.handle = handle or FakeHandle()
        self.resource_calls: List[tuple] = []
        self.core = MagicMock()

    def discovery(self) -> FakeDiscovery:
        return self._discovery

    def resource(self, locator, namespaced, namespace=""):
        self.resource_calls.append((locator, namespaced, namespace))
        return self.handle

    def core_v1(self):
        return self.core


class FakeSource:
    def __init__(self, contexts: Sequence[str] = ("dev", "prod"), current: Optional[str] = "dev"):
        self.contexts = list(contexts)
        self.current = current
        self.loads = 0

    def load(self) -> KubeconfigSnapshot:
        self.loads += 1
        return KubeconfigSnapshot(contexts=tuple(self.contexts), current_context=self.current)


def registry_with(*connections: FakeConnection, source: Optional[FakeSource] = None) -> ClusterRegistry:
    by_name = {c.context: c for c in connections}
    source = source or FakeSource(contexts=list(by_name), current=connections[0].context)
    return ClusterRegistry(source=source, factory=lambda name, _src: by_name[name])


def call_tool(server, name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
    result = asyncio.run(server.call_tool(name, arguments))
    return json.loads(result.content[0].text)


@pytest.fixture
def resource_lists() -> List[ResourceList]:
    return core_and_apps()
