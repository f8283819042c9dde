"""Unit tests for list_resources and describe_resource."""

import json

import pytest
from fastmcp import FastMCP
from kubernetes.client import ApiException

from conftest import FakeConnection, FakeHandle, call_tool, core_and_apps, make_list, registry_with
from kubernetes_mcp.errors import DiscoveryError
from kubernetes_mcp.tools.resources import describe_object, register_resource_tools, summarize_item


def _server(*connections):
    server = FastMCP(name="test")
    register_resource_tools(server, registry_with(*connections))
    return server


def _pod(name, namespace="default", phase="Running"):
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {"containers": [{"name": "app", "image": "nginx"}]},
        "status": {"phase": phase},
    }


class TestHelpers:

    @pytest.mark.unit
    def test_summarize_item(self):
        assert summarize_item(_pod("web-1")) == {
            "name": "web-1",
            "kind": "Pod",
            "namespace": "default",
            "status": {"phase": "Running"},
        }

    @pytest.mark.unit
    def test_summarize_item_without_kind_or_status(self):
        summary = summarize_item({"metadata": {"name": "web"}}, default_kind="Deployment")
        assert summary == {"name": "web", "kind": "Deployment"}

    @pytest.mark.unit
    def test_describe_object_drops_last_applied(self):
        obj = _pod("web-1")
        obj["metadata"]["annotations"] = {
            "kubectl.kubernetes.io/last-applied-configuration": "{...}",
            "team": "payments",
        }
        obj["metadata"]["ownerReferences"] = [{"kind": "ReplicaSet", "name": "web-abc"}]
        description = describe_object(obj)
        assert description["annotations"] == {"team": "payments"}
        assert description["ownerReferences"][0]["kind"] == "ReplicaSet"
        assert description["spec"]["containers"][0]["image"] == "nginx"
        assert "finalizers" not in description


class TestListResources:

    @pytest.mark.unit
    def test_lists_pods_by_short_name(self):
        handle = FakeHandle(items=[_pod("web-1"), _pod("web-2", phase="Pending")])
        conn = FakeConnection("dev", core_and_apps(), handle)

        data = call_tool(_server(conn), "list_resources", {
            "kind": "po",
            "namespace": "default",
            "label_selector": "app=web",
        })

        assert data["success"] is True
        assert data["context"] == "dev"
        assert data["resource"] == "pods/v1"
        assert data["kind"] == "Pod"
        assert data["namespace"] == "default"
        assert data["count"] == 2
        assert [i["name"] for i in data["items"]] == ["web-1", "web-2"]
        assert data["items"][1]["status"] == {"phase": "Pending"}

        locator, namespaced, namespace = conn.resource_calls[0]
        assert (str(locator), namespaced, namespace) == ("pods/v1", True, "default")
        assert handle.list_calls == [{
            "label_selector": "app=web",
            "field_selector": "",
            "limit": 0,
            "timeout_seconds": 30,
        }]

    @pytest.mark.unit
    def test_all_namespaces_and_continue_token(self):
        handle = FakeHandle(items=[_pod("web-1")], list_metadata={"continue": "abc123"})
        conn = FakeConnection("dev", core_and_apps(), handle)

        data = call_tool(_server(conn), "list_resources", {"kind": "Deployment", "limit": 1})

        assert data["resource"] == "deployments.apps/v1"
        assert data["namespace"] == "all"
        assert data["continue"] == "abc123"
        assert handle.list_calls[0]["limit"] == 1

    @pytest.mark.unit
    def test_cluster_scoped_kind_has_no_namespace(self):
        conn = FakeConnection("dev", core_and_apps(), FakeHandle(items=[{"metadata": {"name": "kube-system"}}]))
        data = call_tool(_server(conn), "list_resources", {"kind": "ns", "namespace": "default"})
        assert data["namespaced"] is False
        assert data["namespace"] is None
        assert data["items"] == [{"name": "kube-system", "kind": "Namespace"}]

    @pytest.mark.unit
    def test_show_details_returns_full_objects(self):
        conn = FakeConnection("dev", core_and_apps(), FakeHandle(items=[_pod("web-1")]))
        data = call_tool(_server(conn), "list_resources", {"kind": "pods", "show_details": True})
        assert data["items"][0]["spec"]["containers"][0]["name"] == "app"

    @pytest.mark.unit
    def test_group_filter_discovers_types(self):
        lists = core_and_apps() + [
            make_list("helm.toolkit.fluxcd.io/v2", ("HelmRelease", "helmreleases", ["hr"], True)),
            make_list("source.toolkit.fluxcd.io/v1", ("GitRepository", "gitrepositories", [], True)),
        ]
        conn = FakeConnection("dev", lists)

        data = call_tool(_server(conn), "list_resources", {"kind": "all", "group_filter": "fluxcd"})

        assert data["success"] is True
        assert data["totalFound"] == 2
        assert [t["kind"] for t in data["discoveredTypes"]] == ["HelmRelease", "GitRepository"]
        assert data["discoveredTypes"][0]["shortNames"] == ["hr"]
        assert conn.resource_calls == []

    @pytest.mark.unit
    def test_group_filter_without_kind_discovers_types(self):
        conn = FakeConnection("dev", core_and_apps())
        data = call_tool(_server(conn), "list_resources", {"group_filter": "istio"})
        assert data["success"] is True
        assert data["discoveredTypes"] == []
        assert "No resources found" in data["message"]

    @pytest.mark.unit
    def test_kind_restricted_to_group(self):
        lists = [
            make_list("example.com/v1", ("HumanResource", "humanresources", ["hr"], True)),
            make_list("helm.toolkit.fluxcd.io/v2", ("HelmRelease", "helmreleases", ["hr"], True)),
        ]
        conn = FakeConnection("dev", lists)
        data = call_tool(_server(conn), "list_resources", {"kind": "hr", "group_filter": "fluxcd"})
        assert data["resource"] == "helmreleases.helm.toolkit.fluxcd.io/v2"

    @pytest.mark.unit
    def test_zero_timeout_uses_default(self):
        handle = FakeHandle(items=[])
        conn = FakeConnection("dev", core_and_apps(), handle)
        call_tool(_server(conn), "list_resources", {"kind": "pods", "timeout_seconds": 0})
        assert handle.list_calls[0]["timeout_seconds"] == 30

    @pytest.mark.unit
    def test_negative_timeout_rejected(self):
        handle = FakeHandle(items=[])
        conn = FakeConnection("dev", core_and_apps(), handle)
        data = call_tool(_server(conn), "list_resources", {"kind": "pods", "timeout_seconds": -5})
        assert data["errorType"] == "ValidationError"
        assert handle.list_calls == []

    @pytest.mark.unit
    def test_missing_kind_and_group_filter(self):
        conn = FakeConnection("dev", core_and_apps())
        data = call_tool(_server(conn), "list_resources", {})
        assert data["success"] is False
        assert data["errorType"] == "ValidationError"

    @pytest.mark.unit
    def test_invalid_kind_rejected_before_cluster_access(self):
        conn = FakeConnection("dev", core_and_apps(), discovery_error=DiscoveryError("unreachable"))
        data = call_tool(_server(conn), "list_resources", {"kind": "pods.apps"})
        assert data["errorType"] == "ValidationError"

    @pytest.mark.unit
    def test_unknown_kind_returns_hint(self):
        conn = FakeConnection("dev", core_and_apps())
        data = call_tool(_server(conn), "list_resources", {"kind": "Widget"})
        assert data["success"] is False
        assert data["errorType"] == "ResourceNotFoundError"
        assert "cannot find resource 'Widget'" in data["error"]
        assert "group_filter" in data["hint"]

    @pytest.mark.unit
    def test_discovery_failure(self):
        conn = FakeConnection("dev", discovery_error=DiscoveryError("failed to discover resources: boom"))
        data = call_tool(_server(conn), "list_resources", {"kind": "pods"})
        assert data["errorType"] == "DiscoveryError"
        assert "boom" in data["error"]

    @pytest.mark.unit
    def test_routes_to_requested_context(self):
        dev = FakeConnection("dev", core_and_apps(), FakeHandle(items=[_pod("dev-pod")]))
        prod = FakeConnection("prod", core_and_apps(), FakeHandle(items=[_pod("prod-pod")]))
        server = _server(dev, prod)

        data = call_tool(server, "list_resources", {"kind": "pods", "context": "prod"})
        assert data["context"] == "prod"
        assert data["items"][0]["name"] == "prod-pod"
        assert dev.resource_calls == []

    @pytest.mark.unit
    def test_unknown_context_is_connection_error(self):
        conn = FakeConnection("dev", core_and_apps())
        data = call_tool(_server(conn), "list_resources", {"kind": "pods", "context": "missing"})
        assert data["success"] is False
        assert data["errorType"] == "ClusterConnectionError"
        assert data["context"] == "missing"
        assert "failed to create client for context 'missing'" in data["error"]


class TestDescribeResource:

    @pytest.mark.unit
    def test_describe_in_namespace(self):
        handle = FakeHandle(obj=_pod("web-1", namespace="shop"))
        conn = FakeConnection("dev", core_and_apps(), handle)

        data = call_tool(_server(conn), "describe_resource", {"kind": "pod", "name": "web-1", "namespace": "shop"})

        assert data["success"] is True
        assert data["resource"] == "pods/v1"
        assert data["description"]["name"] == "web-1"
        assert data["description"]["namespace"] == "shop"
        assert data["description"]["status"] == {"phase": "Running"}
        assert handle.get_calls == ["web-1"]

    @pytest.mark.unit
    def test_describe_searches_all_namespaces(self):
        handle = FakeHandle(items=[_pod("web-1", namespace="shop")])
        conn = FakeConnection("dev", core_and_apps(), handle)

        data = call_tool(_server(conn), "describe_resource", {"kind": "pod", "name": "web-1"})

        assert data["success"] is True
        assert data["description"]["namespace"] == "shop"
        assert handle.list_calls == [{"field_selector": "metadata.name=web-1"}]
        assert handle.get_calls == []

    @pytest.mark.unit
    def test_describe_ambiguous_across_namespaces(self):
        handle = FakeHandle(items=[_pod("web-1", namespace="b"), _pod("web-1", namespace="a")])
        conn = FakeConnection("dev", core_and_apps(), handle)
        data = call_tool(_server(conn), "describe_resource", {"kind": "pod", "name": "web-1"})
        assert data["errorType"] == "ValidationError"
        assert "(a, b)" in data["error"]

    @pytest.mark.unit
    def test_describe_missing_in_all_namespaces(self):
        conn = FakeConnection("dev", core_and_apps(), FakeHandle(items=[]))
        data = call_tool(_server(conn), "describe_resource", {"kind": "pod", "name": "ghost"})
        assert data["errorType"] == "ResourceNotFoundError"
        assert "not found in any namespace" in data["error"]

    @pytest.mark.unit
    def test_describe_404(self):
        error = ApiException(status=404, reason="Not Found")
        conn = FakeConnection("dev", core_and_apps(), FakeHandle(get_error=error))
        data = call_tool(_server(conn), "describe_resource", {"kind": "deploy", "name": "ghost", "namespace": "shop"})
        assert data["errorType"] == "ResourceNotFoundError"
        assert "namespace 'shop'" in data["error"]

    @pytest.mark.unit
    def test_describe_forbidden_reports_api_message(self):
        error = ApiException(status=403, reason="Forbidden")
        error.body = json.dumps({"kind": "Status", "message": 'pods "web-1" is forbidden'})
        conn = FakeConnection("dev", core_and_apps(), FakeHandle(get_error=error))
        data = call_tool(_server(conn), "describe_resource", {"kind": "pod", "name": "web-1", "namespace": "shop"})
        assert data["errorType"] == "ApiException"
        assert data["status"] == 403
        assert data["error"] == '403: pods "web-1" is forbidden'

    @pytest.mark.unit
    def test_describe_cluster_scoped(self):
        handle = FakeHandle(obj={"kind": "Namespace", "metadata": {"name": "shop"}})
        conn = FakeConnection("dev", core_and_apps(), handle)
        data = call_tool(_server(conn), "describe_resource", {"kind": "namespace", "name": "shop"})
        assert data["success"] is True
        assert data["description"]["kind"] == "Namespace"
        assert handle.get_calls == ["shop"]

    @pytest.mark.unit
    def test_describe_rejects_all(self):
        conn = FakeConnection("dev", core_and_apps())
        data = call_tool(_server(conn), "describe_resource", {"kind": "all", "name": "web"})
        assert data["errorType"] == "ValidationError"

    @pytest.mark.unit
    def test_describe_rejects_bad_name(self):
        conn = FakeConnection("dev", core_and_apps())
        data = call_tool(_server(conn), "describe_resource", {"kind": "pod", "name": "Web_1"})
        assert data["errorType"] == "ValidationError"
