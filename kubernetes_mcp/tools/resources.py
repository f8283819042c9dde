"""Generic resource tools that work for any kind the cluster serves.

Tools:
    list_resources     - List instances of a kind, or discover the kinds in an API group
    describe_resource  - Show one object, similar to ``kubectl describe``

Kinds are resolved against the cluster's discovery data, so built-in types,
their short names ("po", "deploy") and CRDs ("HelmRelease", "hr") all work.
"""

from typing import Any, Dict, List, Optional

from kubernetes.client import ApiException
from mcp.types import ToolAnnotations

from kubernetes_mcp.errors import ResourceNotFoundError, ValidationError
from kubernetes_mcp.models import ResolvedMatch
from kubernetes_mcp.registry import ClusterRegistry
from kubernetes_mcp.resolver import (
    ALL_KINDS,
    resolve_by_group_substring,
    resolve_by_kind,
    resolve_kind_in_group,
)
from kubernetes_mcp.tools.common import error_response
from kubernetes_mcp.validation import (
    validate_kind,
    validate_label_selector,
    validate_namespace,
    validate_resource_name,
    validate_timeout,
)

DEFAULT_TIMEOUT_SECONDS = 30

# Annotations added by tooling that only add noise to a description.
_NOISY_ANNOTATION_PREFIXES = ("kubectl.kubernetes.io/last-applied-configuration",)


def _match_kind(match: ResolvedMatch) -> Optional[str]:
    return match.descriptor.kind if match.descriptor else None


def summarize_item(item: Dict[str, Any], default_kind: Optional[str] = None) -> Dict[str, Any]:
    """Reduce a listed object to its name, namespace, kind and status."""
    metadata = item.get("metadata") or {}
    summary: Dict[str, Any] = {
        "name": metadata.get("name"),
        "kind": item.get("kind") or default_kind,
    }
    if metadata.get("namespace"):
        summary["namespace"] = metadata["namespace"]
    status = item.get("status")
    if isinstance(status, dict) and status:
        summary["status"] = status
    return summary


def describe_object(obj: Dict[str, Any], default_kind: Optional[str] = None) -> Dict[str, Any]:
    metadata = obj.get("metadata") or {}
    annotations = {
        k: v
        for k, v in (metadata.get("annotations") or {}).items()
        if not k.startswith(_NOISY_ANNOTATION_PREFIXES)
    }
    description: Dict[str, Any] = {
        "name": metadata.get("name"),
        "namespace": metadata.get("namespace"),
        "kind": obj.get("kind") or default_kind,
        "apiVersion": obj.get("apiVersion"),
        "labels": metadata.get("labels") or {},
        "annotations": annotations,
        "creationTimestamp": metadata.get("creationTimestamp"),
        "resourceVersion": metadata.get("resourceVersion"),
        "uid": metadata.get("uid"),
    }
    if isinstance(obj.get("spec"), dict):
        description["spec"] = obj["spec"]
    if isinstance(obj.get("status"), dict):
        description["status"] = obj["status"]
    if metadata.get("ownerReferences"):
        description["ownerReferences"] = metadata["ownerReferences"]
    if metadata.get("finalizers"):
        description["finalizers"] = metadata["finalizers"]
    return description


def _discovery_result(context: str, group_filter: str, matches: List[ResolvedMatch]) -> Dict[str, Any]:
    label = group_filter or "*"
    if not matches:
        message = f"No resources found for group filter '{label}'"
    else:
        message = f"Found {len(matches)} resource types matching group filter '{label}'"
    return {
        "success": True,
        "context": context,
        "groupFilter": group_filter,
        "discoveredTypes": [m.to_dict() for m in matches],
        "totalFound": len(matches),
        "message": message,
    }


def register_resource_tools(server, registry: ClusterRegistry):
    """Register list_resources and describe_resource."""

    @server.tool(
        annotations=ToolAnnotations(
            title="List Kubernetes Resources",
            readOnlyHint=True,
        ),
    )
    def list_resources(
        kind: str = "",
        group_filter: str = "",
        namespace: str = "",
        label_selector: str = "",
        field_selector: str = "",
        limit: int = 0,
        timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
        show_details: bool = False,
        context: str = ""
    ) -> Dict[str, Any]:
        """List Kubernetes resources of any kind with their status.

        The kind is matched against the cluster's API discovery data by
        Kind ("Deployment"), plural ("deployments") or short name ("deploy"),
        case-insensitively. CRDs work the same way ("HelmRelease", "hr").

        To see what a project installed, pass a group_filter such as "flux",
        "argo" or "istio" with kind "all" (or empty): the tool then returns
        the matching resource types instead of listing objects. With both a
        group_filter and a kind, the kind is only looked up in those groups.

        Args:
            kind: Resource kind, plural or short name; "all" to discover types
            group_filter: Substring of the API group/version to restrict to
            namespace: Namespace to list (empty = all namespaces)
            label_selector: Label selector (e.g., "app=nginx,tier!=frontend")
            field_selector: Field selector (e.g., "spec.nodeName=node1")
            limit: Maximum number of objects to return (0 = no limit)
            timeout_seconds: Server-side timeout for the list call
            show_details: Return complete objects instead of name and status
            context: Kubernetes context (uses current if not specified)
        """
        try:
            if kind:
                validate_kind(kind)
            elif not group_filter:
                raise ValidationError("kind must be provided when group_filter is not specified")
            validate_namespace(namespace)
            validate_label_selector(label_selector)
            timeout_seconds = validate_timeout(timeout_seconds, DEFAULT_TIMEOUT_SECONDS)

            connection = registry.get_connection(context)
            resource_lists = connection.discovery().preferred_resources()

            if kind in ("", ALL_KINDS):
                matches = resolve_by_group_substring(resource_lists, group_filter)
                return _discovery_result(connection.context, group_filter, matches)

            if group_filter:
                match = resolve_kind_in_group(resource_lists, group_filter, kind)
            else:
                match = resolve_by_kind(resource_lists, kind)

            locator = match.to_locator()
            handle = connection.resource(locator, match.namespaced, namespace)
            raw = handle.list(
                label_selector=label_selector,
                field_selector=field_selector,
                limit=limit,
                timeout_seconds=timeout_seconds,
            )
            items = raw.get("items") or []

            result: Dict[str, Any] = {
                "success": True,
                "context": connection.context,
                "resource": str(locator),
                "kind": _match_kind(match),
                "namespaced": match.namespaced,
                "namespace": (namespace or "all") if match.namespaced else None,
                "count": len(items),
            }
            if show_details:
                result["items"] = items
            else:
                result["items"] = [summarize_item(item, _match_kind(match)) for item in items]

            continue_token = (raw.get("metadata") or {}).get("continue")
            if continue_token:
                result["continue"] = continue_token
            return result
        except Exception as e:
            return error_response("listing resources", e, context)

    @server.tool(
        annotations=ToolAnnotations(
            title="Describe Kubernetes Resource",
            readOnlyHint=True,
        ),
    )
    def describe_resource(
        kind: str,
        name: str,
        namespace: str = "",
        context: str = ""
    ) -> Dict[str, Any]:
        """Describe a specific Kubernetes resource by kind and name.

        Returns metadata, spec, status, owner references and finalizers,
        similar to `kubectl describe`. When the namespace is left empty for a
        namespaced kind, all namespaces are searched for the name.

        Args:
            kind: Resource kind, plural or short name (e.g., "Pod", "deploy", "hr")
            name: Name of the object
            namespace: Namespace of the object (empty = search all namespaces)
            context: Kubernetes context (uses current if not specified)
        """
        try:
            validate_kind(kind)
            if kind == ALL_KINDS:
                raise ValidationError("describe_resource needs a specific kind, not 'all'")
            validate_resource_name(name)
            validate_namespace(namespace)

            connection = registry.get_connection(context)
            match = resolve_by_kind(connection.discovery().preferred_resources(), kind)
            handle = connection.resource(match.to_locator(), match.namespaced, namespace)

            if match.namespaced and not namespace:
                found = handle.list(field_selector=f"metadata.name={name}").get("items") or []
                if not found:
                    raise ResourceNotFoundError(f"{_match_kind(match)} '{name}' not found in any namespace")
                if len(found) > 1:
                    namespaces = sorted((i.get("metadata") or {}).get("namespace") or "" for i in found)
                    raise ValidationError(
                        f"{_match_kind(match)} '{name}' exists in several namespaces ({', '.join(namespaces)}); "
                        "pass namespace to pick one"
                    )
                obj = found[0]
            else:
                try:
                    obj = handle.get(name)
                except ApiException as exc:
                    if exc.status == 404:
                        where = f"namespace '{namespace}'" if match.namespaced else "cluster"
                        raise ResourceNotFoundError(
                            f"{_match_kind(match)} '{name}' not found in {where}"
                        ) from exc
                    raise

            return {
                "success": True,
                "context": connection.context,
                "resource": str(match.to_locator()),
                "description": describe_object(obj, _match_kind(match)),
            }
        except Exception as e:
            return error_response("describing resource", e, context)
