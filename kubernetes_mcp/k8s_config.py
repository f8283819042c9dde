"""Kubeconfig loading and per-context cluster connections.

Every connection owns an isolated ``ApiClient`` built with
``new_client_from_config`` (or the pod's service account), so connections to
different contexts never share the ``kubernetes`` package's global
configuration.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import yaml
from kubernetes import client, config
from kubernetes.client import ApiException
from kubernetes.config.incluster_config import SERVICE_TOKEN_FILENAME
from urllib3.exceptions import HTTPError

from kubernetes_mcp.errors import ConfigurationError, DiscoveryError, InvalidLocatorError
from kubernetes_mcp.models import ResourceDescriptor, ResourceList, ResourceLocator

logger = logging.getLogger("mcp-server")

IN_CLUSTER_CONTEXT = "in-cluster"
DEFAULT_KUBECONFIG = os.path.join("~", ".kube", "config")

_TRANSPORT_ERRORS = (ApiException, HTTPError, OSError)


def running_in_cluster() -> bool:
    return bool(os.environ.get("KUBERNETES_SERVICE_HOST")) and os.path.exists(SERVICE_TOKEN_FILENAME)


def resolve_kubeconfig_paths(explicit: Optional[str] = None) -> List[str]:
    """Kubeconfig files to read: explicit path, then $KUBECONFIG, then ~/.kube/config."""
    if explicit:
        return [os.path.expanduser(explicit)]
    env_value = os.environ.get("KUBECONFIG", "")
    paths = [os.path.expanduser(p) for p in env_value.split(os.pathsep) if p.strip()]
    if paths:
        return paths
    return [os.path.expanduser(DEFAULT_KUBECONFIG)]


@dataclass(frozen=True)
class KubeconfigSnapshot:
    contexts: Tuple[str, ...]
    current_context: Optional[str]


class KubeconfigSource:
    """Reads context names from kubeconfig files.

    Multiple files (``KUBECONFIG=a:b``) are merged the way kubectl does it:
    the first file that sets a value wins.
    """

    def __init__(self, kubeconfig: Optional[str] = None):
        self.paths = resolve_kubeconfig_paths(kubeconfig)

    def existing_paths(self) -> List[str]:
        return [p for p in self.paths if os.path.isfile(p)]

    @property
    def config_file(self) -> Optional[str]:
        existing = self.existing_paths()
        return os.pathsep.join(existing) if existing else None

    def load(self) -> KubeconfigSnapshot:
        existing = self.existing_paths()
        if not existing:
            if running_in_cluster():
                return KubeconfigSnapshot(contexts=(IN_CLUSTER_CONTEXT,), current_context=IN_CLUSTER_CONTEXT)
            raise ConfigurationError(f"failed to load kubeconfig: no file at {', '.join(self.paths)}")

        contexts: List[str] = []
        current: Optional[str] = None
        for path in existing:
            data = self._read(path)
            for entry in data.get("contexts") or []:
                name = entry.get("name") if isinstance(entry, dict) else None
                if name and name not in contexts:
                    contexts.append(name)
            if current is None and data.get("current-context"):
                current = data["current-context"]
        return KubeconfigSnapshot(contexts=tuple(contexts), current_context=current)

    @staticmethod
    def _read(path: str) -> Dict[str, Any]:
        try:
            with open(path, encoding="utf-8") as fh:
                data = yaml.safe_load(fh)
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"failed to load kubeconfig '{path}': {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"failed to load kubeconfig '{path}': not a mapping")
        return data


def _get_json(
    api_client: client.ApiClient,
    path: str,
    query_params: Optional[List[Tuple[str, Any]]] = None,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    query = list(query_params or [])
    headers = {"Accept": "application/json"}
    if hasattr(api_client, "param_serialize"):
        # Newer generated clients split a call into serialize, send and deserialize.
        request = api_client.param_serialize(
            method="GET",
            resource_path=path,
            query_params=query,
            header_params=headers,
            auth_settings=["BearerToken"],
        )
        response = api_client.call_api(*request, _request_timeout=timeout)
        response.read()
        return api_client.response_deserialize(response, {"2XX": "object", "default": "object"}).data
    return api_client.call_api(
        path,
        "GET",
        query_params=query,
        header_params=headers,
        response_type="object",
        auth_settings=["BearerToken"],
        _return_http_data_only=True,
        _preload_content=True,
        _request_timeout=timeout,
    )


class DiscoveryClient:
    """Lists the resources a cluster serves, preferring each group's preferred version.

    Resources that only exist in a non-preferred version of a group (an older
    beta that was never promoted, a CRD version still being rolled out) are
    reported under that version, the way ``kubectl api-resources`` does.
    """

    def __init__(self, api_client: client.ApiClient):
        self.api_client = api_client

    def preferred_resources(self) -> List[ResourceList]:
        try:
            core = _get_json(self.api_client, "/api")
            groups = _get_json(self.api_client, "/apis")
        except _TRANSPORT_ERRORS as exc:
            raise DiscoveryError(f"failed to discover resources: {exc}") from exc

        group_versions: List[List[str]] = []
        core_versions = [v for v in core.get("versions") or [] if v]
        if core_versions:
            group_versions.append(core_versions)
        for group in groups.get("groups") or []:
            versions = [v.get("groupVersion") for v in group.get("versions") or [] if v.get("groupVersion")]
            preferred = (group.get("preferredVersion") or {}).get("groupVersion")
            if preferred:
                versions = [preferred] + [v for v in versions if v != preferred]
            if versions:
                group_versions.append(versions)

        resource_lists: List[ResourceList] = []
        for versions in group_versions:
            resource_lists.extend(self._group_resources(versions))
        return resource_lists

    def _group_resources(self, versions: List[str]) -> List[ResourceList]:
        """Resources of one group; ``versions`` starts with the preferred one."""
        seen = set()
        lists: List[ResourceList] = []
        for gv in versions:
            path = f"/apis/{gv}" if "/" in gv else f"/api/{gv}"
            try:
                raw = _get_json(self.api_client, path)
            except _TRANSPORT_ERRORS as exc:
                # Aggregated APIs (metrics-server and friends) can be down
                # while the rest of the cluster is fine.
                logger.warning(f"Skipping group version {gv} during discovery: {exc}")
                continue
            descriptors = tuple(
                ResourceDescriptor.from_api_resource(gv, r)
                for r in raw.get("resources") or []
                if "/" not in (r.get("name") or "") and r.get("name") not in seen
            )
            seen.update(d.plural_name for d in descriptors)
            if descriptors or gv == versions[0]:
                lists.append(ResourceList(group_version=gv, resources=descriptors))
        return lists


class ResourceHandle:
    """Generic get/list access to one resource type, as JSON objects."""

    def __init__(self, api_client: client.ApiClient, locator: ResourceLocator, namespaced: bool, namespace: str = ""):
        if locator is None or not locator.is_valid:
            raise InvalidLocatorError(f"cannot build a resource handle for invalid locator {locator!r}")
        self.api_client = api_client
        self.locator = locator
        self.namespaced = namespaced
        self.namespace = namespace if namespaced else ""

    @property
    def collection_path(self) -> str:
        base = self.locator.api_path
        if self.namespace:
            base = f"{base}/namespaces/{self.namespace}"
        return f"{base}/{self.locator.plural_name}"

    def get(self, name: str, timeout_seconds: Optional[int] = None) -> Dict[str, Any]:
        return _get_json(self.api_client, f"{self.collection_path}/{name}", timeout=timeout_seconds)

    def list(
        self,
        label_selector: str = "",
        field_selector: str = "",
        limit: int = 0,
        timeout_seconds: Optional[int] = None,
    ) -> Dict[str, Any]:
        query: List[Tuple[str, Any]] = []
        if label_selector:
            query.append(("labelSelector", label_selector))
        if field_selector:
            query.append(("fieldSelector", field_selector))
        if limit and limit > 0:
            query.append(("limit", int(limit)))
        if timeout_seconds:
            query.append(("timeoutSeconds", int(timeout_seconds)))
        return _get_json(self.api_client, self.collection_path, query_params=query)


class ClusterConnection:
    """Everything the tools need to talk to one cluster."""

    def __init__(self, context: str, api_client: client.ApiClient):
        self.context = context
        self.api_client = api_client

    def discovery(self) -> DiscoveryClient:
        return DiscoveryClient(self.api_client)

    def resource(self, locator: ResourceLocator, namespaced: bool, namespace: str = "") -> ResourceHandle:
        return ResourceHandle(self.api_client, locator, namespaced, namespace)

    def core_v1(self) -> client.CoreV1Api:
        return client.CoreV1Api(self.api_client)

    def __repr__(self) -> str:
        return f"ClusterConnection(context={self.context!r})"


def build_connection(context: str, source: KubeconfigSource) -> ClusterConnection:
    """Create a connection for ``context`` from the pod's service account or the kubeconfig."""
    if context == IN_CLUSTER_CONTEXT and not source.existing_paths():
        configuration = client.Configuration()
        config.load_incluster_config(client_configuration=configuration)
        return ClusterConnection(context, client.ApiClient(configuration))

    config_file = source.config_file
    if config_file is None:
        raise ConfigurationError(f"failed to load kubeconfig for context '{context}': no kubeconfig file found")
    api_client = config.new_client_from_config(config_file=config_file, context=context, persist_config=False)
    return ClusterConnection(context, api_client)
