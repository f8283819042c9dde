import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from kubernetes.client import ApiException
from mcp.types import ToolAnnotations

from kubernetes_mcp.errors import ValidationError
from kubernetes_mcp.registry import ClusterRegistry
from kubernetes_mcp.tools.common import api_error_message, error_response, isoformat
from kubernetes_mcp.validation import parse_duration, parse_rfc3339, validate_namespace, validate_resource_name

logger = logging.getLogger("mcp-server")

DEFAULT_TAIL_LINES = 100


def container_state(status: Any) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "name": status.name,
        "ready": bool(status.ready),
        "restartCount": status.restart_count or 0,
    }
    state = status.state
    if state is None:
        return entry
    if state.waiting is not None:
        entry["state"] = "waiting"
        entry["reason"] = state.waiting.reason
        entry["message"] = state.waiting.message
    elif state.running is not None:
        entry["state"] = "running"
        entry["startedAt"] = isoformat(state.running.started_at)
    elif state.terminated is not None:
        entry["state"] = "terminated"
        entry["reason"] = state.terminated.reason
        entry["message"] = state.terminated.message
        entry["exitCode"] = state.terminated.exit_code
    return entry


def pod_status(pod: Any) -> Dict[str, Any]:
    status = pod.status
    return {
        "phase": getattr(status, "phase", None),
        "reason": getattr(status, "reason", None),
        "message": getattr(status, "message", None),
    }


def log_options(
    container: str = "",
    tail: int = DEFAULT_TAIL_LINES,
    since: str = "",
    since_time: str = "",
    timestamps: bool = False,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Keyword arguments for CoreV1Api.read_namespaced_pod_log.

    The API accepts only one of sinceSeconds/sinceTime and the Python client
    exposes only sinceSeconds, so since_time is converted relative to now and
    wins over since.
    """
    options: Dict[str, Any] = {"timestamps": bool(timestamps)}
    if container:
        options["container"] = container
    if tail and tail > 0:
        options["tail_lines"] = int(tail)

    seconds = None
    if since_time:
        now = now or datetime.now(timezone.utc)
        seconds = (now - parse_rfc3339(since_time)).total_seconds()
    elif since:
        seconds = parse_duration(since).total_seconds()
    if seconds is not None:
        if seconds <= 0:
            raise ValidationError("since/since_time must point to the past")
        options["since_seconds"] = max(1, int(seconds))
    return options


def register_pod_tools(server, registry: ClusterRegistry):
    """Register get_pod_logs."""

    @server.tool(
        annotations=ToolAnnotations(
            title="Get Pod Logs",
            readOnlyHint=True,
        ),
    )
    def get_pod_logs(
        name: str,
        namespace: str = "default",
        container: str = "",
        tail: int = DEFAULT_TAIL_LINES,
        since: str = "",
        since_time: str = "",
        timestamps: bool = False,
        previous: bool = False,
        context: str = ""
    ) -> Dict[str, Any]:
        """Get logs from a pod together with its container states.

        If the current container's logs cannot be read (e.g. it is crash
        looping), the logs of the previous instance are fetched instead and
        the response says so in "source".

        Args:
            name: Pod name
            namespace: Pod namespace (defaults to "default")
            container: Container name (required for multi-container pods)
            tail: Lines from the end of the log (0 = whole log)
            since: Only logs newer than a relative duration like "5s", "2m", "3h"
            since_time: Only logs after an RFC3339 time (overrides since)
            timestamps: Prefix each line with its timestamp
            previous: Read the previous (terminated) container instance
            context: Kubernetes context (uses current if not specified)
        """
        try:
            validate_resource_name(name)
            namespace = namespace or "default"
            validate_namespace(namespace)
            options = log_options(container, tail, since, since_time, timestamps)

            connection = registry.get_connection(context)
            core = connection.core_v1()
            pod = core.read_namespaced_pod(name=name, namespace=namespace)

            statuses: List[Dict[str, Any]] = [
                container_state(s) for s in (getattr(pod.status, "container_statuses", None) or [])
            ]
            result: Dict[str, Any] = {
                "success": True,
                "context": connection.context,
                "pod": name,
                "namespace": namespace,
                "podStatus": pod_status(pod),
                "containerStatuses": statuses,
            }

            try:
                result["logs"] = core.read_namespaced_pod_log(
                    name=name, namespace=namespace, previous=previous, **options
                )
                result["source"] = "previous" if previous else "current"
            except ApiException as exc:
                if previous:
                    result["logs"] = ""
                    result["logError"] = f"failed to stream pod logs: {api_error_message(exc)}"
                    return result
                logger.info(f"Current logs of {namespace}/{name} unavailable, trying previous instance: {exc.reason}")
                try:
                    result["logs"] = core.read_namespaced_pod_log(
                        name=name, namespace=namespace, previous=True, **options
                    )
                    result["source"] = "previous"
                except ApiException as prev_exc:
                    result["logs"] = ""
                    result["logError"] = (
                        f"failed to get both current and previous logs: {api_error_message(prev_exc)}"
                    )
            return result
        except Exception as e:
            return error_response(f"getting logs for pod '{name}'", e, context)
