from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from mcp.types import ToolAnnotations

from kubernetes_mcp.errors import ValidationError
from kubernetes_mcp.registry import ClusterRegistry
from kubernetes_mcp.tools.common import error_response, isoformat
from kubernetes_mcp.validation import (
    parse_duration,
    parse_rfc3339,
    validate_event_type,
    validate_namespace,
    validate_resource_name,
    validate_timeout,
)

DEFAULT_EVENT_LIMIT = 100
DEFAULT_TIMEOUT_SECONDS = 30


def event_timestamp(event: Any) -> Optional[datetime]:
    """When the event last happened; newer events only fill event_time."""
    return event.last_timestamp or getattr(event, "event_time", None) or event.first_timestamp


def event_cutoff(since: str = "", since_time: str = "", now: Optional[datetime] = None) -> Optional[datetime]:
    """since_time wins over since; None means no time filter."""
    if not since_time and not since:
        return None
    now = now or datetime.now(timezone.utc)
    if since_time:
        cutoff = parse_rfc3339(since_time)
    else:
        cutoff = now - parse_duration(since)
    if cutoff >= now:
        raise ValidationError("since/since_time must point to the past")
    return cutoff


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def filter_events(
    events: Iterable[Any],
    event_type: str = "",
    reason: str = "",
    cutoff: Optional[datetime] = None,
) -> List[Any]:
    kept: List[Any] = []
    reason_lower = reason.lower()
    for event in events:
        if event_type and (event.type or "").lower() != event_type.lower():
            continue
        if reason_lower and reason_lower not in (event.reason or "").lower():
            continue
        if cutoff is not None:
            when = event_timestamp(event)
            if when is None or _aware(when) <= cutoff:
                continue
        kept.append(event)
    return kept


def format_event(event: Any) -> Dict[str, Any]:
    namespace = event.metadata.namespace if event.metadata else None
    info: Dict[str, Any] = {
        "firstTimestamp": isoformat(event.first_timestamp),
        "lastTimestamp": isoformat(event_timestamp(event)),
        "count": event.count or 1,
        "type": event.type,
        "reason": event.reason,
        "message": event.message,
        "namespace": namespace,
    }

    involved = event.involved_object
    if involved is not None and involved.kind and involved.name:
        info["object"] = f"{involved.kind}/{involved.name}"
        if involved.namespace and involved.namespace != namespace:
            info["object"] = f"{involved.namespace}/{involved.kind}/{involved.name}"

    source = event.source
    if source is not None and source.component:
        info["source"] = source.component
        if source.host:
            info["source"] = f"{source.component} ({source.host})"
    return info


def register_event_tools(server, registry: ClusterRegistry):
    """Register list_events."""

    @server.tool(
        annotations=ToolAnnotations(
            title="List Kubernetes Events",
            readOnlyHint=True,
        ),
    )
    def list_events(
        namespace: str = "",
        object: str = "",
        event_type: str = "",
        reason: str = "",
        since: str = "",
        since_time: str = "",
        limit: int = DEFAULT_EVENT_LIMIT,
        timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
        context: str = ""
    ) -> Dict[str, Any]:
        """List Kubernetes events with filtering, for debugging and monitoring.

        Args:
            namespace: Namespace to list events from (empty = all namespaces)
            object: Only events about the object with this name (pod, deployment, ...)
            event_type: "Normal" or "Warning" (case-insensitive)
            reason: Substring of the event reason (e.g., "Failed", "BackOff", "FailedScheduling")
            since: Only events newer than a relative duration like "5m", "1h", "24h"
            since_time: Only events after an RFC3339 time (overrides since)
            limit: Maximum number of events fetched from the API (0 = no limit)
            timeout_seconds: Server-side timeout for the list call
            context: Kubernetes context (uses current if not specified)
        """
        try:
            validate_namespace(namespace)
            if object:
                validate_resource_name(object)
            if event_type:
                event_type = validate_event_type(event_type)
            cutoff = event_cutoff(since, since_time)

            kwargs: Dict[str, Any] = {
                "timeout_seconds": validate_timeout(timeout_seconds, DEFAULT_TIMEOUT_SECONDS),
            }
            if object:
                kwargs["field_selector"] = f"involvedObject.name={object}"
            if limit and limit > 0:
                kwargs["limit"] = int(limit)

            connection = registry.get_connection(context)
            core = connection.core_v1()
            if namespace:
                event_list = core.list_namespaced_event(namespace=namespace, **kwargs)
            else:
                event_list = core.list_event_for_all_namespaces(**kwargs)

            events = [format_event(e) for e in filter_events(event_list.items or [], event_type, reason, cutoff)]
            return {
                "success": True,
                "context": connection.context,
                "namespace": namespace or "all",
                "total": len(events),
                "events": events,
                "filters": {
                    "object": object,
                    "eventType": event_type,
                    "reason": reason,
                    "since": since,
                    "sinceTime": since_time,
                },
            }
        except Exception as e:
            return error_response("listing events", e, context)
