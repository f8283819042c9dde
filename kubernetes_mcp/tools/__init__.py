from kubernetes_mcp.tools.contexts import register_context_tools
from kubernetes_mcp.tools.events import register_event_tools
from kubernetes_mcp.tools.pods import register_pod_tools
from kubernetes_mcp.tools.resources import register_resource_tools

__all__ = [
    "register_context_tools",
    "register_event_tools",
    "register_pod_tools",
    "register_resource_tools",
]
