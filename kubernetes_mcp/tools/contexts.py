from typing import Any, Dict

from mcp.types import ToolAnnotations

from kubernetes_mcp.registry import ClusterRegistry
from kubernetes_mcp.tools.common import error_response


def register_context_tools(server, registry: ClusterRegistry):
    """Register list_contexts."""

    @server.tool(
        annotations=ToolAnnotations(
            title="List Kubernetes Contexts",
            readOnlyHint=True,
        ),
    )
    def list_contexts() -> Dict[str, Any]:
        """List every context in the kubeconfig.

        Any of these names can be passed as `context` to the other tools.
        The kubeconfig is re-read on each call, so contexts added after the
        server started show up here. `connected` marks contexts this server
        has already opened a client for.
        """
        try:
            current = registry.default_context()
            connected = set(registry.cached_contexts())
            names = sorted(registry.list_contexts())
            return {
                "success": True,
                "currentContext": current,
                "total": len(names),
                "contexts": [
                    {"name": n, "isCurrent": n == current, "connected": n in connected}
                    for n in names
                ],
            }
        except Exception as e:
            return error_response("listing contexts", e)
