"""Read-only MCP server for inspecting Kubernetes clusters."""

__version__ = "0.1.0"
