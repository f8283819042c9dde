import logging

from fastmcp import FastMCP

from kubernetes_mcp import __version__
from kubernetes_mcp.config import ServerConfig
from kubernetes_mcp.registry import ClusterRegistry
from kubernetes_mcp.tools import (
    register_context_tools,
    register_event_tools,
    register_pod_tools,
    register_resource_tools,
)

logger = logging.getLogger("mcp-server")

SERVER_NAME = "kubernetes-mcp"


def create_server(registry: ClusterRegistry) -> FastMCP:
    """Build the MCP server with every inspection tool bound to ``registry``."""
    server = FastMCP(name=SERVER_NAME, version=__version__)
    register_resource_tools(server, registry)
    register_pod_tools(server, registry)
    register_event_tools(server, registry)
    register_context_tools(server, registry)
    return server


def run_server(server: FastMCP, cfg: ServerConfig) -> None:
    if cfg.transport == "stdio":
        logger.info("Starting MCP server on stdio")
        server.run(transport="stdio")
        return
    logger.info(f"Starting MCP server on {cfg.transport}://{cfg.host}:{cfg.port}")
    server.run(transport=cfg.transport, host=cfg.host, port=cfg.port)
