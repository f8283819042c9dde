import argparse
import logging
import sys
from typing import List, Optional

from kubernetes_mcp.config import ServerConfig
from kubernetes_mcp.errors import ConfigurationError
from kubernetes_mcp.k8s_config import KubeconfigSource
from kubernetes_mcp.registry import ClusterRegistry
from kubernetes_mcp.server import create_server, run_server

logger = logging.getLogger("mcp-server")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="kubernetes-mcp",
        description="Read-only MCP server for listing, describing and debugging Kubernetes resources",
    )
    parser.add_argument("--kubeconfig", help="Path to a kubeconfig file (default: $KUBECONFIG or ~/.kube/config)")
    parser.add_argument("--transport", choices=ServerConfig.TRANSPORTS, help="MCP transport (default: stdio)")
    parser.add_argument("--host", help="Bind address for http/sse transports")
    parser.add_argument("--port", type=int, help="Bind port for http/sse transports")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        cfg = ServerConfig.from_env().with_overrides(
            kubeconfig=args.kubeconfig,
            transport=args.transport,
            host=args.host,
            port=args.port,
            log_level=args.log_level.upper() if args.log_level else None,
        )
    except ConfigurationError as e:
        print(f"kubernetes-mcp: {e}", file=sys.stderr)
        return 2

    # stdout carries the stdio transport, so logs go to stderr.
    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        registry = ClusterRegistry(KubeconfigSource(cfg.kubeconfig))
    except ConfigurationError as e:
        logger.error(f"Error creating Kubernetes client registry: {e}")
        return 1

    run_server(create_server(registry), cfg)
    return 0


if __name__ == "__main__":
    sys.exit(main())
