"""Per-context connection cache shared by every tool.

Connections are built lazily the first time a context is requested and kept
for the life of the process. Lookups of an already-built connection take the
shared side of a reader/writer lock; building one takes the exclusive side,
which also serialises first-time construction across different contexts.
Construction is rare (once per configured context) so that is accepted.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

from kubernetes_mcp.errors import ClusterConnectionError, ConfigurationError
from kubernetes_mcp.k8s_config import ClusterConnection, KubeconfigSource, build_connection

logger = logging.getLogger("mcp-server")

ConnectionFactory = Callable[[str, KubeconfigSource], ClusterConnection]


class ReadWriteLock:
    """Many readers or one writer; a waiting writer blocks new readers."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def _pick_default_context(contexts, current_context: Optional[str]) -> str:
    if current_context:
        return current_context
    for name in contexts:
        return name
    raise ConfigurationError("no contexts found in kubeconfig")


class ClusterRegistry:
    """Builds, caches and hands out one ClusterConnection per context name."""

    def __init__(self, source: Optional[KubeconfigSource] = None, factory: ConnectionFactory = build_connection):
        self._source = source if source is not None else KubeconfigSource()
        self._factory = factory
        self._connections: Dict[str, ClusterConnection] = {}
        self._lock = ReadWriteLock()

        snapshot = self._source.load()
        self._default_context = _pick_default_context(snapshot.contexts, snapshot.current_context)
        logger.info(f"Default Kubernetes context: {self._default_context}")

    def default_context(self) -> str:
        return self._default_context

    def get_connection(self, context: str = "") -> ClusterConnection:
        name = context or self._default_context

        with self._lock.read_locked():
            connection = self._connections.get(name)
        if connection is not None:
            return connection

        with self._lock.write_locked():
            # Another caller may have built it while we waited.
            connection = self._connections.get(name)
            if connection is not None:
                return connection
            try:
                connection = self._factory(name, self._source)
            except Exception as exc:
                logger.error(f"Error creating client for context '{name}': {exc}")
                raise ClusterConnectionError(name, exc) from exc
            self._connections[name] = connection
            logger.info(f"Created client for context '{name}'")
            return connection

    def list_contexts(self) -> List[str]:
        """Context names currently in the kubeconfig; re-read on every call."""
        return list(self._source.load().contexts)

    def cached_contexts(self) -> List[str]:
        with self._lock.read_locked():
            return list(self._connections)
