"""Exception hierarchy for the resolver, the registry and the tools."""


class KubernetesMCPError(Exception):
    """Base class for every error raised by kubernetes_mcp."""


class ResourceNotFoundError(KubernetesMCPError):
    """No discovered resource matches the requested kind."""


class InvalidLocatorError(ResourceNotFoundError):
    """A resource matched but does not yield a usable group/version/plural."""


class ConfigurationError(KubernetesMCPError):
    """The kubeconfig source has no usable default context."""


class ClusterConnectionError(KubernetesMCPError):
    """Building a connection for a context failed."""

    def __init__(self, context: str, cause: BaseException):
        super().__init__(f"failed to create client for context '{context}': {cause}")
        self.context = context
        self.cause = cause


class DiscoveryError(KubernetesMCPError):
    """The cluster's discovery endpoints could not be read."""


class ValidationError(KubernetesMCPError, ValueError):
    """A tool argument is malformed."""
