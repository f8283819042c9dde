"""Plain data records shared by the resolver, the registry and the tools.

Discovery turns each group/version a cluster advertises into a
``ResourceList`` of ``ResourceDescriptor`` records. The resolver picks a
``ResolvedMatch`` out of those lists, and the match is turned into the
``ResourceLocator`` used to address the resource over the wire.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


def split_group_version(group_version: str) -> Tuple[str, str]:
    """Split "group/version" into its parts.

    A string without "/" names the core group, so "v1" -> ("", "v1").
    """
    if "/" not in group_version:
        return "", group_version
    group, version = group_version.split("/", 1)
    return group, version


@dataclass(frozen=True)
class ResourceDescriptor:
    group: str
    version: str
    plural_name: str
    kind: str
    short_names: Tuple[str, ...] = ()
    namespaced: bool = False

    @classmethod
    def from_api_resource(cls, group_version: str, raw: Dict[str, Any]) -> "ResourceDescriptor":
        """Build a descriptor from one entry of an APIResourceList response."""
        group, version = split_group_version(group_version)
        return cls(
            group=group,
            version=version,
            plural_name=raw.get("name") or "",
            kind=raw.get("kind") or "",
            short_names=tuple(raw.get("shortNames") or ()),
            namespaced=bool(raw.get("namespaced", False)),
        )


@dataclass(frozen=True)
class ResourceList:
    """Descriptors advertised under one group/version string, in server order."""

    group_version: str
    resources: Tuple[ResourceDescriptor, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ResourceLocator:
    group: str
    version: str
    plural_name: str

    @property
    def is_valid(self) -> bool:
        return bool(self.version) and bool(self.plural_name)

    @property
    def group_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    @property
    def api_path(self) -> str:
        # The core group lives under /api, everything else under /apis.
        if self.group:
            return f"/apis/{self.group}/{self.version}"
        return f"/api/{self.version}"

    def __str__(self) -> str:
        if self.group:
            return f"{self.plural_name}.{self.group}/{self.version}"
        return f"{self.plural_name}/{self.version}"


@dataclass(frozen=True)
class ResolvedMatch:
    descriptor: Optional[ResourceDescriptor]
    group_version: str
    namespaced: bool

    def to_locator(self) -> Optional[ResourceLocator]:
        """Return the locator for this match, or None when it cannot address anything."""
        if not self.group_version or self.descriptor is None:
            return None
        group, version = split_group_version(self.group_version)
        locator = ResourceLocator(group=group, version=version, plural_name=self.descriptor.plural_name)
        if not locator.is_valid:
            return None
        return locator

    def to_dict(self) -> Dict[str, Any]:
        descriptor = self.descriptor
        return {
            "kind": descriptor.kind if descriptor else None,
            "groupVersion": self.group_version,
            "resource": descriptor.plural_name if descriptor else None,
            "namespaced": self.namespaced,
            "shortNames": list(descriptor.short_names) if descriptor else [],
        }
