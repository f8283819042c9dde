"""Resolve free-form kind tokens against a cluster's discovered resources.

Agents refer to resource types loosely: "pod", "Pods", "po", "HelmRelease",
"hr". The functions here map such a token onto exactly one discovered
resource, or list every resource whose group/version contains a substring
(e.g. "fluxcd" to see everything a controller installs).

Matching is a linear scan in discovery order and the first hit wins. When two
groups advertise the same short name, the group the server listed first is
chosen. That order comes straight from the API server and is kept as is.
"""

from typing import Iterable, List, Optional

from kubernetes_mcp.errors import InvalidLocatorError, ResourceNotFoundError
from kubernetes_mcp.models import ResolvedMatch, ResourceDescriptor, ResourceList

# Passed as the kind to request every type in a group filter.
ALL_KINDS = "all"


def _matches_token(descriptor: ResourceDescriptor, target: str) -> bool:
    if descriptor.plural_name.lower() == target or descriptor.kind.lower() == target:
        return True
    return any(short.lower() == target for short in descriptor.short_names)


def _first_match(matches: Iterable[ResolvedMatch], target: str) -> Optional[ResolvedMatch]:
    for match in matches:
        if match.descriptor is not None and _matches_token(match.descriptor, target):
            return match
    return None


def _iter_matches(resource_lists: Iterable[Optional[ResourceList]]) -> Iterable[ResolvedMatch]:
    for resource_list in resource_lists:
        if resource_list is None:
            continue
        for descriptor in resource_list.resources:
            yield ResolvedMatch(
                descriptor=descriptor,
                group_version=resource_list.group_version,
                namespaced=descriptor.namespaced,
            )


def _checked(match: Optional[ResolvedMatch], not_found_message: str) -> ResolvedMatch:
    if match is None:
        raise ResourceNotFoundError(not_found_message)
    if match.to_locator() is None:
        raise InvalidLocatorError(
            f"{not_found_message}: matched entry in '{match.group_version}' has no usable group/version/resource"
        )
    return match


def resolve_by_kind(resource_lists: Iterable[Optional[ResourceList]], token: str) -> ResolvedMatch:
    """Return the first resource whose plural, kind or short name equals ``token``.

    Comparison is case-insensitive. Raises ResourceNotFoundError if nothing
    matches, and InvalidLocatorError (a ResourceNotFoundError) if the first
    match cannot be turned into a locator.
    """
    target = token.lower()
    return _checked(_first_match(_iter_matches(resource_lists), target), f"cannot find resource '{token}'")


def resolve_by_group_substring(
    resource_lists: Iterable[Optional[ResourceList]], substring: str
) -> List[ResolvedMatch]:
    """Return one match per resource in every list whose group/version contains ``substring``."""
    target = substring.lower()
    matched_lists = [
        resource_list
        for resource_list in resource_lists
        if resource_list is not None and target in resource_list.group_version.lower()
    ]
    return list(_iter_matches(matched_lists))


def resolve_kind_in_group(
    resource_lists: Iterable[Optional[ResourceList]], group_filter: str, token: str
) -> ResolvedMatch:
    """Resolve ``token`` only among resources whose group/version contains ``group_filter``."""
    candidates = resolve_by_group_substring(resource_lists, group_filter)
    return _checked(
        _first_match(candidates, token.lower()),
        f"kind '{token}' not found in group filter '{group_filter}'",
    )
