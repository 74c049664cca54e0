"""
Tag filtering over already-fetched resources.
"""
from typing import Iterable, List, Mapping, Optional

from .models import CloudResource


def matches_tags(resource: CloudResource, tag_filter: Optional[Mapping[str, str]]) -> bool:
    """Check that every (key, value) in tag_filter is present on the resource.

    Matching is exact and case-sensitive. A missing key never matches; an
    empty filter matches everything.
    """
    if not tag_filter:
        return True
    tags = resource.tags
    return all(key in tags and tags[key] == value for key, value in tag_filter.items())


def filter_by_tags(
    resources: Iterable[CloudResource],
    tag_filter: Optional[Mapping[str, str]]
) -> List[CloudResource]:
    """Keep the resources matching all required tags, preserving order."""
    return [resource for resource in resources if matches_tags(resource, tag_filter)]
