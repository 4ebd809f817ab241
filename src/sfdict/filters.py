"""
Catalog filter helpers shared by the crawler and the resolvers.

Everything here is pure: no remote calls.
"""

from __future__ import annotations

from typing import Collection, Dict, Iterable, List, Mapping, Optional, Set

from .models import CUSTOM_SUFFIX, CustomFieldInfo, CustomObjectInfo

# Pseudo-object whose custom fields land on both Task and Event
ACTIVITY_OBJECT = "Activity"
ACTIVITY_EXPANSION = ("Task", "Event")

_EXCLUDED_FILE_MARKERS = ("__c", "__hd", "__mdt")


def is_custom_object(name: str) -> bool:
    return name.endswith(CUSTOM_SUFFIX)


def namespace_of(name: str) -> Optional[str]:
    """``ns__Thing__c`` -> ``ns``; unprefixed names -> None."""
    parts = name.split("__")
    if len(parts) >= 3 and parts[0]:
        return parts[0]
    return None


def split_list(value: Optional[str]) -> List[str]:
    """Split a comma-separated option, dropping blanks and duplicates (order kept)."""
    if not value:
        return []
    items = (v.strip() for v in value.split(","))
    return list(dict.fromkeys(v for v in items if v))


def object_name_from_file(file_path: str) -> str:
    # objects/Contact.object -> Contact
    base = file_path.replace("\\", "/").rsplit("/", 1)[-1]
    return base.split(".", 1)[0]


def standard_objects_with_custom_fields(fields: Iterable[CustomFieldInfo]) -> Set[str]:
    """Standard objects carrying at least one unpackaged custom field."""
    result: Set[str] = set()
    for f in fields:
        if CUSTOM_SUFFIX not in f.name or f.namespace_prefix:
            continue
        if any(marker in f.file_path for marker in _EXCLUDED_FILE_MARKERS):
            continue
        obj = object_name_from_file(f.file_path)
        if not obj:
            continue
        if obj == ACTIVITY_OBJECT:
            result.update(ACTIVITY_EXPANSION)
        else:
            result.add(obj)
    return result


def managed_object_map(objects: Iterable[CustomObjectInfo]) -> Dict[str, str]:
    """Object name -> namespace prefix, for packaged objects only."""
    return {o.name: o.namespace_prefix for o in objects if o.namespace_prefix}


def filter_managed(
    candidates: Iterable[str],
    managed: Mapping[str, str],
    include_managed: bool,
    exclude_managed_prefixes: Optional[Collection[str]] = None,
) -> Set[str]:
    """Apply the managed-package policy to a candidate set.

    With ``include_managed`` off every packaged object is dropped. With it
    on, packaged objects survive unless their prefix is excluded.
    """
    excluded = set(exclude_managed_prefixes or ())
    kept: Set[str] = set()
    for name in candidates:
        prefix = managed.get(name)
        if not prefix:
            kept.add(name)
        elif include_managed and prefix not in excluded:
            kept.add(name)
    return kept
