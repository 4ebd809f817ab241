"""
Relationship crawler.

Starting from a seed object, follow custom reference fields and child
relationships through the org's schema, describing each newly discovered
object exactly once.

Traversal rules
---------------
- Packaged (namespaced) objects are boundaries: discovered, never described.
- Standard objects are dead-ends unless allow-listed (the seed is always
  expanded).
- From a described object we follow:
    * custom lookup / master-detail fields, except those pointing at User;
    * child relationships to custom objects;
    * child relationships to standard-objects-with-custom-fields, but only
      when the parent itself is custom.

Describe calls run on a thread pool. Only the coordinating thread touches
``TraversalState``: an object is marked visited before its describe is
submitted, so two parents discovering the same child schedule it once.
"""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import AbstractSet, Dict, Iterable, List, Optional, Set

from .filters import is_custom_object, standard_objects_with_custom_fields
from .models import ObjectDescriptor

_logger = logging.getLogger(__name__)

USER_OBJECT = "User"


@dataclass
class TraversalState:
    visited: Set[str] = field(default_factory=set)
    result_set: Set[str] = field(default_factory=set)

    def mark(self, names: Iterable[str]) -> List[str]:
        """Mark unseen names as visited + discovered; return just those, sorted."""
        fresh = sorted(set(names) - self.visited)
        self.visited.update(fresh)
        self.result_set.update(fresh)
        return fresh


def object_dependencies(
    desc: ObjectDescriptor, standard_with_custom_fields: AbstractSet[str]
) -> Set[str]:
    deps: Set[str] = set()

    for f in desc.fields:
        target = f.primary_target
        if f.is_custom and f.is_reference and target and target != USER_OBJECT:
            deps.add(target)

    for rel in desc.child_relationships:
        child = rel.child_object_name
        if is_custom_object(child):
            deps.add(child)
        elif desc.is_custom and child in standard_with_custom_fields:
            deps.add(child)

    deps.discard(desc.name)
    return deps


class RelationshipCrawler:
    def __init__(self, catalog, *, max_workers: int = 8) -> None:
        self.catalog = catalog
        self.max_workers = max_workers

    def crawl(
        self,
        seed: str,
        included_standard_objects: Iterable[str] = (),
        *,
        managed: Optional[AbstractSet[str]] = None,
        standard_with_custom_fields: Optional[AbstractSet[str]] = None,
    ) -> List[str]:
        """Return every object reachable from ``seed``, sorted.

        ``managed`` and ``standard_with_custom_fields`` are listed from the
        catalog when the caller has not already fetched them.
        """
        if managed is None:
            managed = self.catalog.list_managed_objects()
        if standard_with_custom_fields is None:
            standard_with_custom_fields = standard_objects_with_custom_fields(
                self.catalog.list_custom_fields()
            )
        expandable_standard = set(included_standard_objects) | {seed}

        state = TraversalState()
        state.mark([seed])
        _logger.info("Crawling relationships from %s", seed)

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            pending: Dict[Future, str] = {}

            def schedule(name: str) -> None:
                if name in managed:
                    _logger.debug("%s is a managed package object; not traversed", name)
                    return
                if not is_custom_object(name) and name not in expandable_standard:
                    _logger.debug("%s is a standard object; not traversed", name)
                    return
                pending[pool.submit(self.catalog.describe_object, name)] = name

            schedule(seed)
            try:
                while pending:
                    done, _ = wait(pending, return_when=FIRST_COMPLETED)
                    for fut in done:
                        name = pending.pop(fut)
                        deps = object_dependencies(fut.result(), standard_with_custom_fields)
                        fresh = state.mark(deps)
                        if fresh:
                            _logger.debug("%s -> %s", name, ", ".join(fresh))
                        for child in fresh:
                            schedule(child)
            except BaseException:
                for fut in pending:
                    fut.cancel()
                raise

        _logger.info("Crawl from %s found %d objects", seed, len(state.result_set))
        return sorted(state.result_set)
