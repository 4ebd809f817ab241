"""
Object-set resolution.

Exactly one strategy picks the candidate objects, first match wins:

1. ``username``      -> objects that user can read (PermissionResolver)
2. ``start_object``  -> objects reachable from a seed (RelationshipCrawler)
3. ``sobjects``      -> the explicit list, verbatim
4. otherwise         -> full scan of custom objects + standard objects
                        carrying custom fields

The exclusion list and the optional "skip empty objects" probe are then
applied to whatever the strategy produced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set

from .crawler import RelationshipCrawler
from .fanout import map_bounded
from .filters import (
    filter_managed,
    is_custom_object,
    managed_object_map,
    split_list,
    standard_objects_with_custom_fields,
)
from .models import CustomObjectInfo
from .permissions import PermissionResolver

_logger = logging.getLogger(__name__)

MIN_BATCH_SIZE = 5
MAX_BATCH_SIZE = 500
DEFAULT_BATCH_SIZE = 100


class Strategy(str, Enum):
    USERNAME = "username"
    SEED = "seed"
    EXPLICIT = "explicit"
    FULL_SCAN = "full-scan"


@dataclass
class ResolverConfig:
    username: Optional[str] = None
    start_object: Optional[str] = None
    sobjects: List[str] = field(default_factory=list)
    include_std_objects: List[str] = field(default_factory=list)
    include_managed: bool = False
    exclude_managed_prefixes: List[str] = field(default_factory=list)
    include_managed_prefixes: List[str] = field(default_factory=list)
    exclude_objects: List[str] = field(default_factory=list)
    skip_empty_objects: bool = False
    batch_size: int = DEFAULT_BATCH_SIZE

    def __post_init__(self) -> None:
        if not MIN_BATCH_SIZE <= self.batch_size <= MAX_BATCH_SIZE:
            raise ValueError(
                f"batch_size must be between {MIN_BATCH_SIZE} and {MAX_BATCH_SIZE}, "
                f"got {self.batch_size}"
            )

    @classmethod
    def from_options(
        cls,
        *,
        username: Optional[str] = None,
        start_object: Optional[str] = None,
        sobjects: Optional[str] = None,
        include_std_objects: Optional[str] = None,
        include_managed: bool = False,
        exclude_managed_prefixes: Optional[str] = None,
        include_managed_prefixes: Optional[str] = None,
        exclude_objects: Optional[str] = None,
        skip_empty_objects: bool = False,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> ResolverConfig:
        """Build from CLI-style values (comma-separated lists)."""
        return cls(
            username=(username or "").strip() or None,
            start_object=(start_object or "").strip() or None,
            sobjects=split_list(sobjects),
            include_std_objects=split_list(include_std_objects),
            include_managed=include_managed,
            exclude_managed_prefixes=split_list(exclude_managed_prefixes),
            include_managed_prefixes=split_list(include_managed_prefixes),
            exclude_objects=split_list(exclude_objects),
            skip_empty_objects=skip_empty_objects,
            batch_size=batch_size,
        )

    @property
    def strategy(self) -> Strategy:
        if self.username:
            return Strategy.USERNAME
        if self.start_object:
            return Strategy.SEED
        if self.sobjects:
            return Strategy.EXPLICIT
        return Strategy.FULL_SCAN


class ObjectSetResolver:
    def __init__(
        self,
        catalog,
        directory=None,
        *,
        crawler_workers: int = 8,
    ) -> None:
        self.catalog = catalog
        self.directory = directory
        self.crawler_workers = crawler_workers
        # Metadata listings, fetched at most once per resolve() run
        self._custom_objects: Optional[List[CustomObjectInfo]] = None
        self._standard_with_cf: Optional[Set[str]] = None

    def custom_objects(self) -> List[CustomObjectInfo]:
        if self._custom_objects is None:
            self._custom_objects = self.catalog.list_custom_objects()
        return self._custom_objects

    def managed_objects(self) -> Dict[str, str]:
        return managed_object_map(self.custom_objects())

    def standard_with_custom_fields(self) -> Set[str]:
        if self._standard_with_cf is None:
            self._standard_with_cf = standard_objects_with_custom_fields(
                self.catalog.list_custom_fields()
            )
        return self._standard_with_cf

    def resolve(self, config: ResolverConfig) -> List[str]:
        self._custom_objects = None
        self._standard_with_cf = None
        strategy = config.strategy
        _logger.info("Resolving object set using %s strategy", strategy.value)

        if strategy is Strategy.USERNAME:
            candidates = self._by_username(config)
        elif strategy is Strategy.SEED:
            candidates = self._by_seed(config)
        elif strategy is Strategy.EXPLICIT:
            candidates = set(config.sobjects)
        else:
            candidates = self._full_scan(config)

        excluded = candidates.intersection(config.exclude_objects)
        if excluded:
            _logger.info("Excluding %d objects: %s", len(excluded), ", ".join(sorted(excluded)))
            candidates -= excluded

        if config.skip_empty_objects:
            candidates = self.drop_empty(candidates, config.batch_size)

        _logger.info("Resolved %d objects", len(candidates))
        return sorted(candidates)

    def drop_empty(self, names: Set[str], batch_size: int = DEFAULT_BATCH_SIZE) -> Set[str]:
        """Keep only objects with at least one row. Probe failures propagate."""
        counts = map_bounded(
            self.catalog.count_rows,
            sorted(names),
            max_workers=batch_size,
            desc="Counting rows",
        )
        empty = {name for name, n in counts.items() if n == 0}
        if empty:
            _logger.info("Skipping %d empty objects", len(empty))
            _logger.debug("Empty objects: %s", ", ".join(sorted(empty)))
        return set(names) - empty

    # --------------------------- strategies ---------------------------

    def _by_username(self, config: ResolverConfig) -> Set[str]:
        if self.directory is None:
            raise ValueError("A permission directory is required to resolve by username")
        resolver = PermissionResolver(self.catalog, self.directory)
        return resolver.resolve_readable_objects(
            config.username or "",
            include_managed=config.include_managed,
            exclude_managed_prefixes=config.exclude_managed_prefixes,
            managed=self.managed_objects(),
            standard_with_custom_fields=self.standard_with_custom_fields(),
        )

    def _by_seed(self, config: ResolverConfig) -> Set[str]:
        seed = config.start_object or ""
        crawler = RelationshipCrawler(self.catalog, max_workers=self.crawler_workers)
        managed = self.managed_objects()
        found = crawler.crawl(
            seed,
            config.include_std_objects,
            managed=managed.keys(),
            standard_with_custom_fields=self.standard_with_custom_fields(),
        )

        kept = filter_managed(
            found, managed, config.include_managed, config.exclude_managed_prefixes
        )
        kept.add(seed)
        return kept

    def _full_scan(self, config: ResolverConfig) -> Set[str]:
        include_prefixes = set(config.include_managed_prefixes)
        exclude_prefixes = set(config.exclude_managed_prefixes)

        custom: Set[str] = set()
        for obj in self.custom_objects():
            is_custom = is_custom_object(obj.name)
            prefix = obj.namespace_prefix

            if include_prefixes and prefix:
                if prefix in include_prefixes and is_custom:
                    custom.add(obj.name)
                continue
            if prefix and not config.include_managed:
                continue
            if prefix and prefix in exclude_prefixes:
                continue
            if is_custom:
                custom.add(obj.name)

        standard_with_cf = self.standard_with_custom_fields()
        _logger.info(
            "Full scan: %d custom objects, %d standard objects with custom fields",
            len(custom),
            len(standard_with_cf),
        )
        return custom | standard_with_cf
