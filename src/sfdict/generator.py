"""
Data dictionary pipeline: resolve the object set, describe it, render it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .catalog import merge_metadata
from .erd import write_erd_pages
from .fanout import map_bounded
from .models import ObjectDescriptor
from .resolver import DEFAULT_BATCH_SIZE, ObjectSetResolver, ResolverConfig
from .workbook import write_workbook

_logger = logging.getLogger(__name__)

OUTPUT_PREFIX = "DataDictionary"


@dataclass
class GenerateOptions:
    dir: Path = field(default_factory=lambda: Path("."))
    output_time: bool = False
    skip_charts: bool = False
    project_name: Optional[str] = None


@dataclass
class DictionaryResult:
    objects: List[str]
    output_folder: Path
    workbook: Path
    object_list_page: Optional[Path] = None


def describe_objects(
    catalog, names: Iterable[str], batch_size: int = DEFAULT_BATCH_SIZE
) -> Dict[str, ObjectDescriptor]:
    """Describe every object concurrently, keeping the input order."""
    return map_bounded(catalog.describe_object, names, max_workers=batch_size, desc="Describing")


def output_stamp(now: datetime, output_time: bool) -> str:
    if output_time:
        return now.strftime("%Y-%m-%d_%H_%M_%S")
    return now.strftime("%Y-%m-%d")


class DictionaryGenerator:
    def __init__(
        self,
        catalog,
        config: ResolverConfig,
        options: Optional[GenerateOptions] = None,
        *,
        directory=None,
        now: Optional[datetime] = None,
    ) -> None:
        self.catalog = catalog
        self.config = config
        self.options = options or GenerateOptions()
        self.resolver = ObjectSetResolver(catalog, directory)
        self.now = now

    def identify_objects(self) -> List[str]:
        return self.resolver.resolve(self.config)

    def build(self) -> DictionaryResult:
        objects = self.identify_objects()
        descriptors = describe_objects(self.catalog, objects, self.config.batch_size)
        metadata = self.catalog.read_custom_objects(objects)
        descriptors = {n: merge_metadata(d, metadata.get(n)) for n, d in descriptors.items()}

        stamp = output_stamp(self.now or datetime.now(), self.options.output_time)
        folder = Path(self.options.dir) / f"{OUTPUT_PREFIX}-{stamp}"
        folder.mkdir(parents=True, exist_ok=True)

        name = self.options.project_name or OUTPUT_PREFIX
        workbook = write_workbook(
            descriptors,
            folder / f"{name}-{stamp}.xlsx",
            banner=(self.options.project_name or "SALESFORCE").upper(),
        )

        list_page = None
        if not self.options.skip_charts:
            list_page = write_erd_pages(
                descriptors, folder, self.resolver.standard_with_custom_fields()
            )

        _logger.info("Data dictionary for %d objects written to %s", len(objects), folder)
        return DictionaryResult(
            objects=objects,
            output_folder=folder,
            workbook=workbook,
            object_list_page=list_page,
        )
