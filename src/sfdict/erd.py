"""
Mermaid ER chart pages (one per object) and the object list page.
"""

from __future__ import annotations

import html
import logging
from pathlib import Path
from typing import AbstractSet, List, Mapping

from .crawler import USER_OBJECT
from .filters import is_custom_object
from .models import ObjectDescriptor, ReferenceKind

_logger = logging.getLogger(__name__)

CHARTS_DIR = "ERDCharts"
OBJECT_LIST_PAGE = "ERDObjectList.html"
MERMAID_JS = "https://cdn.jsdelivr.net/npm/mermaid@10/dist/mermaid.min.js"

_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
<script src="{js}"></script>
<script>mermaid.initialize({{ startOnLoad: true, er: {{ useMaxWidth: false }} }});</script>
<style>body {{ font-family: sans-serif; margin: 2em; }}</style>
</head>
<body>
{body}
</body>
</html>
"""


def mermaid_chart(desc: ObjectDescriptor, standard_with_custom_fields: AbstractSet[str]) -> str:
    """``erDiagram`` source for one object and its direct neighbours."""
    lines = ["erDiagram"]
    for f in desc.fields:
        target = f.primary_target
        if not f.is_reference or not target or target == USER_OBJECT:
            continue
        cardinality = "}o--||" if f.reference_kind is ReferenceKind.MASTER_DETAIL else "}o--o|"
        lines.append(f'    {desc.name} {cardinality} {target} : "{f.name}"')

    for rel in desc.child_relationships:
        child = rel.child_object_name
        if is_custom_object(child) or child in standard_with_custom_fields:
            label = rel.relationship_name or rel.field or ""
            lines.append(f'    {desc.name} ||--o{{ {child} : "{label}"')

    if len(lines) == 1:
        lines.append(f"    {desc.name} {{\n        string Id\n    }}")
    return "\n".join(lines)


def chart_page(desc: ObjectDescriptor, chart: str) -> str:
    title = html.escape(f"{desc.label or desc.name} ({desc.name})")
    body = (
        f'<p><a href="../{OBJECT_LIST_PAGE}">All objects</a></p>\n'
        f"<h1>{title}</h1>\n"
        f'<pre class="mermaid">\n{html.escape(chart)}\n</pre>'
    )
    return _PAGE.format(title=title, js=MERMAID_JS, body=body)


def object_list_page(names: List[str]) -> str:
    items = "\n".join(
        f'  <li><a href="{CHARTS_DIR}/{html.escape(n)}.html">{html.escape(n)}</a></li>'
        for n in names
    )
    body = f"<h1>Objects</h1>\n<ul>\n{items}\n</ul>"
    return _PAGE.format(title="Objects", js=MERMAID_JS, body=body)


def write_erd_pages(
    descriptors: Mapping[str, ObjectDescriptor],
    out_dir: Path,
    standard_with_custom_fields: AbstractSet[str],
) -> Path:
    """Write ERDCharts/<Object>.html for every object plus the list page."""
    charts = out_dir / CHARTS_DIR
    charts.mkdir(parents=True, exist_ok=True)
    for name, desc in descriptors.items():
        chart = mermaid_chart(desc, standard_with_custom_fields)
        (charts / f"{name}.html").write_text(chart_page(desc, chart), encoding="utf-8")

    index = out_dir / OBJECT_LIST_PAGE
    index.write_text(object_list_page(list(descriptors)), encoding="utf-8")
    _logger.info("Wrote %d ERD pages -> %s", len(descriptors), charts)
    return index
