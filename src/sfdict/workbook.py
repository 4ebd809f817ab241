"""
Spreadsheet renderer: one worksheet per object plus an index sheet.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Set

import openpyxl
from openpyxl.cell.cell import Cell
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from .models import FieldDescriptor, ObjectDescriptor, ReferenceKind, ValidationRule

_logger = logging.getLogger(__name__)

MAX_PICKLIST_VALUES = 300
MAX_SHEET_TITLE = 31

# (header, width)
COLUMNS = [
    ("M", 4),
    ("Field Name", 28),
    ("Description", 50),
    ("Help Text", 50),
    ("API Name", 30),
    ("Classification", 16),
    ("Type", 30),
    ("Values / Formula", 50),
]

_thin = Side(style="thin", color="B8B6B8")
_BORDER = Border(left=_thin, right=_thin, top=_thin, bottom=_thin)
_WRAP = Alignment(wrap_text=True, vertical="center")
_HEADER_FONT = Font(bold=True, color="FFFFFF", size=12)
_HEADER_FILL = PatternFill("solid", fgColor="019CDD")
_SUBHEADER_FILL = PatternFill("solid", fgColor="F5F4F2")
_CATEGORY_FONT = Font(color="60809F")
_CATEGORY_FILL = PatternFill("solid", fgColor="DBEAF7")
_ALT_FILL = PatternFill("solid", fgColor="F2F1F3")
_MANDATORY_FONT = Font(color="FF0000", bold=True)
_VALIDATION_FILL = PatternFill("solid", fgColor="FCE4D6")

VALIDATION_HEADERS = ("Active", "Name", "Description", "Error Display Field", "Error Message")


def display_type(f: FieldDescriptor) -> str:
    """Human-readable field type, e.g. ``Number(16,2)`` or ``Lookup(Account)``."""
    raw = f.type or "string"
    t = raw[:1].upper() + raw[1:]

    if t in ("Int", "Double"):
        t = "Number"
    if t in ("Number", "Currency", "Percent") and f.precision:
        scale = f.scale or 0
        t = f"{t}({f.precision - scale},{scale})"
    elif t == "Boolean":
        t = "Checkbox"
    elif t == "Reference" and f.reference_targets:
        targets = ", ".join(f.reference_targets)
        if f.reference_kind is ReferenceKind.MASTER_DETAIL:
            t = f"Master-Detail({targets})"
        else:
            t = f"Lookup({targets})"
    elif t in ("String", "Textarea") and f.length:
        t = f"Text({f.length})"

    if f.formula:
        t = f"Formula({raw})"
    if f.unique:
        t += " (Unique)"
    if f.external_id:
        t += " (External ID)"
    return t


def picklist_text(f: FieldDescriptor) -> str:
    values = [p.value for p in f.picklist_values]
    if len(values) <= MAX_PICKLIST_VALUES * 2:
        return "\n".join(values)
    head = values[:MAX_PICKLIST_VALUES]
    tail = values[-MAX_PICKLIST_VALUES:]
    return "\n".join([*head, "...", *tail, f"(Total: {len(values)} values)"])


def is_mandatory(f: FieldDescriptor) -> bool:
    return not f.nillable and f.updateable and f.type != "boolean"


def _ordered_fields(desc: ObjectDescriptor) -> List[FieldDescriptor]:
    return sorted(desc.fields, key=lambda f: (f.is_custom, f.name.lower()))


def sheet_title(name: str, used: Set[str]) -> str:
    """Excel limits titles to 31 chars; keep truncated titles unique."""
    title = name[:MAX_SHEET_TITLE]
    n = 1
    while title.lower() in used:
        suffix = f"~{n}"
        title = name[: MAX_SHEET_TITLE - len(suffix)] + suffix
        n += 1
    used.add(title.lower())
    return title


def text_cell(ws: Worksheet, row: int, column: int, value: Optional[str]) -> Cell:
    """Write ``value`` as a literal string.

    openpyxl treats any string starting with ``=`` as a formula; metadata
    text (labels, picklist values, formulas) must never be evaluated.
    """
    cell = ws.cell(row=row, column=column, value=value or "")
    cell.data_type = "s"
    return cell


def _style_row(ws: Worksheet, row: int, fill: Optional[PatternFill] = None) -> None:
    for col in range(1, len(COLUMNS) + 1):
        cell = ws.cell(row=row, column=col)
        cell.border = _BORDER
        cell.alignment = _WRAP
        if fill is not None:
            cell.fill = fill


def _category_row(ws: Worksheet, row: int, text: str, fill: PatternFill = _CATEGORY_FILL) -> None:
    ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=len(COLUMNS))
    text_cell(ws, row, 1, text).font = _CATEGORY_FONT
    _style_row(ws, row, fill)


def _write_validation_rules(ws: Worksheet, row: int, rules: Iterable[ValidationRule]) -> int:
    """Validation rule block below the fields; returns the next free row."""
    _category_row(ws, row, "Validation Rules", _VALIDATION_FILL)
    row += 1

    formula_col = len(VALIDATION_HEADERS) + 1
    for idx, header in enumerate(VALIDATION_HEADERS, start=1):
        text_cell(ws, row, idx, header).font = Font(bold=True)
    ws.merge_cells(
        start_row=row, start_column=formula_col, end_row=row, end_column=len(COLUMNS)
    )
    text_cell(ws, row, formula_col, "Condition Formula").font = Font(bold=True)
    _style_row(ws, row, _SUBHEADER_FILL)
    row += 1

    for stripe, rule in enumerate(rules):
        text_cell(ws, row, 1, "Y" if rule.active else "")
        text_cell(ws, row, 2, rule.name).font = Font(bold=True)
        text_cell(ws, row, 3, rule.description)
        text_cell(ws, row, 4, rule.error_display_field)
        text_cell(ws, row, 5, rule.error_message)
        ws.merge_cells(
            start_row=row, start_column=formula_col, end_row=row, end_column=len(COLUMNS)
        )
        text_cell(ws, row, formula_col, rule.condition_formula)
        _style_row(ws, row, _ALT_FILL if stripe % 2 else None)
        row += 1
    return row


def write_object_sheet(ws: Worksheet, desc: ObjectDescriptor, banner: str) -> int:
    """Fill one object sheet; returns the number of field rows written."""
    for idx, (_, width) in enumerate(COLUMNS, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width

    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(COLUMNS))
    top = text_cell(ws, 1, 1, f"{banner} - {desc.label or desc.name} ({desc.name})")
    top.font = _HEADER_FONT
    _style_row(ws, 1, _HEADER_FILL)
    ws.row_dimensions[1].height = 30

    for idx, (header, _) in enumerate(COLUMNS, start=1):
        text_cell(ws, 2, idx, header).font = Font(bold=True)
    _style_row(ws, 2, _SUBHEADER_FILL)
    ws.freeze_panes = "A3"

    row = 3
    written = 0
    current_group: Optional[bool] = None
    stripe = 0
    for f in _ordered_fields(desc):
        if f.is_custom != current_group:
            current_group = f.is_custom
            _category_row(ws, row, "Custom Fields" if f.is_custom else "Standard Fields")
            row += 1
            stripe = 0

        text_cell(ws, row, 1, "*" if is_mandatory(f) else "").font = _MANDATORY_FONT
        text_cell(ws, row, 2, f.label or f.name).font = Font(bold=True)
        text_cell(ws, row, 3, f.description)
        text_cell(ws, row, 4, f.help_text)
        text_cell(ws, row, 5, f.name)
        text_cell(ws, row, 6, f.security_classification)
        text_cell(ws, row, 7, display_type(f)).font = Font(italic=True)
        text_cell(ws, row, 8, f.formula or picklist_text(f))
        _style_row(ws, row, _ALT_FILL if stripe % 2 else None)

        row += 1
        stripe += 1
        written += 1

    if desc.validation_rules:
        _write_validation_rules(ws, row, desc.validation_rules)
    return written


def _write_index(ws: Worksheet, descriptors: Iterable[ObjectDescriptor], titles: Dict[str, str]):
    for idx, header in enumerate(("Object", "Label", "Custom", "Fields", "Sheet"), start=1):
        text_cell(ws, 1, idx, header).font = Font(bold=True)
    for row, desc in enumerate(descriptors, start=2):
        text_cell(ws, row, 1, desc.name)
        text_cell(ws, row, 2, desc.label)
        text_cell(ws, row, 3, "Y" if desc.is_custom else "")
        ws.cell(row=row, column=4, value=len(desc.fields))
        link = text_cell(ws, row, 5, titles[desc.name])
        link.hyperlink = f"#'{titles[desc.name]}'!A1"
    ws.freeze_panes = "A2"
    for letter, width in zip("ABCDE", (40, 40, 8, 8, 34)):
        ws.column_dimensions[letter].width = width


def write_workbook(
    descriptors: Mapping[str, ObjectDescriptor],
    out_path: Path,
    *,
    banner: str = "SALESFORCE",
) -> Path:
    """Render the described objects into ``out_path`` (xlsx)."""
    wb = openpyxl.Workbook()
    index = wb.active
    index.title = "Objects"

    used = {index.title.lower()}
    titles: Dict[str, str] = {}
    for name, desc in descriptors.items():
        titles[name] = sheet_title(name, used)
        rows = write_object_sheet(wb.create_sheet(title=titles[name]), desc, banner)
        _logger.debug("Sheet %s: %d fields", titles[name], rows)

    _write_index(index, descriptors.values(), titles)

    out_path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(str(out_path))
    _logger.info("Wrote workbook with %d object sheets -> %s", len(descriptors), out_path)
    return out_path
