"""
CSV bulk import/export for takeoff lines.

Every imported row is run through compute_derived_fields() with the same
rates the interactive editor would use, so an imported line and a line
typed in by hand with the same inputs carry identical derived values.
Derived columns are never read from the file.
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List

from .exceptions import CsvImportError
from .fields import ACTIVE, PLATE, STATUSES, STRUCTURAL, coerce_bool, coerce_number, new_line
from .pricing_engine import compute_derived_fields
from .workspace import LINE_ID_PATTERN

logger = logging.getLogger(__name__)

STRING = "string"
NUMBER = "number"
BOOLEAN = "boolean"


@dataclass(frozen=True)
class CsvColumn:
    field: str
    header: str
    kind: str = STRING
    required: bool = False


# Template order. Calculated fields are left out; they are computed on import.
CSV_COLUMNS = (
    CsvColumn("line_id", "Line ID", required=True),
    CsvColumn("drawing_number", "Drawing Number"),
    CsvColumn("detail_number", "Detail Number"),
    CsvColumn("item_description", "Item Description", required=True),
    CsvColumn("category", "Category"),
    CsvColumn("sub_category", "Sub Category"),
    CsvColumn("work_type", "Work Type"),
    CsvColumn("material_type", "Material Type", required=True),
    CsvColumn("shape_type", "Shape Type"),
    CsvColumn("size_designation", "Size Designation"),
    CsvColumn("grade", "Grade"),
    CsvColumn("length_ft", "Length (ft)", NUMBER),
    CsvColumn("length_in", "Length (in)", NUMBER),
    CsvColumn("qty", "Quantity", NUMBER),
    CsvColumn("thickness", "Thickness (in)"),   # fractions allowed: 3/8, 1-1/4
    CsvColumn("width", "Width (in)", NUMBER),
    CsvColumn("plate_length", "Plate Length (in)", NUMBER),
    CsvColumn("plate_qty", "Plate Quantity", NUMBER),
    CsvColumn("plate_grade", "Plate Grade"),
    CsvColumn("one_side_coat", "One Side Coat", BOOLEAN),
    CsvColumn("coating_system", "Coating System"),
    CsvColumn("labor_unload", "Labor Unload (hrs)", NUMBER),
    CsvColumn("labor_cut", "Labor Cut (hrs)", NUMBER),
    CsvColumn("labor_cope", "Labor Cope (hrs)", NUMBER),
    CsvColumn("labor_process_plate", "Labor Process Plate (hrs)", NUMBER),
    CsvColumn("labor_drill_punch", "Labor Drill/Punch (hrs)", NUMBER),
    CsvColumn("labor_fit", "Labor Fit (hrs)", NUMBER),
    CsvColumn("labor_weld", "Labor Weld (hrs)", NUMBER),
    CsvColumn("labor_prep_clean", "Labor Prep/Clean (hrs)", NUMBER),
    CsvColumn("labor_paint", "Labor Paint (hrs)", NUMBER),
    CsvColumn("labor_handle_move", "Labor Handle/Move (hrs)", NUMBER),
    CsvColumn("labor_load_ship", "Labor Load/Ship (hrs)", NUMBER),
    CsvColumn("hardware_bolt_diameter", "Bolt Diameter"),
    CsvColumn("hardware_bolt_type", "Bolt Type"),
    CsvColumn("hardware_bolt_length", "Bolt Length"),
    CsvColumn("hardware_quantity", "Hardware Quantity", NUMBER),
    CsvColumn("hardware_cost_per_set", "Hardware Cost per Set", NUMBER),
    CsvColumn("material_rate", "Material Rate ($/lb)", NUMBER),
    CsvColumn("labor_rate", "Labor Rate ($/hr)", NUMBER),
    CsvColumn("coating_rate", "Coating Rate", NUMBER),
    CsvColumn("notes", "Notes"),
    CsvColumn("hashtags", "Hashtags"),
    CsvColumn("status", "Status"),
    CsvColumn("use_stock_rounding", "Use Stock Rounding", BOOLEAN),
)

_BY_HEADER = {column.header.lower(): column for column in CSV_COLUMNS}

# Older exports called structural members "Material"
_MATERIAL_TYPE_ALIASES = {"structural": STRUCTURAL, "material": STRUCTURAL, "plate": PLATE}

TEMPLATE_EXAMPLE = {
    "line_id": "L1",
    "drawing_number": "S-201",
    "detail_number": "4",
    "item_description": "Column",
    "category": "Columns",
    "material_type": STRUCTURAL,
    "shape_type": "W",
    "size_designation": "W12x65",
    "grade": "A992",
    "length_ft": 20,
    "length_in": 0,
    "qty": 4,
    "one_side_coat": False,
    "coating_system": "None",
    "labor_unload": 0.5,
    "labor_weld": 2.5,
    "labor_handle_move": 0.25,
    "labor_load_ship": 0.5,
    "status": ACTIVE,
    "use_stock_rounding": True,
}


@dataclass
class RowError:
    row: int        # 1-based file row; the header is row 1
    column: str
    message: str

    def to_dict(self) -> dict:
        return {"row": self.row, "column": self.column, "message": self.message}


@dataclass
class ImportResult:
    lines: List[dict] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "imported": len(self.lines),
            "lines": self.lines,
            "errors": [e.to_dict() for e in self.errors],
        }


def _format(value, kind: str) -> str:
    if value is None:
        return ""
    if kind == BOOLEAN:
        return "true" if coerce_bool(value) else "false"
    return str(value)


def _write(rows: Iterable[dict]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([column.header for column in CSV_COLUMNS])
    for row in rows:
        writer.writerow([_format(row.get(column.field), column.kind) for column in CSV_COLUMNS])
    return buffer.getvalue()


def generate_csv_template() -> str:
    """Header row plus one example structural line."""
    return _write([TEMPLATE_EXAMPLE])


def export_lines_to_csv(lines: Iterable[dict]) -> str:
    return _write(lines)


def _convert(raw: str, kind: str):
    """None means 'not given'. Numbers that don't parse are treated as not given."""
    text = (raw or "").strip()
    if not text:
        return False if kind == BOOLEAN else None
    if kind == NUMBER:
        return coerce_number(text, default=None)
    if kind == BOOLEAN:
        return coerce_bool(text)
    return text


def parse_rows(text: str):
    """(header list, [(file_row_number, {header: value})]). Blank rows are skipped."""
    if text is None or not text.strip():
        raise CsvImportError("CSV file is empty")
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    headers = [h.strip() for h in (reader.fieldnames or [])]
    rows = []
    for raw in reader:
        values = {(k or "").strip(): (v or "") for k, v in raw.items() if k is not None}
        if not any(str(v).strip() for v in values.values()):
            continue
        rows.append((reader.line_num, values))
    if not rows:
        raise CsvImportError("CSV file contains no data rows")
    return headers, rows


def import_csv(text: str, rates_for: Callable, existing_ids: Iterable[str] = ()) -> ImportResult:
    """
    Parse, validate and compute a CSV of takeoff lines.

    Args:
        text: CSV content with a header row of template column names
        rates_for: callable(line) -> (ResolvedRates, MarkupSettings), normally
            LineCalculator.rates_for so import and editing share settings
        existing_ids: line ids already in the project

    Returns:
        ImportResult. Rows with errors are left out of `lines`; the rest are
        fully computed line dicts ready to store.

    Raises:
        CsvImportError: empty file or no data rows
    """
    headers, rows = parse_rows(text)
    present = {h.lower() for h in headers}
    unknown = [h for h in headers if h.lower() not in _BY_HEADER]
    if unknown:
        logger.info("Ignoring unknown CSV columns: %s", ", ".join(unknown))

    result = ImportResult()
    missing = [c.header for c in CSV_COLUMNS if c.required and c.header.lower() not in present]
    if missing:
        for header in missing:
            result.errors.append(RowError(1, header, f'Required column "{header}" is missing'))
        return result

    taken = set(existing_ids)
    for row_number, values in rows:
        line, errors = _read_row(row_number, values, taken)
        if errors:
            result.errors.extend(errors)
            continue

        taken.add(line["line_id"])
        if line.get("material_type") == PLATE and line.get("plate_qty") is not None:
            line["qty"] = line["plate_qty"]
        record = new_line(line.pop("line_id"), **line)
        rates, markup = rates_for(record)
        result.lines.append(compute_derived_fields(record, rates, markup))

    logger.info("CSV import: %d lines accepted, %d errors", len(result.lines), len(result.errors))
    return result


def _read_row(row_number: int, values: dict, taken: set):
    """Typed field values for one row, plus any validation errors."""
    line = {}
    errors = []
    for header, raw in values.items():
        column = _BY_HEADER.get(header.lower())
        if column is None:
            continue
        value = _convert(raw, column.kind)
        if column.required and value is None:
            errors.append(RowError(row_number, column.header,
                                   f'Required field "{column.header}" is missing or empty'))
        elif value is not None:
            line[column.field] = value

    line_id = line.get("line_id")
    if line_id:
        if not LINE_ID_PATTERN.match(line_id):
            errors.append(RowError(row_number, "Line ID",
                                   f'Invalid line ID "{line_id}". Expected L1, L2, L1-L10, ...'))
        elif line_id in taken:
            errors.append(RowError(row_number, "Line ID", f'Line ID "{line_id}" already exists'))

    material_type = line.get("material_type")
    if material_type:
        normalized = _MATERIAL_TYPE_ALIASES.get(material_type.lower())
        if normalized is None:
            errors.append(RowError(row_number, "Material Type",
                                   f'Invalid material type "{material_type}". Must be Structural or Plate'))
        else:
            line["material_type"] = normalized

    status = line.get("status")
    if status:
        matched = [s for s in STATUSES if s.lower() == status.lower()]
        if matched:
            line["status"] = matched[0]
        else:
            errors.append(RowError(row_number, "Status", f'Invalid status "{status}". Must be Active or Void'))

    return line, errors
