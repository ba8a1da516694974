"""
Line record field groups.

A line record is a plain dict keyed by the names below. Every pipeline stage
(geometry, labor, pricing, merge, import) reads these tuples instead of
hard-coding field names.
"""

import math

STRUCTURAL = "Structural"
PLATE = "Plate"

ACTIVE = "Active"
VOID = "Void"
STATUSES = (ACTIVE, VOID)

IDENTITY_FIELDS = ("id", "project_id", "line_id")

CLASSIFICATION_FIELDS = (
    "item_description",
    "drawing_number",
    "detail_number",
    "category",
    "sub_category",
    "work_type",
    "is_main_member",
    "parent_line_id",
)

STRUCTURAL_FIELDS = (
    "shape_type",
    "size_designation",
    "grade",
    "length_ft",
    "length_in",
    "qty",
)

PLATE_FIELDS = (
    "thickness",
    "width",
    "plate_length",
    "plate_qty",
    "one_side_coat",
    "plate_grade",
)

# Order matches the shop's labor sheet
LABOR_FIELDS = (
    "labor_unload",
    "labor_cut",
    "labor_cope",
    "labor_process_plate",
    "labor_drill_punch",
    "labor_fit",
    "labor_weld",
    "labor_prep_clean",
    "labor_paint",
    "labor_handle_move",
    "labor_load_ship",
)

HARDWARE_FIELDS = (
    "hardware_bolt_diameter",
    "hardware_bolt_type",
    "hardware_bolt_length",
    "hardware_quantity",
    "hardware_cost_per_set",
)

RATE_OVERRIDE_FIELDS = ("material_rate", "labor_rate", "coating_rate")

ADMIN_FIELDS = ("notes", "hashtags", "use_stock_rounding")

# Never authored by a user; always recomputed from the fields above
DERIVED_FIELDS = (
    "weight_per_foot",
    "total_weight",
    "surface_area_per_foot",
    "total_surface_area",
    "plate_area",
    "edge_perimeter",
    "plate_surface_area",
    "plate_total_weight",
    "total_labor",
    "material_cost",
    "labor_cost",
    "coating_cost",
    "hardware_cost",
    "total_cost",
    "resolved_material_rate",
    "resolved_labor_rate",
    "resolved_coating_rate",
)

# Written by the store, not part of the authored record
BOOKKEEPING_FIELDS = ("updated_at", "created_at")

# Inputs that feed the derived fields. Edits to anything else (notes,
# hashtags, drawing numbers...) never trigger a recompute.
CALCULATION_FIELDS = (
    ("material_type", "coating_system", "work_type")
    + STRUCTURAL_FIELDS
    + PLATE_FIELDS
    + LABOR_FIELDS
    + ("hardware_quantity", "hardware_cost_per_set")
    + RATE_OVERRIDE_FIELDS
)

AUTHORED_FIELDS = (
    ("line_id", "status", "material_type", "coating_system")
    + CLASSIFICATION_FIELDS
    + STRUCTURAL_FIELDS
    + PLATE_FIELDS
    + LABOR_FIELDS
    + HARDWARE_FIELDS
    + RATE_OVERRIDE_FIELDS
    + ADMIN_FIELDS
)


def coerce_number(value, default: float = 0.0) -> float:
    """Parse a numeric field. Blank, None, NaN or garbage all become the default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(str(value).strip().replace(",", ""))
    except (ValueError, TypeError):
        return default
    if not math.isfinite(number):
        return default
    return number


def coerce_bool(value) -> bool:
    """CSV and form booleans: 'true', '1', 'yes' (any case) are True."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in ("true", "1", "yes", "y")


def new_line(line_id: str, **fields) -> dict:
    """A fresh Active structural line with qty 1, overridden by any given fields."""
    line = {
        "line_id": line_id,
        "status": ACTIVE,
        "material_type": STRUCTURAL,
        "item_description": "",
        "category": "",
        "sub_category": "",
        "work_type": "",
        "is_main_member": False,
        "parent_line_id": None,
        "qty": 1,
        "length_ft": 0,
        "length_in": 0,
        "coating_system": "None",
        "one_side_coat": False,
        "use_stock_rounding": True,
        "notes": "",
        "hashtags": "",
    }
    for name in LABOR_FIELDS:
        line[name] = 0
    line.update(fields)
    if line.get("material_type") == PLATE and "plate_qty" not in fields:
        line["plate_qty"] = line.get("qty", 1)
    return line
