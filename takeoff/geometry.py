"""
Geometry calculator — weight and coating area for one line.

Structural members: catalog lb/ft and sf/ft times length times quantity.
Plates: area, edge perimeter and coated surface from width x length, weight
from the reference lb/sf table (density fallback for odd thicknesses).
"""

import logging
from dataclasses import dataclass, field
from typing import List

from .catalog import (
    STEEL_DENSITY_LB_PER_FT3,
    is_known_shape,
    lookup_shape,
    normalize_thickness,
    plate_weight_per_sqft,
)
from .fields import PLATE, coerce_bool, coerce_number

logger = logging.getLogger(__name__)

STRUCTURAL_GEOMETRY_FIELDS = (
    "weight_per_foot",
    "total_weight",
    "surface_area_per_foot",
    "total_surface_area",
)

PLATE_GEOMETRY_FIELDS = (
    "plate_area",
    "edge_perimeter",
    "plate_surface_area",
    "plate_total_weight",
)

QUANTITY_FIELDS = ("qty", "plate_qty")


@dataclass
class GeometryResult:
    """Derived geometry for one line plus the two numbers pricing needs."""
    fields: dict
    total_weight: float = 0.0      # lb, whole line (all pieces)
    surface_area: float = 0.0      # sf to coat, whole line
    warnings: List[str] = field(default_factory=list)


def length_in_feet(length_ft, length_in) -> float:
    return coerce_number(length_ft) + coerce_number(length_in) / 12.0


def structural_geometry(line: dict) -> GeometryResult:
    designation = line.get("size_designation")

    # Cleared designation: everything goes back to zero
    if designation is None or not str(designation).strip():
        return GeometryResult(fields={name: 0.0 for name in STRUCTURAL_GEOMETRY_FIELDS})

    warnings = []
    weight_per_foot, area_per_foot = lookup_shape(designation)
    if not is_known_shape(designation):
        warnings.append(f"Unknown size designation '{designation}': weight and area set to 0")

    feet = length_in_feet(line.get("length_ft"), line.get("length_in"))
    qty = coerce_number(line.get("qty"))

    total_weight = weight_per_foot * feet * qty
    total_area = area_per_foot * feet * qty

    return GeometryResult(
        fields={
            "weight_per_foot": weight_per_foot,
            "total_weight": total_weight,
            "surface_area_per_foot": area_per_foot,
            "total_surface_area": total_area,
        },
        total_weight=total_weight,
        surface_area=total_area,
        warnings=warnings,
    )


def plate_properties(thickness_in: float, width_in: float, length_in: float,
                     one_side_coat: bool = False) -> dict:
    """
    Single-piece plate properties.

    Returns: {area (sf), edge_perimeter (ft), surface_area (sf to coat), unit_weight (lb)}
    """
    area = (width_in / 12.0) * (length_in / 12.0)
    perimeter = 2.0 * (width_in + length_in) / 12.0
    surface_area = area if one_side_coat else area * 2.0

    weight_per_sqft = plate_weight_per_sqft(thickness_in)
    if weight_per_sqft > 0:
        unit_weight = area * weight_per_sqft
    else:
        volume_ft3 = (thickness_in * width_in * length_in) / 1728.0
        unit_weight = volume_ft3 * STEEL_DENSITY_LB_PER_FT3

    return {
        "area": area,
        "edge_perimeter": perimeter,
        "surface_area": surface_area,
        "unit_weight": unit_weight,
    }


def plate_geometry(line: dict) -> GeometryResult:
    warnings = []
    raw_thickness = line.get("thickness")
    thickness = normalize_thickness(raw_thickness)
    if thickness == 0 and raw_thickness not in (None, "", 0):
        warnings.append(f"Unrecognized plate thickness '{raw_thickness}': weight set to 0")
        logger.warning("Line %s: unrecognized plate thickness %r", line.get("line_id"), raw_thickness)

    props = plate_properties(
        thickness,
        coerce_number(line.get("width")),
        coerce_number(line.get("plate_length")),
        coerce_bool(line.get("one_side_coat")),
    )

    raw_qty = line.get("plate_qty")
    qty = coerce_number(raw_qty if raw_qty is not None else line.get("qty"))

    total_weight = props["unit_weight"] * qty
    coated_area = props["surface_area"] * qty

    return GeometryResult(
        fields={
            "plate_area": props["area"],
            "edge_perimeter": props["edge_perimeter"],
            "plate_surface_area": props["surface_area"],
            "plate_total_weight": total_weight,
        },
        total_weight=total_weight,
        surface_area=coated_area,
        warnings=warnings,
    )


def compute_geometry(line: dict) -> GeometryResult:
    """
    Geometry for any line. The fields for the other material kind are zeroed
    so a line switched from Structural to Plate never keeps stale weights.
    """
    if line.get("material_type") == PLATE:
        result = plate_geometry(line)
        result.fields.update({name: 0.0 for name in STRUCTURAL_GEOMETRY_FIELDS})
    else:
        result = structural_geometry(line)
        result.fields.update({name: 0.0 for name in PLATE_GEOMETRY_FIELDS})
    return result


def line_weight(line: dict) -> float:
    """Total weight already stored on a computed line, by material kind."""
    if line.get("material_type") == PLATE:
        return coerce_number(line.get("plate_total_weight"))
    return coerce_number(line.get("total_weight"))


def apply_field_edit(line: dict, field_name: str, value) -> dict:
    """
    Stage one field edit on a copy of the line.

    Plate lines keep qty and plate_qty equal: editing either sets both.
    Switching a line to Plate seeds plate_qty from qty.
    Marking a line as a main member clears its parent reference.
    """
    updated = dict(line)
    updated[field_name] = value

    if field_name in QUANTITY_FIELDS and updated.get("material_type") == PLATE:
        updated["qty"] = value
        updated["plate_qty"] = value
    elif field_name == "material_type" and value == PLATE:
        updated["plate_qty"] = updated.get("qty", 1)
    elif field_name == "is_main_member" and coerce_bool(value):
        updated["parent_line_id"] = None

    return updated
