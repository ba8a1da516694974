# Structural shape and plate reference data — source: AISC Steel Construction Manual, 15th ed.

import logging
import re

logger = logging.getLogger(__name__)

# Rolled shapes: designation -> (weight lb/ft, surface area sf/ft)
# Surface area is the coating contour (all exposed faces), not cross-section area.
SHAPES = {
    # Wide flange
    "W8X10": (10.0, 2.60),
    "W8X18": (18.0, 3.07),
    "W8X24": (24.0, 3.45),
    "W8X31": (31.0, 3.95),
    "W8X40": (40.0, 4.01),
    "W10X12": (12.0, 2.93),
    "W10X22": (22.0, 3.58),
    "W10X33": (33.0, 4.23),
    "W10X49": (49.0, 4.94),
    "W12X14": (14.0, 3.27),
    "W12X26": (26.0, 4.16),
    "W12X40": (40.0, 4.60),
    "W12X65": (65.0, 5.95),
    "W14X22": (22.0, 3.91),
    "W14X30": (30.0, 4.50),
    "W14X48": (48.0, 4.92),
    "W14X90": (90.0, 7.09),
    "W16X26": (26.0, 4.41),
    "W16X40": (40.0, 4.95),
    "W18X35": (35.0, 4.90),
    "W18X50": (50.0, 5.44),
    "W21X44": (44.0, 5.56),
    "W21X62": (62.0, 6.18),
    "W24X55": (55.0, 6.20),
    "W24X76": (76.0, 6.91),
    # HSS square / rectangular
    "HSS4X4X1/4": (12.21, 1.33),
    "HSS6X4X1/4": (15.62, 1.67),
    "HSS6X6X1/4": (19.02, 2.00),
    "HSS6X6X3/8": (27.48, 2.00),
    "HSS8X8X3/8": (37.69, 2.67),
    "HSS8X8X1/2": (48.85, 2.67),
    # Channel
    "C6X8.2": (8.2, 1.64),
    "C8X11.5": (11.5, 2.09),
    "C10X15.3": (15.3, 2.53),
    "C12X20.7": (20.7, 2.98),
    # Angle
    "L3X3X1/4": (4.9, 1.00),
    "L4X4X1/4": (6.6, 1.33),
    "L4X4X3/8": (9.8, 1.33),
    "L6X4X3/8": (12.3, 1.67),
    "L6X6X3/8": (14.9, 2.00),
    # Tee
    "WT6X20": (20.0, 2.98),
    "WT8X25": (25.0, 3.24),
    # Pipe (standard weight)
    "PIPE4STD": (10.8, 1.18),
    "PIPE6STD": (19.0, 1.73),
}

SHAPE_TYPES = ("W", "HSS", "C", "L", "WT", "PIPE")

# Plate: label -> (thickness in, weight lb/sf). Weight is 40.8 lb/sf per inch of thickness.
PLATE_THICKNESSES = {
    "3/16": (0.1875, 7.65),
    "1/4": (0.25, 10.2),
    "5/16": (0.3125, 12.75),
    "3/8": (0.375, 15.3),
    "1/2": (0.5, 20.4),
    "5/8": (0.625, 25.5),
    "3/4": (0.75, 30.6),
    "7/8": (0.875, 35.7),
    "1": (1.0, 40.8),
    "1-1/4": (1.25, 51.0),
    "1-1/2": (1.5, 61.2),
    "2": (2.0, 81.6),
}

STEEL_DENSITY_LB_PER_FT3 = 490.0


def normalize_designation(designation) -> str:
    """'w12x65 ' -> 'W12X65'. Used for matching only, never shown back to the user."""
    if designation is None:
        return ""
    return re.sub(r"\s+", "", str(designation)).upper()


def lookup_shape(designation):
    # type: (str) -> tuple
    """
    Weight per foot and surface area per foot for a size designation.

    Unknown or blank designations return (0.0, 0.0). A warning is logged for
    unknown ones; the caller decides how to surface it.
    """
    key = normalize_designation(designation)
    if not key:
        return 0.0, 0.0
    shape = SHAPES.get(key)
    if shape is None:
        logger.warning("Unknown shape designation %r, weight and area set to 0", designation)
        return 0.0, 0.0
    return shape


def is_known_shape(designation) -> bool:
    return normalize_designation(designation) in SHAPES


def shape_type_of(designation) -> str:
    """Leading family letters of a designation: 'W12X65' -> 'W', 'PIPE4STD' -> 'PIPE'."""
    key = normalize_designation(designation)
    for family in sorted(SHAPE_TYPES, key=len, reverse=True):
        if key.startswith(family):
            return family
    return ""


def available_shape_types() -> list:
    return sorted({shape_type_of(key) for key in SHAPES})


def shapes_by_type(shape_type: str) -> list:
    """All designations in one family, lightest first."""
    family = (shape_type or "").upper()
    matches = [key for key in SHAPES if shape_type_of(key) == family]
    return sorted(matches, key=lambda key: SHAPES[key][0])


def _parse_fraction(text: str):
    """'3/8' -> 0.375, '1-1/4' or '1 1/4' -> 1.25, '0.5' -> 0.5. None if unparseable."""
    cleaned = text.replace('"', "").replace("in", "").strip()
    if not cleaned:
        return None

    parts = [p for p in re.split(r"[-\s]+", cleaned) if p]
    if len(parts) == 2 and "/" in parts[1]:
        whole = _parse_fraction(parts[0])
        frac = _parse_fraction(parts[1])
        if whole is not None and frac is not None:
            return whole + frac
        return None

    if "/" in cleaned:
        num, _, den = cleaned.partition("/")
        try:
            den_value = float(den)
            if den_value == 0:
                return None
            return float(num) / den_value
        except ValueError:
            return None

    try:
        return float(cleaned)
    except ValueError:
        return None


def normalize_thickness(value) -> float:
    """
    Plate thickness in decimal inches from whatever the estimator typed:
    a number, '0.375', '3/8', '3/8"', '1-1/4' or '1 1/4'. Garbage -> 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else 0.0

    text = str(value).strip()
    if not text:
        return 0.0
    if text in PLATE_THICKNESSES:
        return PLATE_THICKNESSES[text][0]

    parsed = _parse_fraction(text)
    if parsed is None or parsed < 0:
        return 0.0
    return parsed


def plate_weight_per_sqft(thickness_in: float) -> float:
    """Reference lb/sf for a standard plate thickness (±0.001"), else 0."""
    for inches, weight in PLATE_THICKNESSES.values():
        if abs(inches - thickness_in) < 0.001:
            return weight
    return 0.0
