"""
Rate resolver — effective unit rates for a line from the layered settings.

Precedence, highest first:
1. Per-line override (material_rate / labor_rate / coating_rate on the line)
2. Project settings: the rate for this grade/trade/coating, then the flat
   project-wide rate
3. Company settings: the rate for this grade/trade/coating
4. Fallback constant from config

Pure functions of (settings, selector). Nothing is cached here; callers
memoize (see pricing_engine.LineCalculator).
"""

import enum
import logging
from dataclasses import dataclass, asdict

from .config import settings
from .fields import PLATE, coerce_number

logger = logging.getLogger(__name__)


class RateKind(str, enum.Enum):
    MATERIAL = "material"
    LABOR = "labor"
    COATING = "coating"


# Coating taxonomy: how the coating rate is applied
WEIGHT_BASED = "weight"   # $/lb of steel
AREA_BASED = "area"       # $/sf of surface

COATING_SYSTEMS = {
    "none": None,
    "standard shop primer": AREA_BASED,
    "zinc primer": AREA_BASED,
    "paint": AREA_BASED,            # $/gallon entered as $/sf at ~400 sf/gal coverage
    "powder coat": AREA_BASED,
    "specialty coating": AREA_BASED,
    "galvanizing": WEIGHT_BASED,
}

DEFAULT_COMPANY_SETTINGS = {
    "material_grades": [
        {"grade": "A36", "cost_per_pound": 0.85},
        {"grade": "A572 Gr50", "cost_per_pound": 1.15},
        {"grade": "A992", "cost_per_pound": 1.05},
        {"grade": "A500 GrB", "cost_per_pound": 1.20},
        {"grade": "A500 GrC", "cost_per_pound": 1.25},
        {"grade": "A53", "cost_per_pound": 1.10},
    ],
    "labor_rates": [
        {"trade": "Fabricator", "rate": 45.0},
        {"trade": "Welder", "rate": 55.0},
        {"trade": "Fitter", "rate": 50.0},
        {"trade": "Painter", "rate": 40.0},
    ],
    "coating_types": [
        {"type": "None", "cost_per_sf": 0.0},
        {"type": "Standard Shop Primer", "cost_per_sf": 0.75},
        {"type": "Zinc Primer", "cost_per_sf": 1.25},
        {"type": "Paint", "cost_per_sf": 2.50},
        {"type": "Powder Coat", "cost_per_sf": 3.50},
        {"type": "Galvanizing", "cost_per_pound": 0.15},
        {"type": "Specialty Coating", "cost_per_sf": 5.00},
    ],
    "markup_settings": {
        "material_waste_factor": 5.0,
        "labor_waste_factor": 10.0,
        "overhead_percentage": 15.0,
        "profit_percentage": 10.0,
        "sales_tax_rate": 0.0,
    },
}

FALLBACK_MARKUP = DEFAULT_COMPANY_SETTINGS["markup_settings"]

# (list key in settings, selector key in each entry)
_RATE_TABLES = {
    RateKind.MATERIAL: ("material_grades", "grade"),
    RateKind.LABOR: ("labor_rates", "trade"),
    RateKind.COATING: ("coating_types", "type"),
}

_FLAT_PROJECT_KEYS = {
    RateKind.MATERIAL: "material_rate",
    RateKind.LABOR: "labor_rate",
    RateKind.COATING: "coating_rate",
}


@dataclass(frozen=True)
class ResolvedRates:
    material: float
    labor: float
    coating: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class MarkupSettings:
    """All values are percentages: 5.0 means 5%."""
    material_waste_factor: float = 5.0
    labor_waste_factor: float = 10.0
    overhead_percentage: float = 15.0
    profit_percentage: float = 10.0
    sales_tax_rate: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def coating_basis(coating_system):
    """WEIGHT_BASED, AREA_BASED, or None for 'None'/unset/unrecognized coatings."""
    if not coating_system:
        return None
    return COATING_SYSTEMS.get(str(coating_system).strip().lower())


def is_no_coating(coating_system) -> bool:
    return not coating_system or str(coating_system).strip().lower() == "none"


def _positive(value):
    """A usable rate, or None when the value is unset, zero, negative or garbage."""
    number = coerce_number(value, default=-1.0)
    return number if number > 0 else None


def _entry_rate(kind: RateKind, entry: dict):
    if kind is RateKind.MATERIAL:
        return _positive(entry.get("cost_per_pound"))
    if kind is RateKind.LABOR:
        return _positive(entry.get("rate"))
    # Galvanizing is priced by weight; everything else by area
    if coating_basis(entry.get("type")) == WEIGHT_BASED:
        by_weight = _positive(entry.get("cost_per_pound"))
        if by_weight is not None:
            return by_weight
    return _positive(entry.get("cost_per_sf"))


def _table_rate(kind: RateKind, selector, source):
    """Rate for the selector in one settings source, or None."""
    if not source or not selector:
        return None
    list_key, entry_key = _RATE_TABLES[kind]
    entries = source.get(list_key)
    if not isinstance(entries, list):
        return None
    wanted = str(selector).strip().lower()
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        if str(entry.get(entry_key, "")).strip().lower() == wanted:
            return _entry_rate(kind, entry)
    return None


def fallback_rate(kind: RateKind) -> float:
    if kind is RateKind.MATERIAL:
        return settings.DEFAULT_MATERIAL_RATE
    if kind is RateKind.LABOR:
        return settings.DEFAULT_LABOR_RATE
    return settings.DEFAULT_COATING_RATE


def resolve_rate(kind, selector=None, line_override=None, project=None, company=None) -> float:
    """
    Effective rate for one kind of cost.

    Args:
        kind: RateKind (or its string value)
        selector: grade for material, trade/work type for labor, coating system for coating
        line_override: the line's own rate field, if any. Only a positive value
            overrides; 0 reads as a cleared cell and falls through to the settings
        project: project settings dict (any key may be missing)
        company: company settings dict (any key may be missing)
    """
    kind = RateKind(kind)

    if kind is RateKind.COATING and is_no_coating(selector):
        return 0.0

    override = _positive(line_override)
    if override is not None:
        return override

    project_rate = _table_rate(kind, selector, project)
    if project_rate is not None:
        return project_rate

    if project:
        flat = _positive(project.get(_FLAT_PROJECT_KEYS[kind]))
        if flat is not None:
            return flat

    company_rate = _table_rate(kind, selector, company)
    if company_rate is not None:
        return company_rate

    return fallback_rate(kind)


def material_selector(line: dict):
    """Plate lines price by plate grade, everything else by grade."""
    if line.get("material_type") == PLATE:
        return line.get("plate_grade") or line.get("grade")
    return line.get("grade")


def resolve_line_rates(line: dict, project=None, company=None) -> ResolvedRates:
    """Material, labor and coating rates for one line."""
    return ResolvedRates(
        material=resolve_rate(
            RateKind.MATERIAL, material_selector(line), line.get("material_rate"), project, company,
        ),
        labor=resolve_rate(
            RateKind.LABOR, line.get("work_type"), line.get("labor_rate"), project, company,
        ),
        coating=resolve_rate(
            RateKind.COATING, line.get("coating_system"), line.get("coating_rate"), project, company,
        ),
    )


def resolve_markup(project=None, company=None) -> MarkupSettings:
    """Each markup percentage resolves project -> company -> fallback independently."""
    project_markup = (project or {}).get("markup_settings") or {}
    company_markup = (company or {}).get("markup_settings") or {}

    values = {}
    for name, fallback in FALLBACK_MARKUP.items():
        value = None
        for source in (project_markup, company_markup):
            raw = source.get(name)
            if raw is None or raw == "":
                continue
            number = coerce_number(raw, default=-1.0)
            if number >= 0:
                value = number
                break
        values[name] = fallback if value is None else value
    return MarkupSettings(**values)
