"""
Cost composer — turns a line's inputs into every derived field.

Pure math. Weight x rate, hours x rate, sets x cost per set, then waste,
overhead, profit and tax on top.

compute_derived_fields() is the single entry point for both interactive
editing (via LineCalculator) and bulk CSV import. Nothing else computes a
derived field.
"""

import hashlib
import json
import logging
from collections import OrderedDict
from dataclasses import dataclass, asdict, field
from typing import List, Optional

from .fields import CALCULATION_FIELDS, DERIVED_FIELDS, VOID, coerce_number
from .geometry import compute_geometry, line_weight
from .labor import total_labor_hours
from .rates import (
    AREA_BASED,
    WEIGHT_BASED,
    MarkupSettings,
    ResolvedRates,
    coating_basis,
    resolve_line_rates,
    resolve_markup,
)

logger = logging.getLogger(__name__)


@dataclass
class CostBreakdown:
    material_cost: float
    labor_cost: float
    coating_cost: float
    hardware_cost: float
    material_with_waste: float
    labor_with_waste: float
    subtotal: float
    subtotal_with_overhead: float
    subtotal_with_profit: float
    total_cost: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DerivedResult:
    line: dict
    breakdown: CostBreakdown
    warnings: List[str] = field(default_factory=list)


def coating_cost(coating_system, total_weight: float, surface_area: float, rate: float) -> float:
    """
    Galvanizing is billed per pound of steel; primers, paint, powder coat and
    specialty coatings per square foot. 'None', unset and unrecognized -> 0.
    """
    basis = coating_basis(coating_system)
    if basis == WEIGHT_BASED:
        return total_weight * rate
    if basis == AREA_BASED:
        return surface_area * rate
    return 0.0


def hardware_cost(line: dict) -> float:
    return coerce_number(line.get("hardware_quantity")) * coerce_number(line.get("hardware_cost_per_set"))


def apply_markup(material_cost: float, labor_cost: float, coating_cost: float,
                 hardware_cost: float, markup: MarkupSettings) -> CostBreakdown:
    """
    Waste on material and labor only; coating and hardware go in at cost.
    Overhead on the subtotal, profit on top of overhead, tax last.
    """
    material_with_waste = material_cost * (1 + markup.material_waste_factor / 100.0)
    labor_with_waste = labor_cost * (1 + markup.labor_waste_factor / 100.0)

    subtotal = material_with_waste + labor_with_waste + coating_cost + hardware_cost
    with_overhead = subtotal * (1 + markup.overhead_percentage / 100.0)
    with_profit = with_overhead * (1 + markup.profit_percentage / 100.0)
    total = with_profit * (1 + markup.sales_tax_rate / 100.0)

    return CostBreakdown(
        material_cost=material_cost,
        labor_cost=labor_cost,
        coating_cost=coating_cost,
        hardware_cost=hardware_cost,
        material_with_waste=material_with_waste,
        labor_with_waste=labor_with_waste,
        subtotal=subtotal,
        subtotal_with_overhead=with_overhead,
        subtotal_with_profit=with_profit,
        total_cost=total,
    )


def derive(line: dict, rates: ResolvedRates, markup: MarkupSettings) -> DerivedResult:
    """Full pipeline for one line. Returns a new line dict; the input is not touched."""
    geometry = compute_geometry(line)
    labor_hours = total_labor_hours(line)

    material = geometry.total_weight * rates.material
    labor = labor_hours * rates.labor
    coating = coating_cost(line.get("coating_system"), geometry.total_weight,
                           geometry.surface_area, rates.coating)
    hardware = hardware_cost(line)

    breakdown = apply_markup(material, labor, coating, hardware, markup)

    computed = dict(line)
    computed.update(geometry.fields)
    computed.update({
        "total_labor": labor_hours,
        "material_cost": breakdown.material_cost,
        "labor_cost": breakdown.labor_cost,
        "coating_cost": breakdown.coating_cost,
        "hardware_cost": breakdown.hardware_cost,
        "total_cost": breakdown.total_cost,
        "resolved_material_rate": rates.material,
        "resolved_labor_rate": rates.labor,
        "resolved_coating_rate": rates.coating,
    })
    return DerivedResult(line=computed, breakdown=breakdown, warnings=geometry.warnings)


def compute_derived_fields(line: dict, rates: ResolvedRates, markup: MarkupSettings) -> dict:
    """Line with every derived field recomputed from its inputs and the resolved rates."""
    return derive(line, rates, markup).line


def calculation_hash(line: dict, rates: ResolvedRates, markup: MarkupSettings) -> str:
    """
    Fingerprint of everything a derived field depends on.
    Notes, hashtags, drawing numbers and the derived fields themselves are excluded.
    """
    payload = {
        "inputs": {name: line.get(name) for name in CALCULATION_FIELDS},
        "rates": rates.to_dict(),
        "markup": markup.to_dict(),
    }
    encoded = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class LineCalculator:
    """
    Memoized, reentrancy-guarded front end to compute_derived_fields().

    Rates are resolved from the injected project/company settings for every
    call; the result is cached on calculation_hash() so an edit that touches
    only notes or tags reuses the previous derived fields.
    """

    CACHE_SIZE = 512

    def __init__(self, project: Optional[dict] = None, company: Optional[dict] = None,
                 on_computed=None):
        self.project = project or {}
        self.company = company or {}
        self.on_computed = on_computed
        self.computations = 0
        self.last_warnings: List[str] = []
        self._cache = OrderedDict()
        self._running = False

    def update_settings(self, project: Optional[dict] = None, company: Optional[dict] = None):
        if project is not None:
            self.project = project
        if company is not None:
            self.company = company
        self._cache.clear()

    def rates_for(self, line: dict):
        # type: (dict) -> tuple
        return resolve_line_rates(line, self.project, self.company), resolve_markup(self.project, self.company)

    def recalculate(self, line: dict) -> dict:
        """
        Line with fresh derived fields.

        A call made while a recompute is already running (e.g. from an
        on_computed hook that edits the line) is ignored and the line is
        returned unchanged.
        """
        if self._running:
            logger.debug("Recalculation already running for %s, skipped", line.get("line_id"))
            return line

        rates, markup = self.rates_for(line)
        key = calculation_hash(line, rates, markup)
        cached = self._cache.get(key)
        if cached is not None:
            self._cache.move_to_end(key)
            derived, warnings = cached
            self.last_warnings = list(warnings)
            merged = dict(line)
            merged.update(derived)
            return merged

        self._running = True
        try:
            result = derive(line, rates, markup)
            self.computations += 1
            self.last_warnings = list(result.warnings)
            derived = {name: result.line[name] for name in DERIVED_FIELDS}
            self._cache[key] = (derived, tuple(result.warnings))
            if len(self._cache) > self.CACHE_SIZE:
                self._cache.popitem(last=False)
            if self.on_computed is not None:
                self.on_computed(result.line)
        finally:
            self._running = False
        return result.line


def summarize_estimate(lines) -> dict:
    """
    Roll up computed lines into project totals.
    Void lines are counted but excluded from every total.
    """
    active = [line for line in lines if line.get("status") != VOID]

    def total(name):
        return round(sum(coerce_number(line.get(name)) for line in active), 2)

    by_category = {}
    for line in active:
        category = line.get("category") or "Uncategorized"
        by_category[category] = by_category.get(category, 0.0) + coerce_number(line.get("total_cost"))

    return {
        "line_count": len(lines),
        "active_line_count": len(active),
        "void_line_count": len(lines) - len(active),
        "total_weight": round(sum(line_weight(line) for line in active), 2),
        "total_labor_hours": total("total_labor"),
        "material_cost": total("material_cost"),
        "labor_cost": total("labor_cost"),
        "coating_cost": total("coating_cost"),
        "hardware_cost": total("hardware_cost"),
        "total_cost": total("total_cost"),
        "by_category": {name: round(value, 2) for name, value in sorted(by_category.items())},
    }
