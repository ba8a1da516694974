"""
Catalog lookup, rate resolution and labor aggregation.

Tests:
1-6.   Shape catalog and plate thickness parsing
7-15.  Rate resolver precedence and coating rules
16-17. Markup resolution
18-20. Labor aggregation
"""

import logging

import pytest

from takeoff.catalog import (
    available_shape_types,
    lookup_shape,
    normalize_thickness,
    plate_weight_per_sqft,
    shape_type_of,
    shapes_by_type,
)
from takeoff.labor import labor_breakdown, total_labor_hours
from takeoff.rates import RateKind, resolve_line_rates, resolve_markup, resolve_rate


# ============================================================
# 1-6. Catalog
# ============================================================

def test_lookup_shape_known_designation():
    assert lookup_shape("W12x65") == (65.0, 5.95)


def test_lookup_shape_ignores_case_and_spaces():
    assert lookup_shape(" w12 x 65 ") == (65.0, 5.95)
    assert lookup_shape("hss6x6x1/4") == (19.02, 2.00)


def test_lookup_shape_unknown_returns_zeros_and_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="takeoff.catalog"):
        assert lookup_shape("W99X999") == (0.0, 0.0)
    assert "W99X999" in caplog.text


def test_lookup_shape_blank_returns_zeros():
    assert lookup_shape("") == (0.0, 0.0)
    assert lookup_shape(None) == (0.0, 0.0)


def test_shape_families():
    assert shape_type_of("WT6X20") == "WT"
    assert shape_type_of("W8X31") == "W"
    assert "HSS" in available_shape_types()
    wide_flange = shapes_by_type("w")
    assert wide_flange[0] == "W8X10"
    assert all(shape_type_of(key) == "W" for key in wide_flange)


@pytest.mark.parametrize("raw, inches", [
    ("3/8", 0.375),
    ('3/8"', 0.375),
    ("1-1/4", 1.25),
    ("1 1/4", 1.25),
    ("0.5", 0.5),
    (0.75, 0.75),
    ("abc", 0.0),
    ("", 0.0),
    (None, 0.0),
])
def test_normalize_thickness(raw, inches):
    assert normalize_thickness(raw) == pytest.approx(inches)


def test_plate_weight_table_and_non_standard():
    assert plate_weight_per_sqft(0.5) == 20.4
    assert plate_weight_per_sqft(0.3755) == 15.3   # within 0.001"
    assert plate_weight_per_sqft(0.3) == 0.0


# ============================================================
# 7-15. Rate resolver
# ============================================================

def test_company_grade_rate(company_settings):
    assert resolve_rate(RateKind.MATERIAL, "A992", company=company_settings) == 1.05


def test_line_override_beats_everything(company_settings):
    project = {"material_grades": [{"grade": "A992", "cost_per_pound": 1.20}]}
    rate = resolve_rate("material", "A992", line_override=1.5, project=project, company=company_settings)
    assert rate == 1.5


def test_project_grade_beats_company(company_settings):
    project = {"material_grades": [{"grade": "A992", "cost_per_pound": 1.20}]}
    assert resolve_rate("material", "A992", project=project, company=company_settings) == 1.20


def test_project_flat_rate_beats_company(company_settings):
    project = {"material_rate": 0.95}
    assert resolve_rate("material", "A992", project=project, company=company_settings) == 0.95


def test_fallback_when_nothing_matches():
    assert resolve_rate("material", "Unobtainium") == 0.85
    assert resolve_rate("labor", "Rigger") == 50.0
    assert resolve_rate("coating", "Paint") == 0.0


def test_zero_or_malformed_values_are_unset(company_settings):
    assert resolve_rate("material", "A992", line_override=0, company=company_settings) == 1.05
    assert resolve_rate("material", "A992", line_override="abc", company=company_settings) == 1.05
    broken = {"material_grades": "not a list", "labor_rates": [{"trade": "Welder", "rate": "n/a"}]}
    assert resolve_rate("material", "A992", company=broken) == 0.85
    assert resolve_rate("labor", "Welder", company=broken) == 50.0


def test_coating_none_is_always_zero(company_settings):
    assert resolve_rate("coating", "None", line_override=5.0, company=company_settings) == 0.0
    assert resolve_rate("coating", None, company=company_settings) == 0.0


def test_galvanizing_priced_per_pound(company_settings):
    assert resolve_rate("coating", "Galvanizing", company=company_settings) == 0.15
    assert resolve_rate("coating", "paint", company=company_settings) == 2.50


def test_resolve_line_rates_uses_plate_grade_and_work_type(company_settings):
    line = {
        "material_type": "Plate",
        "grade": "A992",
        "plate_grade": "A572 Gr50",
        "work_type": "welder",
        "coating_system": "Powder Coat",
    }
    rates = resolve_line_rates(line, company=company_settings)
    assert rates.material == 1.15
    assert rates.labor == 55.0
    assert rates.coating == 3.50


# ============================================================
# 16-17. Markup
# ============================================================

def test_markup_defaults():
    markup = resolve_markup()
    assert markup.material_waste_factor == 5.0
    assert markup.labor_waste_factor == 10.0
    assert markup.overhead_percentage == 15.0
    assert markup.profit_percentage == 10.0
    assert markup.sales_tax_rate == 0.0


def test_markup_resolves_each_key_independently(company_settings):
    company_settings["markup_settings"]["overhead_percentage"] = 20
    project = {"markup_settings": {"profit_percentage": 12, "sales_tax_rate": None}}
    markup = resolve_markup(project, company_settings)
    assert markup.profit_percentage == 12
    assert markup.overhead_percentage == 20
    assert markup.sales_tax_rate == 0.0


# ============================================================
# 18-20. Labor
# ============================================================

def test_total_labor_hours_ignores_bad_values():
    line = {"labor_cut": "1.5", "labor_weld": 2, "labor_fit": None, "labor_paint": "abc"}
    assert total_labor_hours(line) == pytest.approx(3.5)


def test_labor_breakdown_has_all_eleven_tasks():
    breakdown = labor_breakdown({"labor_unload": 0.25})
    assert len(breakdown) == 11
    assert breakdown["labor_unload"] == 0.25
    assert breakdown["labor_load_ship"] == 0.0


def test_non_finite_labor_hours_count_as_zero():
    line = {"labor_cut": "nan", "labor_weld": float("inf"), "labor_fit": "-inf", "labor_drill_punch": 1}
    assert total_labor_hours(line) == 1.0
    assert labor_breakdown(line)["labor_weld"] == 0.0
