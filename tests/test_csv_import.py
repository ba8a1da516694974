"""
CSV bulk import and export.

Tests:
1-3. Template and export
4-5. Import computes the same derived fields as interactive editing
6-9. Validation errors
"""

import pytest

from takeoff.csv_import import (
    CSV_COLUMNS,
    export_lines_to_csv,
    generate_csv_template,
    import_csv,
)
from takeoff.exceptions import CsvImportError
from takeoff.fields import DERIVED_FIELDS, new_line
from takeoff.geometry import apply_field_edit
from takeoff.pricing_engine import LineCalculator


HEADER = "Line ID,Item Description,Material Type,Size Designation,Grade,Length (ft),Quantity,Labor Weld (hrs),Coating System,Status"


def _csv(*rows):
    return "\n".join((HEADER,) + rows) + "\n"


# ============================================================
# 1-3. Template / export
# ============================================================

def test_template_has_every_column_and_an_example():
    lines = generate_csv_template().strip().split("\n")
    assert len(lines) == 2
    assert lines[0].split(",")[0] == "Line ID"
    assert len(lines[0].split(",")) == len(CSV_COLUMNS)
    assert lines[1].startswith("L1,")


def test_template_imports_cleanly(company_settings):
    calculator = LineCalculator(company=company_settings)
    result = import_csv(generate_csv_template(), calculator.rates_for)
    assert result.ok
    assert result.lines[0]["total_weight"] == pytest.approx(65.0 * 20 * 4)


def test_export_quotes_text_with_commas():
    text = export_lines_to_csv([new_line("L1", item_description="Beam, curved", one_side_coat=True)])
    row = text.split("\n")[1]
    assert '"Beam, curved"' in row
    assert "true" in row


# ============================================================
# 4-5. Same math as the editor
# ============================================================

def test_import_matches_interactive_edit(company_settings):
    calculator = LineCalculator(company=company_settings)
    result = import_csv(_csv("L1,Column,Structural,W12x65,A992,20,2,3.5,Galvanizing,Active"),
                        calculator.rates_for)
    assert result.ok
    imported = result.lines[0]

    typed = calculator.recalculate(new_line("L1", item_description="Column"))
    for field_name, value in (("size_designation", "W12x65"), ("grade", "A992"), ("length_ft", 20),
                              ("qty", 2), ("labor_weld", 3.5), ("coating_system", "Galvanizing")):
        typed = calculator.recalculate(apply_field_edit(typed, field_name, value))

    for name in DERIVED_FIELDS:
        assert imported[name] == pytest.approx(typed[name]), name


def test_plate_rows_and_legacy_material_type(company_settings):
    calculator = LineCalculator(company=company_settings)
    text = (
        "Line ID,Item Description,Material Type,Thickness (in),Width (in),Plate Length (in),Plate Quantity\n"
        "L1,Base plate,Plate,1/2,12,24,3\n"
        "L2,Post,Material,,,,\n"
    )
    result = import_csv(text, calculator.rates_for)
    assert result.ok
    plate, post = result.lines
    assert plate["qty"] == 3
    assert plate["plate_total_weight"] == pytest.approx(2.0 * 20.4 * 3)
    assert post["material_type"] == "Structural"


# ============================================================
# 6-9. Validation
# ============================================================

def test_row_errors_are_reported_and_rows_skipped():
    result = import_csv(
        _csv(
            "L1,Column,Structural,W12x65,A992,20,1,0,None,Active",
            "X5,Beam,Structural,W8X31,A992,10,1,0,None,Active",
            "L3,,Structural,W8X31,A992,10,1,0,None,Active",
            "L4,Brace,Wood,,,,1,0,None,Active",
            "L5,Clip,Plate,,,,1,0,None,Deleted",
            "L1,Duplicate,Structural,W8X31,A992,10,1,0,None,Active",
        ),
        LineCalculator().rates_for,
        existing_ids=["L9"],
    )
    assert [line["line_id"] for line in result.lines] == ["L1"]
    by_row = {(e.row, e.column) for e in result.errors}
    assert (3, "Line ID") in by_row
    assert (4, "Item Description") in by_row
    assert (5, "Material Type") in by_row
    assert (6, "Status") in by_row
    assert (7, "Line ID") in by_row


def test_existing_ids_are_rejected():
    result = import_csv(_csv("L9,Column,Structural,W12x65,A992,20,1,0,None,Active"),
                        LineCalculator().rates_for, existing_ids=["L9"])
    assert result.lines == []
    assert "already exists" in result.errors[0].message


def test_missing_required_column():
    result = import_csv("Line ID,Item Description\nL1,Column\n", LineCalculator().rates_for)
    assert result.lines == []
    assert result.errors[0].row == 1
    assert result.errors[0].column == "Material Type"


def test_empty_file_raises():
    with pytest.raises(CsvImportError):
        import_csv("", LineCalculator().rates_for)
    with pytest.raises(CsvImportError):
        import_csv(HEADER + "\n", LineCalculator().rates_for)
