"""
Total shop hours for a line from its 11 task fields.

No rounding here. Display code rounds; the pricing engine multiplies the raw sum.
"""

from .fields import LABOR_FIELDS, coerce_number


def total_labor_hours(line: dict) -> float:
    """Sum of every task-hour field. Missing or malformed values count as 0."""
    return sum(coerce_number(line.get(name)) for name in LABOR_FIELDS)


def labor_breakdown(line: dict) -> dict:
    """{task_field: hours} with coerced values, in labor-sheet order."""
    return {name: coerce_number(line.get(name)) for name in LABOR_FIELDS}
