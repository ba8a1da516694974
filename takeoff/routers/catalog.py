from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from typing import List, Optional
from .. import schemas
from ..catalog import SHAPES, available_shape_types, shape_type_of, shapes_by_type
from ..csv_import import generate_csv_template

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/shapes", response_model=List[schemas.ShapeEntry])
def list_shapes(shape_type: Optional[str] = None):
    """All catalog shapes, or one family (?shape_type=W)."""
    keys = shapes_by_type(shape_type) if shape_type else sorted(SHAPES)
    return [
        {
            "designation": key,
            "shape_type": shape_type_of(key),
            "weight_per_foot": SHAPES[key][0],
            "surface_area_per_foot": SHAPES[key][1],
        }
        for key in keys
    ]


@router.get("/shape-types")
def list_shape_types():
    return available_shape_types()


@router.get("/csv-template", response_class=PlainTextResponse)
def csv_template():
    return PlainTextResponse(generate_csv_template(), media_type="text/csv")
