from pydantic import BaseModel
from typing import Optional, List, Dict
from datetime import datetime


class ProjectBase(BaseModel):
    name: str
    client_name: Optional[str] = None
    notes: Optional[str] = None

class ProjectCreate(ProjectBase):
    pass

class Project(ProjectBase):
    id: int
    created_at: datetime
    class Config:
        from_attributes = True


# --- Lines ---
# Only the commonly posted fields are declared; any other line field is
# accepted as-is and validated by the calculation pipeline (coerce_number).

class LineFields(BaseModel):
    status: Optional[str] = None
    item_description: Optional[str] = None
    drawing_number: Optional[str] = None
    detail_number: Optional[str] = None
    category: Optional[str] = None
    sub_category: Optional[str] = None
    work_type: Optional[str] = None
    is_main_member: Optional[bool] = None
    parent_line_id: Optional[str] = None
    material_type: Optional[str] = None
    shape_type: Optional[str] = None
    size_designation: Optional[str] = None
    grade: Optional[str] = None
    length_ft: Optional[float] = None
    length_in: Optional[float] = None
    qty: Optional[float] = None
    thickness: Optional[str] = None
    width: Optional[float] = None
    plate_length: Optional[float] = None
    plate_qty: Optional[float] = None
    one_side_coat: Optional[bool] = None
    plate_grade: Optional[str] = None
    coating_system: Optional[str] = None
    material_rate: Optional[float] = None
    labor_rate: Optional[float] = None
    coating_rate: Optional[float] = None
    notes: Optional[str] = None
    hashtags: Optional[str] = None

    class Config:
        extra = "allow"

class LineCreate(LineFields):
    line_id: Optional[str] = None

class LineUpdate(LineFields):
    pass


class EstimateSummary(BaseModel):
    line_count: int
    active_line_count: int
    void_line_count: int
    total_weight: float
    total_labor_hours: float
    material_cost: float
    labor_cost: float
    coating_cost: float
    hardware_cost: float
    total_cost: float
    by_category: Dict[str, float] = {}


class ImportRowError(BaseModel):
    row: int
    column: str
    message: str

class ImportResponse(BaseModel):
    imported: int
    line_ids: List[str] = []
    errors: List[ImportRowError] = []


# --- Settings ---

class MaterialGrade(BaseModel):
    grade: str
    cost_per_pound: Optional[float] = None

class LaborRate(BaseModel):
    trade: str
    rate: Optional[float] = None

class CoatingType(BaseModel):
    type: str
    cost_per_sf: Optional[float] = None
    cost_per_pound: Optional[float] = None

class MarkupPayload(BaseModel):
    material_waste_factor: Optional[float] = None
    labor_waste_factor: Optional[float] = None
    overhead_percentage: Optional[float] = None
    profit_percentage: Optional[float] = None
    sales_tax_rate: Optional[float] = None

class RateSettings(BaseModel):
    material_grades: Optional[List[MaterialGrade]] = None
    labor_rates: Optional[List[LaborRate]] = None
    coating_types: Optional[List[CoatingType]] = None
    markup_settings: Optional[MarkupPayload] = None

class ProjectRateSettings(RateSettings):
    material_rate: Optional[float] = None
    labor_rate: Optional[float] = None
    coating_rate: Optional[float] = None


class ShapeEntry(BaseModel):
    designation: str
    shape_type: str
    weight_per_foot: float
    surface_area_per_foot: float
