from pydantic import BaseModel
from typing import Optional, List, Dict, Any
from datetime import datetime


# --- BOM ---

class BomRequest(BaseModel):
    product_type: str
    style: Optional[str] = None
    inputs: Dict[str, Any] = {}
    materials: Dict[str, str] = {}  # component code -> material sku

class ComponentLine(BaseModel):
    component_code: str
    name: str
    quantity: float
    unit: str
    raw_quantity: float
    rounding_level: str
    formula: str
    material_sku: Optional[str] = None
    material_name: Optional[str] = None
    unit_cost: float = 0.0
    extended_cost: float = 0.0

class LaborLine(BaseModel):
    labor_code: str
    description: str
    quantity: float
    unit: str
    rate: float
    extended_cost: float

class BomResponse(BaseModel):
    product_type: str
    style: Optional[str] = None
    inputs: Dict[str, Any] = {}
    components: List[ComponentLine] = []
    labor_lines: List[LaborLine] = []
    material_cost: float
    labor_cost: float
    total_cost: float

class ProjectRequest(BaseModel):
    name: Optional[str] = None
    community_id: Optional[int] = None
    lines: List[BomRequest]

class ProjectTotal(BaseModel):
    component_code: str
    quantity: float
    unit: str
    rounding_level: str
    material_sku: Optional[str] = None
    material_name: Optional[str] = None
    extended_cost: float = 0.0

class ProjectResponse(BaseModel):
    lines: List[BomResponse] = []
    totals: List[ProjectTotal] = []
    labor_lines: List[LaborLine] = []
    material_cost: float
    labor_cost: float
    total_cost: float


# --- Pricing ---

class PriceRequest(BaseModel):
    sku: str
    base_cost: Optional[float] = None  # defaults to the SKU's standard cost, then a BOM run
    community_id: Optional[int] = None
    client_id: Optional[int] = None
    business_unit_id: Optional[int] = None

class PriceResponse(BaseModel):
    sku: str
    base_cost: float
    price: float
    labor_price: Optional[float] = None
    material_price: Optional[float] = None
    pricing_method: str
    pricing_source: Optional[str] = None
    base_cost_source: str = "request"  # request | standard_cost | bom
    rate_sheet_code: Optional[str] = None
    is_fallback: bool = False
    available: bool = True

class Sku(BaseModel):
    code: str
    name: str
    product_type: str
    style: Optional[str] = None
    height: Optional[float] = None
    post_type: Optional[str] = None
    variables: Dict[str, Any] = {}
    components: Dict[str, str] = {}
    standard_cost: Optional[float] = None
    standard_material_cost: Optional[float] = None
    standard_labor_cost: Optional[float] = None

class SkuCost(BaseModel):
    sku: str
    run_length: float
    material_cost: float
    labor_cost: float
    material_per_foot: float
    labor_per_foot: float
    cost_per_foot: float

class SkuRecalculation(BaseModel):
    updated: List[str] = []
    failed: Dict[str, str] = {}

class AvailableSkus(BaseModel):
    client_id: Optional[int] = None
    community_id: Optional[int] = None
    skus: List[str] = []


# --- Catalog ---

class ProductStyle(BaseModel):
    code: str
    name: str
    formula_adjustments: Dict[str, Any] = {}

class ProductType(BaseModel):
    code: str
    name: str
    default_post_spacing: Optional[float] = None
    styles: List[ProductStyle] = []
    components: List[str] = []

class FormulaTemplate(BaseModel):
    component: str
    style: Optional[str] = None
    expression: str
    rounding_level: str
    priority: int
    plain_english: Optional[str] = None

class ValidationReport(BaseModel):
    ok: bool
    problems: List[str] = []


# --- Projects ---

class BomProject(BaseModel):
    id: int
    project_code: str
    name: Optional[str] = None
    community_id: Optional[int] = None
    lines_json: List[Any] = []
    materials_json: List[Any] = []
    labor_json: List[Any] = []
    material_cost: float
    labor_cost: float
    total_cost: float
    status: str
    created_at: datetime
    class Config:
        from_attributes = True
